"""
Gamemaster Web Layer.

This package provides the HTTP/REST layer the dashboard uses to read the
registry snapshot and to send operator commands.

Components:
- WebServer: FastAPI application served by uvicorn, with Socket.IO mounted
"""

from gamemaster.web.server import WebServer

__all__ = [
    "WebServer",
]
