"""
Web Server Module for Gamemaster.

This module provides the WebServer class that creates and manages the
FastAPI application, registers all routes and serves it, wrapped by the
Socket.IO ASGI app, with uvicorn.

The WebServer integrates:
- REST API for the dashboard
- Socket.IO endpoint for stations, audio players, cameras and dashboards
- Static sound files for the audio players
"""

from __future__ import annotations

import asyncio
import logging
import socket
from pathlib import Path
from typing import TYPE_CHECKING

import socketio
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from gamemaster.web.routes.api import register_api_routes

if TYPE_CHECKING:
    from gamemaster.channel.audio_relay import AudioRelay
    from gamemaster.station.registry import StationRegistry
    from gamemaster.station.router import CommandRouter

logger = logging.getLogger(__name__)


class WebServer:
    """
    FastAPI-based web server for Gamemaster.

    Serves the REST API and, when a Socket.IO server is given, the
    Socket.IO endpoint on the same port.
    """

    def __init__(
        self,
        registry: StationRegistry,
        command_router: CommandRouter,
        *,
        sio: socketio.AsyncServer | None = None,
        audio_relay: AudioRelay | None = None,
        sounds_dir: Path | None = None,
        cors_origins: str | list[str] = "*",
    ) -> None:
        """
        Initialize the WebServer.

        Args:
            registry: Station registry
            command_router: Router for operator commands
            sio: Optional Socket.IO server mounted in front of the app
            audio_relay: Optional audio relay (player counts in /api/status)
            sounds_dir: Optional directory served under /sounds
            cors_origins: Allowed CORS origins
        """
        self.registry = registry
        self.command_router = command_router
        self.audio_relay = audio_relay
        self.sounds_dir = sounds_dir

        self.app = FastAPI(
            title="Gamemaster",
            description="Escape-room game-master coordinator",
            version="0.1.0",
        )

        origins = [cors_origins] if isinstance(cors_origins, str) else list(cors_origins)
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        # Socket.IO handles /socket.io/ and passes everything else to FastAPI
        self.asgi_app = socketio.ASGIApp(sio, other_asgi_app=self.app) if sio is not None else self.app

        # Server state
        self._server: uvicorn.Server | None = None
        self._serve_task: asyncio.Task[None] | None = None
        self._host = "0.0.0.0"
        self._port = 3000

        self._register_routes()

    def _register_routes(self) -> None:
        """Register all routes with the FastAPI app."""

        @self.app.get("/health")
        async def health_check() -> dict[str, str]:
            """Health check endpoint."""
            return {"status": "ok", "server": "gamemaster"}

        register_api_routes(
            self.app,
            registry=self.registry,
            command_router=self.command_router,
            audio_relay=self.audio_relay,
        )

        if self.sounds_dir is not None and self.sounds_dir.is_dir():
            self.app.mount("/sounds", StaticFiles(directory=self.sounds_dir), name="sounds")
        elif self.sounds_dir is not None:
            logger.warning("Sounds directory %s not found, /sounds disabled", self.sounds_dir)

    async def start(self, host: str = "0.0.0.0", port: int = 3000) -> None:
        """
        Start the web server.

        Args:
            host: Host address to bind to
            port: Port to listen on
        """
        self._host = host
        self._port = port

        config = uvicorn.Config(
            self.asgi_app,
            host=host,
            port=port,
            log_level="warning",
            access_log=False,
        )
        self._server = uvicorn.Server(config)
        self._serve_task = asyncio.create_task(self._server.serve())

        logger.info("Web server started on http://%s:%d", host, port)
        if host == "0.0.0.0":
            logger.info("Local network: http://%s:%d", self._detect_lan_ip(), port)

    async def stop(self) -> None:
        """Stop the web server."""
        if self._server is not None:
            self._server.should_exit = True
            self._server = None

        if self._serve_task is not None:
            await self._serve_task
            self._serve_task = None

        logger.info("Web server stopped")

    @property
    def port(self) -> int:
        """Get the server port."""
        return self._port

    @property
    def host(self) -> str:
        """Get the server host."""
        return self._host

    @staticmethod
    def _detect_lan_ip() -> str:
        """
        Detect the primary LAN IP address of this machine.

        Uses the UDP socket trick: connect to a public DNS server
        (no packet is actually sent) to determine which local
        interface would be used for outbound traffic.
        """
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
                s.connect(("8.8.8.8", 80))
                return s.getsockname()[0]
        except OSError:
            return "127.0.0.1"
