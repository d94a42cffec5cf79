"""
REST API Routes for Gamemaster.

Provides REST endpoints for the dashboard:
- /api/status: Server status
- /api/games: Registry snapshot
- /api/games/{game_id}/command: Send a command to a station

The registry, command router and audio relay are injected per application
through ``app.state``; handlers read them from the request.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from fastapi import FastAPI

    from gamemaster.channel.audio_relay import AudioRelay
    from gamemaster.station.registry import StationRegistry
    from gamemaster.station.router import CommandRouter

logger = logging.getLogger(__name__)

router = APIRouter(tags=["api"])


class CommandRequest(BaseModel):
    """Body of POST /api/games/{game_id}/command.

    The payload is passed through to the station as is.
    """

    action: str = Field(min_length=1)
    payload: Any = None


def register_api_routes(
    app: FastAPI,
    registry: StationRegistry,
    command_router: CommandRouter,
    audio_relay: AudioRelay | None = None,
) -> None:
    """
    Register API routes with the FastAPI app.

    Args:
        app: FastAPI application instance
        registry: StationRegistry for snapshots
        command_router: CommandRouter for operator commands
        audio_relay: Optional AudioRelay for player counts
    """
    app.state.registry = registry
    app.state.command_router = command_router
    app.state.audio_relay = audio_relay
    app.include_router(router)


def _registry(request: Request) -> StationRegistry:
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        raise HTTPException(status_code=503, detail="Server not initialized")
    return registry


def _command_router(request: Request) -> CommandRouter:
    command_router = getattr(request.app.state, "command_router", None)
    if command_router is None:
        raise HTTPException(status_code=503, detail="Server not initialized")
    return command_router


# =============================================================================
# Server Status
# =============================================================================


@router.get("/api/status")
async def server_status(request: Request) -> dict[str, Any]:
    """Get server status and station counts."""
    registry = _registry(request)
    audio_relay = getattr(request.app.state, "audio_relay", None)

    return {
        "server": "gamemaster",
        "version": "0.1.0",
        "stations": registry.count_by_status(),
        "audio_players": len(audio_relay) if audio_relay is not None else 0,
    }


# =============================================================================
# Game Endpoints
# =============================================================================


@router.get("/api/games")
async def list_games(request: Request) -> list[dict[str, Any]]:
    """List every station with its lifecycle status (same shape as games_updated)."""
    return [station.to_dict() for station in _registry(request).snapshot()]


@router.post("/api/games/{game_id}/command")
async def send_game_command(
    game_id: str,
    body: CommandRequest,
    request: Request,
) -> dict[str, bool]:
    """Send a command to a connected station."""
    sent = await _command_router(request).send_command(game_id, body.action, body.payload)
    if not sent:
        raise HTTPException(status_code=404, detail="Game not found")

    return {"ok": True}
