"""Socket.IO connection channel for Gamemaster.

Every station, audio player, camera, viewer and dashboard is a Socket.IO
connection. The client library reconnects on its own; each reconnect is a
new connection (new sid), which is why the registry owns identity and not
the transport.

Station messages:
- register {gameId, role?, name, availableActions}
- state_update {state}
- event {name, data?}

Python-socketio allows one handler per event, so connect and disconnect are
handled here and fanned out to the other handler groups through hooks.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any

import socketio

from gamemaster.station.models import Registration

if TYPE_CHECKING:
    from gamemaster.automation.engine import AutomationEngine
    from gamemaster.station.broadcaster import SnapshotBroadcaster
    from gamemaster.station.registry import StationRegistry

logger = logging.getLogger(__name__)

DisconnectHook = Callable[[str], Awaitable[None]]

# Payloads up to 5 MB (camera frames, synthesized voice clips)
MAX_HTTP_BUFFER_SIZE = 5_000_000


def create_sio(cors_origins: str | list[str] = "*") -> socketio.AsyncServer:
    """Create the async Socket.IO server (ASGI mode)."""
    return socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=cors_origins,
        max_http_buffer_size=MAX_HTTP_BUFFER_SIZE,
        logger=False,  # socket.io internal logging is too verbose
        engineio_logger=False,
    )


class GameChannel:
    """Binds station messages on the Socket.IO server to the registry."""

    def __init__(
        self,
        sio: socketio.AsyncServer,
        registry: StationRegistry,
        broadcaster: SnapshotBroadcaster,
        engine: AutomationEngine,
    ) -> None:
        self._sio = sio
        self._registry = registry
        self._broadcaster = broadcaster
        self._engine = engine
        self._disconnect_hooks: list[DisconnectHook] = []

    def attach(self) -> None:
        """Register the handlers on the Socket.IO server."""
        self._sio.on("connect", self.on_connect)
        self._sio.on("disconnect", self.on_disconnect)
        self._sio.on("register", self.on_register)
        self._sio.on("state_update", self.on_state_update)
        self._sio.on("event", self.on_event)

    def add_disconnect_hook(self, hook: DisconnectHook) -> None:
        """Call hook(sid) whenever a connection drops."""
        self._disconnect_hooks.append(hook)

    async def on_connect(self, sid: str, environ: dict[str, Any], auth: Any = None) -> None:
        logger.debug("New connection: %s", sid)
        await self._broadcaster.send_to(sid)

    async def on_register(self, sid: str, data: Any = None) -> None:
        try:
            registration = Registration.from_message(data)
        except ValueError as e:
            logger.warning("Dropped malformed registration from %s: %s", sid, e)
            return

        await self._registry.register(sid, registration)

    async def on_state_update(self, sid: str, data: Any = None) -> None:
        if not isinstance(data, Mapping):
            logger.warning("Dropped malformed state update from %s", sid)
            return
        await self._registry.update_state(sid, data.get("state"))

    async def on_event(self, sid: str, data: Any = None) -> None:
        identity = self._registry.identity_for(sid)
        if identity is None:
            logger.info("Event from unregistered connection %s ignored", sid)
            return

        if not isinstance(data, Mapping) or not isinstance(data.get("name"), str):
            logger.warning("Dropped malformed event from %s", identity)
            return

        name = data["name"]
        logger.info("Event: %s -> %s %s", identity, name, data.get("data") or "")
        await self._engine.handle_event(identity, name, data.get("data"))

    async def on_disconnect(self, sid: str, reason: Any = None) -> None:
        logger.debug("Connection closed: %s (%s)", sid, reason)
        await self._registry.disconnect(sid)

        for hook in self._disconnect_hooks:
            try:
                await hook(sid)
            except Exception as e:
                logger.exception("Error in disconnect hook for %s: %s", sid, e)
