"""
Command Router - point-to-point commands to stations.

Commands are fire-and-forget real-time instructions: a command is only
sent when the target station is connected right now. Nothing is queued or
retried, so a station that reconnects a second later never receives a
stale instruction.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from gamemaster.station.registry import StationRegistry

logger = logging.getLogger(__name__)

COMMAND_EVENT = "command"


class Emitter(Protocol):
    """The part of the Socket.IO server the station components need."""

    async def emit(self, event: str, data: Any = None, **kwargs: Any) -> None: ...


class CommandRouter:
    """Routes operator and automation commands to the owning connection."""

    def __init__(self, registry: StationRegistry, emitter: Emitter) -> None:
        self._registry = registry
        self._emitter = emitter

    async def send_command(
        self,
        identity: str,
        action: str,
        payload: Any = None,
    ) -> bool:
        """
        Send a command to a station.

        Args:
            identity: Composite identity of the target station.
            action: Action identifier.
            payload: Optional action parameters, passed through verbatim
                (mappings are copied, None becomes an empty object).

        Returns:
            True if the command was emitted, False if the station is unknown,
            not connected or reconnecting.
        """
        connection = self._registry.connection_for(identity)
        if connection is None:
            logger.info("Command %s not sent: %s is unreachable", action, identity)
            return False

        if payload is None:
            payload = {}
        elif isinstance(payload, Mapping):
            payload = dict(payload)

        message = {"type": "command", "action": action, "payload": payload}
        await self._emitter.emit(COMMAND_EVENT, message, to=connection)
        logger.info("Command sent: %s -> %s", action, identity)
        return True
