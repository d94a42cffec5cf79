"""
Snapshot Broadcaster - keeps every observer on the latest registry state.

After each registry mutation the full list of stations is emitted to every
connection. Observers replace their copy wholesale; there is no diffing.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from gamemaster.core.events import Event, EventBus
    from gamemaster.station.registry import StationRegistry
    from gamemaster.station.router import Emitter

logger = logging.getLogger(__name__)

SNAPSHOT_EVENT = "games_updated"


class SnapshotBroadcaster:
    """Emits ``games_updated`` with the full registry snapshot."""

    def __init__(self, registry: StationRegistry, emitter: Emitter) -> None:
        self._registry = registry
        self._emitter = emitter

    async def attach(self, events: EventBus) -> None:
        """Broadcast after every station lifecycle event."""
        await events.subscribe("station.*", self._on_station_event)

    def payload(self) -> list[dict[str, Any]]:
        return [station.to_dict() for station in self._registry.snapshot()]

    async def broadcast(self) -> None:
        """Emit the snapshot to every connection."""
        await self._emitter.emit(SNAPSHOT_EVENT, self.payload())

    async def send_to(self, connection: str) -> None:
        """Emit the snapshot to a single (newly connected) observer."""
        await self._emitter.emit(SNAPSHOT_EVENT, self.payload(), to=connection)

    async def _on_station_event(self, event: Event) -> None:
        logger.debug("Broadcasting snapshot after %s", event.event_type)
        await self.broadcast()
