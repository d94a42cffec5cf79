"""
Event Bus for Gamemaster.

This module provides a simple pub/sub event system for decoupled communication
between components. The registry publishes a lifecycle event after every
mutation; the snapshot broadcaster and the automation engine subscribe.

Event types:
- station.connected: A station registered (first time or reconnection)
- station.state: A station reported new application state
- station.disconnected: A station's connection dropped, grace period running
- station.expired: A grace period elapsed without re-registration

Usage:
    events = EventBus()

    async def on_connected(event: Event) -> None:
        print(f"{event.identity} is now connected")

    await events.subscribe("station.connected", on_connected)

    await events.publish(StationConnectedEvent(identity="aria"))
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Coroutine

logger = logging.getLogger(__name__)

# Type alias for event handlers
EventHandler = Callable[["Event"], Coroutine[Any, Any, None]]


@dataclass
class Event:
    """Base class for all events."""

    event_type: str = ""


@dataclass
class StationConnectedEvent(Event):
    """Fired when a station registers.

    previous_status is the status the record had before this registration,
    or None when the record did not exist (ad hoc station seen for the first time).
    """

    event_type: str = field(default="station.connected", init=False)
    identity: str = ""
    previous_status: str | None = None

    @property
    def is_transition(self) -> bool:
        """True when the station was not connected before this registration."""
        return self.previous_status != "connected"


@dataclass
class StationStateEvent(Event):
    """Fired when a station replaces its observed state."""

    event_type: str = field(default="station.state", init=False)
    identity: str = ""


@dataclass
class StationDisconnectedEvent(Event):
    """Fired when a station's live connection drops and its grace period starts."""

    event_type: str = field(default="station.disconnected", init=False)
    identity: str = ""


@dataclass
class StationExpiredEvent(Event):
    """Fired when a grace period elapses.

    removed is True for ad hoc stations (deleted) and False for roster
    stations (reset to not_started).
    """

    event_type: str = field(default="station.expired", init=False)
    identity: str = ""
    removed: bool = False


class EventBus:
    """
    Simple async pub/sub event bus.

    Supports:
    - Multiple handlers per event type
    - Wildcard subscriptions (e.g., "station.*")
    - Async handlers
    - Error isolation (one handler failing doesn't affect others)
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}
        self._lock = asyncio.Lock()

    async def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """
        Subscribe to events of a specific type.

        Args:
            event_type: Event type to subscribe to. Use "*" suffix for wildcards.
            handler: Async function to call when event is published.
        """
        async with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)
            logger.debug("Subscribed to %s: %s", event_type, handler)

    async def publish(self, event: Event) -> int:
        """
        Publish an event to all subscribed handlers.

        Handlers run in subscription order, one after the other.

        Args:
            event: The event to publish.

        Returns:
            Number of handlers that received the event.
        """
        event_type = event.event_type
        handlers_called = 0

        async with self._lock:
            matching_handlers: list[EventHandler] = []

            for pattern, handlers in self._handlers.items():
                if pattern == event_type:
                    matching_handlers.extend(handlers)
                elif pattern.endswith(".*"):
                    prefix = pattern[:-2]
                    if event_type.startswith(prefix + "."):
                        matching_handlers.extend(handlers)
                elif pattern == "*":
                    matching_handlers.extend(handlers)

        # Call handlers outside of lock
        for handler in matching_handlers:
            try:
                await handler(event)
                handlers_called += 1
            except Exception as e:
                logger.exception("Error in event handler for %s: %s", event_type, e)

        if handlers_called > 0:
            logger.debug("Published %s to %d handlers", event_type, handlers_called)

        return handlers_called

    async def clear(self) -> None:
        """Remove all subscriptions."""
        async with self._lock:
            self._handlers.clear()
            logger.debug("Cleared all event subscriptions")
