"""
Core infrastructure for Gamemaster.

This package contains the building blocks shared by every component:
- EventBus: async pub/sub used for registry lifecycle events
- Timers: cancelable delayed calls (grace periods, automation follow-ups)
"""

from gamemaster.core.events import (
    Event,
    EventBus,
    StationConnectedEvent,
    StationDisconnectedEvent,
    StationExpiredEvent,
    StationStateEvent,
)
from gamemaster.core.timers import TimerHandle, Timers

__all__ = [
    "Event",
    "EventBus",
    "StationConnectedEvent",
    "StationDisconnectedEvent",
    "StationExpiredEvent",
    "StationStateEvent",
    "TimerHandle",
    "Timers",
]
