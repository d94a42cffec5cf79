"""
Station management for Gamemaster.

This package handles the mini-game stations: their identities and records,
the registry with its reconnection grace period, command routing and the
snapshot broadcast to observers.
"""

from gamemaster.station.broadcaster import SnapshotBroadcaster
from gamemaster.station.models import (
    Registration,
    StationAction,
    StationIdentity,
    StationSnapshot,
    StationStatus,
)
from gamemaster.station.registry import StationRegistry
from gamemaster.station.router import CommandRouter

__all__ = [
    "CommandRouter",
    "Registration",
    "SnapshotBroadcaster",
    "StationAction",
    "StationIdentity",
    "StationRegistry",
    "StationSnapshot",
    "StationStatus",
]
