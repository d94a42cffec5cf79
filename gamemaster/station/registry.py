"""
Station Registry - Central repository for expected and connected stations.

The registry is the only owner of station records. It tracks which
connection currently represents each station and runs the reconnection
grace period:

    not_started --register--> connected --disconnect--> reconnecting
    reconnecting --register (within grace period)--> connected
    reconnecting --grace period elapsed--> not_started (roster) / deleted (ad hoc)

Every mutation is completed before the first await of the mutating
coroutine, so concurrent handlers on the event loop never observe a
half-applied change.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from typing import TYPE_CHECKING, Any

from gamemaster.core.events import (
    Event,
    EventBus,
    StationConnectedEvent,
    StationDisconnectedEvent,
    StationExpiredEvent,
    StationStateEvent,
)
from gamemaster.core.timers import Timers
from gamemaster.station.models import (
    Registration,
    StationRecord,
    StationSnapshot,
    StationStatus,
)

if TYPE_CHECKING:
    from gamemaster.config import RosterEntry

logger = logging.getLogger(__name__)

# How long a dropped station may take to re-register before it is reset
DEFAULT_GRACE_PERIOD_SECONDS = 10.0


class StationRegistry:
    """
    Central registry for all stations.

    Stations are indexed by their composite identity. Roster stations exist
    from startup (as not_started) and are never removed; ad hoc stations are
    created on first registration and removed when their grace period
    elapses.

    Each connection remembers the identity it registered as, so state
    updates are attributed by connection and never by payload contents.
    """

    def __init__(
        self,
        roster: Iterable[RosterEntry] = (),
        *,
        events: EventBus | None = None,
        timers: Timers | None = None,
        grace_period: float = DEFAULT_GRACE_PERIOD_SECONDS,
    ) -> None:
        """
        Initialize the registry with one not_started record per roster entry.

        Args:
            roster: Expected stations known at startup.
            events: Event bus to publish lifecycle events on.
            timers: Timer owner used for grace periods.
            grace_period: Seconds a dropped station may take to re-register.
        """
        self._stations: dict[str, StationRecord] = {}
        self._expected: set[str] = set()
        self._role_required: set[str] = set()
        self._identity_by_connection: dict[str, str] = {}
        self._events = events
        self._timers = timers or Timers()
        self.grace_period = grace_period

        for entry in roster:
            key = entry.identity.key
            if key in self._stations:
                logger.warning("Duplicate roster entry ignored: %s", key)
                continue
            self._stations[key] = StationRecord(identity=entry.identity, name=entry.name)
            self._expected.add(key)
            if entry.identity.role:
                self._role_required.add(entry.identity.base_id)

        logger.debug("Registry initialized with %d roster stations", len(self._expected))

    # =========================================================================
    # Mutations
    # =========================================================================

    async def register(
        self,
        connection: str,
        registration: Registration,
    ) -> StationSnapshot | None:
        """
        Register (or re-register) a station on a connection.

        Any pending grace period for the identity is cancelled. The record's
        connection, display name and actions are replaced; its observed state
        is kept so a reconnecting station resumes where it left off.
        A connection that re-registers as another identity leaves its previous
        station reconnecting, as if it had dropped.

        Args:
            connection: The registering connection.
            registration: The parsed register message.

        Returns:
            The resulting station snapshot, or None if the registration was
            rejected (a base id that needs a role registered without one).
        """
        identity = registration.identity
        key = identity.key

        if identity.role is None and identity.base_id in self._role_required:
            logger.warning(
                "Rejected registration of %s from %s: a role is required",
                key,
                connection,
            )
            return None

        if self._timers.cancel(key):
            logger.info("Station %s re-registered within grace period", key)

        record = self._stations.get(key)
        previous_status = record.status.value if record else None
        if record is None:
            record = StationRecord(identity=identity, name=registration.name)
            self._stations[key] = record
        elif record.connection is not None and record.connection != connection:
            logger.info(
                "Station %s taken over by %s (replacing %s)",
                key,
                connection,
                record.connection,
            )
            if self._identity_by_connection.get(record.connection) == key:
                del self._identity_by_connection[record.connection]

        # A connection speaks for one station; the one it leaves behind is dropped
        abandoned: StationRecord | None = None
        previous_key = self._identity_by_connection.get(connection)
        if previous_key is not None and previous_key != key:
            logger.info("Connection %s re-registered as %s (was %s)", connection, key, previous_key)
            abandoned = self._stations.get(previous_key)
            if (
                abandoned is not None
                and abandoned.connection == connection
                and abandoned.status is StationStatus.CONNECTED
            ):
                self._start_grace(abandoned, connection)
            else:
                abandoned = None

        record.connection = connection
        record.status = StationStatus.CONNECTED
        record.name = registration.name
        record.actions = list(registration.actions)
        self._identity_by_connection[connection] = key

        snapshot = record.snapshot()
        logger.info(
            "Station registered: %s (%s) - actions: %s",
            registration.name,
            key,
            ", ".join(action.id for action in registration.actions) or "none",
        )

        await self._publish(StationConnectedEvent(identity=key, previous_status=previous_status))
        if abandoned is not None:
            await self._publish(StationDisconnectedEvent(identity=abandoned.key))
        return snapshot

    async def update_state(self, connection: str, state: Any) -> bool:
        """
        Replace the observed state of the station owned by a connection.

        The station is found through the identity the connection registered
        as. Updates from connections that never registered, or that have
        been superseded by a newer connection, are ignored.

        Returns:
            True if the state was applied.
        """
        key = self._identity_by_connection.get(connection)
        if key is None:
            logger.debug("Ignoring state update from unregistered connection %s", connection)
            return False

        record = self._stations.get(key)
        if record is None or record.connection != connection:
            logger.debug("Ignoring stale state update for %s from %s", key, connection)
            return False

        if not isinstance(state, Mapping):
            logger.warning("Ignoring non-object state from %s: %r", key, state)
            return False

        record.connection = connection
        record.status = StationStatus.CONNECTED
        record.state = dict(state)
        logger.debug("State of %s: %s", key, record.state)

        await self._publish(StationStateEvent(identity=key))
        return True

    async def disconnect(self, connection: str) -> list[str]:
        """
        Handle a dropped connection.

        Every station still owned by the connection moves to reconnecting
        and gets a grace-period timer. A connection that was already
        superseded owns nothing, so its disconnect changes nothing.

        Returns:
            The identities that moved to reconnecting.
        """
        self._identity_by_connection.pop(connection, None)

        owned = [
            record
            for record in self._stations.values()
            if record.connection == connection and record.status is StationStatus.CONNECTED
        ]
        if not owned:
            logger.debug("Ignoring disconnect of %s: owns no station", connection)
            return []

        for record in owned:
            self._start_grace(record, connection)

        for record in owned:
            await self._publish(StationDisconnectedEvent(identity=record.key))

        return [record.key for record in owned]

    def _start_grace(self, record: StationRecord, connection: str) -> None:
        """Move a record to reconnecting and start its grace-period timer."""
        record.status = StationStatus.RECONNECTING
        self._timers.schedule(
            record.key,
            self.grace_period,
            self._expiry_callback(record.key, connection),
        )
        logger.info(
            "Station disconnected: %s (grace period %.1fs)",
            record.key,
            self.grace_period,
        )

    def _expiry_callback(self, key: str, connection: str):
        async def expire() -> None:
            await self._expire(key, connection)

        return expire

    async def _expire(self, key: str, connection: str) -> None:
        """Finalize a grace period that elapsed without re-registration."""
        record = self._stations.get(key)
        if (
            record is None
            or record.status is not StationStatus.RECONNECTING
            or record.connection != connection
        ):
            logger.debug("Grace period of %s no longer applies", key)
            return

        removed = key not in self._expected
        if removed:
            del self._stations[key]
            logger.info("Station %s did not come back, removed", key)
        else:
            record.status = StationStatus.NOT_STARTED
            record.connection = None
            record.state = {}
            record.actions = []
            logger.info("Station %s did not come back, reset to not_started", key)

        await self._publish(StationExpiredEvent(identity=key, removed=removed))

    def cancel_timers(self) -> None:
        """Cancel every pending grace period (server shutdown)."""
        self._timers.cancel_all()

    async def _publish(self, event: Event) -> None:
        if self._events is not None:
            await self._events.publish(event)

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, identity: str) -> StationSnapshot | None:
        """Look up a station by composite identity."""
        record = self._stations.get(identity)
        return record.snapshot() if record else None

    def snapshot(self) -> list[StationSnapshot]:
        """
        Get the full current list of stations.

        Roster stations come first in roster order, followed by ad hoc
        stations in order of first registration.
        """
        return [record.snapshot() for record in self._stations.values()]

    def snapshot_map(self) -> dict[str, StationSnapshot]:
        """Get the full current set of stations keyed by identity."""
        return {key: record.snapshot() for key, record in self._stations.items()}

    def identity_for(self, connection: str) -> str | None:
        """Get the identity a connection registered as."""
        return self._identity_by_connection.get(connection)

    def connection_for(self, identity: str) -> str | None:
        """
        Get the live connection of a station.

        Returns:
            The connection, or None unless the station is connected.
        """
        record = self._stations.get(identity)
        if record is None or record.status is not StationStatus.CONNECTED:
            return None
        return record.connection

    def is_expected(self, identity: str) -> bool:
        """Check whether an identity is part of the roster."""
        return identity in self._expected

    def count_by_status(self) -> dict[str, int]:
        """Count stations per lifecycle status."""
        counts = {status.value: 0 for status in StationStatus}
        for record in self._stations.values():
            counts[record.status.value] += 1
        return counts

    def __len__(self) -> int:
        """Return the number of station records."""
        return len(self._stations)

    def __contains__(self, identity: object) -> bool:
        return identity in self._stations

    def __iter__(self) -> Iterator[str]:
        """Iterate over station identities."""
        return iter(list(self._stations))

    def __bool__(self) -> bool:
        """A registry instance is always truthy, even when empty."""
        return True
