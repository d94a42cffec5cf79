"""
Tests for gamemaster.core.events (EventBus and station lifecycle events).
"""

from __future__ import annotations

import pytest

from gamemaster.core.events import (
    Event,
    EventBus,
    StationConnectedEvent,
    StationDisconnectedEvent,
    StationExpiredEvent,
    StationStateEvent,
)


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


class TestEvents:
    """Tests for the event dataclasses."""

    def test_event_types(self) -> None:
        assert StationConnectedEvent(identity="aria").event_type == "station.connected"
        assert StationStateEvent(identity="aria").event_type == "station.state"
        assert StationDisconnectedEvent(identity="aria").event_type == "station.disconnected"
        assert StationExpiredEvent(identity="aria").event_type == "station.expired"

    @pytest.mark.parametrize(
        ("previous", "expected"),
        [(None, True), ("not_started", True), ("reconnecting", True), ("connected", False)],
    )
    def test_connected_transition(self, previous: str | None, expected: bool) -> None:
        event = StationConnectedEvent(identity="usb-key", previous_status=previous)
        assert event.is_transition is expected


class TestEventBus:
    """Tests for EventBus."""

    async def test_exact_subscription(self, bus: EventBus) -> None:
        received: list[Event] = []

        async def handler(event: Event) -> None:
            received.append(event)

        await bus.subscribe("station.connected", handler)
        count = await bus.publish(StationConnectedEvent(identity="aria"))
        await bus.publish(StationStateEvent(identity="aria"))

        assert count == 1
        assert [e.event_type for e in received] == ["station.connected"]

    async def test_wildcard_subscription(self, bus: EventBus) -> None:
        received: list[str] = []

        async def handler(event: Event) -> None:
            received.append(event.event_type)

        await bus.subscribe("station.*", handler)
        await bus.publish(StationConnectedEvent(identity="aria"))
        await bus.publish(StationExpiredEvent(identity="aria"))
        await bus.publish(Event(event_type="other.thing"))

        assert received == ["station.connected", "station.expired"]

    async def test_catch_all_subscription(self, bus: EventBus) -> None:
        received: list[str] = []

        async def handler(event: Event) -> None:
            received.append(event.event_type)

        await bus.subscribe("*", handler)
        await bus.publish(Event(event_type="other.thing"))
        assert received == ["other.thing"]

    async def test_handlers_run_in_subscription_order(self, bus: EventBus) -> None:
        order: list[str] = []

        async def first(event: Event) -> None:
            order.append("first")

        async def second(event: Event) -> None:
            order.append("second")

        await bus.subscribe("station.*", first)
        await bus.subscribe("station.*", second)
        await bus.publish(StationStateEvent(identity="aria"))
        assert order == ["first", "second"]

    async def test_failing_handler_is_isolated(self, bus: EventBus) -> None:
        received: list[Event] = []

        async def broken(event: Event) -> None:
            raise RuntimeError("boom")

        async def working(event: Event) -> None:
            received.append(event)

        await bus.subscribe("station.state", broken)
        await bus.subscribe("station.state", working)
        count = await bus.publish(StationStateEvent(identity="aria"))

        assert count == 1
        assert len(received) == 1

    async def test_clear(self, bus: EventBus) -> None:
        received: list[Event] = []

        async def handler(event: Event) -> None:
            received.append(event)

        await bus.subscribe("*", handler)
        await bus.clear()
        assert await bus.publish(StationStateEvent(identity="aria")) == 0
