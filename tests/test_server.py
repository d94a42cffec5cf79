"""
Tests for gamemaster.server (component wiring).

The server is built but not started: no port is bound.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

from httpx import ASGITransport, AsyncClient

from gamemaster.config import parse_config
from gamemaster.server import GamemasterServer
from gamemaster.station.models import Registration, StationStatus

CONFIG = {
    "server": {"port": 3999},
    "timing": {"grace_period_seconds": 0.5},
    "roster": [{"base_id": "aria", "name": "ARIA Cat"}, {"base_id": "usb-key"}],
}


class TestGamemasterServer:
    """Tests for GamemasterServer construction."""

    def test_settings_from_config(self) -> None:
        server = GamemasterServer(parse_config(CONFIG))

        assert server.port == 3999
        assert server.host == "0.0.0.0"
        assert server.registry.grace_period == 0.5
        assert len(server.registry) == 2
        assert not server.is_running

    def test_overrides(self) -> None:
        server = GamemasterServer(parse_config(CONFIG), host="127.0.0.1", port=4000)
        assert server.host == "127.0.0.1"
        assert server.port == 4000

    async def test_api_sees_the_registry(self) -> None:
        server = GamemasterServer(parse_config(CONFIG))
        transport = ASGITransport(app=server.web_server.app)

        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/api/games")

        assert [g["gameId"] for g in response.json()] == ["aria", "usb-key"]

    async def test_registration_broadcast_and_finale(self) -> None:
        server = GamemasterServer(parse_config(CONFIG))
        server.sio.emit = AsyncMock()
        await server.broadcaster.attach(server.events)
        await server.automation.attach(server.events)

        await server.registry.register("sid-1", Registration.from_message({"gameId": "usb-key"}))

        assert server.registry.get("usb-key").status is StationStatus.CONNECTED
        events = [call.args[0] for call in server.sio.emit.await_args_list]
        assert events == ["games_updated"]
        # The finale was scheduled on the server's timers
        assert len(server.timers) == 3

        server.registry.cancel_timers()

    async def test_stop_when_not_running(self) -> None:
        server = GamemasterServer(parse_config(CONFIG))
        await server.stop()
        assert not server.is_running
