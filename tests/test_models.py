"""
Tests for gamemaster.station.models.

These tests verify:
- Composite identity parsing ("base:role")
- register message parsing (lenient on actions, strict on identity)
- Wire form of station snapshots
"""

from __future__ import annotations

import pytest

from gamemaster.station.models import (
    Registration,
    StationAction,
    StationIdentity,
    StationRecord,
    StationStatus,
)


class TestStationIdentity:
    """Tests for StationIdentity."""

    def test_plain_identity(self) -> None:
        identity = StationIdentity.parse("aria")
        assert identity.base_id == "aria"
        assert identity.role is None
        assert identity.key == "aria"

    def test_separate_role(self) -> None:
        identity = StationIdentity.parse("labyrinthe", "explorer")
        assert identity.key == "labyrinthe:explorer"
        assert str(identity) == "labyrinthe:explorer"

    def test_embedded_role(self) -> None:
        identity = StationIdentity.parse("labyrinthe:protector")
        assert identity.base_id == "labyrinthe"
        assert identity.role == "protector"

    def test_embedded_and_matching_role(self) -> None:
        identity = StationIdentity.parse("labyrinthe:explorer", "explorer")
        assert identity.key == "labyrinthe:explorer"

    def test_conflicting_roles_rejected(self) -> None:
        with pytest.raises(ValueError):
            StationIdentity.parse("labyrinthe:explorer", "protector")

    @pytest.mark.parametrize("game_id", ["", "   ", ":explorer"])
    def test_empty_base_rejected(self, game_id: str) -> None:
        with pytest.raises(ValueError):
            StationIdentity.parse(game_id)

    def test_non_string_rejected(self) -> None:
        with pytest.raises(ValueError):
            StationIdentity.parse(42)  # type: ignore[arg-type]

    def test_identities_are_hashable_and_equal_by_value(self) -> None:
        a = StationIdentity.parse("labyrinthe", "explorer")
        b = StationIdentity.parse("labyrinthe:explorer")
        assert a == b
        assert len({a, b}) == 1


class TestStationAction:
    """Tests for StationAction."""

    def test_from_dict(self) -> None:
        action = StationAction.from_dict({"id": "reset", "label": "Reset", "params": ["level"]})
        assert action.id == "reset"
        assert action.label == "Reset"
        assert action.params == ("level",)

    def test_label_defaults_to_id(self) -> None:
        action = StationAction.from_dict({"id": "start"})
        assert action.label == "start"
        assert action.params is None

    def test_missing_id_rejected(self) -> None:
        with pytest.raises(ValueError):
            StationAction.from_dict({"label": "No id"})

    def test_to_dict_omits_absent_params(self) -> None:
        assert StationAction("start", "Start").to_dict() == {"id": "start", "label": "Start"}
        assert StationAction("goto", "Go", ("level",)).to_dict() == {
            "id": "goto",
            "label": "Go",
            "params": ["level"],
        }


class TestRegistration:
    """Tests for parsing register messages."""

    def test_full_message(self) -> None:
        registration = Registration.from_message(
            {
                "gameId": "labyrinthe",
                "role": "explorer",
                "name": "Explorateur",
                "availableActions": [{"id": "start", "label": "Démarrer"}],
            }
        )
        assert registration.identity.key == "labyrinthe:explorer"
        assert registration.name == "Explorateur"
        assert [a.id for a in registration.actions] == ["start"]

    def test_base_id_alias(self) -> None:
        registration = Registration.from_message({"baseId": "aria"})
        assert registration.identity.key == "aria"

    def test_name_defaults_to_identity(self) -> None:
        registration = Registration.from_message({"gameId": "usb-key"})
        assert registration.name == "usb-key"
        assert registration.actions == ()

    def test_malformed_actions_skipped(self) -> None:
        registration = Registration.from_message(
            {
                "gameId": "sidequest",
                "availableActions": ["start", {"label": "no id"}, {"id": "reset"}],
            }
        )
        assert [a.id for a in registration.actions] == ["reset"]

    def test_non_list_actions_ignored(self) -> None:
        registration = Registration.from_message({"gameId": "aria", "availableActions": "start"})
        assert registration.actions == ()

    @pytest.mark.parametrize("data", [None, "aria", ["aria"], {}, {"name": "ARIA"}])
    def test_invalid_messages_rejected(self, data: object) -> None:
        with pytest.raises(ValueError):
            Registration.from_message(data)


class TestStationSnapshot:
    """Tests for the wire form of stations."""

    def test_to_dict(self) -> None:
        record = StationRecord(
            identity=StationIdentity("labyrinthe", "explorer"),
            name="Explorateur",
            actions=[StationAction("start", "Démarrer")],
            state={"gameStarted": True},
            status=StationStatus.CONNECTED,
            connection="sid-1",
        )
        assert record.snapshot().to_dict() == {
            "gameId": "labyrinthe:explorer",
            "baseId": "labyrinthe",
            "role": "explorer",
            "name": "Explorateur",
            "availableActions": [{"id": "start", "label": "Démarrer"}],
            "state": {"gameStarted": True},
            "status": "connected",
        }

    def test_snapshot_is_a_copy(self) -> None:
        record = StationRecord(identity=StationIdentity("aria"), name="ARIA", state={"a": 1})
        snapshot = record.snapshot()
        record.state["a"] = 2
        assert snapshot.state == {"a": 1}
        assert not snapshot.is_connected
