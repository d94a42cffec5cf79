"""
Station data model for Gamemaster.

A station is one mini-game (or device) client process. Stations are keyed by
their composite identity: the base identifier of the mini-game, optionally
qualified by a role when the same mini-game runs several independent
instances at once (``"labyrinthe:explorer"``, ``"labyrinthe:protector"``).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

ROLE_SEPARATOR = ":"


class StationStatus(Enum):
    """Lifecycle status of a station record."""

    NOT_STARTED = "not_started"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


@dataclass(frozen=True)
class StationIdentity:
    """Composite identity of a station (base identifier plus optional role)."""

    base_id: str
    role: str | None = None

    @property
    def key(self) -> str:
        """The composite registry key ("base:role" or "base")."""
        if self.role:
            return f"{self.base_id}{ROLE_SEPARATOR}{self.role}"
        return self.base_id

    @classmethod
    def parse(cls, game_id: str, role: str | None = None) -> StationIdentity:
        """
        Build an identity from a game id and an optional separate role.

        The game id may already be composite ("labyrinthe:explorer"). When a
        separate role is also given, both must name the same role.

        Raises:
            ValueError: If the base identifier is empty or the roles disagree.
        """
        if not isinstance(game_id, str):
            raise ValueError(f"game id must be a string, got {type(game_id).__name__}")
        if role is not None and not isinstance(role, str):
            raise ValueError(f"role must be a string, got {type(role).__name__}")

        base_id, _, embedded_role = game_id.strip().partition(ROLE_SEPARATOR)
        base_id = base_id.strip()
        embedded_role = embedded_role.strip() or None
        role = role.strip() if role else None

        if not base_id:
            raise ValueError("game id is empty")
        if role and embedded_role and role != embedded_role:
            raise ValueError(f"role {role!r} conflicts with game id {game_id!r}")

        return cls(base_id=base_id, role=role or embedded_role)

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class StationAction:
    """A command a station declares it accepts."""

    id: str
    label: str
    params: tuple[str, ...] | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> StationAction:
        """
        Parse an action from its wire form ``{id, label, params?}``.

        Raises:
            ValueError: If the action has no usable id.
        """
        action_id = data.get("id")
        if not isinstance(action_id, str) or not action_id:
            raise ValueError(f"action without id: {dict(data)!r}")

        label = data.get("label")
        params = data.get("params")
        return cls(
            id=action_id,
            label=label if isinstance(label, str) and label else action_id,
            params=tuple(str(p) for p in params) if isinstance(params, list) else None,
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"id": self.id, "label": self.label}
        if self.params is not None:
            result["params"] = list(self.params)
        return result


@dataclass(frozen=True)
class Registration:
    """A parsed ``register`` message."""

    identity: StationIdentity
    name: str
    actions: tuple[StationAction, ...] = ()

    @classmethod
    def from_message(cls, data: Any) -> Registration:
        """
        Parse a ``register`` message.

        Accepts ``gameId`` (or ``baseId``), an optional ``role``, a display
        ``name`` and ``availableActions``. Malformed action entries are
        skipped with a warning; they do not invalidate the registration.

        Raises:
            ValueError: If the message is not a mapping or has no usable id.
        """
        if not isinstance(data, Mapping):
            raise ValueError("register payload must be an object")

        game_id = data.get("gameId", data.get("baseId"))
        if game_id is None:
            raise ValueError("register payload has no gameId")
        identity = StationIdentity.parse(game_id, data.get("role"))

        actions: list[StationAction] = []
        raw_actions = data.get("availableActions") or []
        if not isinstance(raw_actions, list):
            logger.warning("Ignoring non-list availableActions from %s", identity)
            raw_actions = []
        for raw in raw_actions:
            if not isinstance(raw, Mapping):
                logger.warning("Ignoring malformed action from %s: %r", identity, raw)
                continue
            try:
                actions.append(StationAction.from_dict(raw))
            except ValueError as e:
                logger.warning("Ignoring malformed action from %s: %s", identity, e)

        name = data.get("name")
        return cls(
            identity=identity,
            name=name if isinstance(name, str) and name else identity.key,
            actions=tuple(actions),
        )


@dataclass(frozen=True)
class StationSnapshot:
    """Read-only copy of a station record, safe to hand to observers and rules."""

    identity: StationIdentity
    name: str
    actions: tuple[StationAction, ...]
    state: Mapping[str, Any]
    status: StationStatus

    @property
    def key(self) -> str:
        return self.identity.key

    @property
    def is_connected(self) -> bool:
        return self.status is StationStatus.CONNECTED

    def to_dict(self) -> dict[str, Any]:
        """Wire form used by ``games_updated`` and ``GET /api/games``."""
        return {
            "gameId": self.identity.key,
            "baseId": self.identity.base_id,
            "role": self.identity.role,
            "name": self.name,
            "availableActions": [action.to_dict() for action in self.actions],
            "state": dict(self.state),
            "status": self.status.value,
        }


@dataclass
class StationRecord:
    """
    Mutable registry entry for one station.

    Only the registry holds these; everything else sees StationSnapshot.
    """

    identity: StationIdentity
    name: str
    actions: list[StationAction] = field(default_factory=list)
    state: dict[str, Any] = field(default_factory=dict)
    status: StationStatus = StationStatus.NOT_STARTED
    connection: str | None = None

    @property
    def key(self) -> str:
        return self.identity.key

    def snapshot(self) -> StationSnapshot:
        return StationSnapshot(
            identity=self.identity,
            name=self.name,
            actions=tuple(self.actions),
            state=dict(self.state),
            status=self.status,
        )
