"""
Automation rules for Gamemaster.

Each rule is a pure function of a RuleContext (current registry snapshot,
the event payload and the configured delays) returning a Reaction: commands
to send now, commands to send later and audio cues to play. Rules never
touch the registry; the engine carries out their reactions.

Event rules are keyed by (reporting station, event name). Connect rules are
keyed by station and fire when that station enters the connected status.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from gamemaster.automation.fields import FieldProblem, read_flag, read_id, read_number
from gamemaster.config import TimingConfig

if TYPE_CHECKING:
    from gamemaster.station.models import StationSnapshot

logger = logging.getLogger(__name__)

# Stations of the escape room
SIDEQUEST = "sidequest"
EXPLORER = "labyrinthe:explorer"
PROTECTOR = "labyrinthe:protector"
ARIA = "aria"
INFECTION_MAP = "infection-map"
USB_KEY = "usb-key"

MAZE_ROLES = (EXPLORER, PROTECTOR)

# Narration played after each dilemma answer, by (dilemmaId, choiceId)
DILEMMA_CUES: dict[tuple[str, str], str] = {
    ("1", "a"): "dilemme-1-a.mp3",
    ("1", "b"): "dilemme-1-b.mp3",
    ("2", "a"): "dilemme-2-a.mp3",
    ("2", "b"): "dilemme-2-b.mp3",
    ("3", "a"): "dilemme-3-a.mp3",
    ("3", "b"): "dilemme-3-b.mp3",
}

# Sent once the USB key is plugged in: the players have won
FINALE_SEQUENCE: tuple[tuple[str, str], ...] = (
    (INFECTION_MAP, "victory"),
    (ARIA, "disable_evil"),
    (SIDEQUEST, "victory"),
)


@dataclass(frozen=True)
class Command:
    identity: str
    action: str
    payload: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DelayedCommand:
    """A command sent after a delay.

    When after_media is set, the estimated playback duration of that sound
    file is added to the delay.
    """

    command: Command
    delay: float = 0.0
    after_media: str | None = None


@dataclass(frozen=True)
class AudioCue:
    """A voice cue played on the audio players."""

    file: str


@dataclass
class Reaction:
    commands: list[Command] = field(default_factory=list)
    delayed: list[DelayedCommand] = field(default_factory=list)
    cues: list[AudioCue] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not (self.commands or self.delayed or self.cues)


@dataclass(frozen=True)
class RuleContext:
    snapshot: Mapping[str, StationSnapshot]
    data: Mapping[str, Any] = field(default_factory=dict)
    timing: TimingConfig = field(default_factory=TimingConfig)


Rule = Callable[[RuleContext], Reaction]


def start_maze(ctx: RuleContext) -> Reaction:
    """Password solved: start both maze roles that are not running yet."""
    reaction = Reaction()
    for identity in MAZE_ROLES:
        station = ctx.snapshot.get(identity)
        if station is None:
            logger.warning("Cannot start %s: not in registry", identity)
            continue

        started = read_flag(station.state, "gameStarted")
        if started.ok and started.value:
            logger.info("%s already started, start not sent", identity)
            continue
        if started.problem is FieldProblem.WRONG_TYPE:
            logger.warning("State of %s: %s, assuming not started", identity, started.describe())

        reaction.commands.append(Command(identity, "start"))
    return reaction


def relay_points(ctx: RuleContext) -> Reaction:
    """Points earned in the maze are added to the other games' scores.

    The event payload is forwarded as is once its points are known to be
    numeric.
    """
    points = read_number(ctx.data, "points")
    if not points.ok:
        logger.warning("Ignoring points event: %s", points.describe())
        return Reaction()

    payload = dict(ctx.data)
    return Reaction(
        commands=[
            Command(SIDEQUEST, "score_delta", payload),
            Command(INFECTION_MAP, "score_delta", payload),
        ]
    )


def resolve_dilemma(ctx: RuleContext) -> Reaction:
    """
    A dilemma was answered on ARIA.

    The maze roles waiting on the answer resume right away. The narration
    for the answer plays on the audio players, and the infection map only
    reveals the choice once the narration is over.
    """
    dilemma = read_id(ctx.data, "dilemmaId")
    choice = read_id(ctx.data, "choiceId")
    if not (dilemma.ok and choice.ok):
        problem = dilemma if not dilemma.ok else choice
        logger.warning("Ignoring dilemma event: %s", problem.describe())
        return Reaction()

    reaction = Reaction(commands=[Command(identity, "resume") for identity in MAZE_ROLES])
    reveal = Command(
        INFECTION_MAP,
        "reveal_choice",
        {"dilemmaId": dilemma.value, "choiceId": choice.value},
    )

    cue = DILEMMA_CUES.get((dilemma.value, choice.value))
    if cue is None:
        logger.warning("No audio cue for dilemma %s choice %s", dilemma.value, choice.value)
        reaction.delayed.append(DelayedCommand(reveal, ctx.timing.reveal_buffer_seconds))
    else:
        reaction.cues.append(AudioCue(cue))
        reaction.delayed.append(
            DelayedCommand(reveal, ctx.timing.reveal_buffer_seconds, after_media=cue)
        )
    return reaction


def finale(ctx: RuleContext) -> Reaction:
    """USB key plugged in: mark the experience as won."""
    return Reaction(
        delayed=[
            DelayedCommand(Command(identity, action), ctx.timing.finale_delay_seconds)
            for identity, action in FINALE_SEQUENCE
        ]
    )


EVENT_RULES: dict[tuple[str, str], Rule] = {
    (SIDEQUEST, "password_solved"): start_maze,
    (EXPLORER, "points_earned"): relay_points,
    (PROTECTOR, "points_earned"): relay_points,
    (ARIA, "dilemma_choice"): resolve_dilemma,
}

CONNECT_RULES: dict[str, Rule] = {
    USB_KEY: finale,
}
