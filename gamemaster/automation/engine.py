"""
Automation Engine for Gamemaster.

Feeds station events and connect transitions to the rule tables and
carries out the resulting reactions through the command router, the
timers and the audio relay.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from gamemaster.automation.cues import DEFAULT_BITRATE_KBPS, media_duration
from gamemaster.automation.rules import (
    CONNECT_RULES,
    EVENT_RULES,
    Command,
    Reaction,
    Rule,
    RuleContext,
)
from gamemaster.config import TimingConfig
from gamemaster.core.events import StationConnectedEvent

if TYPE_CHECKING:
    from gamemaster.channel.audio_relay import AudioRelay
    from gamemaster.core.events import Event, EventBus
    from gamemaster.core.timers import Timers
    from gamemaster.station.registry import StationRegistry
    from gamemaster.station.router import CommandRouter

logger = logging.getLogger(__name__)


class AutomationEngine:
    """
    Runs cross-station reactions.

    Immediate commands are sent before the handler returns. Delayed
    commands are fire-and-forget: if the target drops before the delay
    elapses, the router simply reports it unreachable.
    """

    def __init__(
        self,
        registry: StationRegistry,
        router: CommandRouter,
        timers: Timers,
        *,
        audio: AudioRelay | None = None,
        timing: TimingConfig | None = None,
        sounds_dir: Path = Path("sounds"),
        bitrate_kbps: int = DEFAULT_BITRATE_KBPS,
        event_rules: Mapping[tuple[str, str], Rule] | None = None,
        connect_rules: Mapping[str, Rule] | None = None,
    ) -> None:
        self._registry = registry
        self._router = router
        self._timers = timers
        self._audio = audio
        self._timing = timing or TimingConfig()
        self._sounds_dir = sounds_dir
        self._bitrate_kbps = bitrate_kbps
        self._event_rules = dict(EVENT_RULES if event_rules is None else event_rules)
        self._connect_rules = dict(CONNECT_RULES if connect_rules is None else connect_rules)

    async def attach(self, events: EventBus) -> None:
        """Subscribe to station connect transitions."""
        await events.subscribe("station.connected", self._on_station_connected)

    async def handle_event(
        self,
        identity: str,
        name: str,
        data: Any = None,
    ) -> Reaction | None:
        """
        React to an event reported by a station.

        Args:
            identity: Identity of the reporting station.
            name: Event name.
            data: Event payload.

        Returns:
            The reaction carried out, or None when no rule matches.
        """
        rule = self._event_rules.get((identity, name))
        if rule is None:
            logger.debug("No automation for %s from %s", name, identity)
            return None

        logger.info("Automation triggered: %s from %s", name, identity)
        return await self._run(rule, data, source=f"{identity}/{name}")

    async def _on_station_connected(self, event: Event) -> None:
        if not isinstance(event, StationConnectedEvent) or not event.is_transition:
            return

        rule = self._connect_rules.get(event.identity)
        if rule is None:
            return

        logger.info("Automation triggered: %s connected", event.identity)
        await self._run(rule, None, source=f"{event.identity}/connected")

    async def _run(self, rule: Rule, data: Any, source: str) -> Reaction:
        ctx = RuleContext(
            snapshot=self._registry.snapshot_map(),
            data=data if isinstance(data, Mapping) else {},
            timing=self._timing,
        )
        reaction = rule(ctx)
        if reaction.empty:
            logger.info("Automation %s: nothing to do", source)
            return reaction

        await self.execute(reaction)
        return reaction

    async def execute(self, reaction: Reaction) -> int:
        """
        Carry out a reaction.

        Returns:
            Number of immediate commands that reached their station.
        """
        for cue in reaction.cues:
            if self._audio is None:
                logger.warning("No audio relay, cue %s skipped", cue.file)
                continue
            await self._audio.play_cue(cue.file)

        delivered = 0
        for command in reaction.commands:
            if await self._send(command):
                delivered += 1

        for delayed in reaction.delayed:
            delay = delayed.delay
            if delayed.after_media:
                delay += await media_duration(
                    self._sounds_dir / delayed.after_media,
                    self._bitrate_kbps,
                )
            self._timers.call_later(delay, self._sender(delayed.command))
            logger.info(
                "Scheduled %s -> %s in %.1fs",
                delayed.command.action,
                delayed.command.identity,
                delay,
            )

        return delivered

    def _sender(self, command: Command):
        async def send() -> None:
            await self._send(command)

        return send

    async def _send(self, command: Command) -> bool:
        try:
            sent = await self._router.send_command(
                command.identity,
                command.action,
                command.payload,
            )
        except Exception as e:
            logger.exception("Automation command %s -> %s failed: %s", command.action, command.identity, e)
            return False

        if not sent:
            logger.info("Automation skipped %s -> %s: unreachable", command.action, command.identity)
        return sent
