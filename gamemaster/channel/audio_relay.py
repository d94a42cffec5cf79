"""
Audio relay for Gamemaster.

Audio players are browser pages that join the "audio-players" room. The
dashboard emits playback commands which are relayed to that room verbatim.

An audio player may announce the station it sits next to. Voice cues
(synthesized speech and automation narration) skip the player tied to the
display-only station. Commands naming a sound file are checked against the
sounds directory first, off the event loop; a missing file is reported on
``audio:log`` and not relayed.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import socketio

logger = logging.getLogger(__name__)

AUDIO_PLAYERS_ROOM = "audio-players"

AUDIO_EVENTS_TO_PLAYER = (
    "audio:play-ambient",
    "audio:stop-ambient",
    "audio:volume-ambient",
    "audio:set-ambient-volume",
    "audio:play-preset",
    "audio:pause-preset",
    "audio:resume-preset",
    "audio:seek-preset",
    "audio:stop-preset",
    "audio:volume-ia",
    "audio:stop-all",
    "audio:master-volume",
    "spotify:toggle",
)

# Player -> dashboards
AUDIO_EVENTS_FROM_PLAYER = (
    "audio:preset-progress",
    "spotify:state",
)

VOICE_EVENT = "audio:play-tts"
CUE_EVENT = "audio:play-preset"
FILE_CHECKED_EVENTS = frozenset({"audio:play-preset", "audio:play-ambient"})


class AudioRelay:
    """Relays playback commands to the audio players."""

    def __init__(
        self,
        sio: socketio.AsyncServer,
        *,
        sounds_dir: Path = Path("sounds"),
        display_only: str | None = None,
    ) -> None:
        self._sio = sio
        self.sounds_dir = sounds_dir
        self.display_only = display_only
        # sid -> station identity the player is tied to
        self._players: dict[str, str | None] = {}

    def attach(self) -> None:
        """Register the handlers on the Socket.IO server."""
        self._sio.on("register-audio-player", self.on_register_player)
        self._sio.on(VOICE_EVENT, self.on_play_voice)
        for event in AUDIO_EVENTS_TO_PLAYER:
            self._sio.on(event, self._to_players(event))
        for event in AUDIO_EVENTS_FROM_PLAYER:
            self._sio.on(event, self._from_player(event))

    # =========================================================================
    # Players
    # =========================================================================

    async def on_register_player(self, sid: str, data: Any = None) -> None:
        game_id = data.get("gameId") if isinstance(data, Mapping) else None
        if game_id is not None and not isinstance(game_id, str):
            game_id = None

        await self._sio.enter_room(sid, AUDIO_PLAYERS_ROOM)
        self._players[sid] = game_id
        logger.info("Audio player registered: %s (%s)", sid, game_id or "no station")
        await self._emit_status()

    async def handle_disconnect(self, sid: str) -> None:
        if sid not in self._players:
            return
        del self._players[sid]
        logger.info("Audio player disconnected: %s", sid)
        await self._emit_status()

    def players(self) -> list[dict[str, Any]]:
        return [{"gameId": game_id, "socketId": sid} for sid, game_id in self._players.items()]

    def voice_excluded(self) -> list[str]:
        """Players that must not receive voice cues."""
        if self.display_only is None:
            return []
        return [sid for sid, game_id in self._players.items() if game_id == self.display_only]

    def __len__(self) -> int:
        return len(self._players)

    async def _emit_status(self) -> None:
        await self._sio.emit(
            "audio-status-updated",
            {"players": self.players(), "count": len(self._players)},
        )

    # =========================================================================
    # Relays
    # =========================================================================

    def _to_players(self, event: str):
        async def relay(sid: str, payload: Any = None) -> None:
            if event in FILE_CHECKED_EVENTS and not await self._check_file(event, payload):
                return
            await self._sio.emit(event, payload, room=AUDIO_PLAYERS_ROOM)
            logger.debug("Relayed %s from %s", event, sid)

        return relay

    def _from_player(self, event: str):
        async def relay(sid: str, payload: Any = None) -> None:
            await self._sio.emit(event, payload, skip_sid=sid)

        return relay

    async def on_play_voice(self, sid: str, payload: Any = None) -> None:
        await self.play_voice(VOICE_EVENT, payload)

    async def play_voice(self, event: str, payload: Any) -> None:
        """Emit a voice cue to every audio player except the display-only one."""
        excluded = self.voice_excluded()
        await self._sio.emit(
            event,
            payload,
            room=AUDIO_PLAYERS_ROOM,
            skip_sid=excluded or None,
        )

    async def play_cue(self, file: str) -> bool:
        """
        Play a narration file as a voice cue.

        Returns:
            False if the file does not exist in the sounds directory.
        """
        if not await self.sound_exists(file):
            logger.warning("Audio cue %s not found in %s", file, self.sounds_dir)
            await self.log("preset", "error", f"File not found: {file}")
            return False

        await self.play_voice(CUE_EVENT, {"file": file, "cue": True})
        await self.log("preset", "play", f"Playing: {file}")
        logger.info("Audio cue played: %s", file)
        return True

    # =========================================================================
    # File checks
    # =========================================================================

    async def _check_file(self, event: str, payload: Any) -> bool:
        file = payload.get("file") if isinstance(payload, Mapping) else None
        if file is None:
            return True
        if isinstance(file, str) and await self.sound_exists(file):
            return True

        logger.warning("%s refused: %r not found", event, file)
        await self.log("preset" if "preset" in event else "ambient", "error", f"File not found: {file}")
        return False

    async def sound_exists(self, file: str) -> bool:
        """Check that a file exists inside the sounds directory."""
        return await asyncio.to_thread(self._is_sound_file, file)

    def _is_sound_file(self, file: str) -> bool:
        root = self.sounds_dir.resolve()
        path = (root / file).resolve()
        if root not in path.parents:
            return False
        return path.is_file()

    async def log(self, kind: str, action: str, message: str, game_id: str | None = None) -> None:
        """Emit an ``audio:log`` entry for the dashboard timeline."""
        entry: dict[str, Any] = {
            "type": kind,
            "action": action,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if game_id is not None:
            entry["gameId"] = game_id
        await self._sio.emit("audio:log", entry)
