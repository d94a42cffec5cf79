"""
WebRTC signaling pass-through.

Camera sources and viewers negotiate their peer connections through the
coordinator. Every signaling message is forwarded to all other connections;
each side filters on the cameraId it cares about.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import socketio

logger = logging.getLogger(__name__)

SIGNALING_EVENTS = (
    "webrtc:request-offer",
    "webrtc:offer",
    "webrtc:answer",
    "webrtc:ice-candidate",
    "webrtc:stream-available",
    "webrtc:cameras-status",
)


class SignalingRelay:
    def __init__(self, sio: socketio.AsyncServer) -> None:
        self._sio = sio

    def attach(self) -> None:
        for event in SIGNALING_EVENTS:
            self._sio.on(event, self._forward(event))

    def _forward(self, event: str):
        async def forward(sid: str, payload: Any = None) -> None:
            await self._sio.emit(event, payload, skip_sid=sid)
            logger.debug("Signaling %s from %s", event, sid)

        return forward
