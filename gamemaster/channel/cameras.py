"""
Camera liveness tracking.

Surveillance cameras register once, then push JPEG frames. A camera is
online while frames keep arriving; it goes offline when none arrived within
the timeout or its connection drops. The dashboard receives the camera list
whenever a status changes, and every frame as it arrives.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import socketio

logger = logging.getLogger(__name__)

DEFAULT_CAMERA_TIMEOUT_SECONDS = 10.0
SWEEP_INTERVAL_SECONDS = 2.0


@dataclass
class Camera:
    id: str
    name: str
    ip: str = ""
    sid: str | None = None
    last_seen: float = field(default_factory=time.time)

    def touch(self) -> None:
        """Update last_seen timestamp."""
        self.last_seen = time.time()

    def is_online(self, timeout_s: float) -> bool:
        return self.sid is not None and (time.time() - self.last_seen) <= timeout_s

    def to_dict(self, timeout_s: float) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "ip": self.ip,
            "status": "online" if self.is_online(timeout_s) else "offline",
        }


class CameraTracker:
    """Tracks cameras and relays their frames to the dashboard."""

    def __init__(
        self,
        sio: socketio.AsyncServer,
        *,
        timeout: float = DEFAULT_CAMERA_TIMEOUT_SECONDS,
        sweep_interval: float = SWEEP_INTERVAL_SECONDS,
    ) -> None:
        self._sio = sio
        self.timeout = timeout
        self._sweep_interval = sweep_interval
        self._cameras: dict[str, Camera] = {}
        self._last_statuses: dict[str, str] = {}
        self._sweep_task: asyncio.Task[None] | None = None

    def attach(self) -> None:
        self._sio.on("cam:register", self.on_register)
        self._sio.on("cam:frame", self.on_frame)
        self._sio.on("dashboard:reboot-camera", self.on_reboot)

    async def start(self) -> None:
        """Start the periodic offline sweep."""
        self._sweep_task = asyncio.create_task(self._sweep_loop())
        logger.info("CameraTracker started")

    async def stop(self) -> None:
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweep_task
            self._sweep_task = None
        logger.info("CameraTracker stopped")

    def cameras(self) -> list[dict[str, Any]]:
        return [camera.to_dict(self.timeout) for camera in self._cameras.values()]

    def _by_sid(self, sid: str) -> Camera | None:
        for camera in self._cameras.values():
            if camera.sid == sid:
                return camera
        return None

    async def on_register(self, sid: str, data: Any = None) -> None:
        if not isinstance(data, Mapping) or not isinstance(data.get("id"), str) or not data["id"]:
            logger.warning("Dropped malformed camera registration from %s", sid)
            return

        camera_id = data["id"]
        camera = self._cameras.get(camera_id)
        if camera is None:
            camera = Camera(id=camera_id, name=str(data.get("name") or camera_id))
            self._cameras[camera_id] = camera
        camera.sid = sid
        camera.ip = str(data.get("ip") or camera.ip)
        camera.touch()
        logger.info("Camera registered: %s (%s)", camera.name, camera_id)
        await self.emit_if_changed()

    async def on_frame(self, sid: str, image: Any = None) -> None:
        camera = self._by_sid(sid)
        if camera is None:
            logger.debug("Frame from unregistered camera connection %s", sid)
            return

        camera.touch()
        await self._sio.emit("camera:feed", {"id": camera.id, "image": image}, skip_sid=sid)
        await self.emit_if_changed()

    async def on_reboot(self, sid: str, camera_id: Any = None) -> bool:
        camera = self._cameras.get(camera_id) if isinstance(camera_id, str) else None
        if camera is None or camera.sid is None:
            logger.info("Reboot of camera %s not sent: not connected", camera_id)
            return False

        await self._sio.emit("cmd:reboot", to=camera.sid)
        logger.info("Reboot sent to camera %s", camera.id)
        return True

    async def handle_disconnect(self, sid: str) -> None:
        camera = self._by_sid(sid)
        if camera is None:
            return
        camera.sid = None
        logger.info("Camera disconnected: %s", camera.id)
        await self.emit_if_changed()

    async def emit_if_changed(self) -> bool:
        """Emit ``cameras:update`` when any camera's status changed."""
        statuses = {camera.id: camera.to_dict(self.timeout)["status"] for camera in self._cameras.values()}
        if statuses == self._last_statuses:
            return False
        self._last_statuses = statuses
        await self._sio.emit("cameras:update", self.cameras())
        return True

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            try:
                await self.emit_if_changed()
            except Exception as e:
                logger.exception("Camera sweep failed: %s", e)
