"""
Gamemaster Server - Main Server Module

This module contains the main GamemasterServer class that builds all
components around a single station registry and manages the application
lifecycle.
"""

from __future__ import annotations

import asyncio
import logging
import signal

from gamemaster.automation.engine import AutomationEngine
from gamemaster.channel.audio_relay import AudioRelay
from gamemaster.channel.cameras import CameraTracker
from gamemaster.channel.socketio_server import GameChannel, create_sio
from gamemaster.channel.webrtc_relay import SignalingRelay
from gamemaster.config import GamemasterConfig, get_config
from gamemaster.core.events import EventBus
from gamemaster.core.timers import Timers
from gamemaster.station.broadcaster import SnapshotBroadcaster
from gamemaster.station.registry import StationRegistry
from gamemaster.station.router import CommandRouter
from gamemaster.web.server import WebServer

logger = logging.getLogger(__name__)


class GamemasterServer:
    """
    Main Gamemaster server that coordinates all components.

    The server manages:
    - Station registry (roster, reconnection grace periods)
    - Command router and automation engine
    - Snapshot broadcaster for dashboards
    - Audio relay, WebRTC signaling relay and camera tracker
    - Web server (REST API + Socket.IO on one port)

    There is exactly one registry per server; every other component
    receives it at construction.
    """

    def __init__(
        self,
        config: GamemasterConfig | None = None,
        *,
        host: str | None = None,
        port: int | None = None,
    ) -> None:
        """
        Initialize the Gamemaster server.

        Args:
            config: Loaded configuration (defaults to the bundled one).
            host: Host address to bind to (overrides the config).
            port: HTTP/Socket.IO port (overrides the config).
        """
        self.config = config or get_config()
        self.host = host or self.config.server.host
        self.port = port or self.config.server.port

        self.events = EventBus()
        self.timers = Timers()
        self.sio = create_sio(self.config.server.cors_origins)

        self.registry = StationRegistry(
            self.config.roster,
            events=self.events,
            timers=self.timers,
            grace_period=self.config.timing.grace_period_seconds,
        )
        self.router = CommandRouter(self.registry, self.sio)
        self.broadcaster = SnapshotBroadcaster(self.registry, self.sio)

        self.audio_relay = AudioRelay(
            self.sio,
            sounds_dir=self.config.audio.sounds_dir,
            display_only=self.config.audio.display_only,
        )
        self.automation = AutomationEngine(
            self.registry,
            self.router,
            self.timers,
            audio=self.audio_relay,
            timing=self.config.timing,
            sounds_dir=self.config.audio.sounds_dir,
            bitrate_kbps=self.config.audio.bitrate_kbps,
        )
        self.signaling = SignalingRelay(self.sio)
        self.cameras = CameraTracker(self.sio, timeout=self.config.cameras.timeout_seconds)

        self.channel = GameChannel(self.sio, self.registry, self.broadcaster, self.automation)
        self.channel.add_disconnect_hook(self.audio_relay.handle_disconnect)
        self.channel.add_disconnect_hook(self.cameras.handle_disconnect)

        self.web_server = WebServer(
            self.registry,
            self.router,
            sio=self.sio,
            audio_relay=self.audio_relay,
            sounds_dir=self.config.audio.sounds_dir,
            cors_origins=self.config.server.cors_origins,
        )

        # Server state
        self._running = False
        self._shutdown_event: asyncio.Event | None = None

    async def start(self) -> None:
        """Start all server components."""
        logger.info("Starting Gamemaster server on %s:%d", self.host, self.port)

        self._running = True
        self._shutdown_event = asyncio.Event()

        # Broadcaster first, so dashboards see a change before its automation runs
        await self.broadcaster.attach(self.events)
        await self.automation.attach(self.events)

        self.channel.attach()
        self.audio_relay.attach()
        self.signaling.attach()
        self.cameras.attach()
        await self.cameras.start()

        await self.web_server.start(host=self.host, port=self.port)

        logger.info(
            "Gamemaster server started: %d roster stations, grace period %.1fs",
            len(self.config.roster),
            self.registry.grace_period,
        )

    async def stop(self) -> None:
        """Stop all server components gracefully."""
        if not self._running:
            return

        logger.info("Stopping Gamemaster server...")
        self._running = False

        await self.web_server.stop()
        await self.cameras.stop()

        # Pending grace periods and automation follow-ups die with the process
        self.registry.cancel_timers()
        await self.events.clear()

        if self._shutdown_event:
            self._shutdown_event.set()

        logger.info("Gamemaster server stopped")

    async def run(self) -> None:
        """
        Run the server until shutdown is requested.

        This method starts all components and waits for a shutdown signal
        (SIGINT or SIGTERM).
        """
        await self.start()

        loop = asyncio.get_running_loop()

        def handle_signal() -> None:
            logger.info("Received shutdown signal")
            if self._shutdown_event:
                self._shutdown_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, handle_signal)
            except NotImplementedError:
                # Signal handlers not supported on Windows
                pass

        if self._shutdown_event:
            await self._shutdown_event.wait()

        await self.stop()

    @property
    def is_running(self) -> bool:
        """Check if the server is currently running."""
        return self._running
