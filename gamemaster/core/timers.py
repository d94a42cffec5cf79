"""
Delayed calls for Gamemaster.

Two kinds of delayed work exist on the coordinator:
- Grace-period timers, keyed by station identity. Scheduling a key that is
  already pending replaces (cancels) the previous timer, and a re-registration
  cancels exactly the timer for its identity.
- Automation follow-ups, which are fire-and-forget and never cancelled
  individually.

Both are asyncio tasks that sleep and then await a coroutine callback.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], Awaitable[None]]


class TimerHandle:
    """Handle to one scheduled callback."""

    def __init__(self, delay: float, key: str | None = None) -> None:
        self.delay = delay
        self.key = key
        self._task: asyncio.Task[None] | None = None

    def cancel(self) -> bool:
        """
        Cancel the callback if it has not started running yet.

        Returns:
            True if the timer was pending and is now cancelled.
        """
        if self._task is None or self._task.done():
            return False
        return self._task.cancel()

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    @property
    def cancelled(self) -> bool:
        return self._task is not None and self._task.cancelled()

    async def wait(self) -> None:
        """Wait for the timer to fire (or be cancelled)."""
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                if not self._task.cancelled():
                    raise

    def __repr__(self) -> str:
        return f"TimerHandle(key={self.key!r}, delay={self.delay})"


class Timers:
    """Owns every pending delayed call of the server."""

    def __init__(self) -> None:
        self._keyed: dict[str, TimerHandle] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    def schedule(self, key: str, delay: float, callback: TimerCallback) -> TimerHandle:
        """
        Schedule a keyed callback, replacing any pending timer for the key.

        Must be called from within the running event loop.
        """
        self.cancel(key)
        handle = TimerHandle(delay, key)
        self._start(handle, callback)
        self._keyed[key] = handle
        logger.debug("Scheduled %s in %.2fs", key, delay)
        return handle

    def call_later(self, delay: float, callback: TimerCallback) -> TimerHandle:
        """Schedule a fire-and-forget callback."""
        handle = TimerHandle(delay)
        self._start(handle, callback)
        return handle

    def cancel(self, key: str) -> bool:
        """
        Cancel the pending timer for a key.

        Returns:
            True if a pending timer existed and was cancelled.
        """
        handle = self._keyed.pop(key, None)
        if handle is None:
            return False
        cancelled = handle.cancel()
        if cancelled:
            logger.debug("Cancelled timer %s", key)
        return cancelled

    def cancel_all(self) -> None:
        """Cancel every pending timer, keyed or not."""
        for task in list(self._tasks):
            task.cancel()
        self._keyed.clear()

    def pending(self, key: str) -> bool:
        """Check whether a keyed timer is still waiting to fire."""
        handle = self._keyed.get(key)
        return handle is not None and not handle.done

    def __len__(self) -> int:
        """Return the number of timers that have not fired yet."""
        return sum(1 for task in self._tasks if not task.done())

    def _start(self, handle: TimerHandle, callback: TimerCallback) -> None:
        task = asyncio.get_running_loop().create_task(self._fire(handle, callback))
        handle._task = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _fire(self, handle: TimerHandle, callback: TimerCallback) -> None:
        await asyncio.sleep(handle.delay)

        if handle.key is not None and self._keyed.get(handle.key) is handle:
            del self._keyed[handle.key]

        try:
            await callback()
        except Exception as e:
            logger.exception("Error in delayed call %r: %s", handle, e)
