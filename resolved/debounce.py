"""Per-buffer debouncing of scan requests."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Hashable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

logger = logging.getLogger(__name__)

BufferId = Hashable
FireCallback = Callable[[BufferId], Awaitable[None]]


@dataclass
class DebounceTimer:
    """A pending scan for one buffer."""

    buffer_id: BufferId
    scheduled_at: float
    handle: asyncio.TimerHandle

    def cancel(self) -> None:
        self.handle.cancel()


class DebounceCoordinator:
    """Collapses rapid scan requests for a buffer into a single delayed scan.

    Each buffer is either idle or has exactly one pending timer. A new request
    cancels the pending timer before arming a replacement, so only the last
    request in a burst fires. Must be used from the event loop thread.
    """

    def __init__(self, delay_ms: int, on_fire: FireCallback):
        """Initialize the coordinator.

        Args:
            delay_ms: Quiet period before a requested scan fires
            on_fire: Coroutine function run with the buffer id when a timer fires
        """
        if delay_ms < 0:
            raise ValueError("Debounce delay must be non-negative")
        self.delay = delay_ms / 1000
        self._on_fire = on_fire
        self._timers: dict[BufferId, DebounceTimer] = {}
        self._running: set[asyncio.Task[None]] = set()

    @property
    def timers(self) -> Mapping[BufferId, DebounceTimer]:
        """Read-only view of pending timers."""
        return MappingProxyType(self._timers)

    def is_pending(self, buffer_id: BufferId) -> bool:
        return buffer_id in self._timers

    def request(self, buffer_id: BufferId) -> None:
        """Schedule a scan for a buffer, replacing any pending one."""
        self.cancel(buffer_id)

        loop = asyncio.get_running_loop()
        timer: DebounceTimer

        def fire() -> None:
            # A superseded handle is cancelled and never runs, but only drop
            # the registry entry if it still belongs to this timer.
            if self._timers.get(buffer_id) is timer:
                del self._timers[buffer_id]
            task = loop.create_task(self._on_fire(buffer_id))
            self._running.add(task)
            task.add_done_callback(self._task_done)

        timer = DebounceTimer(
            buffer_id=buffer_id,
            scheduled_at=time.monotonic(),
            handle=loop.call_later(self.delay, fire),
        )
        self._timers[buffer_id] = timer

    def cancel(self, buffer_id: BufferId) -> bool:
        """Cancel a pending timer. Returns True if one was pending."""
        timer = self._timers.pop(buffer_id, None)
        if timer is None:
            return False
        timer.cancel()
        return True

    def dispose(self, buffer_id: BufferId) -> None:
        """Release everything held for a buffer that no longer exists.

        A scan that already fired keeps running; it checks buffer liveness
        itself before touching the buffer.
        """
        if self.cancel(buffer_id):
            logger.debug(f"Cancelled pending scan for disposed buffer {buffer_id}")

    def cancel_all(self) -> None:
        for buffer_id in list(self._timers):
            self.cancel(buffer_id)

    def _task_done(self, task: asyncio.Task[None]) -> None:
        self._running.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Debounced scan failed", exc_info=exc)

    async def drain(self) -> None:
        """Wait for scans that have already fired to finish."""
        while self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)

    async def close(self) -> None:
        """Cancel pending timers and wait for running scans."""
        self.cancel_all()
        await self.drain()
