"""
Debounced refresh scheduling.

Push notifications arrive in bursts (one per changed row). Each trigger
cancels and restarts a pending timer, so a burst collapses into one full
refresh that runs `delay` seconds after the last event. Refreshes are
serialized on a lock: a timer refresh and a direct refresh never overlap.

States: idle -> pending (timer armed) -> refreshing -> idle.
"""

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum

from nexus_crm.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

RefreshCallable = Callable[[], Awaitable[None]]


class RefreshState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    REFRESHING = "refreshing"


class RefreshScheduler:
    def __init__(self, refresh: RefreshCallable, delay_seconds: float = 1.0):
        self._refresh = refresh
        self._delay = delay_seconds
        self._timer: asyncio.Task | None = None
        self._firing: set[asyncio.Task] = set()
        self._lock = asyncio.Lock()
        self.refresh_count = 0

    @property
    def delay_seconds(self) -> float:
        return self._delay

    @property
    def state(self) -> RefreshState:
        if self._lock.locked():
            return RefreshState.REFRESHING
        if self._timer is not None and not self._timer.done():
            return RefreshState.PENDING
        return RefreshState.IDLE

    def trigger(self) -> None:
        """Arm (or re-arm) the refresh timer."""
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._fire())
        logger.debug("Refresh scheduled", delay_seconds=self._delay)

    async def _fire(self) -> None:
        task = asyncio.current_task()
        await asyncio.sleep(self._delay)

        # From here on this task is no longer the cancellable timer
        if self._timer is task:
            self._timer = None
        self._firing.add(task)
        try:
            await self.refresh_now()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # No retry: the next push event or mutation will refresh again
            logger.error("Debounced refresh failed", error=str(e), error_type=type(e).__name__)
        finally:
            self._firing.discard(task)

    async def refresh_now(self) -> None:
        """Run one refresh immediately, waiting for any refresh already in flight."""
        async with self._lock:
            await self._refresh()
            self.refresh_count += 1

    def cancel(self) -> None:
        """Drop the pending timer and any timer-driven refresh still running."""
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None
        for task in list(self._firing):
            task.cancel()
        self._firing.clear()

    async def wait_pending(self) -> None:
        """Wait until the armed timer (if any) has fired and its refresh completed."""
        while True:
            tasks = [t for t in (self._timer, *self._firing) if t is not None and not t.done()]
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)
