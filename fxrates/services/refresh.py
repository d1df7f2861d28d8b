"""Background task that keeps the rate cache fresh."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

Tick = Callable[[], Awaitable[object]]


class RefreshLoop:
    """Runs `refresh` once at start, then once per tick until stopped.

    The default tick sleeps `interval` seconds. Pass `tick` to drive the loop
    by hand. Failures are logged and retried on the next tick; stopping does
    not cancel an attempt that is already running.
    """

    def __init__(
        self,
        refresh: Callable[[], Awaitable[object]],
        interval: float,
        tick: Optional[Tick] = None,
    ):
        if interval <= 0 and tick is None:
            raise ValueError("refresh interval must be positive")
        self._refresh = refresh
        self.interval = interval
        self._tick = tick or self._sleep
        self._stopped = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

        self.attempts = 0
        self.failures = 0
        self.last_success_at: Optional[datetime] = None
        self.last_error: Optional[str] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stopped.clear()
        self._task = asyncio.create_task(self._run(), name="rate-refresh")

    async def stop(self) -> None:
        self._stopped.set()
        if self._task is not None:
            await self._task
            self._task = None

    async def run_once(self) -> bool:
        """One refresh attempt. Returns True on success."""
        self.attempts += 1
        try:
            await self._refresh()
        except Exception as e:
            self.failures += 1
            self.last_error = str(e) or e.__class__.__name__
            logger.error(f"rate refresh failed: {self.last_error}")
            return False
        self.last_success_at = datetime.now(timezone.utc)
        self.last_error = None
        return True

    async def _sleep(self) -> None:
        await asyncio.sleep(self.interval)

    async def _next_tick(self) -> bool:
        """Wait for the next tick. False once the loop has been stopped."""
        tick = asyncio.ensure_future(self._tick())
        stop = asyncio.ensure_future(self._stopped.wait())
        _, pending = await asyncio.wait({tick, stop}, return_when=asyncio.FIRST_COMPLETED)
        for fut in pending:
            fut.cancel()
        return not self._stopped.is_set()

    async def _run(self) -> None:
        logger.info(f"rate refresher started, interval={self.interval:.0f}s")
        await self.run_once()
        while not self._stopped.is_set():
            if not await self._next_tick():
                break
            await self.run_once()
        logger.info("rate refresher stopped")
