"""Fixed-interval snapshot polling used while the push channel is down."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

TickCallback = Callable[[], Awaitable[object]]


class FallbackPoller:
    """Runs one async callback now and then every ``interval`` seconds.

    At most one schedule exists at a time: starting again replaces the
    running schedule, stopping an idle poller does nothing.
    """

    def __init__(self) -> None:
        self._task: Optional[asyncio.Task] = None
        self.interval: Optional[float] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, interval: float, on_tick: TickCallback) -> None:
        """Begin polling. Must be called from a running event loop."""
        if interval <= 0:
            raise ValueError(f"Poll interval must be positive, got {interval}")
        self.stop()
        self.interval = interval
        self._task = asyncio.get_running_loop().create_task(self._loop(interval, on_tick))
        logger.info("Polling every %.1fs", interval)

    def stop(self) -> None:
        """Cancel the schedule, if any."""
        if self._task is not None:
            if not self._task.done():
                self._task.cancel()
                logger.info("Polling stopped")
            self._task = None

    async def _loop(self, interval: float, on_tick: TickCallback) -> None:
        while True:
            try:
                await on_tick()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Poll tick failed")
            await asyncio.sleep(interval)
