"""
Periodic driver for the detection engine.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .config import SchedulerConfig, get_config
from .detection.detector import TimingDetector

logger = logging.getLogger(__name__)


class Scheduler:
    """
    Waits out a warm-up delay, runs one scan immediately, then starts a new
    scan every interval.

    Ticks fire on a fixed period regardless of how long a scan takes. If the
    previous scan is still running when a tick fires, that tick is skipped.
    """

    def __init__(
        self,
        detector: TimingDetector,
        config: Optional[SchedulerConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.detector = detector
        self.config = config or get_config().scheduler
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self._current: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def cycle_in_progress(self) -> bool:
        return self._current is not None and not self._current.done()

    def start(self) -> asyncio.Task:
        """Launch the scan loop in the background."""
        if self.running:
            return self._task
        self._task = asyncio.create_task(self.run(), name="timing-tracker-scheduler")
        return self._task

    async def stop(self) -> None:
        """Cancel the loop and any in-flight scan."""
        tasks = [t for t in (self._task, self._current) if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._task = None
        self._current = None

    async def run(self, max_ticks: Optional[int] = None) -> None:
        logger.info(f"Waiting {self.config.warmup_seconds:g} seconds before first scan...")
        await self._sleep(self.config.warmup_seconds)
        logger.info("Starting Kalshi timing-based monitoring...")

        ticks = 0
        while max_ticks is None or ticks < max_ticks:
            self.tick()
            ticks += 1
            await self._sleep(self.config.interval_seconds)

        if self._current is not None:
            await asyncio.gather(self._current, return_exceptions=True)

    def tick(self) -> bool:
        """Start a scan unless one is already running. Returns True if started."""
        if self.cycle_in_progress:
            self.detector.state.stats.scans_skipped += 1
            logger.warning("Previous scan still running, skipping this tick")
            return False
        self._current = asyncio.create_task(self.detector.run_cycle())
        return True
