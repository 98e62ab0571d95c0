"""
Fixed-interval live score refresh.

Fallback for listeners that cannot subscribe to pushes: every tick asks
the lifecycle for a fresh score. A tick without a snapshot is a no-op.
"""

import asyncio
import logging
from typing import Optional

from app.services.behavior_engine.lifecycle import SessionLifecycle

logger = logging.getLogger(__name__)


class LiveScoreMonitor:
    DEFAULT_INTERVAL = 5.0  # seconds

    def __init__(self, lifecycle: SessionLifecycle, interval: float = DEFAULT_INTERVAL):
        self.lifecycle = lifecycle
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def tick(self):
        try:
            return self.lifecycle.refresh()
        except Exception as e:
            # Keep polling; a bad tick must not kill the loop
            logger.error(f"Live refresh failed: {e}", exc_info=True)
            return None

    async def run(self) -> None:
        logger.info(f"Live score monitor running every {self.interval}s")
        while True:
            self.tick()
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self.run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Live score monitor stopped")
