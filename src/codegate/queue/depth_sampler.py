"""Periodic queue depth sampling."""

import asyncio
import logging
from typing import Dict, Optional

from ..models.analysis_models import AnalysisStatus
from ..monitoring.metrics import PipelineMetrics
from ..persistence.base import AnalysisStore

logger = logging.getLogger(__name__)


class QueueDepthSampler:
    """
    Publishes queue depth gauges on a fixed interval.

    PATTERN: Single owned background task with an explicit stop
    CRITICAL: A failed sample is logged and the loop keeps going
    GOTCHA: Depth is derived from analysis states, so delayed and failed
        jobs are always reported as 0
    """

    def __init__(
        self,
        store: AnalysisStore,
        metrics: PipelineMetrics,
        interval: float = 10.0,
    ):
        """
        Initialize sampler.

        Args:
            store: System of record holding analyses
            metrics: Gauge sink
            interval: Seconds between samples
        """
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.store = store
        self.metrics = metrics
        self.interval = interval
        self._task: Optional[asyncio.Task] = None
        self._stop: Optional[asyncio.Event] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sample(self) -> Dict[str, int]:
        """
        Take one sample and publish it.

        Returns:
            Depth per queue state
        """
        waiting = await self.store.count_analyses(AnalysisStatus.PENDING)
        active = await self.store.count_analyses(AnalysisStatus.RUNNING)
        depth = {"waiting": waiting, "active": active, "delayed": 0, "failed": 0}

        for state, value in depth.items():
            self.metrics.set_gauge("queue_depth", value, {"state": state})
        self.metrics.set_gauge("running_analyses", active)
        return depth

    async def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                await self.sample()
            except Exception as e:
                logger.warning(f"Queue depth sample failed: {e}")

            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

    def start(self) -> None:
        """Start the sampling task. Calling it twice keeps one task."""
        if self.running:
            return
        self._stop = asyncio.Event()
        self._task = asyncio.create_task(self._loop())
        logger.info(f"Queue depth sampler started (interval {self.interval}s)")

    async def stop(self) -> None:
        """Stop the sampling task and wait for it to exit."""
        if self._task is None:
            return
        self._stop.set()
        await self._task
        self._task = None
        logger.info("Queue depth sampler stopped")
