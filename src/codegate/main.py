"""Worker process entry point for the analysis pipeline."""

import asyncio
import logging
import signal
from typing import Dict, Optional

from .analyzers.base import AnalyzerRunner, IssueRemediator
from .analyzers.command_runner import CommandAnalyzerRunner
from .config.gate_config import GateConfigLoader
from .config.pipeline_config import PipelineConfig
from .models.job_models import JobKind
from .monitoring.metrics import PipelineMetrics
from .persistence.base import AnalysisStore
from .persistence.sqlite_store import SqliteAnalysisStore
from .queue import create_job_queue
from .queue.base import BaseJobQueue
from .queue.depth_sampler import QueueDepthSampler
from .queue.worker import JobHandler, JobWorker
from .services.gate_resolver import GateResolver
from .services.job_handlers import AnalysisJobHandler, RemediationJobHandler
from .storage.base import ObjectStorage
from .storage.local import LocalObjectStorage

logger = logging.getLogger(__name__)


class PipelineWorker:
    """
    Worker process: job consumer plus queue depth sampler.

    Provides:
    - Handler registration per job kind
    - Queue depth gauges sampled from the store
    - Graceful shutdown on stop()
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        store: Optional[AnalysisStore] = None,
        storage: Optional[ObjectStorage] = None,
        queue: Optional[BaseJobQueue] = None,
        runner: Optional[AnalyzerRunner] = None,
        remediator: Optional[IssueRemediator] = None,
        metrics: Optional[PipelineMetrics] = None,
    ):
        """
        Initialize worker.

        Args:
            config: Pipeline configuration; read from the environment when omitted
            store: System of record; SQLite at DATABASE_PATH when omitted
            storage: Object storage; local directory at STORAGE_ROOT when omitted
            queue: Job queue; backend selected by QUEUE_BACKEND when omitted
            runner: Analyzer runner; local command runner when omitted
            remediator: Automated fixer; remediation jobs are not consumed without one
            metrics: Operational metrics
        """
        self.config = config or PipelineConfig()
        self.store = store or SqliteAnalysisStore(self.config.database_path)
        self.storage = storage or LocalObjectStorage(self.config.storage_root)
        self.queue = queue or create_job_queue(self.config)
        self.metrics = metrics or PipelineMetrics(enabled=self.config.metrics_enabled)

        gate_config = GateConfigLoader(self.config.gate_config_path)

        handlers: Dict[JobKind, JobHandler] = {
            JobKind.ANALYSIS: AnalysisJobHandler(
                self.config,
                self.store,
                self.storage,
                GateResolver(self.store, gate_config),
                runner=runner or CommandAnalyzerRunner(),
                debt_calculator=gate_config.debt_calculator(),
                metrics=self.metrics,
            ),
        }
        if remediator is not None:
            handlers[JobKind.RESOLVE_ISSUE] = RemediationJobHandler(self.store, remediator)

        self.worker = JobWorker(
            self.queue,
            handlers,
            poll_timeout=self.config.worker_poll_timeout,
            metrics=self.metrics,
            stall_timeout=self.config.job_stall_timeout,
            recovery_interval=self.config.stall_check_interval,
        )
        self.sampler = QueueDepthSampler(
            self.store, self.metrics, interval=self.config.queue_depth_interval
        )

        logger.info("Pipeline worker initialized")

    def stop(self) -> None:
        self.worker.stop()

    async def run(self) -> None:
        """Run until stopped, then release resources."""
        if self.config.metrics_enabled:
            self.sampler.start()
        try:
            await self.worker.run()
        finally:
            await self.sampler.stop()
            await self.queue.close()
            await self.store.close()
            logger.info("Pipeline worker shut down")


async def main():
    """Run a pipeline worker until SIGINT or SIGTERM."""
    worker = PipelineWorker()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, worker.stop)
        except NotImplementedError:
            # Signal handlers are unavailable on some platforms
            pass

    await worker.run()


def run() -> None:
    """Console script entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(main())


if __name__ == "__main__":
    run()
