"""Job worker dispatching queued jobs to registered handlers."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Dict, List, Optional

from ..exceptions import InputError, JobStalledError, QueueUnavailableError
from ..models.job_models import Job, JobKind, JobState
from ..monitoring.metrics import PipelineMetrics
from .base import BaseJobQueue

logger = logging.getLogger(__name__)


class JobHandler(ABC):
    """Handler for one job kind."""

    @abstractmethod
    async def handle(self, job: Job) -> None:
        """
        Run one attempt of a job.

        Raising any exception fails the attempt; the queue retries it while
        attempts remain.

        Args:
            job: Active job
        """
        pass

    async def on_exhausted(self, job: Job, error: Exception) -> None:
        """Called exactly once when a job has no attempts left."""
        pass


class JobWorker:
    """
    Pulls jobs from a queue and runs them one at a time.

    PATTERN: Static kind -> handler lookup table
    CRITICAL: on_exhausted runs once, after the final failed attempt
    GOTCHA: Input errors are not retried; they would fail the same way again
    GOTCHA: Queue outages pause the loop; they never end it
    """

    def __init__(
        self,
        queue: BaseJobQueue,
        handlers: Dict[JobKind, JobHandler],
        poll_timeout: float = 5.0,
        metrics: Optional[PipelineMetrics] = None,
        stall_timeout: Optional[float] = None,
        recovery_interval: float = 60.0,
    ):
        """
        Initialize job worker.

        Args:
            queue: Queue to consume
            handlers: Handler per job kind
            poll_timeout: Seconds to wait for a job before checking stop
            metrics: Optional metrics sink for job latency
            stall_timeout: Seconds after which a reserved job counts as
                abandoned; None disables recovery
            recovery_interval: Seconds between stalled job sweeps
        """
        self.logger = logger
        self.queue = queue
        self.handlers = dict(handlers)
        self.poll_timeout = poll_timeout
        self.metrics = metrics
        self.stall_timeout = stall_timeout
        self.recovery_interval = recovery_interval
        self._last_recovery: Optional[float] = None
        self._stop = asyncio.Event()

    def stop(self) -> None:
        """Ask the run loop to exit after the current job."""
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    async def run(self) -> None:
        """Consume jobs until stop() is called; queue outages are waited out."""
        self.logger.info(
            f"Worker started on queue {self.queue.name} "
            f"for {', '.join(k.value for k in self.handlers)}"
        )
        while not self._stop.is_set():
            try:
                if self._recovery_due():
                    await self.recover()
                job = await self.queue.reserve(timeout=self.poll_timeout)
                if job is not None:
                    await self.process(job)
            except QueueUnavailableError as e:
                self.logger.error(
                    f"Job queue unavailable, retrying in {self.poll_timeout}s: {e}"
                )
                await self._pause()
        self.logger.info("Worker stopped")

    async def _pause(self) -> None:
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=self.poll_timeout)
        except asyncio.TimeoutError:
            pass

    def _recovery_due(self) -> bool:
        if self.stall_timeout is None:
            return False
        now = time.monotonic()
        if self._last_recovery is not None and now - self._last_recovery < self.recovery_interval:
            return False
        self._last_recovery = now
        return True

    async def recover(self) -> List[Job]:
        """
        Recover jobs whose worker died mid-attempt.

        Stalled jobs that ran out of attempts get their exhaustion hook, so
        the work they carried still reaches a terminal state.

        Returns:
            Recovered jobs in their new state
        """
        if self.stall_timeout is None:
            return []

        recovered = await self.queue.recover_stalled(timedelta(seconds=self.stall_timeout))
        for job in recovered:
            if job.state != JobState.FAILED:
                continue
            handler = self.handlers.get(job.kind)
            if handler is not None:
                await self._notify_exhausted(handler, job, JobStalledError(job.last_error))
        if recovered:
            self.logger.warning(f"Recovered {len(recovered)} stalled jobs")
        return recovered

    async def process(self, job: Job) -> Job:
        """
        Run one attempt of a reserved job and record the outcome.

        Args:
            job: Job returned by reserve()

        Returns:
            Job in its resulting state
        """
        handler = self.handlers.get(job.kind)
        if handler is None:
            error = f"No handler registered for job kind {job.kind.value}"
            self.logger.error(f"{error} (job {job.id})")
            return await self.queue.fail(job, error, retryable=False)

        self.logger.info(
            f"Processing {job.kind.value} job {job.id} "
            f"(attempt {job.current_attempt}/{job.max_attempts})"
        )
        started = time.monotonic()

        try:
            await handler.handle(job)
        except Exception as e:
            self._observe(job, started, "failed")
            return await self._handle_failure(handler, job, e)

        self._observe(job, started, "completed")
        await self.queue.complete(job)
        self.logger.info(f"Job {job.id} completed")
        return job.model_copy(update={"state": JobState.COMPLETED})

    async def _handle_failure(self, handler: JobHandler, job: Job, error: Exception) -> Job:
        message = f"{type(error).__name__}: {error}"
        retryable = not isinstance(error, InputError)
        updated = await self.queue.fail(job, message, retryable=retryable)

        if updated.state == JobState.FAILED:
            self.logger.error(
                f"Job {job.id} exhausted after {updated.attempts_made} attempts: {message}"
            )
            await self._notify_exhausted(handler, updated, error)
        else:
            self.logger.warning(
                f"Job {job.id} attempt {updated.attempts_made} failed: {message}. "
                f"Retrying at {updated.available_at}"
            )
        return updated

    async def _notify_exhausted(self, handler: JobHandler, job: Job, error: Exception) -> None:
        try:
            await handler.on_exhausted(job, error)
        except Exception as hook_error:
            self.logger.exception(f"Exhaustion hook for job {job.id} failed: {hook_error}")

    async def drain(self, max_jobs: int = 100) -> int:
        """
        Process runnable jobs until none is immediately available.

        Args:
            max_jobs: Safety bound on jobs processed

        Returns:
            Number of jobs processed
        """
        processed = 0
        while processed < max_jobs:
            job = await self.queue.reserve(timeout=0)
            if job is None:
                break
            await self.process(job)
            processed += 1
        return processed

    def _observe(self, job: Job, started: float, outcome: str) -> None:
        if self.metrics is None:
            return
        labels = {"kind": job.kind.value, "outcome": outcome}
        self.metrics.observe("job_duration_seconds", time.monotonic() - started, labels)
        self.metrics.increment("jobs_processed_total", labels=labels)
