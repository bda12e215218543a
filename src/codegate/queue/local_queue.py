"""In-process job queue for single-process development and tests."""

import asyncio
import logging
from collections import deque
from datetime import timedelta
from typing import Any, Deque, Dict, List, Optional, Union

from ..models.job_models import Job, JobHandle, JobKind, JobState
from .base import STALLED_ERROR, BaseJobQueue, Clock
from .backoff import BackoffPolicy

logger = logging.getLogger(__name__)


class LocalJobQueue(BaseJobQueue):
    """
    Job queue kept in memory.

    GOTCHA: Jobs do not survive a restart; use the Redis backend for that
    """

    def __init__(
        self,
        name: str = "analysis-queue",
        backoff: Optional[BackoffPolicy] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(name, backoff=backoff, clock=clock)
        self._jobs: Dict[str, Job] = {}
        self._waiting: Deque[str] = deque()
        self._condition = asyncio.Condition()

    async def enqueue(
        self, kind: Union[JobKind, str], payload: Dict[str, Any]
    ) -> JobHandle:
        job = self._new_job(kind, payload)
        async with self._condition:
            self._jobs[job.id] = job
            self._waiting.append(job.id)
            self._condition.notify()
        logger.debug(f"Enqueued {job.kind.value} job {job.id}")
        return self._handle_for(job)

    def _promote_due(self) -> None:
        now = self.now()
        due = [
            job
            for job in self._jobs.values()
            if job.state == JobState.DELAYED
            and job.available_at is not None
            and job.available_at <= now
        ]
        for job in sorted(due, key=lambda j: j.available_at):
            self._jobs[job.id] = job.model_copy(
                update={"state": JobState.WAITING, "updated_at": now}
            )
            self._waiting.append(job.id)

    def _take(self) -> Optional[Job]:
        self._promote_due()
        if not self._waiting:
            return None
        job_id = self._waiting.popleft()
        job = self._jobs[job_id].model_copy(
            update={"state": JobState.ACTIVE, "updated_at": self.now()}
        )
        self._jobs[job_id] = job
        return job

    async def reserve(self, timeout: float = 5.0) -> Optional[Job]:
        async with self._condition:
            job = self._take()
            if job is not None or timeout <= 0:
                return job
            try:
                await asyncio.wait_for(self._condition.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                pass
            return self._take()

    async def complete(self, job: Job) -> None:
        self._jobs.pop(job.id, None)

    async def fail(self, job: Job, error: str, retryable: bool = True) -> Job:
        updated = self._record_failure(job, error, retryable)
        self._jobs[job.id] = updated
        if updated.state == JobState.FAILED:
            logger.warning(
                f"Job {job.id} failed permanently after {updated.attempts_made} attempts"
            )
        return updated

    async def recover_stalled(self, stall_timeout: timedelta) -> List[Job]:
        cutoff = self.now() - stall_timeout
        recovered = []
        async with self._condition:
            for job in list(self._jobs.values()):
                if job.state != JobState.ACTIVE or job.updated_at > cutoff:
                    continue
                updated = self._record_failure(job, STALLED_ERROR)
                self._jobs[job.id] = updated
                recovered.append(updated)
        return recovered

    async def get_job(self, job_id: str) -> Optional[Job]:
        return self._jobs.get(job_id)

    async def counts(self) -> Dict[str, int]:
        counts = {"waiting": 0, "active": 0, "delayed": 0, "failed": 0}
        for job in self._jobs.values():
            key = job.state.value.lower()
            if key in counts:
                counts[key] += 1
        return counts
