"""Abstract base class for job queue backends."""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Union

from ..exceptions import InputError
from ..models.job_models import Job, JobHandle, JobKind, JobState
from .backoff import BackoffPolicy

Clock = Callable[[], datetime]

STALLED_ERROR = "Job stalled: its worker stopped before finishing the attempt"


class BaseJobQueue(ABC):
    """
    Abstract job queue with at-least-once delivery and bounded retries.

    PATTERN: Backend-agnostic interface, concrete retry bookkeeping
    CRITICAL: enqueue never swallows backend errors
    GOTCHA: A job may be delivered more than once; handlers must tolerate it
    """

    def __init__(
        self,
        name: str,
        backoff: Optional[BackoffPolicy] = None,
        clock: Optional[Clock] = None,
    ):
        self.name = name
        self.backoff = backoff or BackoffPolicy()
        self._clock = clock or datetime.now

    def now(self) -> datetime:
        return self._clock()

    @abstractmethod
    async def enqueue(
        self, kind: Union[JobKind, str], payload: Dict[str, Any]
    ) -> JobHandle:
        """
        Submit a job for asynchronous execution.

        Args:
            kind: Job kind
            payload: JSON-serializable job payload

        Returns:
            Handle identifying the queued job

        Raises:
            InputError: If the job kind is unknown
            QueueUnavailableError: If the backend cannot be reached
        """
        pass

    @abstractmethod
    async def reserve(self, timeout: float = 5.0) -> Optional[Job]:
        """
        Take the next runnable job, waiting up to timeout seconds.

        Returns:
            Active job, or None when nothing became available
        """
        pass

    @abstractmethod
    async def complete(self, job: Job) -> None:
        """Acknowledge a successful attempt and remove the job."""
        pass

    @abstractmethod
    async def fail(self, job: Job, error: str, retryable: bool = True) -> Job:
        """
        Record a failed attempt.

        The job is rescheduled with backoff while attempts remain, otherwise
        it is marked FAILED and retained for inspection.

        Args:
            job: Job whose attempt failed
            error: Error description stored on the job
            retryable: False sends the job straight to FAILED

        Returns:
            The updated job
        """
        pass

    @abstractmethod
    async def recover_stalled(self, stall_timeout: timedelta) -> List[Job]:
        """
        Return jobs abandoned by a dead worker to the retry schedule.

        A job reserved longer than stall_timeout ago counts as a failed
        attempt: it is delayed for retry, or FAILED once attempts run out.

        Args:
            stall_timeout: Reservation age after which a job is stalled

        Returns:
            Recovered jobs in their new state
        """
        pass

    @abstractmethod
    async def get_job(self, job_id: str) -> Optional[Job]:
        pass

    @abstractmethod
    async def counts(self) -> Dict[str, int]:
        """Job counts keyed by waiting, active, delayed and failed."""
        pass

    async def close(self) -> None:
        """Release backend resources."""
        pass

    def _new_job(self, kind: Union[JobKind, str], payload: Dict[str, Any]) -> Job:
        try:
            job_kind = JobKind(kind)
        except ValueError:
            raise InputError(
                f"Unknown job kind: {kind}",
                details={"known": [k.value for k in JobKind]},
            )

        now = self.now()
        return Job(
            id=str(uuid.uuid4()),
            kind=job_kind,
            payload=dict(payload),
            max_attempts=self.backoff.max_attempts,
            backoff_base_ms=self.backoff.base_ms,
            created_at=now,
            updated_at=now,
        )

    def _handle_for(self, job: Job) -> JobHandle:
        return JobHandle(job_id=job.id, kind=job.kind, queue_name=self.name)

    def _record_failure(self, job: Job, error: str, retryable: bool = True) -> Job:
        """Advance the attempt counter and choose DELAYED or FAILED."""
        now = self.now()
        attempts_made = job.attempts_made + 1
        updates: Dict[str, Any] = {
            "attempts_made": attempts_made,
            "last_error": error,
            "updated_at": now,
        }

        policy = BackoffPolicy(job.max_attempts, job.backoff_base_ms)
        if retryable and policy.should_retry(attempts_made):
            updates["state"] = JobState.DELAYED
            updates["available_at"] = policy.next_available_at(attempts_made, now)
        else:
            updates["state"] = JobState.FAILED
            updates["available_at"] = None

        return job.model_copy(update=updates)
