"""Redis-backed durable job queue."""

import asyncio
import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional, Union

from redis.asyncio import Redis, ConnectionPool
from redis.exceptions import RedisError, ConnectionError as RedisConnectionError

from ..config.pipeline_config import PipelineConfig
from ..exceptions import QueueUnavailableError
from ..models.job_models import Job, JobHandle, JobKind, JobState
from .base import STALLED_ERROR, BaseJobQueue, Clock
from .backoff import BackoffPolicy

logger = logging.getLogger(__name__)


class RedisJobQueue(BaseJobQueue):
    """
    Durable job queue shared by API and worker processes.

    PATTERN: Connection pooling with retry on first connect
    CRITICAL: A job id always sits in wait, active, delayed or failed
    CRITICAL: Backend errors surface as QueueUnavailableError
    GOTCHA: Delayed jobs are promoted lazily on reserve
    GOTCHA: Stall timeout must exceed the longest attempt or the job runs twice

    Key layout:
        queue:{name}:job:{id}   JSON job record
        queue:{name}:wait       list of runnable job ids
        queue:{name}:active     list of reserved job ids
        queue:{name}:delayed    sorted set scored by availability timestamp
        queue:{name}:failed     set of terminally failed job ids
    """

    def __init__(
        self,
        config: PipelineConfig,
        backoff: Optional[BackoffPolicy] = None,
        clock: Optional[Clock] = None,
        redis: Optional[Redis] = None,
    ):
        """
        Initialize Redis job queue.

        Args:
            config: Pipeline configuration
            backoff: Retry policy; built from config when omitted
            clock: Time source
            redis: Pre-built client, mainly for tests
        """
        backoff = backoff or BackoffPolicy(config.job_attempts, config.backoff_ms)
        super().__init__(config.queue_name, backoff=backoff, clock=clock)
        self.config = config
        self._pool: Optional[ConnectionPool] = None
        self._redis: Optional[Redis] = redis
        self._prefix = f"queue:{self.name}"

    async def _get_redis(self) -> Redis:
        if self._redis is None:
            self._pool = ConnectionPool.from_url(
                self.config.redis_url,
                max_connections=self.config.connection_pool_size,
                decode_responses=True,
            )
            self._redis = Redis(connection_pool=self._pool)

            max_retries = 3
            for attempt in range(max_retries):
                try:
                    await self._redis.ping()
                    logger.info("Redis queue connection established")
                    break
                except (RedisConnectionError, RedisError) as e:
                    if attempt == max_retries - 1:
                        logger.error(
                            f"Failed to connect to Redis after {max_retries} attempts: {e}"
                        )
                        raise QueueUnavailableError(
                            "Job queue unavailable", details={"error": str(e)}
                        ) from e
                    logger.warning(
                        f"Redis connection attempt {attempt + 1} failed, retrying..."
                    )
                    await asyncio.sleep(1)

        return self._redis

    def _job_key(self, job_id: str) -> str:
        return f"{self._prefix}:job:{job_id}"

    @property
    def wait_key(self) -> str:
        return f"{self._prefix}:wait"

    @property
    def active_key(self) -> str:
        return f"{self._prefix}:active"

    @property
    def delayed_key(self) -> str:
        return f"{self._prefix}:delayed"

    @property
    def failed_key(self) -> str:
        return f"{self._prefix}:failed"

    async def enqueue(
        self, kind: Union[JobKind, str], payload: Dict[str, Any]
    ) -> JobHandle:
        job = self._new_job(kind, payload)
        redis = await self._get_redis()

        try:
            pipe = redis.pipeline(transaction=True)
            pipe.set(self._job_key(job.id), job.to_json())
            pipe.lpush(self.wait_key, job.id)
            await pipe.execute()
        except RedisError as e:
            logger.error(f"Failed to enqueue {job.kind.value} job: {e}")
            raise QueueUnavailableError(
                "Job queue unavailable", details={"error": str(e)}
            ) from e

        logger.info(f"Enqueued {job.kind.value} job {job.id}")
        return self._handle_for(job)

    async def _promote_due(self, redis: Redis) -> None:
        now_ts = self.now().timestamp()
        due_ids = await redis.zrangebyscore(self.delayed_key, 0, now_ts)
        for job_id in due_ids:
            # Concurrent promoters may push an id twice; delivery is at-least-once
            pipe = redis.pipeline(transaction=True)
            pipe.zrem(self.delayed_key, job_id)
            pipe.lpush(self.wait_key, job_id)
            await pipe.execute()

    async def reserve(self, timeout: float = 5.0) -> Optional[Job]:
        redis = await self._get_redis()

        try:
            await self._promote_due(redis)
            # blmove timeout 0 would block forever
            job_id = await redis.blmove(
                self.wait_key, self.active_key, max(1, int(timeout)), "RIGHT", "LEFT"
            )
            if job_id is None:
                return None

            raw = await redis.get(self._job_key(job_id))
            if raw is None:
                logger.warning(f"Job {job_id} vanished before it could be reserved")
                await redis.lrem(self.active_key, 0, job_id)
                return None

            job = Job.from_json(raw).model_copy(
                update={"state": JobState.ACTIVE, "updated_at": self.now()}
            )
            await redis.set(self._job_key(job.id), job.to_json())
            return job

        except RedisError as e:
            logger.error(f"Failed to reserve job: {e}")
            raise QueueUnavailableError(
                "Job queue unavailable", details={"error": str(e)}
            ) from e

    async def complete(self, job: Job) -> None:
        redis = await self._get_redis()
        try:
            pipe = redis.pipeline(transaction=True)
            pipe.lrem(self.active_key, 0, job.id)
            pipe.delete(self._job_key(job.id))
            await pipe.execute()
        except RedisError as e:
            logger.error(f"Failed to complete job {job.id}: {e}")
            raise QueueUnavailableError(
                "Job queue unavailable", details={"error": str(e)}
            ) from e

    async def _settle(self, redis: Redis, job: Job) -> None:
        """Move a failed attempt out of the active list in one transaction."""
        pipe = redis.pipeline(transaction=True)
        pipe.lrem(self.active_key, 0, job.id)
        pipe.set(self._job_key(job.id), job.to_json())
        if job.state == JobState.DELAYED:
            pipe.zadd(self.delayed_key, {job.id: job.available_at.timestamp()})
        else:
            pipe.sadd(self.failed_key, job.id)
        await pipe.execute()

    async def fail(self, job: Job, error: str, retryable: bool = True) -> Job:
        updated = self._record_failure(job, error, retryable)
        redis = await self._get_redis()

        try:
            await self._settle(redis, updated)
        except RedisError as e:
            logger.error(f"Failed to record failure of job {job.id}: {e}")
            raise QueueUnavailableError(
                "Job queue unavailable", details={"error": str(e)}
            ) from e

        if updated.state == JobState.FAILED:
            logger.warning(
                f"Job {job.id} failed permanently after {updated.attempts_made} attempts"
            )
        return updated

    async def recover_stalled(self, stall_timeout: timedelta) -> List[Job]:
        redis = await self._get_redis()
        cutoff = self.now() - stall_timeout
        recovered = []

        try:
            for job_id in await redis.lrange(self.active_key, 0, -1):
                raw = await redis.get(self._job_key(job_id))
                if raw is None:
                    await redis.lrem(self.active_key, 0, job_id)
                    continue

                job = Job.from_json(raw)
                if job.updated_at > cutoff:
                    continue

                updated = self._record_failure(job, STALLED_ERROR)
                await self._settle(redis, updated)
                logger.warning(
                    f"Recovered stalled job {job.id} as {updated.state.value} "
                    f"after {updated.attempts_made} attempts"
                )
                recovered.append(updated)
        except RedisError as e:
            logger.error(f"Failed to recover stalled jobs: {e}")
            raise QueueUnavailableError(
                "Job queue unavailable", details={"error": str(e)}
            ) from e

        return recovered

    async def get_job(self, job_id: str) -> Optional[Job]:
        redis = await self._get_redis()
        try:
            raw = await redis.get(self._job_key(job_id))
        except RedisError as e:
            logger.error(f"Failed to load job {job_id}: {e}")
            raise QueueUnavailableError(
                "Job queue unavailable", details={"error": str(e)}
            ) from e
        return Job.from_json(raw) if raw else None

    async def counts(self) -> Dict[str, int]:
        redis = await self._get_redis()
        try:
            return {
                "waiting": await redis.llen(self.wait_key),
                "active": await redis.llen(self.active_key),
                "delayed": await redis.zcard(self.delayed_key),
                "failed": await redis.scard(self.failed_key),
            }
        except RedisError as e:
            logger.error(f"Failed to read queue counts: {e}")
            raise QueueUnavailableError(
                "Job queue unavailable", details={"error": str(e)}
            ) from e

    async def close(self) -> None:
        """Close Redis connection."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
        if self._pool:
            await self._pool.aclose()
            self._pool = None
        logger.info("Redis queue connection closed")
