"""Tests for the Redis job queue with a mocked client."""

import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

from redis.exceptions import ConnectionError as RedisConnectionError

from codegate.exceptions import QueueUnavailableError
from codegate.models.job_models import Job, JobKind, JobState
from codegate.queue.base import STALLED_ERROR
from codegate.queue.redis_queue import RedisJobQueue


@pytest.fixture
def pipe():
    """Create a mocked transaction pipeline."""
    pipeline = MagicMock()
    pipeline.execute = AsyncMock(return_value=[])
    return pipeline


@pytest.fixture
def redis_client(pipe):
    """Create a mocked async Redis client."""
    client = AsyncMock()
    client.zrangebyscore.return_value = []
    client.pipeline = MagicMock(return_value=pipe)
    return client


@pytest.fixture
def queue(config, clock, redis_client):
    return RedisJobQueue(config, clock=clock, redis=redis_client)


@pytest.mark.asyncio
class TestRedisJobQueue:
    """Test Redis command sequences."""

    async def test_key_layout(self, queue):
        assert queue.wait_key == "queue:analysis-queue:wait"
        assert queue.active_key == "queue:analysis-queue:active"
        assert queue.delayed_key == "queue:analysis-queue:delayed"
        assert queue.failed_key == "queue:analysis-queue:failed"

    async def test_enqueue_is_one_transaction(self, queue, redis_client, pipe):
        """Test the record and the wait list entry are written together."""
        handle = await queue.enqueue(JobKind.ANALYSIS, {"analysis_id": "a1"})

        redis_client.pipeline.assert_called_once_with(transaction=True)
        key, raw = pipe.set.call_args.args
        assert key == f"queue:analysis-queue:job:{handle.job_id}"
        stored = Job.from_json(raw)
        assert stored.payload == {"analysis_id": "a1"}
        assert stored.max_attempts == 2
        pipe.lpush.assert_called_once_with(queue.wait_key, handle.job_id)
        pipe.execute.assert_awaited_once()
        redis_client.set.assert_not_awaited()

    async def test_enqueue_error_raises_unavailable(self, queue, pipe):
        """Test backend errors surface as QueueUnavailableError."""
        pipe.execute.side_effect = RedisConnectionError("refused")

        with pytest.raises(QueueUnavailableError):
            await queue.enqueue(JobKind.ANALYSIS, {})

    async def test_reserve_moves_id_to_active(self, queue, redis_client):
        """Test reserve moves the id atomically, then marks the record ACTIVE."""
        job = Job(id="j1", kind=JobKind.ANALYSIS, payload={"analysis_id": "a1"})
        redis_client.blmove.return_value = "j1"
        redis_client.get.return_value = job.to_json()

        reserved = await queue.reserve(timeout=2)

        assert reserved.id == "j1"
        assert reserved.state == JobState.ACTIVE
        redis_client.blmove.assert_awaited_once_with(
            queue.wait_key, queue.active_key, 2, "RIGHT", "LEFT"
        )
        key, raw = redis_client.set.call_args.args
        assert key == "queue:analysis-queue:job:j1"
        assert Job.from_json(raw).state == JobState.ACTIVE

    async def test_reserve_timeout_returns_none(self, queue, redis_client):
        redis_client.blmove.return_value = None
        assert await queue.reserve(timeout=0) is None
        # blmove timeout 0 would block forever
        redis_client.blmove.assert_awaited_once_with(
            queue.wait_key, queue.active_key, 1, "RIGHT", "LEFT"
        )

    async def test_reserve_drops_vanished_record(self, queue, redis_client):
        redis_client.blmove.return_value = "j1"
        redis_client.get.return_value = None

        assert await queue.reserve(timeout=1) is None
        redis_client.lrem.assert_awaited_once_with(queue.active_key, 0, "j1")

    async def test_reserve_error_leaves_job_recoverable(self, queue, redis_client, pipe, clock):
        """Test a job whose reservation broke off is recovered, not lost."""
        waiting = Job(
            id="j1",
            kind=JobKind.ANALYSIS,
            payload={"analysis_id": "a1"},
            updated_at=clock(),
        )
        redis_client.blmove.return_value = "j1"
        redis_client.get.side_effect = RedisConnectionError("reset by peer")

        with pytest.raises(QueueUnavailableError):
            await queue.reserve(timeout=1)

        # The id stays on the active list
        redis_client.lrem.assert_not_awaited()

        clock.advance(seconds=3600)
        redis_client.get.side_effect = None
        redis_client.get.return_value = waiting.to_json()
        redis_client.lrange.return_value = ["j1"]

        [recovered] = await queue.recover_stalled(timedelta(minutes=30))

        assert recovered.id == "j1"
        assert recovered.state == JobState.DELAYED
        assert recovered.attempts_made == 1
        pipe.lrem.assert_called_once_with(queue.active_key, 0, "j1")
        pipe.zadd.assert_called_once_with(
            queue.delayed_key, {"j1": clock().timestamp() + 5}
        )

    async def test_reserve_promotes_due_jobs(self, queue, redis_client, pipe, clock):
        """Test due delayed jobs move back to the wait list in transactions."""
        redis_client.zrangebyscore.return_value = ["j1", "j2"]
        redis_client.blmove.return_value = None

        await queue.reserve(timeout=1)

        redis_client.zrangebyscore.assert_awaited_once_with(
            queue.delayed_key, 0, clock().timestamp()
        )
        assert [c.args for c in pipe.zrem.call_args_list] == [
            (queue.delayed_key, "j1"),
            (queue.delayed_key, "j2"),
        ]
        assert [c.args for c in pipe.lpush.call_args_list] == [
            (queue.wait_key, "j1"),
            (queue.wait_key, "j2"),
        ]
        assert pipe.execute.await_count == 2

    async def test_fail_schedules_retry(self, queue, pipe, clock):
        job = Job(id="j1", kind=JobKind.ANALYSIS, max_attempts=2, backoff_base_ms=5000)

        updated = await queue.fail(job, "RuntimeError: boom")

        assert updated.state == JobState.DELAYED
        pipe.lrem.assert_called_once_with(queue.active_key, 0, "j1")
        pipe.zadd.assert_called_once_with(queue.delayed_key, {"j1": clock().timestamp() + 5})
        pipe.sadd.assert_not_called()
        pipe.execute.assert_awaited_once()

    async def test_fail_last_attempt(self, queue, pipe):
        job = Job(id="j1", kind=JobKind.ANALYSIS, attempts_made=1, max_attempts=2)

        updated = await queue.fail(job, "RuntimeError: boom")

        assert updated.state == JobState.FAILED
        pipe.sadd.assert_called_once_with(queue.failed_key, "j1")
        pipe.zadd.assert_not_called()

    async def test_complete_deletes_record(self, queue, pipe):
        job = Job(id="j1", kind=JobKind.ANALYSIS)

        await queue.complete(job)

        pipe.lrem.assert_called_once_with(queue.active_key, 0, "j1")
        pipe.delete.assert_called_once_with("queue:analysis-queue:job:j1")
        pipe.execute.assert_awaited_once()

    async def test_recover_stalled(self, queue, redis_client, pipe, clock):
        """Test only reservations older than the stall timeout are recovered."""
        stalled = Job(
            id="j1",
            kind=JobKind.ANALYSIS,
            state=JobState.ACTIVE,
            attempts_made=1,
            max_attempts=2,
            updated_at=clock() - timedelta(hours=2),
        )
        running = Job(id="j2", kind=JobKind.ANALYSIS, state=JobState.ACTIVE, updated_at=clock())
        redis_client.lrange.return_value = ["j1", "j2", "j3"]
        redis_client.get.side_effect = [stalled.to_json(), running.to_json(), None]

        recovered = await queue.recover_stalled(timedelta(hours=1))

        assert [j.id for j in recovered] == ["j1"]
        assert recovered[0].state == JobState.FAILED
        assert recovered[0].attempts_made == 2
        assert recovered[0].last_error == STALLED_ERROR
        pipe.sadd.assert_called_once_with(queue.failed_key, "j1")
        redis_client.lrange.assert_awaited_once_with(queue.active_key, 0, -1)
        # Record of j3 is gone; only its id is dropped
        redis_client.lrem.assert_awaited_once_with(queue.active_key, 0, "j3")

    async def test_counts(self, queue, redis_client):
        redis_client.llen.side_effect = [3, 1]
        redis_client.scard.return_value = 2
        redis_client.zcard.return_value = 4

        counts = await queue.counts()

        assert counts == {"waiting": 3, "active": 1, "delayed": 4, "failed": 2}

    async def test_get_job_missing(self, queue, redis_client):
        redis_client.get.return_value = None
        assert await queue.get_job("nope") is None

    async def test_close(self, queue, redis_client):
        await queue.close()
        redis_client.aclose.assert_awaited_once()
