"""Job queue: backends, retry policy, worker and depth sampling."""

from .backoff import BackoffPolicy
from .base import BaseJobQueue
from .local_queue import LocalJobQueue
from .redis_queue import RedisJobQueue
from .worker import JobHandler, JobWorker
from .depth_sampler import QueueDepthSampler
from ..config.pipeline_config import PipelineConfig
from ..exceptions import ConfigError


def create_job_queue(config: PipelineConfig) -> BaseJobQueue:
    """
    Build the queue backend selected by configuration.

    Args:
        config: Pipeline configuration

    Returns:
        Redis or in-process queue
    """
    backoff = BackoffPolicy(config.job_attempts, config.backoff_ms)
    backend = config.queue_backend.lower()
    if backend == "redis":
        return RedisJobQueue(config, backoff=backoff)
    if backend == "local":
        return LocalJobQueue(config.queue_name, backoff=backoff)
    raise ConfigError(f"Unknown queue backend: {config.queue_backend}")


__all__ = [
    "BackoffPolicy",
    "BaseJobQueue",
    "LocalJobQueue",
    "RedisJobQueue",
    "JobHandler",
    "JobWorker",
    "QueueDepthSampler",
    "create_job_queue",
]
