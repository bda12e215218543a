"""Pipeline configuration with environment variable loading."""

import os
from typing import Optional
from pydantic import BaseModel, Field
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class PipelineConfig(BaseModel):
    """Configuration for the analysis pipeline and its job queue."""

    # Redis Configuration
    redis_url: str = Field(
        default_factory=lambda: os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        description="Redis connection URL",
    )
    connection_pool_size: int = Field(
        default_factory=lambda: int(os.getenv("CONNECTION_POOL_SIZE", "10")),
        description="Connection pool size for Redis",
    )

    # Queue Configuration
    queue_name: str = Field(
        default_factory=lambda: os.getenv("QUEUE_NAME", "analysis-queue"),
        description="Name of the shared job queue",
    )
    queue_backend: str = Field(
        default_factory=lambda: os.getenv("QUEUE_BACKEND", "redis"),
        description="Queue backend: redis or local",
    )
    job_attempts: int = Field(
        default_factory=lambda: int(os.getenv("WORKER_JOB_ATTEMPTS", "2")),
        ge=1,
        description="Maximum attempts per job",
    )
    backoff_ms: int = Field(
        default_factory=lambda: int(os.getenv("WORKER_BACKOFF_MS", "5000")),
        ge=0,
        description="Base delay for exponential retry backoff (milliseconds)",
    )
    worker_poll_timeout: float = Field(
        default_factory=lambda: float(os.getenv("WORKER_POLL_TIMEOUT", "5")),
        description="Seconds a worker waits for a job before polling again",
    )
    job_stall_timeout: float = Field(
        default_factory=lambda: float(os.getenv("JOB_STALL_TIMEOUT_SECONDS", "3600")),
        gt=0,
        description="Seconds after which a reserved job counts as abandoned",
    )
    stall_check_interval: float = Field(
        default_factory=lambda: float(os.getenv("STALL_CHECK_INTERVAL_SECONDS", "60")),
        gt=0,
        description="Seconds between sweeps for abandoned jobs",
    )
    queue_depth_interval: float = Field(
        default_factory=lambda: float(os.getenv("QUEUE_DEPTH_INTERVAL_SECONDS", "10")),
        gt=0,
        description="Queue depth sampling interval (seconds)",
    )

    # Persistence Configuration
    database_path: str = Field(
        default_factory=lambda: os.getenv("DATABASE_PATH", "codegate.db"),
        description="SQLite database file for the system of record",
    )

    # Object Storage Configuration
    storage_root: str = Field(
        default_factory=lambda: os.getenv("STORAGE_ROOT", ".codegate-storage"),
        description="Root directory of the local object store",
    )
    sources_bucket: str = Field(
        default_factory=lambda: os.getenv("SOURCES_BUCKET", "sources"),
        description="Bucket for uploaded source snapshots",
    )
    reports_bucket: str = Field(
        default_factory=lambda: os.getenv("REPORTS_BUCKET", "reports"),
        description="Bucket for pre-computed analyzer reports",
    )
    public_base_url: str = Field(
        default_factory=lambda: os.getenv("PUBLIC_BASE_URL", "/api"),
        description="Base URL used for polling links in submission receipts",
    )

    # Analysis Configuration
    analyzer_timeout: float = Field(
        default_factory=lambda: float(os.getenv("ANALYZER_TIMEOUT_SECONDS", "600")),
        gt=0,
        description="Per-analyzer execution timeout (seconds)",
    )
    fingerprint_line_bucket: int = Field(
        default_factory=lambda: int(os.getenv("FINGERPRINT_LINE_BUCKET", "10")),
        ge=1,
        description="Number of lines grouped into one fingerprint bucket",
    )
    default_lines_of_code: int = Field(
        default_factory=lambda: int(os.getenv("DEFAULT_LINES_OF_CODE", "10000")),
        ge=0,
        description="Codebase size assumed for debt ratio when no measure exists",
    )
    gate_config_path: Optional[str] = Field(
        default_factory=lambda: os.getenv("GATE_CONFIG_PATH"),
        description="Optional YAML/JSON quality gate configuration file",
    )

    # Metrics Configuration
    metrics_enabled: bool = Field(
        default_factory=lambda: os.getenv("METRICS_ENABLED", "false").lower() == "true",
        description="Enable operational metrics collection",
    )
