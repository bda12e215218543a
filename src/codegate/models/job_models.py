"""Data models for queued jobs."""

import json
from enum import Enum
from typing import Dict, Any, Optional
from datetime import datetime
from pydantic import BaseModel, Field


class JobKind(str, Enum):
    """Job kinds carried on the shared queue."""

    ANALYSIS = "analysis"
    RESOLVE_ISSUE = "llm:resolve-issue"


class JobState(str, Enum):
    """Job lifecycle states."""

    WAITING = "WAITING"
    ACTIVE = "ACTIVE"
    DELAYED = "DELAYED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Job(BaseModel):
    """A unit of asynchronous work with retry bookkeeping."""

    id: str = Field(description="Job identifier")
    kind: JobKind
    payload: Dict[str, Any] = Field(default_factory=dict)
    attempts_made: int = Field(default=0, ge=0, description="Completed attempts")
    max_attempts: int = Field(default=2, ge=1)
    backoff_base_ms: int = Field(default=5000, ge=0)
    state: JobState = Field(default=JobState.WAITING)
    available_at: Optional[datetime] = Field(
        default=None,
        description="Earliest time a delayed job may run again",
    )
    last_error: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @property
    def current_attempt(self) -> int:
        """1-based number of the attempt in progress."""
        return self.attempts_made + 1

    @property
    def is_first_attempt(self) -> bool:
        return self.attempts_made == 0

    @property
    def is_last_attempt(self) -> bool:
        return self.attempts_made + 1 >= self.max_attempts

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, raw: str) -> "Job":
        return cls.model_validate(json.loads(raw))


class JobHandle(BaseModel):
    """Reference returned when a job is enqueued."""

    job_id: str
    kind: JobKind
    queue_name: str
