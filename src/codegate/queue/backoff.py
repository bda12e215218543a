"""Exponential retry backoff for queued jobs."""

from datetime import datetime, timedelta
from typing import Optional


class BackoffPolicy:
    """
    Exponential backoff between job attempts.

    PATTERN: Same doubling schedule as the tool retry manager
    CRITICAL: Attempt count lives on the job, never on the call stack

    The delay before retry n (n = attempts made so far, n >= 1) is
    base_ms * 2^(n-1).
    """

    def __init__(self, max_attempts: int = 2, base_ms: int = 5000):
        """
        Initialize backoff policy.

        Args:
            max_attempts: Total attempts allowed per job
            base_ms: Delay before the first retry (milliseconds)
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if base_ms < 0:
            raise ValueError("base_ms must not be negative")
        self.max_attempts = max_attempts
        self.base_ms = base_ms

    def delay_ms(self, attempts_made: int) -> int:
        """
        Calculate the delay before the next attempt.

        Args:
            attempts_made: Attempts already made (1-based)

        Returns:
            Delay in milliseconds
        """
        if attempts_made < 1:
            return 0
        return self.base_ms * (2 ** (attempts_made - 1))

    def next_available_at(self, attempts_made: int, now: datetime) -> datetime:
        return now + timedelta(milliseconds=self.delay_ms(attempts_made))

    def should_retry(self, attempts_made: int, max_attempts: Optional[int] = None) -> bool:
        """True while the job has attempts left."""
        limit = max_attempts if max_attempts is not None else self.max_attempts
        return attempts_made < limit
