"""ABOUTME: Domain models for login rate limiting
ABOUTME: Per-key attempt counters with window/lock rollover, and the status reported to callers"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from .value_objects import RateLimitScope


class RateLimitState:
    """Attempt counter for one tracked key (an IP address or a normalized email)."""

    def __init__(self, window_started_at: datetime, attempt_count: int = 0, locked_until: datetime | None = None):
        self.attempt_count = attempt_count
        self.window_started_at = window_started_at
        self.locked_until = locked_until

    def roll_over(self, now: datetime, window: timedelta) -> None:
        """Reset the counter if the lock or the counting window has expired."""
        if self.locked_until is not None and self.locked_until <= now:
            self.locked_until = None
            self.attempt_count = 0
            self.window_started_at = now
        elif self.locked_until is None and now - self.window_started_at > window:
            self.attempt_count = 0
            self.window_started_at = now

    def is_locked(self, now: datetime) -> bool:
        return self.locked_until is not None and self.locked_until > now

    def remaining(self, max_attempts: int) -> int:
        return max(max_attempts - self.attempt_count, 0)

    def register_failure(self, now: datetime, max_attempts: int, lockout: timedelta) -> None:
        self.attempt_count += 1
        if self.attempt_count >= max_attempts:
            self.locked_until = now + lockout

    def is_stale(self, now: datetime, window: timedelta) -> bool:
        """True when the entry no longer carries information: no active lock and an expired window."""
        if self.locked_until is not None:
            return self.locked_until <= now
        return now - self.window_started_at > window

    def __repr__(self) -> str:
        return (
            f"<RateLimitState count={self.attempt_count} window_started_at={self.window_started_at.isoformat()} "
            f"locked_until={self.locked_until.isoformat() if self.locked_until else None}>"
        )


@dataclass(frozen=True, slots=True)
class RateLimitStatus:
    locked: bool
    remaining: int
    locked_until: datetime | None = None
    blocked_by: RateLimitScope | None = None

    def retry_after_seconds(self, now: datetime, lockout: timedelta) -> int:
        """Seconds a caller should wait before retrying, never less than one.

        Falls back to the full lockout duration when no lock end is known.
        """
        if self.locked_until is None:
            return max(math.ceil(lockout.total_seconds()), 1)
        return max(math.ceil((self.locked_until - now).total_seconds()), 1)
