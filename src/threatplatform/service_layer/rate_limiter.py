"""ABOUTME: Login rate limiter keyed on both client IP address and normalized email
ABOUTME: Counts failed attempts in fixed windows and locks a key out once it reaches the threshold"""

import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime

import structlog

from threatplatform.config import RateLimitCfg
from threatplatform.domain.rate_limit import RateLimitState, RateLimitStatus
from threatplatform.domain.value_objects import RateLimitScope, normalize_key

log = structlog.get_logger(__name__)

Clock = Callable[[], datetime]


def aware_utcnow() -> datetime:
    return datetime.now(UTC)


class InMemoryRateLimitStore:
    """Process-local map of (scope, key) to attempt state.

    All reads and writes must happen inside `locked()`, which makes the
    rollover, the increment and the threshold check a single critical section.
    Entries are only removed by `delete()` and `purge_stale()`; nothing sweeps
    them in the background.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._states: dict[tuple[RateLimitScope, str], RateLimitState] = {}

    @contextmanager
    def locked(self) -> Iterator["InMemoryRateLimitStore"]:
        with self._lock:
            yield self

    def get(self, scope: RateLimitScope, key: str) -> RateLimitState | None:
        return self._states.get((scope, key))

    def put(self, scope: RateLimitScope, key: str, state: RateLimitState) -> None:
        self._states[(scope, key)] = state

    def delete(self, scope: RateLimitScope, key: str) -> None:
        self._states.pop((scope, key), None)

    def purge_stale(self, now: datetime, config: RateLimitCfg) -> int:
        """Drop entries that no longer hold a lock or a live window. Returns how many were dropped.

        Meant to be called by an external janitor; the limiter never calls it.
        """
        with self._lock:
            stale = [key for key, state in self._states.items() if state.is_stale(now, config.window)]
            for key in stale:
                del self._states[key]
        return len(stale)

    def __len__(self) -> int:
        return len(self._states)


class LoginRateLimiter:
    """Decide whether a login attempt may proceed and record how attempts end.

    Both the IP address and the email are tracked: the IP key catches one
    origin spraying many accounts, the email key catches many origins working
    on one account. Both must be clear for an attempt to go ahead.
    """

    def __init__(
        self,
        config: RateLimitCfg | None = None,
        store: InMemoryRateLimitStore | None = None,
        clock: Clock = aware_utcnow,
    ) -> None:
        self.config = config or RateLimitCfg()
        self.store = store or InMemoryRateLimitStore()
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    def _state_for(self, scope: RateLimitScope, key: str, now: datetime) -> RateLimitState:
        state = self.store.get(scope, key)
        if state is None:
            state = RateLimitState(window_started_at=now)
            self.store.put(scope, key, state)
        else:
            state.roll_over(now, self.config.window)
        return state

    def _status(self, state: RateLimitState, scope: RateLimitScope, now: datetime) -> RateLimitStatus:
        remaining = state.remaining(self.config.max_attempts)
        if state.is_locked(now):
            return RateLimitStatus(locked=True, remaining=remaining, locked_until=state.locked_until, blocked_by=scope)
        return RateLimitStatus(locked=False, remaining=remaining)

    def check_status(self, ip: str | None, email: str | None) -> RateLimitStatus:
        """Report whether the (ip, email) pair is locked, without counting an attempt."""
        ip_key = normalize_key(ip)
        email_key = normalize_key(email)
        now = self.now()

        with self.store.locked():
            if ip_key:
                ip_status = self._status(self._state_for(RateLimitScope.IP, ip_key, now), RateLimitScope.IP, now)
                if ip_status.locked:
                    return ip_status

            if email_key:
                return self._status(self._state_for(RateLimitScope.EMAIL, email_key, now), RateLimitScope.EMAIL, now)

        return RateLimitStatus(locked=False, remaining=self.config.max_attempts)

    def record_failure(self, ip: str | None, email: str | None) -> RateLimitStatus:
        """Count a failed attempt against both keys and lock any key that reaches the threshold.

        When both keys lock on the same attempt the email lock is reported.
        """
        ip_key = normalize_key(ip)
        email_key = normalize_key(email)
        now = self.now()
        status = RateLimitStatus(locked=False, remaining=self.config.max_attempts)

        with self.store.locked():
            if ip_key:
                ip_state = self._state_for(RateLimitScope.IP, ip_key, now)
                ip_state.register_failure(now, self.config.max_attempts, self.config.lockout)
                status = self._status(ip_state, RateLimitScope.IP, now)

            if email_key:
                email_state = self._state_for(RateLimitScope.EMAIL, email_key, now)
                email_state.register_failure(now, self.config.max_attempts, self.config.lockout)
                email_status = self._status(email_state, RateLimitScope.EMAIL, now)
                if email_status.locked or not status.locked:
                    status = email_status

        if status.locked:
            log.warning(
                "login_locked",
                blocked_by=status.blocked_by.value if status.blocked_by else None,
                locked_until=status.locked_until.isoformat() if status.locked_until else None,
            )
        return status

    def record_success(self, ip: str | None, email: str | None) -> None:
        """Forget prior failures for both the origin and the identity."""
        ip_key = normalize_key(ip)
        email_key = normalize_key(email)

        with self.store.locked():
            if ip_key:
                self.store.delete(RateLimitScope.IP, ip_key)
            if email_key:
                self.store.delete(RateLimitScope.EMAIL, email_key)

    def retry_after_seconds(self, status: RateLimitStatus) -> int:
        return status.retry_after_seconds(self.now(), self.config.lockout)
