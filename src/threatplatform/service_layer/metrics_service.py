"""ABOUTME: Authentication security metrics for the dashboard
ABOUTME: Counts throttled and failed logins from the audit log and reports MFA coverage of admins"""

from datetime import UTC, datetime, timedelta

from threatplatform.domain.value_objects import FAILED_LOGIN_ACTIONS, THROTTLED_LOGIN_ACTION, UserRole

from .unit_of_work import AbstractUnitOfWork

DEFAULT_PERIOD = timedelta(hours=24)


def auth_event_summary(uow: AbstractUnitOfWork, since: datetime | None = None) -> dict[str, int]:
    """Count throttled and failed login events recorded at or after `since` (default: last 24 hours)."""
    since = since or datetime.now(UTC) - DEFAULT_PERIOD
    throttled = failed = 0
    with uow:
        for event in uow.auth_audit_events.get_events_since(since):
            if event.action == THROTTLED_LOGIN_ACTION:
                throttled += 1
            elif event.action in FAILED_LOGIN_ACTIONS:
                failed += 1
    return {"throttled": throttled, "failed": failed}


def mfa_coverage(uow: AbstractUnitOfWork) -> dict[str, int]:
    """How many admins have MFA enabled, and what percentage that is (0 when there are no admins)."""
    with uow:
        admins = list(uow.users.get_by_role(UserRole.ADMIN))
    enrolled = sum(1 for admin in admins if admin.mfa_enabled)
    total = len(admins)
    percent = round(enrolled * 100 / total) if total else 0
    return {"enrolled": enrolled, "total": total, "percent": percent}
