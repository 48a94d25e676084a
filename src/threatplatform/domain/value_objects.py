"""ABOUTME: Value objects and enums for the authentication domain
ABOUTME: Defines roles, login outcomes, rate limit scopes and shared normalisation/validation helpers"""

from enum import Enum

from django.core.exceptions import ValidationError
from django.core.validators import EmailValidator


class UserRole(Enum):
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"


class RateLimitScope(Enum):
    IP = "ip"
    EMAIL = "email"


class AuthAttemptOutcome(Enum):
    SUCCESS = "success"
    INVALID_PAYLOAD = "invalid_payload"
    UNKNOWN_USER = "unknown_user"
    INVALID_PASSWORD = "invalid_password"  # noqa: S105
    MFA_MISSING = "mfa_missing"
    MFA_INVALID = "mfa_invalid"
    RATE_LIMITED = "rate_limited"
    # Not sent to the audit recorder, so the tenant layout of accounts cannot be probed
    NO_ACTIVE_TENANT = "no_active_tenant"

    @property
    def is_audited(self) -> bool:
        return self is not AuthAttemptOutcome.NO_ACTIVE_TENANT

    @property
    def audit_action(self) -> str:
        """Action name written to the audit log for this outcome."""
        return _AUDIT_ACTIONS[self]


_AUDIT_ACTIONS = {
    AuthAttemptOutcome.SUCCESS: "auth_login_success",
    AuthAttemptOutcome.INVALID_PAYLOAD: "auth_login_invalid",
    AuthAttemptOutcome.UNKNOWN_USER: "auth_login_failed",
    AuthAttemptOutcome.INVALID_PASSWORD: "auth_login_failed",
    AuthAttemptOutcome.MFA_MISSING: "auth_mfa_missing",
    AuthAttemptOutcome.MFA_INVALID: "auth_mfa_failed",
    AuthAttemptOutcome.RATE_LIMITED: "auth_login_throttled",
    AuthAttemptOutcome.NO_ACTIVE_TENANT: "auth_login_no_tenant",
}

# audit actions that are counted as failed logins on the security dashboard
FAILED_LOGIN_ACTIONS = frozenset({"auth_login_failed", "auth_mfa_failed", "auth_mfa_missing", "auth_login_invalid"})
THROTTLED_LOGIN_ACTION = "auth_login_throttled"

# audit actions for the MFA enrollment lifecycle
MFA_ENABLED_ACTION = "auth_mfa_enabled"
MFA_DISABLED_ACTION = "auth_mfa_disabled"
MFA_ADMIN_DISABLED_ACTION = "auth_mfa_admin_disabled"


def normalize_key(value: str | None) -> str | None:
    """Trim and lower-case an identity key, returning None when nothing is left."""
    if not isinstance(value, str):
        return None
    normalized = value.strip().lower()
    return normalized or None


def validate_email(email: str) -> None:
    """Basic email validation."""
    # Passing in the message stops the validator from reaching for Django's
    # translation machinery, which is not configured here.
    validator = EmailValidator(message="Invalid email address")
    try:
        validator(email)
    except ValidationError as error:
        raise ValueError("Invalid email address") from error
