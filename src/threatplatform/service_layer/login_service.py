"""ABOUTME: Login orchestration combining credential checks, rate limiting and TOTP verification
ABOUTME: Runs one login attempt through its steps and records every audited outcome"""

from collections.abc import Collection, Mapping
from typing import Any

import structlog

from threatplatform.domain.auth_audit import AuthAuditEvent
from threatplatform.domain.login import AuthenticatedIdentity, InvalidLoginPayload, LoginCredentials, LoginResult
from threatplatform.domain.rate_limit import RateLimitStatus
from threatplatform.domain.users import User
from threatplatform.domain.value_objects import AuthAttemptOutcome, UserRole, normalize_key

from .rate_limiter import LoginRateLimiter
from .security import burn_password_check, verify_password
from .totp_service import TotpVerifier
from .unit_of_work import AbstractUnitOfWork

log = structlog.get_logger(__name__)


class LoginOrchestrator:
    """Runs a single login attempt.

    Steps, each of which may end the attempt:

    1. validate the payload shape (not counted against rate limits)
    2. refuse if the IP address or the email is locked out
    3. look up the account by normalized email
    4. verify the password
    5. require a tenant membership (rejected without an audit event)
    6. require and verify a one-time code when the account has MFA enabled
    7. clear the rate limit counters and hand back the identity

    Every failure from step 3 on is counted against the rate limiter before
    the audit event for it is written. Expected rejections come back as a
    `LoginResult`, only infrastructure failures raise.
    """

    def __init__(
        self,
        uow: AbstractUnitOfWork,
        rate_limiter: LoginRateLimiter,
        totp_verifier: TotpVerifier,
        mfa_required_roles: Collection[UserRole] = frozenset(UserRole),
    ) -> None:
        self.uow = uow
        self.rate_limiter = rate_limiter
        self.totp_verifier = totp_verifier
        self.mfa_required_roles = frozenset(mfa_required_roles)

    def attempt_login(
        self,
        payload: Mapping[str, Any] | None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> LoginResult:
        with self.uow:
            try:
                credentials = LoginCredentials.from_payload(payload)
            except InvalidLoginPayload as error:
                self._record(
                    AuthAttemptOutcome.INVALID_PAYLOAD,
                    email=_submitted_email(payload),
                    ip_address=ip_address,
                    user_agent=user_agent,
                    details={"error": str(error)},
                )
                return LoginResult(AuthAttemptOutcome.INVALID_PAYLOAD)

            status = self.rate_limiter.check_status(ip_address, credentials.email)
            if status.locked:
                self._record(
                    AuthAttemptOutcome.RATE_LIMITED,
                    email=credentials.email,
                    ip_address=ip_address,
                    user_agent=user_agent,
                    suspicious=True,
                    details=_rate_limit_details(status),
                )
                return LoginResult(AuthAttemptOutcome.RATE_LIMITED, rate_limit=status)

            user = self.uow.users.get_by_email(credentials.email)
            if user is None or not user.has_credential():
                burn_password_check(credentials.password)
                return self._reject(AuthAttemptOutcome.UNKNOWN_USER, credentials, ip_address, user_agent)

            if not verify_password(credentials.password, user.password_hash):
                return self._reject(AuthAttemptOutcome.INVALID_PASSWORD, credentials, ip_address, user_agent, user)

            membership = self.uow.tenant_memberships.get_membership_for_user(user.id)
            if membership is None:
                log.warning("login_rejected", outcome=AuthAttemptOutcome.NO_ACTIVE_TENANT.value, user_id=str(user.id))
                return LoginResult(AuthAttemptOutcome.NO_ACTIVE_TENANT)

            mfa_required = user.requires_mfa(self.mfa_required_roles)
            if mfa_required:
                if not credentials.totp_token or not user.mfa_secret:
                    return self._reject(
                        AuthAttemptOutcome.MFA_MISSING, credentials, ip_address, user_agent, user, membership.tenant_id
                    )
                if not self.totp_verifier.verify(user.mfa_secret, credentials.totp_token):
                    return self._reject(
                        AuthAttemptOutcome.MFA_INVALID, credentials, ip_address, user_agent, user, membership.tenant_id
                    )

            self.rate_limiter.record_success(ip_address, credentials.email)
            self._record(
                AuthAttemptOutcome.SUCCESS,
                email=user.email,
                ip_address=ip_address,
                user_agent=user_agent,
                user=user,
                tenant_id=membership.tenant_id,
                details={"mfa_required": mfa_required},
            )
            log.info("login_succeeded", user_id=str(user.id), mfa_required=mfa_required)
            identity = AuthenticatedIdentity(id=user.id, email=user.email, role=user.role, tenant_id=membership.tenant_id)
            return LoginResult(AuthAttemptOutcome.SUCCESS, identity=identity, mfa_required=mfa_required)

    def _reject(
        self,
        outcome: AuthAttemptOutcome,
        credentials: LoginCredentials,
        ip_address: str | None,
        user_agent: str | None,
        user: User | None = None,
        tenant_id: Any = None,
    ) -> LoginResult:
        status = self.rate_limiter.record_failure(ip_address, credentials.email)
        details = _rate_limit_details(status)
        if user is not None:
            details["mfa_required"] = outcome in (AuthAttemptOutcome.MFA_MISSING, AuthAttemptOutcome.MFA_INVALID)
        self._record(
            outcome,
            email=credentials.email,
            ip_address=ip_address,
            user_agent=user_agent,
            user=user,
            tenant_id=tenant_id,
            suspicious=status.locked,
            details=details,
        )
        log.info("login_rejected", outcome=outcome.value, remaining=status.remaining, locked=status.locked)
        return LoginResult(outcome, rate_limit=status, mfa_required=bool(details.get("mfa_required")))

    def _record(
        self,
        outcome: AuthAttemptOutcome,
        email: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        user: User | None = None,
        tenant_id: Any = None,
        suspicious: bool = False,
        details: dict[str, Any] | None = None,
    ) -> None:
        event = AuthAuditEvent(
            action=outcome.audit_action,
            user_id=user.id if user else None,
            tenant_id=tenant_id,
            email=email,
            ip_address=ip_address,
            user_agent=user_agent,
            suspicious=suspicious,
            details={"outcome": outcome.value, **(details or {})},
        )
        self.uow.auth_audit_events.add(event)
        self.uow.commit()


def _submitted_email(payload: Mapping[str, Any] | None) -> str | None:
    if not isinstance(payload, Mapping):
        return None
    email = normalize_key(payload.get("email"))
    return email[:255] if email else None


def _rate_limit_details(status: RateLimitStatus) -> dict[str, Any]:
    details: dict[str, Any] = {"remaining_attempts": status.remaining}
    if status.locked:
        details["blocked_by"] = status.blocked_by.value if status.blocked_by else None
        details["locked_until"] = status.locked_until.isoformat() if status.locked_until else None
    return details
