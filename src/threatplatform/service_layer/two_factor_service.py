"""ABOUTME: MFA enrollment orchestration service
ABOUTME: High-level functions for setting up, enabling and disabling TOTP on an account"""

import uuid
from typing import Any

import structlog

from threatplatform.domain.auth_audit import AuthAuditEvent
from threatplatform.domain.users import User
from threatplatform.domain.value_objects import MFA_ADMIN_DISABLED_ACTION, MFA_DISABLED_ACTION, MFA_ENABLED_ACTION
from threatplatform.service_layer import totp_service
from threatplatform.service_layer.exceptions import TwoFactorSetupError, TwoFactorVerificationError
from threatplatform.service_layer.unit_of_work import AbstractUnitOfWork

log = structlog.get_logger(__name__)


def _get_user(uow: AbstractUnitOfWork, user_id: uuid.UUID) -> User:
    user = uow.users.get(user_id)
    if user is None:
        raise TwoFactorSetupError("User not found")
    return user


def setup_mfa(
    uow: AbstractUnitOfWork,
    user_id: uuid.UUID,
    verifier: totp_service.TotpVerifier | None = None,
) -> tuple[str, str]:
    """Initiate MFA setup for a user.

    This generates a new TOTP secret but does NOT enable MFA yet. The user must
    show they can produce a valid code (see `enable_mfa`) before it is stored.

    Args:
        uow: Unit of Work for database access
        user_id: The user's UUID
        verifier: Supplies the issuer, code length and step for the URI

    Returns:
        Tuple of (totp_secret, provisioning_uri)

    Raises:
        TwoFactorSetupError: If the user does not exist or already has MFA enabled
    """
    verifier = verifier or totp_service.TotpVerifier()
    with uow:
        user = _get_user(uow, user_id)
        if user.mfa_enabled:
            raise TwoFactorSetupError("MFA is already enabled for this user")

        secret = totp_service.generate_totp_secret()
        return secret, verifier.provisioning_uri(secret, user.email)


def enable_mfa(
    uow: AbstractUnitOfWork,
    user_id: uuid.UUID,
    totp_secret: str,
    totp_code: str,
    verifier: totp_service.TotpVerifier | None = None,
) -> None:
    """Complete MFA setup by verifying a code generated from the new secret.

    Raises:
        TwoFactorVerificationError: If the code does not match the secret
        TwoFactorSetupError: If the user does not exist or already has MFA enabled
    """
    verifier = verifier or totp_service.TotpVerifier()
    with uow:
        user = _get_user(uow, user_id)
        if user.mfa_enabled:
            raise TwoFactorSetupError("MFA is already enabled for this user")

        if not verifier.verify(totp_secret, totp_code):
            raise TwoFactorVerificationError("Invalid authentication code")

        user.enable_mfa(totp_secret)
        _record(uow, MFA_ENABLED_ACTION, user, performed_by=user.id, details={"method": "totp"})
        uow.commit()
    log.info("mfa_enabled", user_id=str(user_id))


def disable_mfa(
    uow: AbstractUnitOfWork,
    user_id: uuid.UUID,
    totp_code: str,
    verifier: totp_service.TotpVerifier | None = None,
) -> None:
    """Disable MFA for a user (user-initiated). A valid current code confirms the action.

    Raises:
        TwoFactorVerificationError: If the code is invalid
        TwoFactorSetupError: If the user does not exist or does not have MFA enabled
    """
    verifier = verifier or totp_service.TotpVerifier()
    with uow:
        user = _get_user(uow, user_id)
        if not user.mfa_enabled or not user.mfa_secret:
            raise TwoFactorSetupError("MFA is not enabled for this user")

        if not verifier.verify(user.mfa_secret, totp_code):
            raise TwoFactorVerificationError("Invalid authentication code")

        user.disable_mfa()
        _record(uow, MFA_DISABLED_ACTION, user, performed_by=user.id, details={"method": "user_requested"})
        uow.commit()
    log.info("mfa_disabled", user_id=str(user_id))


def admin_disable_mfa(uow: AbstractUnitOfWork, user_id: uuid.UUID, admin_user_id: uuid.UUID) -> None:
    """Disable MFA for a user (admin-initiated).

    No code is needed, this is for recovering accounts whose authenticator
    was lost. The audit event carries the admin's id and email.

    Raises:
        TwoFactorSetupError: If either user does not exist or MFA is not enabled
    """
    with uow:
        user = _get_user(uow, user_id)
        admin_user = uow.users.get(admin_user_id)
        if admin_user is None:
            raise TwoFactorSetupError("Admin user not found")

        if not user.mfa_enabled:
            raise TwoFactorSetupError("MFA is not enabled for this user")

        user.disable_mfa()
        _record(
            uow,
            MFA_ADMIN_DISABLED_ACTION,
            user,
            performed_by=admin_user.id,
            details={"admin_email": admin_user.email},
        )
        uow.commit()
    log.warning("mfa_admin_disabled", user_id=str(user_id), admin_user_id=str(admin_user_id))


def get_mfa_status(uow: AbstractUnitOfWork, user_id: uuid.UUID) -> dict[str, Any]:
    with uow:
        user = _get_user(uow, user_id)
        return {
            "enabled": user.mfa_enabled,
            "enrolled_at": user.mfa_enrolled_at,
        }


def _record(
    uow: AbstractUnitOfWork,
    action: str,
    user: User,
    performed_by: uuid.UUID,
    details: dict[str, Any],
) -> None:
    event = AuthAuditEvent(
        action=action,
        user_id=user.id,
        email=user.email,
        details={"performed_by": str(performed_by), **details},
    )
    uow.auth_audit_events.add(event)
