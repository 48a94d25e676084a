"""ABOUTME: Value types passed in and out of a single login attempt
ABOUTME: Validated credentials, the authenticated identity handed to the session layer, and the attempt result"""

import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .rate_limit import RateLimitStatus
from .value_objects import AuthAttemptOutcome, UserRole, normalize_key, validate_email

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 255
MAX_TOTP_TOKEN_LENGTH = 32


class InvalidLoginPayload(ValueError):
    """The submitted login payload does not have the expected shape."""


@dataclass(frozen=True, slots=True)
class LoginCredentials:
    email: str
    password: str
    totp_token: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any] | None) -> "LoginCredentials":
        """Validate a submitted form/JSON body.

        Raises:
            InvalidLoginPayload: if the email, password or token are malformed
        """
        if not isinstance(payload, Mapping):
            raise InvalidLoginPayload("Payload must be a mapping")

        email = normalize_key(payload.get("email"))
        if email is None:
            raise InvalidLoginPayload("Email is required")
        try:
            validate_email(email)
        except ValueError as error:
            raise InvalidLoginPayload(str(error)) from error

        password = payload.get("password")
        if not isinstance(password, str) or not MIN_PASSWORD_LENGTH <= len(password) <= MAX_PASSWORD_LENGTH:
            raise InvalidLoginPayload(f"Password must be between {MIN_PASSWORD_LENGTH} and {MAX_PASSWORD_LENGTH} characters")

        totp_token = payload.get("totp_token", payload.get("token"))
        if totp_token is not None:
            if not isinstance(totp_token, str) or len(totp_token) > MAX_TOTP_TOKEN_LENGTH:
                raise InvalidLoginPayload("One-time code must be a short string")
            totp_token = totp_token.strip() or None

        return cls(email=email, password=password, totp_token=totp_token)


@dataclass(frozen=True, slots=True)
class AuthenticatedIdentity:
    id: uuid.UUID
    email: str
    role: UserRole
    tenant_id: uuid.UUID

    def to_dict(self) -> dict[str, str]:
        return {
            "id": str(self.id),
            "email": self.email,
            "role": self.role.value,
            "tenant_id": str(self.tenant_id),
        }


@dataclass(frozen=True, slots=True)
class LoginResult:
    outcome: AuthAttemptOutcome
    identity: AuthenticatedIdentity | None = None
    rate_limit: RateLimitStatus | None = None
    mfa_required: bool = False

    @property
    def succeeded(self) -> bool:
        return self.outcome is AuthAttemptOutcome.SUCCESS
