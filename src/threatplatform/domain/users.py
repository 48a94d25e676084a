"""ABOUTME: User, tenant and tenant membership domain models
ABOUTME: Plain Python objects carrying credentials, role and MFA enrollment state"""

import uuid
from collections.abc import Collection
from datetime import UTC, datetime

from .value_objects import UserRole, normalize_key, validate_email


class User:
    """User domain model for authentication and MFA enrollment."""

    def __init__(
        self,
        email: str,
        password_hash: str,
        role: UserRole = UserRole.VIEWER,
        user_id: uuid.UUID | None = None,
        mfa_enabled: bool = False,
        mfa_secret: str | None = None,
        mfa_enrolled_at: datetime | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        normalized_email = normalize_key(email) or ""
        validate_email(normalized_email)

        if mfa_enabled and not mfa_secret:
            raise ValueError("MFA cannot be enabled without a secret")

        self.id = user_id or uuid.uuid4()
        self.email = normalized_email
        self.password_hash = password_hash
        self.role = role
        self.mfa_enabled = mfa_enabled
        self.mfa_secret = mfa_secret
        self.mfa_enrolled_at = mfa_enrolled_at
        self.created_at = created_at or datetime.now(UTC)
        self.updated_at = updated_at or self.created_at

    def has_credential(self) -> bool:
        return bool(self.password_hash)

    def requires_mfa(self, required_roles: Collection[UserRole]) -> bool:
        """Check whether a second factor must be presented at login."""
        return self.mfa_enabled and self.role in required_roles

    def enable_mfa(self, secret: str) -> None:
        if not secret:
            raise ValueError("An MFA secret is required")
        self.mfa_secret = secret
        self.mfa_enabled = True
        self.mfa_enrolled_at = datetime.now(UTC)
        self.updated_at = self.mfa_enrolled_at

    def disable_mfa(self) -> None:
        # the secret goes with the enrollment
        self.mfa_secret = None
        self.mfa_enabled = False
        self.mfa_enrolled_at = None
        self.updated_at = datetime.now(UTC)

    def create_detached_copy(self) -> "User":
        """Create a detached copy of this user for use outside SQLAlchemy sessions"""
        return User(
            email=self.email,
            password_hash=self.password_hash,
            role=self.role,
            user_id=self.id,
            mfa_enabled=self.mfa_enabled,
            mfa_secret=self.mfa_secret,
            mfa_enrolled_at=self.mfa_enrolled_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, User):
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role.value})>"


class Tenant:
    """An organisation whose threats and mitigations are isolated from other tenants."""

    def __init__(
        self,
        name: str,
        slug: str,
        tenant_id: uuid.UUID | None = None,
        created_at: datetime | None = None,
    ):
        slug = slug.strip().lower()
        if not name.strip():
            raise ValueError("Tenant name is required")
        if not slug or len(slug) > 100:
            raise ValueError("Tenant slug must be between 1 and 100 characters")

        self.id = tenant_id or uuid.uuid4()
        self.name = name.strip()
        self.slug = slug
        self.created_at = created_at or datetime.now(UTC)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Tenant):
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


class TenantMembership:
    """Links a user to the tenant they work in."""

    def __init__(
        self,
        tenant_id: uuid.UUID,
        user_id: uuid.UUID,
        role: UserRole = UserRole.VIEWER,
        membership_id: uuid.UUID | None = None,
        created_at: datetime | None = None,
    ):
        self.id = membership_id or uuid.uuid4()
        self.tenant_id = tenant_id
        self.user_id = user_id
        self.role = role
        self.created_at = created_at or datetime.now(UTC)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TenantMembership):
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)
