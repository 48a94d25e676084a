"""ABOUTME: User and tenant management service layer
ABOUTME: Handles tenant creation, user creation with tenant membership, and lookups"""

import structlog

from threatplatform.domain.login import MAX_PASSWORD_LENGTH, MIN_PASSWORD_LENGTH
from threatplatform.domain.users import Tenant, TenantMembership, User
from threatplatform.domain.value_objects import UserRole, normalize_key

from .exceptions import ServiceLayerError, TenantAlreadyExists, TenantNotFoundError, UserAlreadyExists, UserNotFoundError
from .security import hash_password
from .unit_of_work import AbstractUnitOfWork

log = structlog.get_logger(__name__)


def create_tenant(uow: AbstractUnitOfWork, name: str, slug: str) -> Tenant:
    """
    Create a new tenant.

    Raises:
        TenantAlreadyExists: If the slug is taken
        ValueError: If the name or slug is invalid
    """
    with uow:
        tenant = Tenant(name=name, slug=slug)
        if uow.tenants.get_by_slug(tenant.slug):
            raise TenantAlreadyExists(slug=tenant.slug)
        uow.tenants.add(tenant)
        uow.commit()
        log.info("tenant_created", tenant_id=str(tenant.id), slug=tenant.slug)
        return tenant


def create_user(
    uow: AbstractUnitOfWork,
    email: str,
    password: str,
    tenant_slug: str,
    role: UserRole = UserRole.VIEWER,
) -> User:
    """
    Create a new user and make them a member of an existing tenant.

    Args:
        uow: Unit of Work for database operations
        email: User's email address, stored normalized
        password: Plain text password (will be hashed)
        tenant_slug: Slug of the tenant the user belongs to
        role: The user's role in the platform and in the tenant

    Returns:
        Detached copy of the created User

    Raises:
        UserAlreadyExists: If the email is already registered
        TenantNotFoundError: If there is no tenant with that slug
        ServiceLayerError: If the password is too short or too long
        ValueError: If the email is invalid
    """
    if not MIN_PASSWORD_LENGTH <= len(password) <= MAX_PASSWORD_LENGTH:
        raise ServiceLayerError(f"Password must be between {MIN_PASSWORD_LENGTH} and {MAX_PASSWORD_LENGTH} characters")

    with uow:
        normalized_email = normalize_key(email) or ""
        if uow.users.get_by_email(normalized_email):
            raise UserAlreadyExists(email=normalized_email)

        tenant = uow.tenants.get_by_slug(tenant_slug.strip().lower())
        if tenant is None:
            raise TenantNotFoundError(f"Tenant '{tenant_slug}' not found")

        user = User(email=normalized_email, password_hash=hash_password(password), role=role)
        uow.users.add(user)
        uow.tenant_memberships.add(TenantMembership(tenant_id=tenant.id, user_id=user.id, role=role))

        detached_user = user.create_detached_copy()
        uow.commit()
        log.info("user_created", user_id=str(user.id), tenant_id=str(tenant.id), role=role.value)
        return detached_user


def get_user_by_email(uow: AbstractUnitOfWork, email: str) -> User:
    """Look up a user by email, case and surrounding whitespace ignored."""
    with uow:
        user = uow.users.get_by_email(normalize_key(email) or "")
        if user is None:
            raise UserNotFoundError(f"User '{email}' not found")
        return user.create_detached_copy()
