"""ABOUTME: Abstract repository interfaces for domain objects
ABOUTME: Defines the user store, tenant membership store and audit recorder contracts"""

from __future__ import annotations

import abc
import uuid
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from threatplatform.domain.auth_audit import AuthAuditEvent
from threatplatform.domain.users import Tenant, TenantMembership, User
from threatplatform.domain.value_objects import UserRole


class AbstractRepository(abc.ABC):
    """Base repository interface providing common operations."""

    @abc.abstractmethod
    def add(self, item: Any) -> None:
        """Add an item to the repository."""
        raise NotImplementedError

    @abc.abstractmethod
    def get(self, item_id: uuid.UUID) -> Any | None:
        """Get an item by its ID."""
        raise NotImplementedError

    @abc.abstractmethod
    def all(self) -> Iterable[Any]:
        """List all items in the repository."""
        raise NotImplementedError


class UserRepository(AbstractRepository):
    """Repository interface for User domain objects."""

    @abc.abstractmethod
    def get_by_email(self, email: str) -> User | None:
        """Get a user by their normalized email address."""
        raise NotImplementedError

    @abc.abstractmethod
    def get_by_role(self, role: UserRole) -> Iterable[User]:
        """Get all users with the given role."""
        raise NotImplementedError


class TenantRepository(AbstractRepository):
    """Repository interface for Tenant domain objects."""

    @abc.abstractmethod
    def get_by_slug(self, slug: str) -> Tenant | None:
        """Get a tenant by its slug."""
        raise NotImplementedError


class TenantMembershipRepository(AbstractRepository):
    """Repository interface for TenantMembership domain objects."""

    @abc.abstractmethod
    def get_membership_for_user(self, user_id: uuid.UUID) -> TenantMembership | None:
        """Get the tenant membership a user logs in to, if any."""
        raise NotImplementedError


class AuthAuditRepository(AbstractRepository):
    """Repository interface for AuthAuditEvent domain objects - the audit recorder."""

    @abc.abstractmethod
    def get_events_since(self, since: datetime) -> Iterable[AuthAuditEvent]:
        """Get all authentication events created at or after `since`."""
        raise NotImplementedError

    @abc.abstractmethod
    def get_events_for_user(self, user_id: uuid.UUID, limit: int = 100) -> Iterable[AuthAuditEvent]:
        """Get the most recent authentication events for a user, newest first."""
        raise NotImplementedError
