"""ABOUTME: Fake repository implementations for testing
ABOUTME: In-memory repositories that implement the same interfaces as real ones"""

import uuid
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from threatplatform.domain.auth_audit import AuthAuditEvent
from threatplatform.domain.users import Tenant, TenantMembership, User
from threatplatform.domain.value_objects import UserRole
from threatplatform.service_layer.repositories import (
    AbstractRepository,
    AuthAuditRepository,
    TenantMembershipRepository,
    TenantRepository,
    UserRepository,
)
from threatplatform.service_layer.unit_of_work import AbstractUnitOfWork


class FakeRepository(AbstractRepository):
    """Base fake repository with in-memory storage."""

    def __init__(self, items: list[Any] | None = None):
        self._items = list(items) if items else []

    def add(self, item: Any) -> None:
        """Add an item to the repository."""
        self._items.append(item)

    def get(self, item_id: uuid.UUID) -> Any | None:
        """Get an item by its ID."""
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def all(self) -> Iterable[Any]:
        """Get all items in the repository."""
        return list(self._items)


class FakeUserRepository(FakeRepository, UserRepository):
    """Fake implementation of UserRepository."""

    def get_by_email(self, email: str) -> User | None:
        for user in self._items:
            if user.email == email:
                return user
        return None

    def get_by_role(self, role: UserRole) -> Iterable[User]:
        return [user for user in self._items if user.role == role]


class FakeTenantRepository(FakeRepository, TenantRepository):
    """Fake implementation of TenantRepository."""

    def get_by_slug(self, slug: str) -> Tenant | None:
        for tenant in self._items:
            if tenant.slug == slug:
                return tenant
        return None


class FakeTenantMembershipRepository(FakeRepository, TenantMembershipRepository):
    """Fake implementation of TenantMembershipRepository."""

    def get_membership_for_user(self, user_id: uuid.UUID) -> TenantMembership | None:
        memberships = [m for m in self._items if m.user_id == user_id]
        return min(memberships, key=lambda m: m.created_at) if memberships else None


class FakeAuthAuditRepository(FakeRepository, AuthAuditRepository):
    """Fake implementation of AuthAuditRepository."""

    def get_events_since(self, since: datetime) -> Iterable[AuthAuditEvent]:
        return sorted((e for e in self._items if e.created_at >= since), key=lambda e: e.created_at)

    def get_events_for_user(self, user_id: uuid.UUID, limit: int = 100) -> Iterable[AuthAuditEvent]:
        events = [e for e in self._items if e.user_id == user_id]
        return sorted(events, key=lambda e: e.created_at, reverse=True)[:limit]

    def actions(self) -> list[str]:
        return [e.action for e in self._items]


class FakeUnitOfWork(AbstractUnitOfWork):
    """Fake Unit of Work implementation for testing."""

    def __init__(self) -> None:
        self.users = self.fake_users = FakeUserRepository()
        self.tenants = self.fake_tenants = FakeTenantRepository()
        self.tenant_memberships = self.fake_tenant_memberships = FakeTenantMembershipRepository()
        self.auth_audit_events = self.fake_auth_audit_events = FakeAuthAuditRepository()
        self.committed = False

    def __enter__(self) -> AbstractUnitOfWork:
        return self

    def __exit__(self, *args) -> None:
        pass

    def commit(self) -> None:
        """Mark as committed."""
        self.committed = True

    def rollback(self) -> None:
        """Clear all repositories."""
        self.fake_users._items.clear()
        self.fake_tenants._items.clear()
        self.fake_tenant_memberships._items.clear()
        self.fake_auth_audit_events._items.clear()
        self.committed = False
