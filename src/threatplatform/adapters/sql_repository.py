"""ABOUTME: SQLAlchemy implementations of repository interfaces
ABOUTME: Provides concrete database operations using SQLAlchemy sessions"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import datetime

from sqlalchemy.orm import Session

from threatplatform.adapters import orm
from threatplatform.domain.auth_audit import AUTH_ENTITY_TYPE, AuthAuditEvent
from threatplatform.domain.users import Tenant, TenantMembership, User
from threatplatform.domain.value_objects import UserRole
from threatplatform.service_layer.repositories import (
    AuthAuditRepository,
    TenantMembershipRepository,
    TenantRepository,
    UserRepository,
)


class SqlAlchemyRepository:
    """Base SQLAlchemy repository with common functionality."""

    def __init__(self, session: Session) -> None:
        self.session = session


class SqlAlchemyUserRepository(SqlAlchemyRepository, UserRepository):
    """SQLAlchemy implementation of UserRepository."""

    def add(self, item: User) -> None:
        self.session.add(item)

    def get(self, item_id: uuid.UUID) -> User | None:
        return self.session.query(User).filter_by(id=item_id).first()

    def all(self) -> Iterable[User]:
        return self.session.query(User).order_by(orm.users.c.email).all()

    def get_by_email(self, email: str) -> User | None:
        return self.session.query(User).filter_by(email=email).first()

    def get_by_role(self, role: UserRole) -> Iterable[User]:
        return self.session.query(User).filter(orm.users.c.role == role).all()


class SqlAlchemyTenantRepository(SqlAlchemyRepository, TenantRepository):
    """SQLAlchemy implementation of TenantRepository."""

    def add(self, item: Tenant) -> None:
        self.session.add(item)

    def get(self, item_id: uuid.UUID) -> Tenant | None:
        return self.session.query(Tenant).filter_by(id=item_id).first()

    def all(self) -> Iterable[Tenant]:
        return self.session.query(Tenant).order_by(orm.tenants.c.slug).all()

    def get_by_slug(self, slug: str) -> Tenant | None:
        return self.session.query(Tenant).filter_by(slug=slug).first()


class SqlAlchemyTenantMembershipRepository(SqlAlchemyRepository, TenantMembershipRepository):
    """SQLAlchemy implementation of TenantMembershipRepository."""

    def add(self, item: TenantMembership) -> None:
        self.session.add(item)

    def get(self, item_id: uuid.UUID) -> TenantMembership | None:
        return self.session.query(TenantMembership).filter_by(id=item_id).first()

    def all(self) -> Iterable[TenantMembership]:
        return self.session.query(TenantMembership).all()

    def get_membership_for_user(self, user_id: uuid.UUID) -> TenantMembership | None:
        # the oldest membership is the one a login lands in
        return (
            self.session.query(TenantMembership)
            .filter_by(user_id=user_id)
            .order_by(orm.tenant_memberships.c.created_at)
            .first()
        )


class SqlAlchemyAuthAuditRepository(SqlAlchemyRepository, AuthAuditRepository):
    """SQLAlchemy implementation of AuthAuditRepository."""

    def add(self, item: AuthAuditEvent) -> None:
        self.session.add(item)

    def get(self, item_id: uuid.UUID) -> AuthAuditEvent | None:
        return self.session.query(AuthAuditEvent).filter_by(id=item_id).first()

    def all(self) -> Iterable[AuthAuditEvent]:
        return self.session.query(AuthAuditEvent).order_by(orm.audit_log.c.created_at).all()

    def get_events_since(self, since: datetime) -> Iterable[AuthAuditEvent]:
        return (
            self.session.query(AuthAuditEvent)
            .filter(orm.audit_log.c.entity_type == AUTH_ENTITY_TYPE)
            .filter(orm.audit_log.c.created_at >= since)
            .order_by(orm.audit_log.c.created_at)
            .all()
        )

    def get_events_for_user(self, user_id: uuid.UUID, limit: int = 100) -> Iterable[AuthAuditEvent]:
        return (
            self.session.query(AuthAuditEvent)
            .filter_by(user_id=user_id)
            .order_by(orm.audit_log.c.created_at.desc())
            .limit(limit)
            .all()
        )
