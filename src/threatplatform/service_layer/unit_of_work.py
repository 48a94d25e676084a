"""ABOUTME: Unit of Work pattern implementation for transaction management
ABOUTME: Coordinates repository operations within database transactions"""

from __future__ import annotations

import abc
from types import TracebackType

from sqlalchemy.orm import Session, sessionmaker

from threatplatform.adapters.sql_repository import (
    SqlAlchemyAuthAuditRepository,
    SqlAlchemyTenantMembershipRepository,
    SqlAlchemyTenantRepository,
    SqlAlchemyUserRepository,
)
from threatplatform.service_layer.repositories import (
    AuthAuditRepository,
    TenantMembershipRepository,
    TenantRepository,
    UserRepository,
)


class AbstractUnitOfWork(abc.ABC):
    """Abstract Unit of Work interface."""

    users: UserRepository
    tenants: TenantRepository
    tenant_memberships: TenantMembershipRepository
    auth_audit_events: AuthAuditRepository

    def __enter__(self) -> AbstractUnitOfWork:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            self.rollback()
        else:
            self.commit()

    @abc.abstractmethod
    def commit(self) -> None:
        """Commit the current transaction."""
        raise NotImplementedError

    @abc.abstractmethod
    def rollback(self) -> None:
        """Rollback the current transaction."""
        raise NotImplementedError


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    """SQLAlchemy implementation of Unit of Work pattern."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self.session_factory = session_factory
        self._session: Session | None = None

    @property
    def session(self) -> Session:
        if self._session is None:
            self._session = self.session_factory()
        assert isinstance(self._session, Session)
        return self._session

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        # Initialize repositories with the session
        self.users = SqlAlchemyUserRepository(self.session)
        self.tenants = SqlAlchemyTenantRepository(self.session)
        self.tenant_memberships = SqlAlchemyTenantMembershipRepository(self.session)
        self.auth_audit_events = SqlAlchemyAuthAuditRepository(self.session)
        super().__enter__()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        super().__exit__(exc_type, exc_val, exc_tb)
        self.session.close()
        self._session = None

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()
