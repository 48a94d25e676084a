"""ABOUTME: Database connection setup and imperative mapping
ABOUTME: Configures SQLAlchemy sessions and maps domain objects to tables"""

from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import clear_mappers as sqla_clear_mappers
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from threatplatform.adapters import orm
from threatplatform.config import bool_environ_get, get_db_uri
from threatplatform.domain import auth_audit, users


class DatabaseError(Exception):
    """Base exception for database-related errors."""


def create_session_factory(database_url: str = "", echo: bool = False) -> sessionmaker:
    """Create a SQLAlchemy session factory with proper configuration."""
    database_url = database_url or get_db_uri()
    echo = bool_environ_get("DB_ECHO") or echo
    extra_args: dict[str, Any] = {}
    if database_url.startswith("postgresql://"):
        extra_args = {
            "pool_pre_ping": True,  # Verify connections before use
            "pool_recycle": 3600,  # Recycle connections after 1 hour
            "pool_size": 10,
            "max_overflow": 20,
        }
    elif database_url.startswith("sqlite"):
        # request threads share the engine
        extra_args = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url:
            # one shared connection, otherwise each new connection sees an empty database
            extra_args["poolclass"] = StaticPool
    engine = create_engine(database_url, echo=echo, **extra_args)

    return sessionmaker(bind=engine, expire_on_commit=False)


def create_tables(session_factory: sessionmaker) -> None:
    engine = session_factory.kw["bind"]
    orm.metadata.create_all(engine)


_mappers_started = False


def start_mappers() -> None:
    """Start imperative mapping between domain objects and database tables.

    The mapping is done imperatively to keep domain objects independent of SQLAlchemy.
    """
    global _mappers_started

    if _mappers_started:
        return

    try:
        orm.mapper_registry.map_imperatively(users.Tenant, orm.tenants)
        orm.mapper_registry.map_imperatively(users.User, orm.users)
        orm.mapper_registry.map_imperatively(users.TenantMembership, orm.tenant_memberships)
        orm.mapper_registry.map_imperatively(auth_audit.AuthAuditEvent, orm.audit_log)

        _mappers_started = True

    except Exception as e:  # pragma: no cover
        raise DatabaseError(f"Failed to start mappers: {e}") from e


def clear_mappers() -> None:
    sqla_clear_mappers()

    global _mappers_started
    _mappers_started = False
