"""ABOUTME: SQLAlchemy table definitions for imperative mapping
ABOUTME: Defines the tenants, users, tenant membership and audit log schema"""

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, TIMESTAMP, Boolean, Column, ForeignKey, Index, String, Table, Text, TypeDecorator
from sqlalchemy.dialects.postgresql import UUID as PostgresUUID
from sqlalchemy.engine.interfaces import Dialect
from sqlalchemy.orm import registry
from sqlalchemy.sql.sqltypes import String as SQLString

from threatplatform.domain.value_objects import UserRole


def aware_utcnow() -> datetime:  # pragma: no cover
    return datetime.now(UTC)


class EnumAsString(TypeDecorator):
    """Custom type for storing Python Enums as strings."""

    impl = String
    cache_ok = True

    def __init__(self, enum_class: type[Enum], *args: Any, **kwargs: Any) -> None:
        self.enum_class = enum_class
        super().__init__(*args, **kwargs)

    def process_bind_param(self, value: Any, dialect: Dialect) -> str | None:
        if value is None:  # pragma: no cover
            return value
        return value.value if hasattr(value, "value") else str(value)

    def process_result_value(self, value: Any, dialect: Dialect) -> Any:
        if value is None:  # pragma: no cover
            return value
        return self.enum_class(value)


class TZAwareDatetime(TypeDecorator):
    """Custom type for timezone-aware datetime objects."""

    impl = TIMESTAMP
    cache_ok = True

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("timezone", True)
        super().__init__(*args, **kwargs)

    def process_result_value(self, value: Any, dialect: Dialect) -> datetime | None:
        if value is None:
            return value

        # SQLite hands back naive values - they were stored as UTC
        if isinstance(value, datetime) and value.tzinfo is None:
            return value.replace(tzinfo=UTC)

        return value


class CrossDatabaseUUID(TypeDecorator):
    """Cross-database UUID type that works with both PostgreSQL and SQLite."""

    impl = SQLString
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect) -> Any:
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PostgresUUID(as_uuid=True))
        return dialect.type_descriptor(SQLString(36))

    def process_bind_param(self, value: Any, dialect: Dialect) -> str | None:
        if value is None:
            return value

        if isinstance(value, uuid.UUID):
            return str(value)
        if isinstance(value, str):
            try:
                uuid.UUID(value)
            except ValueError as e:
                raise ValueError(f"Invalid UUID string: {value}") from e
            return value
        raise TypeError(f"Expected UUID or string, got {type(value)}")

    def process_result_value(self, value: Any, dialect: Dialect) -> uuid.UUID | None:
        if value is None or isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(str(value))


# Create a registry for imperative mapping
mapper_registry = registry()
metadata = mapper_registry.metadata

tenants = Table(
    "tenants",
    metadata,
    Column("id", CrossDatabaseUUID(), primary_key=True, default=uuid.uuid4),
    Column("name", Text, nullable=False),
    Column("slug", String(100), nullable=False, unique=True),
    Column("created_at", TZAwareDatetime(), nullable=False, default=aware_utcnow),
)

users = Table(
    "users",
    metadata,
    Column("id", CrossDatabaseUUID(), primary_key=True, default=uuid.uuid4),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("role", EnumAsString(UserRole, 20), nullable=False, default=UserRole.VIEWER),
    Column("mfa_enabled", Boolean, nullable=False, default=False),
    Column("mfa_secret", Text, nullable=True),
    Column("mfa_enrolled_at", TZAwareDatetime(), nullable=True),
    Column("created_at", TZAwareDatetime(), nullable=False, default=aware_utcnow),
    Column("updated_at", TZAwareDatetime(), nullable=False, default=aware_utcnow),
)

tenant_memberships = Table(
    "tenant_memberships",
    metadata,
    Column("id", CrossDatabaseUUID(), primary_key=True, default=uuid.uuid4),
    Column("tenant_id", CrossDatabaseUUID(), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False),
    Column("user_id", CrossDatabaseUUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("role", EnumAsString(UserRole, 20), nullable=False, default=UserRole.VIEWER),
    Column("created_at", TZAwareDatetime(), nullable=False, default=aware_utcnow),
    Index("ix_tenant_memberships_user_id", "user_id"),
)

# user_id is nullable: failed attempts against unknown accounts are still audited
audit_log = Table(
    "audit_log",
    metadata,
    Column("id", CrossDatabaseUUID(), primary_key=True, default=uuid.uuid4),
    Column("tenant_id", CrossDatabaseUUID(), ForeignKey("tenants.id"), nullable=True),
    Column("user_id", CrossDatabaseUUID(), ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
    Column("action", String(100), nullable=False),
    Column("entity_type", String(50), nullable=False),
    Column("entity_id", Text, nullable=False),
    Column("email", String(255), nullable=True),
    Column("details", JSON, nullable=True),
    Column("ip_address", String(45), nullable=True),
    Column("user_agent", Text, nullable=True),
    Column("suspicious", Boolean, nullable=False, default=False),
    Column("created_at", TZAwareDatetime(), nullable=False, default=aware_utcnow),
    Index("ix_audit_log_entity_type_created_at", "entity_type", "created_at"),
    Index("ix_audit_log_user_id", "user_id"),
)
