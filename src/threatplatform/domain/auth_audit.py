"""ABOUTME: AuthAuditEvent domain model for tracking authentication security events
ABOUTME: One event per audited login outcome or MFA enrollment change"""

import uuid
from datetime import UTC, datetime
from typing import Any

AUTH_ENTITY_TYPE = "auth"


class AuthAuditEvent:
    """Audit log domain model for authentication events."""

    def __init__(
        self,
        action: str,
        user_id: uuid.UUID | None = None,
        tenant_id: uuid.UUID | None = None,
        email: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        suspicious: bool = False,
        details: dict[str, Any] | None = None,
        event_id: uuid.UUID | None = None,
        created_at: datetime | None = None,
    ):
        self.id = event_id or uuid.uuid4()
        self.action = action
        self.entity_type = AUTH_ENTITY_TYPE
        # the audit table needs an entity reference even for unknown accounts
        self.entity_id = str(user_id) if user_id else (email or "anonymous")
        self.user_id = user_id
        self.tenant_id = tenant_id
        self.email = email
        self.ip_address = ip_address[:45] if ip_address else None
        self.user_agent = user_agent
        self.suspicious = suspicious
        self.details = details or {}
        self.created_at = created_at or datetime.now(UTC)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AuthAuditEvent):  # pragma: no cover
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"<AuthAuditEvent {self.action} entity={self.entity_id} suspicious={self.suspicious}>"
