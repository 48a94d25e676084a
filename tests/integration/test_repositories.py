"""ABOUTME: Integration tests for the SQLAlchemy repositories and unit of work
ABOUTME: Runs against an in-memory SQLite database through the imperative mapping"""

from datetime import UTC, datetime, timedelta

import pytest

from threatplatform.config import RateLimitCfg, TotpCfg
from threatplatform.domain.auth_audit import AuthAuditEvent
from threatplatform.domain.users import Tenant, TenantMembership, User
from threatplatform.domain.value_objects import AuthAttemptOutcome, UserRole
from threatplatform.service_layer import metrics_service
from threatplatform.service_layer.login_service import LoginOrchestrator
from threatplatform.service_layer.rate_limiter import LoginRateLimiter
from threatplatform.service_layer.security import hash_password
from threatplatform.service_layer.totp_service import TotpVerifier
from threatplatform.service_layer.unit_of_work import SqlAlchemyUnitOfWork

pytestmark = pytest.mark.integration


@pytest.fixture
def seeded(sqlite_session_factory):
    tenant = Tenant(name="Acme", slug="acme")
    user = User(email="analyst@example.com", password_hash=hash_password("correct-password"), role=UserRole.ADMIN)
    with SqlAlchemyUnitOfWork(sqlite_session_factory) as uow:
        uow.tenants.add(tenant)
        uow.users.add(user)
        uow.tenant_memberships.add(TenantMembership(tenant_id=tenant.id, user_id=user.id, role=UserRole.ADMIN))
        uow.commit()
    return tenant, user


class TestUserRepository:
    def test_round_trip(self, sqlite_session_factory, seeded):
        _, user = seeded

        with SqlAlchemyUnitOfWork(sqlite_session_factory) as uow:
            loaded = uow.users.get_by_email("analyst@example.com")

            assert loaded is not None
            assert loaded.id == user.id
            assert loaded.role is UserRole.ADMIN
            assert loaded.created_at.tzinfo is not None
            assert [u.email for u in uow.users.get_by_role(UserRole.ADMIN)] == ["analyst@example.com"]
            assert list(uow.users.get_by_role(UserRole.VIEWER)) == []

    def test_mfa_state_is_persisted(self, sqlite_session_factory, seeded):
        _, user = seeded
        with SqlAlchemyUnitOfWork(sqlite_session_factory) as uow:
            uow.users.get(user.id).enable_mfa("JBSWY3DPEHPK3PXP")
            uow.commit()

        with SqlAlchemyUnitOfWork(sqlite_session_factory) as uow:
            loaded = uow.users.get(user.id)
            assert loaded.mfa_enabled is True
            assert loaded.mfa_secret == "JBSWY3DPEHPK3PXP"

    def test_rollback_on_error(self, sqlite_session_factory):
        with pytest.raises(RuntimeError), SqlAlchemyUnitOfWork(sqlite_session_factory) as uow:
            uow.users.add(User(email="temp@example.com", password_hash="hash"))
            raise RuntimeError("boom")

        with SqlAlchemyUnitOfWork(sqlite_session_factory) as uow:
            assert uow.users.get_by_email("temp@example.com") is None


class TestTenantMembershipRepository:
    def test_oldest_membership_wins(self, sqlite_session_factory, seeded):
        tenant, user = seeded
        newer = Tenant(name="Globex", slug="globex")
        with SqlAlchemyUnitOfWork(sqlite_session_factory) as uow:
            uow.tenants.add(newer)
            uow.tenant_memberships.add(
                TenantMembership(
                    tenant_id=newer.id, user_id=user.id, created_at=datetime.now(UTC) + timedelta(minutes=1)
                )
            )
            uow.commit()

        with SqlAlchemyUnitOfWork(sqlite_session_factory) as uow:
            membership = uow.tenant_memberships.get_membership_for_user(user.id)
            assert membership.tenant_id == tenant.id
            assert uow.tenants.get_by_slug("globex").id == newer.id


class TestAuthAuditRepository:
    def test_events_since_and_for_user(self, sqlite_session_factory, seeded):
        _, user = seeded
        now = datetime.now(UTC)
        with SqlAlchemyUnitOfWork(sqlite_session_factory) as uow:
            uow.auth_audit_events.add(
                AuthAuditEvent(action="auth_login_failed", email="x@x.com", created_at=now - timedelta(days=2))
            )
            uow.auth_audit_events.add(
                AuthAuditEvent(
                    action="auth_login_success",
                    user_id=user.id,
                    ip_address="1.1.1.1",
                    details={"mfa_required": False},
                    created_at=now - timedelta(minutes=5),
                )
            )
            uow.commit()

        with SqlAlchemyUnitOfWork(sqlite_session_factory) as uow:
            recent = list(uow.auth_audit_events.get_events_since(now - timedelta(hours=1)))
            assert [e.action for e in recent] == ["auth_login_success"]
            assert recent[0].details == {"mfa_required": False}
            assert recent[0].entity_type == "auth"

            mine = list(uow.auth_audit_events.get_events_for_user(user.id))
            assert [e.action for e in mine] == ["auth_login_success"]


class TestLoginAgainstDatabase:
    def test_login_flow_writes_audit_rows(self, sqlite_session_factory, seeded):
        limiter = LoginRateLimiter(RateLimitCfg(max_attempts=2))
        orchestrator = LoginOrchestrator(
            SqlAlchemyUnitOfWork(sqlite_session_factory), limiter, TotpVerifier(TotpCfg())
        )

        failed = orchestrator.attempt_login({"email": "analyst@example.com", "password": "wrong-password"})
        locked = orchestrator.attempt_login({"email": "analyst@example.com", "password": "wrong-password"})
        throttled = orchestrator.attempt_login({"email": "analyst@example.com", "password": "correct-password"})

        assert failed.outcome is AuthAttemptOutcome.INVALID_PASSWORD
        assert locked.rate_limit.locked is True
        assert throttled.outcome is AuthAttemptOutcome.RATE_LIMITED
        summary = metrics_service.auth_event_summary(SqlAlchemyUnitOfWork(sqlite_session_factory))
        assert summary == {"throttled": 1, "failed": 2}

    def test_mfa_coverage(self, sqlite_session_factory, seeded):
        coverage = metrics_service.mfa_coverage(SqlAlchemyUnitOfWork(sqlite_session_factory))

        assert coverage == {"enrolled": 0, "total": 1, "percent": 0}
