"""ABOUTME: Unit tests for the MFA enrollment service
ABOUTME: Covers setup, enable, user disable and admin disable, with their audit events"""

import pytest

from threatplatform.domain.users import User
from threatplatform.domain.value_objects import UserRole
from threatplatform.service_layer import totp_service, two_factor_service
from threatplatform.service_layer.exceptions import TwoFactorSetupError, TwoFactorVerificationError
from tests.fakes import FakeUnitOfWork


@pytest.fixture
def uow():
    return FakeUnitOfWork()


@pytest.fixture
def user(uow):
    user = User(email="analyst@example.com", password_hash="hash", role=UserRole.EDITOR)
    uow.users.add(user)
    return user


@pytest.fixture
def admin(uow):
    admin = User(email="admin@example.com", password_hash="hash", role=UserRole.ADMIN)
    uow.users.add(admin)
    return admin


class TestSetupMfa:
    def test_returns_secret_and_uri_without_enabling(self, uow, user):
        secret, uri = two_factor_service.setup_mfa(uow, user.id)

        assert totp_service.decode_secret(secret)
        assert uri.startswith("otpauth://totp/")
        assert "analyst%40example.com" in uri
        assert user.mfa_enabled is False
        assert user.mfa_secret is None

    def test_unknown_user(self, uow):
        with pytest.raises(TwoFactorSetupError, match="User not found"):
            two_factor_service.setup_mfa(uow, User(email="x@example.com", password_hash="h").id)

    def test_already_enabled(self, uow, user):
        user.enable_mfa(totp_service.generate_totp_secret())

        with pytest.raises(TwoFactorSetupError, match="already enabled"):
            two_factor_service.setup_mfa(uow, user.id)


class TestEnableMfa:
    def test_valid_code_enables(self, uow, user):
        secret, _ = two_factor_service.setup_mfa(uow, user.id)

        two_factor_service.enable_mfa(uow, user.id, secret, totp_service.code_at(secret))

        assert user.mfa_enabled is True
        assert user.mfa_secret == secret
        assert user.mfa_enrolled_at is not None
        [event] = uow.fake_auth_audit_events.all()
        assert event.action == "auth_mfa_enabled"
        assert event.user_id == user.id
        assert uow.committed

    def test_wrong_code_leaves_mfa_off(self, uow, user):
        secret, _ = two_factor_service.setup_mfa(uow, user.id)

        with pytest.raises(TwoFactorVerificationError):
            two_factor_service.enable_mfa(uow, user.id, secret, "000000x")

        assert user.mfa_enabled is False
        assert uow.fake_auth_audit_events.all() == []


class TestDisableMfa:
    def test_valid_code_disables_and_drops_secret(self, uow, user):
        secret = totp_service.generate_totp_secret()
        user.enable_mfa(secret)

        two_factor_service.disable_mfa(uow, user.id, totp_service.code_at(secret))

        assert user.mfa_enabled is False
        assert user.mfa_secret is None
        assert uow.fake_auth_audit_events.actions() == ["auth_mfa_disabled"]

    def test_wrong_code(self, uow, user):
        user.enable_mfa(totp_service.generate_totp_secret())

        with pytest.raises(TwoFactorVerificationError):
            two_factor_service.disable_mfa(uow, user.id, "abcdef")

        assert user.mfa_enabled is True

    def test_not_enabled(self, uow, user):
        with pytest.raises(TwoFactorSetupError, match="not enabled"):
            two_factor_service.disable_mfa(uow, user.id, "123456")


class TestAdminDisableMfa:
    def test_admin_disable_records_admin(self, uow, user, admin):
        user.enable_mfa(totp_service.generate_totp_secret())

        two_factor_service.admin_disable_mfa(uow, user.id, admin.id)

        assert user.mfa_enabled is False
        [event] = uow.fake_auth_audit_events.all()
        assert event.action == "auth_mfa_admin_disabled"
        assert event.details["performed_by"] == str(admin.id)
        assert event.details["admin_email"] == "admin@example.com"

    def test_unknown_admin(self, uow, user):
        user.enable_mfa(totp_service.generate_totp_secret())

        with pytest.raises(TwoFactorSetupError, match="Admin user not found"):
            two_factor_service.admin_disable_mfa(uow, user.id, User(email="x@example.com", password_hash="h").id)

    def test_status(self, uow, user):
        assert two_factor_service.get_mfa_status(uow, user.id) == {"enabled": False, "enrolled_at": None}
