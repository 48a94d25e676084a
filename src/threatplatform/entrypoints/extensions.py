"""ABOUTME: Flask extensions initialization and shared authentication state
ABOUTME: Sets up Flask-Login and holds the per-app rate limiter, TOTP verifier and session factory"""

import uuid
from collections.abc import Collection
from dataclasses import dataclass

from flask import Flask, current_app
from flask_login import LoginManager, UserMixin
from sqlalchemy.orm import sessionmaker

from threatplatform.config import FlaskBaseConfig
from threatplatform.domain.login import AuthenticatedIdentity
from threatplatform.domain.value_objects import UserRole
from threatplatform.service_layer.login_service import LoginOrchestrator
from threatplatform.service_layer.rate_limiter import LoginRateLimiter
from threatplatform.service_layer.totp_service import TotpVerifier
from threatplatform.service_layer.unit_of_work import SqlAlchemyUnitOfWork

EXTENSION_KEY = "threatplatform"

# Initialize extensions
login_manager = LoginManager()


@dataclass
class AuthState:
    """Objects shared by every request of one app. The limiter must be shared for lockouts to hold."""

    session_factory: sessionmaker
    rate_limiter: LoginRateLimiter
    totp_verifier: TotpVerifier
    mfa_required_roles: Collection[UserRole]

    def uow(self) -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork(self.session_factory)

    def login_orchestrator(self) -> LoginOrchestrator:
        return LoginOrchestrator(
            self.uow(),
            rate_limiter=self.rate_limiter,
            totp_verifier=self.totp_verifier,
            mfa_required_roles=self.mfa_required_roles,
        )


class SessionUser(UserMixin):
    """The logged-in identity as Flask-Login sees it."""

    def __init__(self, identity: AuthenticatedIdentity) -> None:
        self.id = identity.id
        self.email = identity.email
        self.role = identity.role
        self.tenant_id = identity.tenant_id

    def get_id(self) -> str:
        return str(self.id)

    def to_dict(self) -> dict[str, str]:
        return AuthenticatedIdentity(id=self.id, email=self.email, role=self.role, tenant_id=self.tenant_id).to_dict()


def init_extensions(app: Flask, flask_config: FlaskBaseConfig, session_factory: sessionmaker) -> None:
    """Initialize Flask extensions with app instance."""

    # Initialize Flask-Login
    login_manager.init_app(app)

    app.extensions[EXTENSION_KEY] = AuthState(
        session_factory=session_factory,
        rate_limiter=LoginRateLimiter(flask_config.RATE_LIMIT),
        totp_verifier=TotpVerifier(flask_config.TOTP),
        mfa_required_roles=flask_config.MFA_REQUIRED_ROLES,
    )


def get_auth_state() -> AuthState:
    state = current_app.extensions[EXTENSION_KEY]
    assert isinstance(state, AuthState)
    return state


@login_manager.user_loader
def load_user(user_id: str) -> SessionUser | None:
    """Load user from database for Flask-Login."""
    try:
        user_uuid = uuid.UUID(user_id)
    except (ValueError, TypeError):
        return None

    with get_auth_state().uow() as uow:
        user = uow.users.get(user_uuid)
        if user is None:
            return None
        membership = uow.tenant_memberships.get_membership_for_user(user.id)
        if membership is None:
            return None
        return SessionUser(
            AuthenticatedIdentity(id=user.id, email=user.email, role=user.role, tenant_id=membership.tenant_id)
        )
