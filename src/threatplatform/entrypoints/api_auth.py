"""ABOUTME: JSON API endpoints for authentication operations
ABOUTME: Provides REST API endpoints for login, logout and authentication status"""

from typing import Any

import structlog
from flask import Blueprint, jsonify, request
from flask.typing import ResponseReturnValue
from flask_login import current_user, login_required, login_user, logout_user
from sqlalchemy.exc import SQLAlchemyError

from threatplatform.config import to_bool
from threatplatform.domain.login import MAX_PASSWORD_LENGTH, MIN_PASSWORD_LENGTH, LoginResult
from threatplatform.domain.value_objects import AuthAttemptOutcome
from threatplatform.service_layer.exceptions import InvalidCredentials, RateLimitExceeded

from .extensions import SessionUser, get_auth_state

log = structlog.get_logger(__name__)

api_auth_bp = Blueprint("api_auth", __name__, url_prefix="/api/auth")


@api_auth_bp.route("/status", methods=["GET"])
def auth_status() -> ResponseReturnValue:
    """Get current authentication status."""
    if current_user.is_authenticated:
        return jsonify({"authenticated": True, "user": current_user.to_dict()})
    return jsonify({"authenticated": False})


def _login_payload() -> dict[str, Any] | None:
    data = request.get_json(silent=True)
    if data is None and request.form:
        data = request.form.to_dict()
    return data if isinstance(data, dict) else None


def _wants_remember(payload: dict[str, Any] | None) -> bool:
    value = (payload or {}).get("remember")
    if isinstance(value, bool):
        return value
    if not isinstance(value, str):
        return False
    try:
        return to_bool(value)
    except ValueError:
        return False


@api_auth_bp.route("/login", methods=["POST"])
def api_login() -> ResponseReturnValue:
    """API login endpoint.

    Every rejection gets the same message, apart from lockouts which say how
    long to wait (also in the Retry-After header).
    """
    state = get_auth_state()
    payload = _login_payload()
    try:
        result = state.login_orchestrator().attempt_login(
            payload,
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
        )
    except SQLAlchemyError:
        log.exception("login_store_error")
        return jsonify({"error": "Authentication is temporarily unavailable"}), 503

    if result.succeeded:
        assert result.identity is not None
        login_user(SessionUser(result.identity), remember=_wants_remember(payload))
        return jsonify({"success": True, "user": result.identity.to_dict(), "mfa_required": result.mfa_required})

    if result.outcome is AuthAttemptOutcome.INVALID_PAYLOAD:
        error = (
            f"Email and a password of {MIN_PASSWORD_LENGTH} to {MAX_PASSWORD_LENGTH} characters are required"
        )
        return jsonify({"error": error}), 400

    if result.outcome is AuthAttemptOutcome.RATE_LIMITED:
        return _too_many_attempts(result)

    return jsonify({"error": str(InvalidCredentials()), "mfa_required": result.mfa_required}), 401


def _too_many_attempts(result: LoginResult) -> ResponseReturnValue:
    assert result.rate_limit is not None
    retry_after = get_auth_state().rate_limiter.retry_after_seconds(result.rate_limit)
    error = RateLimitExceeded("login", retry_after_seconds=retry_after)
    response = jsonify({"error": str(error), "retry_after": error.retry_after_seconds})
    response.status_code = 429
    response.headers["Retry-After"] = str(error.retry_after_seconds)
    return response


@api_auth_bp.route("/logout", methods=["POST"])
@login_required
def api_logout() -> ResponseReturnValue:
    """API logout endpoint."""
    logout_user()
    return jsonify({"success": True})
