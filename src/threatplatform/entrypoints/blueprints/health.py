"""ABOUTME: Health check endpoint for monitoring service status
ABOUTME: Reports database connectivity and version as JSON"""

import structlog
from flask import Blueprint, jsonify
from flask.typing import ResponseReturnValue
from sqlalchemy.exc import SQLAlchemyError

from threatplatform import __version__
from threatplatform.entrypoints.extensions import get_auth_state

log = structlog.get_logger(__name__)

health_bp = Blueprint("health", __name__)


def check_database() -> tuple[bool, int | str]:
    """
    Check database connectivity and return user count.

    Returns:
        Tuple of (success: bool, user_count: int | "UNKNOWN")
    """
    try:
        with get_auth_state().uow() as uow:
            user_count = len(list(uow.users.all()))
        return True, user_count
    except SQLAlchemyError:
        log.warning("health_database_unreachable", exc_info=True)
        return False, "UNKNOWN"


@health_bp.route("/health")
def health_check() -> ResponseReturnValue:
    """
    Health check endpoint returning JSON with system status.

    HTTP status 200 if the database answers, 500 otherwise.
    """
    db_ok, user_count = check_database()

    response_data = {
        "database_ok": db_ok,
        "user_count": user_count,
        "version": __version__,
    }

    return jsonify(response_data), 200 if db_ok else 500
