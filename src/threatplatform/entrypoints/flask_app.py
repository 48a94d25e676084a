"""ABOUTME: Flask application factory with configuration, blueprints, and error handling
ABOUTME: Creates and configures the Flask app serving the authentication API"""

from flask import Flask, Response, jsonify
from flask_login import current_user
from sqlalchemy.orm import sessionmaker
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

import threatplatform.logging
from threatplatform import config
from threatplatform.adapters import database
from threatplatform.entrypoints.extensions import init_extensions


def create_app(config_name: str = "", session_factory: sessionmaker | None = None) -> Flask:
    """
    Flask application factory.

    Args:
        config_name: Configuration name (development, testing, production)
        session_factory: Use this database instead of the configured one

    Returns:
        Configured Flask application instance
    """
    threatplatform.logging.logging_setup(config.get_log_level())

    app = Flask(__name__)

    # Load configuration
    flask_config = config.get_config(config_name)
    app.config.from_object(flask_config)

    # Trust 1 layer of proxy, so the rate limiter sees the client address rather than the proxy's
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)  # type: ignore[method-assign]

    database.start_mappers()
    if session_factory is None:
        session_factory = database.create_session_factory(flask_config.SQLALCHEMY_DATABASE_URI)
        if flask_config.TESTING:
            database.create_tables(session_factory)

    # Initialize extensions
    init_extensions(app, flask_config, session_factory)

    # Register blueprints
    register_blueprints(app)

    # Register error handlers
    register_error_handlers(app)

    # Register after request handlers
    register_after_request_handlers(app)

    app.logger.info("Threat platform application startup")

    return app


def register_blueprints(app: Flask) -> None:
    """Register application blueprints."""
    from .api_auth import api_auth_bp
    from .blueprints.health import health_bp

    app.register_blueprint(api_auth_bp)
    app.register_blueprint(health_bp)


def register_error_handlers(app: Flask) -> None:
    """Register JSON error handlers for common HTTP errors."""

    @app.errorhandler(401)
    def unauthorized(error: HTTPException) -> tuple[Response, int]:
        return jsonify({"error": "Authentication required"}), 401

    @app.errorhandler(404)
    def not_found(error: HTTPException) -> tuple[Response, int]:
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(500)
    def internal_error(error: HTTPException) -> tuple[Response, int]:
        app.logger.error(f"Server Error: {error}")
        return jsonify({"error": "Internal server error"}), 500


def register_after_request_handlers(app: Flask) -> None:
    """Register after request handlers."""

    @app.after_request
    def add_cache_headers_for_authenticated_users(response: Response) -> Response:
        """Stop browsers caching responses that carry user-specific data."""
        if current_user.is_authenticated:
            response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
            response.headers["Pragma"] = "no-cache"
            response.headers["Expires"] = "0"

        return response
