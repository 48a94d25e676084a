"""ABOUTME: Configuration management for the threat platform authentication layer
ABOUTME: Loads environment variables and provides configuration objects for rate limiting, TOTP and Flask"""

import logging
import os
from dataclasses import dataclass
from datetime import timedelta

from dotenv import load_dotenv

from threatplatform.domain.value_objects import UserRole

load_dotenv()


class InvalidConfig(Exception):
    """Error for when the config is not valid"""


SQLITE_DB_URI = "sqlite:///:memory:"
DEFAULT_SECRET_KEY = "dev-secret-key-change-in-production"  # noqa: S105


def to_bool(value: str | None, context_str: str = "") -> bool:
    """
    Convert string to boolean. Valid options (after stripping whitespace and making lower-case)
    - False: "false", "no", "off", "0", None, ""
    - True: "true", "yes", "on", "1"

    The `context_str` is there for the error message, to help find the issue.
    """
    if value is None:
        return False
    value = value.lower().strip()
    if value in ("false", "no", "off", "0", ""):
        return False
    if value in ("true", "yes", "on", "1"):
        return True
    raise ValueError(
        f"Cannot convert '{context_str}{value}' to boolean. Valid values are: true/false, 1/0, yes/no, on/off (case-insensitive)"
    )


def bool_environ_get(key: str, default: str = "") -> bool:
    return to_bool(os.environ.get(key, default), context_str=f"{key}=")


def _int_environ_get(key: str, default: int, minimum: int = 0) -> int:
    raw = os.environ.get(key, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as error:
        raise InvalidConfig(f"{key} must be an integer, got '{raw}'") from error
    if value < minimum:
        raise InvalidConfig(f"{key} must be at least {minimum}, got {value}")
    return value


def is_development() -> bool:
    return os.environ.get("FLASK_ENV", "development").lower().strip() == "development"


def get_log_level() -> int:
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper().strip()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        raise InvalidConfig(f"Unknown LOG_LEVEL '{level_name}'")
    return level


def should_log_all_requests() -> bool:
    return bool_environ_get("LOG_ALL_REQUESTS")


@dataclass(slots=True, kw_only=True)
class PostgresCfg:
    user: str
    password: str
    host: str
    port: int
    db_name: str

    def to_url(self) -> str:
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.db_name}"

    @classmethod
    def from_env(cls, default_db_name: str = "threatplatform", user: str = "threatplatform") -> "PostgresCfg":
        host = os.environ.get("DB_HOST", "localhost")
        return PostgresCfg(
            user=os.environ.get("DB_USER", user),
            password=os.environ.get("DB_PASSWORD", "abc123"),
            host=host,
            port=int(os.environ.get("DB_PORT", 5432)),
            db_name=os.environ.get("DB_NAME", default_db_name),
        )


def get_db_uri() -> str:
    return os.environ.get("DB_URI", PostgresCfg.from_env().to_url())


@dataclass(slots=True, kw_only=True, frozen=True)
class RateLimitCfg:
    """Thresholds for the login rate limiter."""

    max_attempts: int = 5
    window: timedelta = timedelta(minutes=15)
    lockout: timedelta = timedelta(minutes=15)

    @classmethod
    def from_env(cls) -> "RateLimitCfg":
        return RateLimitCfg(
            max_attempts=_int_environ_get("LOGIN_MAX_ATTEMPTS", 5, minimum=1),
            window=timedelta(seconds=_int_environ_get("LOGIN_WINDOW_SECONDS", 900, minimum=1)),
            lockout=timedelta(seconds=_int_environ_get("LOGIN_LOCKOUT_SECONDS", 900, minimum=1)),
        )


@dataclass(slots=True, kw_only=True, frozen=True)
class TotpCfg:
    """Parameters for one-time code verification."""

    step_seconds: int = 30
    window: int = 1
    digits: int = 6
    issuer: str = "Threat Platform"

    @classmethod
    def from_env(cls) -> "TotpCfg":
        digits = _int_environ_get("TOTP_DIGITS", 6, minimum=6)
        if digits > 10:
            raise InvalidConfig(f"TOTP_DIGITS must be at most 10, got {digits}")
        return TotpCfg(
            step_seconds=_int_environ_get("TOTP_STEP_SECONDS", 30, minimum=1),
            window=_int_environ_get("TOTP_WINDOW", 1),
            digits=digits,
            issuer=os.environ.get("TOTP_ISSUER", "Threat Platform"),
        )


def get_mfa_required_roles() -> frozenset[UserRole]:
    """Roles for which an enabled second factor must be presented at login.

    Defaults to every role, so enabling MFA on any account enforces it.
    """
    raw = os.environ.get("MFA_REQUIRED_ROLES", "")
    names = [name.strip().lower() for name in raw.split(",") if name.strip()]
    if not names:
        return frozenset(UserRole)
    try:
        return frozenset(UserRole(name) for name in names)
    except ValueError as error:
        raise InvalidConfig(f"Unknown role in MFA_REQUIRED_ROLES: '{raw}'") from error


class FlaskBaseConfig:
    """Base configuration class that loads from environment variables."""

    TESTING = False

    def __init__(self) -> None:
        self.SQLALCHEMY_DATABASE_URI = get_db_uri()
        self.SECRET_KEY: str = os.environ.get("SECRET_KEY", DEFAULT_SECRET_KEY)
        self.FLASK_ENV: str = os.environ.get("FLASK_ENV", "development")
        self.DEBUG: bool = to_bool(os.environ.get("DEBUG", "False"), context_str="DEBUG=")
        self.SESSION_COOKIE_HTTPONLY = True
        self.SESSION_COOKIE_SAMESITE = "Lax"

        self.RATE_LIMIT = RateLimitCfg.from_env()
        self.TOTP = TotpCfg.from_env()
        self.MFA_REQUIRED_ROLES = get_mfa_required_roles()


class FlaskTestConfig(FlaskBaseConfig):
    """Test configuration that uses SQLite in-memory database."""

    TESTING = True

    def __init__(self) -> None:
        super().__init__()
        self.SQLALCHEMY_DATABASE_URI = SQLITE_DB_URI
        self.SECRET_KEY = "test-secret-key-aockgn298zx081238"  # noqa: S105
        self.FLASK_ENV = "testing"


class FlaskProductionConfig(FlaskBaseConfig):
    """Production configuration with stricter defaults."""

    def __init__(self) -> None:
        super().__init__()
        self.FLASK_ENV = "production"
        self.SESSION_COOKIE_SECURE = True

        # Ensure production has proper secret key
        if self.SECRET_KEY == DEFAULT_SECRET_KEY:
            raise InvalidConfig("SECRET_KEY must be set in production")


def get_config(config_name: str = "") -> FlaskBaseConfig:
    """Return the appropriate configuration based on FLASK_ENV or config_name."""
    env = config_name.strip() or os.environ.get("FLASK_ENV", "development")
    env = env.lower().strip()

    config_classes: dict[str, type[FlaskBaseConfig]] = {
        "development": FlaskBaseConfig,
        "testing": FlaskTestConfig,
        "production": FlaskProductionConfig,
    }

    # Fall back to development if unknown config
    config_cls = config_classes.get(env, FlaskBaseConfig)
    return config_cls()
