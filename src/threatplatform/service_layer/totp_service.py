"""ABOUTME: TOTP service for multi-factor authentication core functions
ABOUTME: Handles secret generation, provisioning URIs and constant-time one-time code verification"""

import base64
import hmac
import re
import time
from datetime import datetime

import pyotp
import structlog

from threatplatform.config import TotpCfg

log = structlog.get_logger(__name__)

_NON_BASE32 = re.compile(r"[^A-Z2-7]")
_WHITESPACE = re.compile(r"\s+")


def generate_totp_secret() -> str:
    """Generate a new random TOTP secret (base32 encoded)."""
    return pyotp.random_base32()


def decode_secret(secret: str) -> bytes:
    """Decode a base32 secret leniently.

    Case is ignored, padding and any character outside A-Z2-7 are dropped, and
    trailing bits that do not fill a whole byte are discarded.
    """
    cleaned = _NON_BASE32.sub("", secret.upper())
    byte_count = len(cleaned) * 5 // 8
    # zero bits fill the last quantum, they never reach the kept bytes
    padded = cleaned + "A" * (-len(cleaned) % 8)
    return base64.b32decode(padded)[:byte_count]


def time_counter(for_time: datetime | None = None, step_seconds: int = 30) -> int:
    unix_seconds = for_time.timestamp() if for_time is not None else time.time()
    return int(unix_seconds // step_seconds)


def hotp(key: bytes, counter: int, digits: int = 6) -> str:
    """RFC 4226 code for a raw key: HMAC-SHA1, dynamic truncation, zero padded to `digits`."""
    canonical_secret = base64.b32encode(key).decode("ascii")
    return pyotp.HOTP(canonical_secret, digits=digits).at(counter)


def code_at(secret: str, for_time: datetime | None = None, step_seconds: int = 30, digits: int = 6) -> str:
    """The code an authenticator app shows for `secret` at `for_time` (default now)."""
    return hotp(decode_secret(secret), time_counter(for_time, step_seconds), digits)


def verify_totp_code(
    secret: str,
    code: str,
    window: int = 1,
    step_seconds: int = 30,
    digits: int = 6,
    for_time: datetime | None = None,
) -> bool:
    """Verify a TOTP code against a secret.

    Codes from `window` steps either side of the current one are accepted, to
    absorb clock drift between the server and the authenticator app. Any
    failure to decode or compute is a non-match.

    Args:
        secret: The base32 TOTP secret
        code: The code from the authenticator app, whitespace is ignored
        window: Number of steps before and after the current one to accept
        step_seconds: Length of a time step
        digits: Length of the code
        for_time: Verify as of this moment instead of now

    Returns:
        True if the code is valid, False otherwise
    """
    try:
        key = decode_secret(secret)
        if not key:
            return False
        submitted = _WHITESPACE.sub("", code).encode("utf-8")
        counter = time_counter(for_time, step_seconds)
        for offset in range(-window, window + 1):
            candidate = hotp(key, counter + offset, digits).encode("ascii")
            if hmac.compare_digest(candidate, submitted):
                return True
    except Exception:
        log.warning("totp_verification_error", exc_info=True)
    return False


def provisioning_uri(secret: str, email: str, issuer: str = "Threat Platform", digits: int = 6, step_seconds: int = 30) -> str:
    """otpauth:// URI for enrolling the secret in an authenticator app."""
    totp = pyotp.TOTP(secret, digits=digits, interval=step_seconds)
    return totp.provisioning_uri(name=email, issuer_name=issuer)


class TotpVerifier:
    """Verifies one-time codes with the configured step, window and length."""

    def __init__(self, config: TotpCfg | None = None) -> None:
        self.config = config or TotpCfg()

    def verify(self, secret: str, token: str, for_time: datetime | None = None) -> bool:
        return verify_totp_code(
            secret,
            token,
            window=self.config.window,
            step_seconds=self.config.step_seconds,
            digits=self.config.digits,
            for_time=for_time,
        )

    def code_at(self, secret: str, for_time: datetime | None = None) -> str:
        return code_at(secret, for_time, step_seconds=self.config.step_seconds, digits=self.config.digits)

    def provisioning_uri(self, secret: str, email: str) -> str:
        return provisioning_uri(
            secret,
            email,
            issuer=self.config.issuer,
            digits=self.config.digits,
            step_seconds=self.config.step_seconds,
        )
