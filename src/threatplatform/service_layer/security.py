"""ABOUTME: Security utilities for password hashing and verification
ABOUTME: Salted adaptive hashes via werkzeug, with bcrypt hashes from the previous platform still accepted"""

import bcrypt
import structlog
from werkzeug.security import check_password_hash, generate_password_hash

log = structlog.get_logger(__name__)

BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")
# bcrypt only ever looked at this many bytes; newer releases refuse longer input
BCRYPT_MAX_PASSWORD_BYTES = 72


def hash_password(password: str) -> str:
    """Hash a password using werkzeug's secure method."""
    return generate_password_hash(password)


def is_bcrypt_hash(password_hash: str) -> bool:
    return password_hash.startswith(BCRYPT_PREFIXES)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash.

    Accounts migrated from the previous platform carry bcrypt hashes, so those
    are checked with bcrypt. A malformed hash never verifies.
    """
    if not password_hash:
        return False
    try:
        if is_bcrypt_hash(password_hash):
            secret = password.encode("utf-8")[:BCRYPT_MAX_PASSWORD_BYTES]
            return bcrypt.checkpw(secret, password_hash.encode("utf-8"))
        return check_password_hash(password_hash, password)
    except ValueError:
        log.warning("password_hash_malformed")
        return False


# Checked against when the account does not exist, so the response time does
# not reveal whether an email is registered.
_DUMMY_HASH = hash_password("threatplatform-timing-equalizer")


def burn_password_check(password: str) -> None:
    verify_password(password, _DUMMY_HASH)
