"""ABOUTME: Unit tests for password hashing and verification
ABOUTME: Covers werkzeug hashes, legacy bcrypt hashes and malformed hashes"""

import bcrypt

from threatplatform.service_layer.security import burn_password_check, hash_password, is_bcrypt_hash, verify_password


class TestPasswordHashing:
    def test_hash_is_salted(self):
        first = hash_password("correct horse battery")
        second = hash_password("correct horse battery")

        assert first != second
        assert "correct horse battery" not in first

    def test_verify_round_trip(self):
        password_hash = hash_password("correct horse battery")

        assert verify_password("correct horse battery", password_hash)
        assert not verify_password("wrong horse battery", password_hash)

    def test_legacy_bcrypt_hash_is_accepted(self):
        legacy = bcrypt.hashpw(b"hunter22hunter", bcrypt.gensalt(rounds=4)).decode()

        assert is_bcrypt_hash(legacy)
        assert verify_password("hunter22hunter", legacy)
        assert not verify_password("hunter22hunte", legacy)

    def test_legacy_bcrypt_hash_with_long_password(self):
        password = "migrated-passphrase-" + "é" * 40
        assert len(password.encode("utf-8")) > 72
        legacy = bcrypt.hashpw(password.encode("utf-8")[:72], bcrypt.gensalt(rounds=4)).decode()

        assert verify_password(password, legacy)
        assert not verify_password("other-passphrase-" + "é" * 40, legacy)

    def test_empty_hash_never_verifies(self):
        assert not verify_password("anything", "")

    def test_malformed_bcrypt_hash_never_verifies(self):
        assert not verify_password("anything", "$2b$not-a-real-hash")

    def test_burn_password_check_returns_nothing(self):
        assert burn_password_check("whatever-password") is None
