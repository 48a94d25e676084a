"""ABOUTME: Unit tests for TOTP code generation and verification
ABOUTME: Checks the RFC 4226/6238 reference values, drift tolerance, lenient secrets and failing closed"""

from datetime import UTC, datetime, timedelta

import pytest
import time_machine

from threatplatform.config import TotpCfg
from threatplatform.service_layer import totp_service
from threatplatform.service_layer.totp_service import TotpVerifier

# ASCII "12345678901234567890", the key used by the RFC test vectors
RFC_SECRET = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"
RFC_KEY = b"12345678901234567890"


def at(unix_seconds: int) -> datetime:
    return datetime.fromtimestamp(unix_seconds, UTC)


class TestHotp:
    @pytest.mark.parametrize(
        "counter,expected",
        [(0, "755224"), (1, "287082"), (2, "359152"), (5, "254676"), (9, "520489")],
    )
    def test_rfc4226_values(self, counter, expected):
        assert totp_service.hotp(RFC_KEY, counter) == expected


class TestCodeAt:
    @pytest.mark.parametrize(
        "unix_seconds,expected",
        [(59, "94287082"), (1111111109, "07081804"), (1234567890, "89005924"), (2000000000, "69279037")],
    )
    def test_rfc6238_sha1_values(self, unix_seconds, expected):
        assert totp_service.code_at(RFC_SECRET, at(unix_seconds), digits=8) == expected

    def test_short_codes_keep_leading_zeros(self):
        code = totp_service.code_at(RFC_SECRET, at(1111111109), digits=6)

        assert code == "081804"

    def test_codes_always_have_requested_length(self):
        secret = totp_service.generate_totp_secret()
        for step in range(200):
            code = totp_service.code_at(secret, at(1_700_000_000 + step * 30))
            assert len(code) == 6
            assert code.isdigit()


class TestDecodeSecret:
    def test_ignores_case_spaces_and_padding(self):
        messy = "gezd gnbv gy3t-qojq gezd gnbv gy3t qojq===="

        assert totp_service.decode_secret(messy) == RFC_KEY

    def test_drops_incomplete_trailing_byte(self):
        # 3 characters carry 15 bits, one whole byte
        assert totp_service.decode_secret("MZX") == b"f"


class TestVerifyTotpCode:
    def test_round_trip_with_generated_secret(self):
        secret = totp_service.generate_totp_secret()
        now = datetime(2026, 3, 1, 9, 0, 10, tzinfo=UTC)

        with time_machine.travel(now, tick=False):
            code = totp_service.code_at(secret)
            assert totp_service.verify_totp_code(secret, code, window=0)
            assert totp_service.verify_totp_code(secret, code, window=1)

    def test_previous_step_accepted_only_with_window(self):
        now = at(1111111109)
        previous_code = totp_service.code_at(RFC_SECRET, now - timedelta(seconds=30))

        assert totp_service.verify_totp_code(RFC_SECRET, previous_code, window=1, for_time=now)
        assert not totp_service.verify_totp_code(RFC_SECRET, previous_code, window=0, for_time=now)

    def test_next_step_accepted_with_window(self):
        now = at(1111111109)
        next_code = totp_service.code_at(RFC_SECRET, now + timedelta(seconds=30))

        assert totp_service.verify_totp_code(RFC_SECRET, next_code, window=1, for_time=now)

    def test_two_steps_back_is_rejected(self):
        now = at(1111111109)
        old_code = totp_service.code_at(RFC_SECRET, now - timedelta(seconds=60))

        assert not totp_service.verify_totp_code(RFC_SECRET, old_code, window=1, for_time=now)

    def test_whitespace_in_submitted_code_is_ignored(self):
        assert totp_service.verify_totp_code(RFC_SECRET, " 081 804 ", for_time=at(1111111109))

    def test_lenient_secret_verifies(self):
        assert totp_service.verify_totp_code(RFC_SECRET.lower(), "081804", for_time=at(1111111109))

    @pytest.mark.parametrize("secret", ["", "!!!!", "1890"])
    def test_secret_without_key_material_fails_closed(self, secret):
        assert not totp_service.verify_totp_code(secret, "123456", for_time=at(1111111109))

    @pytest.mark.parametrize("code", ["", "abcdef", "0818040", "08180"])
    def test_wrong_shape_codes_are_rejected(self, code):
        assert not totp_service.verify_totp_code(RFC_SECRET, code, for_time=at(1111111109))

    def test_non_string_code_fails_closed(self):
        assert not totp_service.verify_totp_code(RFC_SECRET, None, for_time=at(1111111109))  # type: ignore[arg-type]


class TestTotpVerifier:
    def test_uses_configured_digits_and_step(self):
        verifier = TotpVerifier(TotpCfg(step_seconds=30, window=0, digits=8))

        assert verifier.code_at(RFC_SECRET, at(59)) == "94287082"
        assert verifier.verify(RFC_SECRET, "94287082", for_time=at(59))
        assert not verifier.verify(RFC_SECRET, "287082", for_time=at(59))

    def test_provisioning_uri(self):
        secret = totp_service.generate_totp_secret()
        verifier = TotpVerifier(TotpCfg(digits=8, step_seconds=60))

        uri = verifier.provisioning_uri(secret, "a@x.com")

        assert uri.startswith("otpauth://totp/")
        assert f"secret={secret}" in uri
        assert "issuer=Threat%20Platform" in uri
        assert "digits=8" in uri
        assert "period=60" in uri
