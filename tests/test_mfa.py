"""Tests for the two-factor sub-record and TOTP helpers."""

import base64
import uuid
import pytest
from datetime import datetime, timezone

from src.auth.errors import RandomSourceExhaustedError, SerializationError
from src.auth.mfa import (
    TwoFactor,
    generate_recovery_keys,
    generate_totp_secret,
    get_totp_code,
    verify_totp,
)

# RFC 6238 appendix B seed "12345678901234567890", base32-encoded
RFC_SECRET = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"


def test_rfc6238_vectors():
    """Codes match the SHA-1 reference vectors, truncated to 6 digits."""
    at = lambda ts: datetime.fromtimestamp(ts, tz=timezone.utc)

    assert get_totp_code(RFC_SECRET, at(59)) == "287082"
    # Leading zero must be kept
    assert get_totp_code(RFC_SECRET, at(1111111109)) == "081804"
    assert get_totp_code(RFC_SECRET, at(1234567890)) == "005924"


def test_verify_totp_window():
    now = datetime.fromtimestamp(1111111109, tz=timezone.utc)
    code = get_totp_code(RFC_SECRET, now)

    assert verify_totp(RFC_SECRET, code, now, window=0)
    assert verify_totp(RFC_SECRET, f" {code[:3]} {code[3:]}", now, window=0)
    assert not verify_totp(RFC_SECRET, code[:5], now, window=5)
    assert not verify_totp(RFC_SECRET, "", now, window=5)
    assert not verify_totp("", code, now, window=5)


def test_secret_is_base32_of_ten_bytes(rng):
    secret = generate_totp_secret(rng)

    assert len(secret) == 16
    assert len(base64.b32decode(secret)) == 10


def test_recovery_keys_are_unique_uuid4(rng):
    keys = generate_recovery_keys(rng)

    assert len(keys) == 8
    assert len(set(keys)) == 8
    for key in keys:
        assert uuid.UUID(key).version == 4


def test_repeating_random_source_rejected():
    """A source that keeps returning the same bytes can't produce unique keys."""
    with pytest.raises(RandomSourceExhaustedError):
        generate_recovery_keys(lambda n: b"\x07" * n)


def test_generate_uses_random_source(rng):
    two_factor = TwoFactor.generate(rng)

    assert rng.calls == 1 + 8
    assert len(two_factor.recovery_keys) == 8


class TestConsumeRecoveryKey:
    """Test recovery key consumption on the sub-record."""

    def test_consume_existing_key(self):
        two_factor = TwoFactor(secret=RFC_SECRET, recovery_keys=["a", "b", "c"])

        assert two_factor.consume_recovery_key("b")
        assert two_factor.recovery_keys == ["a", "c"]

    def test_consume_unknown_key(self):
        two_factor = TwoFactor(secret=RFC_SECRET, recovery_keys=["a", "b"])

        assert not two_factor.consume_recovery_key("z")
        assert not two_factor.consume_recovery_key("")
        assert two_factor.recovery_keys == ["a", "b"]


class TestTwoFactorDict:
    """Test sub-record (de)serialization."""

    def test_from_dict(self):
        two_factor = TwoFactor.from_dict({"secret": RFC_SECRET, "recovery_keys": ["a"]})
        assert two_factor == TwoFactor(secret=RFC_SECRET, recovery_keys=["a"])

    def test_missing_keys_means_none_left(self):
        two_factor = TwoFactor.from_dict({"secret": RFC_SECRET, "recovery_keys": None})
        assert two_factor.recovery_keys == []

    @pytest.mark.parametrize("data", [
        {},
        {"secret": 42},
        {"secret": RFC_SECRET, "recovery_keys": "abc"},
        {"secret": RFC_SECRET, "recovery_keys": [1, 2]},
        ["not", "a", "dict"],
        {"secret": "not-base32!!"},
        {"secret": ""},
        {"secret": "\u00c4BCDEFGH"},
    ])
    def test_invalid_data(self, data):
        with pytest.raises(SerializationError):
            TwoFactor.from_dict(data)

    def test_bad_secret_chains_decoder_error(self):
        with pytest.raises(SerializationError) as exc_info:
            TwoFactor.from_dict({"secret": "not-base32!!", "recovery_keys": []})

        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_lowercase_secret_accepted(self):
        two_factor = TwoFactor.from_dict({"secret": RFC_SECRET.lower()[:16]})
        assert two_factor.secret == RFC_SECRET.lower()[:16]
