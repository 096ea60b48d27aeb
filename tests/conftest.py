"""
Pytest configuration and shared fixtures.

This module provides common test fixtures for:
- A controllable clock
- A deterministic random source
- Fast password hashing
- Ready-made credential records
"""
import random
import pytest
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add project root to Python path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.auth.credentials import CredentialRecord
from src.utils.config import get_settings


STRONG_PASSWORD = "ab7a+5*LcVg"


# ============================================
# Environment Fixtures
# ============================================

@pytest.fixture(autouse=True)
def fast_hashing(monkeypatch):
    """
    Use the minimum bcrypt cost so hashing does not dominate test time.
    Settings are cached, so the cache is cleared around every test.
    """
    monkeypatch.setenv("TWOFACTOR_BCRYPT_ROUNDS", "4")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ============================================
# Capability Fixtures
# ============================================

class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class SeededRandom:
    """Reproducible stand-in for the OS random source."""

    def __init__(self, seed: int = 1234):
        self._rng = random.Random(seed)
        self.calls = 0

    def __call__(self, n: int) -> bytes:
        self.calls += 1
        return self._rng.randbytes(n)


@pytest.fixture
def clock():
    """Clock fixed at a 30-second step boundary."""
    return FakeClock(datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def rng():
    return SeededRandom()


# ============================================
# Credential Fixtures
# ============================================

@pytest.fixture
def strong_password():
    return STRONG_PASSWORD


@pytest.fixture
def record(clock, rng):
    """A freshly created record, already marked clean."""
    rec = CredentialRecord.create(STRONG_PASSWORD, clock=clock, random_source=rng)
    rec.mark_clean()
    return rec


@pytest.fixture
def active_record(record, clock):
    """A record with two-factor authentication enabled and marked clean."""
    record.configure_two_factor("rclancey", "github.com")
    record.complete_two_factor(record.pending_two_factor.current_code(clock()))
    record.mark_clean()
    return record


@pytest.fixture
def wrong_code():
    """Build a 6-digit code guaranteed to fall outside the accepted window."""
    import pyotp

    def _wrong_code(secret: str, now: datetime, window: int = 5) -> str:
        totp = pyotp.TOTP(secret)
        valid = {totp.at(now, offset) for offset in range(-window, window + 1)}
        candidate = 0
        while f"{candidate:06d}" in valid:
            candidate += 1
        return f"{candidate:06d}"

    return _wrong_code
