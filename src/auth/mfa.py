"""
Two-factor authentication sub-record.

Implements TOTP (Time-based One-Time Password) using RFC 6238.
Compatible with Google Authenticator, Authy, and other TOTP apps.

A TwoFactor holds the shared secret and a set of single-use recovery
keys. The secret is generated once and never changes; recovery keys are
consumed one at a time and never regenerated.
"""
import base64
import logging
import secrets
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

import pyotp

from .errors import RandomSourceExhaustedError, SerializationError
from .sources import RandomSource, read_random, system_random
from ..utils.config import mask_secret

logger = logging.getLogger(__name__)

SECRET_BYTES = 10
RECOVERY_KEY_COUNT = 8
RECOVERY_KEY_BYTES = 16

# Tolerance in 30-second steps: tight while confirming setup, wider for
# day-to-day logins to absorb clock drift.
SETUP_WINDOW = 2
VERIFY_WINDOW = 5


def generate_totp_secret(random_source: RandomSource = system_random) -> str:
    """
    Generate a new TOTP secret.

    Returns:
        Base32-encoded secret (16 characters for 10 random bytes).
    """
    data = read_random(random_source, SECRET_BYTES, "secret")
    return base64.b32encode(data).decode('ascii')


def generate_recovery_keys(
    random_source: RandomSource = system_random,
    count: int = RECOVERY_KEY_COUNT,
) -> List[str]:
    """
    Generate unique single-use recovery keys.

    Each key is a random version-4 UUID string.

    Args:
        random_source: Callable returning random bytes.
        count: Number of keys to generate.

    Returns:
        List of distinct recovery keys.
    """
    keys: List[str] = []
    attempts = 0
    while len(keys) < count:
        attempts += 1
        if attempts > count * 4:
            raise RandomSourceExhaustedError(
                "can't generate recovery codes: random source keeps repeating"
            )
        data = read_random(random_source, RECOVERY_KEY_BYTES, "recovery codes")
        key = str(uuid.UUID(bytes=data, version=4))
        if key not in keys:
            keys.append(key)
    return keys


def get_totp_provisioning_uri(secret: str, identity: str, issuer: str) -> str:
    """
    Build an otpauth:// provisioning URI for authenticator apps.

    Args:
        secret: Base32-encoded TOTP secret.
        identity: Account name shown in the app (username or email).
        issuer: Service name shown in the app.

    Returns:
        otpauth://totp/{issuer}:{identity}?secret=...&issuer=... URI string.
    """
    return pyotp.TOTP(secret).provisioning_uri(name=identity, issuer_name=issuer)


def get_totp_code(secret: str, for_time: datetime) -> str:
    """Compute the 6-digit code for the 30-second step containing for_time."""
    return pyotp.TOTP(secret).at(for_time)


def verify_totp(secret: str, code: str, for_time: datetime, window: int) -> bool:
    """
    Verify a TOTP code against the secret.

    Args:
        secret: Base32-encoded TOTP secret.
        code: 6-digit code entered by user.
        for_time: Reference time (aware UTC datetime).
        window: Number of 30-second steps accepted on either side.

    Returns:
        True if code is valid, False otherwise.
    """
    if not secret or not code:
        return False

    # Authenticator apps often display "123 456"
    code = code.replace(" ", "")
    if len(code) != 6 or not (code.isascii() and code.isdigit()):
        return False

    return pyotp.TOTP(secret).verify(code, for_time=for_time, valid_window=window)


@dataclass
class TwoFactor:
    """TOTP secret plus the remaining recovery keys."""
    secret: str
    recovery_keys: List[str] = field(default_factory=list)

    @classmethod
    def generate(cls, random_source: RandomSource = system_random) -> "TwoFactor":
        """Create a fresh sub-record with a new secret and recovery keys."""
        return cls(
            secret=generate_totp_secret(random_source),
            recovery_keys=generate_recovery_keys(random_source),
        )

    def provisioning_uri(self, identity: str, issuer: str) -> str:
        return get_totp_provisioning_uri(self.secret, identity, issuer)

    def current_code(self, for_time: datetime) -> str:
        return get_totp_code(self.secret, for_time)

    def verify(self, code: str, for_time: datetime, window: int = VERIFY_WINDOW) -> bool:
        return verify_totp(self.secret, code, for_time, window)

    def consume_recovery_key(self, code: str) -> bool:
        """
        Use up a recovery key.

        Args:
            code: Candidate recovery key.

        Returns:
            True if the key existed and was removed, False otherwise.
        """
        match: Optional[str] = None
        for key in self.recovery_keys:
            if secrets.compare_digest(key.encode('utf-8'), code.encode('utf-8')):
                match = key
        if match is None:
            return False

        self.recovery_keys = [key for key in self.recovery_keys if key != match]
        logger.debug(f"Consumed recovery key {mask_secret(match)}")
        return True

    def to_dict(self) -> Dict:
        return {"secret": self.secret, "recovery_keys": list(self.recovery_keys)}

    @classmethod
    def from_dict(cls, data: Dict) -> "TwoFactor":
        if not isinstance(data, dict) or not isinstance(data.get("secret"), str):
            raise SerializationError("two factor record needs a string 'secret'")
        secret = data["secret"]
        try:
            decoded = base64.b32decode(secret + "=" * (-len(secret) % 8), casefold=True)
        except ValueError as e:
            raise SerializationError("two factor 'secret' is not valid base32") from e
        if not decoded:
            raise SerializationError("two factor 'secret' is empty")
        keys = data.get("recovery_keys") or []
        if not isinstance(keys, list) or not all(isinstance(k, str) for k in keys):
            raise SerializationError("'recovery_keys' must be a list of strings")
        return cls(secret=secret, recovery_keys=list(keys))
