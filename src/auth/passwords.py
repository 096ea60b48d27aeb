"""
Password hashing and strength estimation.

Hashing uses bcrypt (salted, adaptive cost). Strength is estimated with
zxcvbn on its 0-4 scale, with user-specific inputs (username, email)
penalized as dictionary words.
"""
import logging
from typing import Iterable

import bcrypt
from zxcvbn import zxcvbn

from .errors import PasswordHashingError

logger = logging.getLogger(__name__)


def password_strength(password: str, user_inputs: Iterable[str] = ()) -> int:
    """
    Score a password from 0 (trivially guessable) to 4 (very unguessable).

    Args:
        password: Candidate password.
        user_inputs: Words tied to the user that should not make a password strong.

    Returns:
        zxcvbn score.
    """
    inputs = [str(value) for value in user_inputs if value]
    # zxcvbn rejects passwords longer than 72 characters
    return zxcvbn(password[:72], user_inputs=inputs)["score"]


def hash_password(password: str, rounds: int = 12) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password.
        rounds: bcrypt cost factor.

    Returns:
        Bcrypt hash string.

    Raises:
        PasswordHashingError: If bcrypt rejects the password (e.g. over 72 bytes).
    """
    try:
        salt = bcrypt.gensalt(rounds=rounds)
        return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')
    except ValueError as e:
        raise PasswordHashingError("can't hash password") from e


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify a password against its hash.

    Args:
        password: Plain text password to verify.
        password_hash: Stored bcrypt hash.

    Returns:
        True if password matches, False otherwise (including malformed hashes).
    """
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(
            password.encode('utf-8'),
            password_hash.encode('utf-8')
        )
    except ValueError:
        logger.debug("Password check failed on malformed hash or oversized input")
        return False
