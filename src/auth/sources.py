"""
Clock and randomness capabilities.

Credential records never call the system clock or the OS random generator
directly; they receive these callables so tests can substitute fakes.
"""
import os
from datetime import datetime, timezone
from typing import Callable

from .errors import RandomSourceExhaustedError

Clock = Callable[[], datetime]
RandomSource = Callable[[int], bytes]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def system_random(n: int) -> bytes:
    """Read n bytes from the operating system CSPRNG."""
    return os.urandom(n)


def read_random(source: RandomSource, n: int, purpose: str = "random data") -> bytes:
    """
    Draw exactly n bytes from a random source.

    Args:
        source: Callable returning random bytes.
        n: Number of bytes required.
        purpose: Short label used in the error message.

    Returns:
        n random bytes.

    Raises:
        RandomSourceExhaustedError: If the source fails or comes up short.
    """
    try:
        data = source(n)
    except (OSError, NotImplementedError) as e:
        raise RandomSourceExhaustedError(f"can't generate {purpose}") from e

    if data is None or len(data) < n:
        raise RandomSourceExhaustedError(
            f"can't generate {purpose}: not enough system entropy"
        )
    return bytes(data[:n])
