"""
Configuration for the credential helper.

Settings come from environment variables. Like Docker secrets, every
setting can also be supplied through a file named by {NAME}_FILE.

Usage:
    from src.utils.config import get_settings

    settings = get_settings()
    rounds = settings.bcrypt_rounds
"""
import os
import logging
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from typing import Optional

logger = logging.getLogger(__name__)


def get_setting(name: str, default: Optional[str] = None) -> Optional[str]:
    """
    Read a setting value.

    Priority:
    1. {NAME}_FILE environment variable (path to file containing the value)
    2. {NAME} environment variable
    3. Default value

    Args:
        name: Setting name (e.g., "TWOFACTOR_BCRYPT_ROUNDS")
        default: Value used when nothing is set

    Returns:
        Setting value or default
    """
    file_path = os.environ.get(f"{name}_FILE")
    if file_path and os.path.isfile(file_path):
        try:
            with open(file_path, 'r') as f:
                value = f.read().strip()
                logger.debug(f"Loaded setting {name} from file")
                return value
        except OSError as e:
            logger.warning(f"Failed to read setting file {file_path}: {e}")

    value = os.environ.get(name)
    if value:
        return value
    return default


def get_int_setting(name: str, default: int) -> int:
    """
    Read an integer setting.

    Raises:
        ValueError: If the value is set but is not an integer.
    """
    raw = get_setting(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Setting {name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class AuthSettings:
    """Tunables for hashing, strength checks and reset codes."""
    bcrypt_rounds: int = 12
    min_password_score: int = 3
    reset_valid_for: timedelta = timedelta(hours=24)

    @classmethod
    def from_env(cls) -> "AuthSettings":
        return cls(
            bcrypt_rounds=get_int_setting("TWOFACTOR_BCRYPT_ROUNDS", 12),
            min_password_score=get_int_setting("TWOFACTOR_MIN_PASSWORD_SCORE", 3),
            reset_valid_for=timedelta(
                hours=get_int_setting("TWOFACTOR_RESET_VALID_HOURS", 24)
            ),
        )


@lru_cache(maxsize=1)
def get_settings() -> AuthSettings:
    """Get cached settings, read once from the environment."""
    return AuthSettings.from_env()


def mask_secret(secret: str, visible_chars: int = 4) -> str:
    """
    Mask a secret for safe logging.

    Args:
        secret: The secret to mask
        visible_chars: Number of characters to show at start and end

    Returns:
        Masked string like "abc...xyz"
    """
    if not secret or len(secret) <= visible_chars * 2:
        return "***"
    return f"{secret[:visible_chars]}...{secret[-visible_chars:]}"
