"""
Credential record for a single user.

Holds the password hash, an optional time-limited reset code and the
two-factor configuration. All rules about how these change live here.

Example usage:
    record = CredentialRecord.create("ab7a+5*LcVg", "alice", "alice@example.com")

    code = record.reset_password(timedelta(hours=1))
    record.check_reset_code(code)

    uri, recovery_keys = record.configure_two_factor("alice", "example.com")
    record.complete_two_factor(code_from_app)

    if record.is_dirty:
        store(record.to_json())
        record.mark_clean()
"""
import base64
import json
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from .errors import (
    EmptyPasswordError,
    InvalidResetCodeError,
    InvalidTwoFactorCodeError,
    PasswordMismatchError,
    PasswordTooWeakError,
    SerializationError,
    TwoFactorAlreadyActiveError,
    TwoFactorNotConfiguredError,
)
from .mfa import SETUP_WINDOW, VERIFY_WINDOW, TwoFactor
from .passwords import hash_password, password_strength, verify_password
from .sources import Clock, RandomSource, read_random, system_random, utc_now
from ..utils.config import get_settings, mask_secret

logger = logging.getLogger(__name__)

RESET_CODE_BYTES = 25


class TwoFactorState(str, Enum):
    UNCONFIGURED = "unconfigured"
    PENDING = "pending"
    ACTIVE = "active"


@dataclass(frozen=True)
class ResetToken:
    """A password reset code and the moment it stops being valid."""
    code: str
    expires: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires < now


def _parse_timestamp(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"bad reset_code_expires value: {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class CredentialRecord:
    """
    Password, reset and two-factor state for one user.

    Not safe for concurrent mutation; the owner serializes access.
    """

    def __init__(
        self,
        password_hash: str = "",
        reset: Optional[ResetToken] = None,
        two_factor: Optional[TwoFactor] = None,
        two_factor_state: TwoFactorState = TwoFactorState.UNCONFIGURED,
        clock: Clock = utc_now,
        random_source: RandomSource = system_random,
    ):
        if (two_factor is None) != (two_factor_state == TwoFactorState.UNCONFIGURED):
            raise ValueError(
                f"two factor state {two_factor_state.value} does not match sub-record"
            )
        self.password_hash = password_hash
        self._reset = reset
        self._two_factor = two_factor
        self._two_factor_state = two_factor_state
        self._clock = clock
        self._random_source = random_source
        self._dirty = False

    @classmethod
    def create(
        cls,
        password: str,
        *user_inputs: str,
        clock: Clock = utc_now,
        random_source: RandomSource = system_random,
    ) -> "CredentialRecord":
        """Create a record from an initial password. The new record is dirty."""
        record = cls(clock=clock, random_source=random_source)
        record.set_password(password, *user_inputs)
        return record

    # ==========================================
    # Change tracking
    # ==========================================

    @property
    def is_dirty(self) -> bool:
        """True when the record changed since creation or the last mark_clean()."""
        return self._dirty

    def mark_clean(self) -> None:
        """Called by the persistence layer after the record was stored."""
        self._dirty = False

    def _touch(self) -> None:
        self._dirty = True

    # ==========================================
    # Password & reset
    # ==========================================

    @property
    def reset_code(self) -> Optional[str]:
        return self._reset.code if self._reset else None

    @property
    def reset_code_expires(self) -> Optional[datetime]:
        return self._reset.expires if self._reset else None

    def set_password(self, password: str, *user_inputs: str) -> None:
        """
        Replace the password.

        Args:
            password: New plain text password.
            *user_inputs: Username, email etc. that must not make the password strong.

        Raises:
            EmptyPasswordError: If password is empty.
            PasswordTooWeakError: If the strength score is below the minimum.
            PasswordHashingError: If the hashing primitive fails.
        """
        if not password:
            raise EmptyPasswordError()

        settings = get_settings()
        score = password_strength(password, user_inputs)
        if score < settings.min_password_score:
            logger.debug(f"Rejected password with strength score {score}")
            raise PasswordTooWeakError(score, settings.min_password_score)

        self.password_hash = hash_password(password, rounds=settings.bcrypt_rounds)
        self._reset = None
        self._touch()
        logger.info("Password updated, pending reset codes cleared")

    def check_password(self, candidate: str) -> None:
        """
        Raises:
            PasswordMismatchError: If candidate does not match the stored hash.
        """
        if not verify_password(candidate, self.password_hash):
            raise PasswordMismatchError()

    def reset_password(self, valid_for: Optional[timedelta] = None) -> str:
        """
        Issue a new reset code, replacing any pending one.

        Args:
            valid_for: How long the code stays valid. Defaults to the
                       configured reset validity.

        Returns:
            The reset code, for out-of-band delivery to the user.

        Raises:
            RandomSourceExhaustedError: If no randomness is available.
        """
        if valid_for is None:
            valid_for = get_settings().reset_valid_for

        data = read_random(self._random_source, RESET_CODE_BYTES, "reset token")
        code = base64.b32encode(data).decode('ascii')
        expires = self._clock().astimezone(timezone.utc) + valid_for

        self._reset = ResetToken(code=code, expires=expires)
        self._touch()
        logger.info(f"Issued password reset code, expires {expires.isoformat()}")
        return code

    def check_reset_code(self, candidate: str) -> None:
        """
        Check a reset code without consuming it.

        An expired code is cleared on the first check that notices it.

        Raises:
            InvalidResetCodeError: If no reset is pending, the code expired,
                                   or the candidate does not match.
        """
        if self._reset is None:
            raise InvalidResetCodeError()

        if self._reset.is_expired(self._clock()):
            logger.warning(
                f"Reset code {mask_secret(self._reset.code)} expired at "
                f"{self._reset.expires.isoformat()}, clearing"
            )
            self._reset = None
            self._touch()
            raise InvalidResetCodeError()

        if not secrets.compare_digest(
            self._reset.code.encode('utf-8'), candidate.encode('utf-8')
        ):
            raise InvalidResetCodeError()

    # ==========================================
    # Two-factor
    # ==========================================

    @property
    def two_factor_state(self) -> TwoFactorState:
        return self._two_factor_state

    @property
    def has_two_factor(self) -> bool:
        return self._two_factor_state == TwoFactorState.ACTIVE

    @property
    def two_factor(self) -> Optional[TwoFactor]:
        """The active sub-record, if two-factor is enabled."""
        return self._two_factor if self.has_two_factor else None

    @property
    def pending_two_factor(self) -> Optional[TwoFactor]:
        """The sub-record awaiting confirmation, if setup is in progress."""
        if self._two_factor_state == TwoFactorState.PENDING:
            return self._two_factor
        return None

    def configure_two_factor(self, identity: str, issuer: str) -> Tuple[str, List[str]]:
        """
        Start (or restart) two-factor setup.

        Args:
            identity: Account name shown in the authenticator app.
            issuer: Service name, usually the site domain.

        Returns:
            Tuple of (provisioning_uri, recovery_keys). The recovery keys
            are only returned here.

        Raises:
            TwoFactorAlreadyActiveError: If two-factor is already enabled.
            RandomSourceExhaustedError: If no randomness is available.
        """
        if self.has_two_factor:
            raise TwoFactorAlreadyActiveError()

        restarted = self._two_factor_state == TwoFactorState.PENDING
        pending = TwoFactor.generate(self._random_source)
        self._two_factor = pending
        self._two_factor_state = TwoFactorState.PENDING
        self._touch()

        logger.info(
            f"Two-factor setup {'restarted' if restarted else 'started'} for {identity}"
        )
        return pending.provisioning_uri(identity, issuer), list(pending.recovery_keys)

    def complete_two_factor(self, code: str) -> None:
        """
        Confirm setup with a code from the authenticator app.

        Raises:
            TwoFactorNotConfiguredError: If no setup is pending.
            InvalidTwoFactorCodeError: If the code is wrong; setup stays pending.
        """
        pending = self.pending_two_factor
        if pending is None:
            raise TwoFactorNotConfiguredError()

        if not pending.verify(code, self._clock(), window=SETUP_WINDOW):
            logger.debug("Two-factor setup confirmation rejected")
            raise InvalidTwoFactorCodeError()

        self._two_factor_state = TwoFactorState.ACTIVE
        self._touch()
        logger.info("Two-factor authentication enabled")

    def current_code(self) -> str:
        """Current 6-digit code for the active secret, or "" if not enabled."""
        active = self.two_factor
        if active is None:
            return ""
        return active.current_code(self._clock())

    def check_two_factor(self, code: str) -> None:
        """
        Verify a second factor: a recovery key or a TOTP code.

        Succeeds without checking anything when two-factor is not enabled.

        Raises:
            InvalidTwoFactorCodeError: If code is neither a remaining recovery
                                       key nor a valid TOTP code.
        """
        active = self.two_factor
        if active is None:
            return

        if active.consume_recovery_key(code):
            self._touch()
            logger.info(
                f"Recovery key used, {len(active.recovery_keys)} remaining"
            )
            return

        if not active.verify(code, self._clock(), window=VERIFY_WINDOW):
            logger.debug("Two-factor code rejected")
            raise InvalidTwoFactorCodeError()

    # ==========================================
    # Serialization
    # ==========================================

    def to_dict(self) -> Dict:
        """Plain dict using the stored field names."""
        return {
            "password": self.password_hash,
            "reset_code": self.reset_code,
            "reset_code_expires": (
                self.reset_code_expires.isoformat() if self._reset else None
            ),
            "two_factor": self.two_factor.to_dict() if self.two_factor else None,
            "init_two_factor": (
                self.pending_two_factor.to_dict() if self.pending_two_factor else None
            ),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(
        cls,
        data: Dict,
        clock: Clock = utc_now,
        random_source: RandomSource = system_random,
    ) -> "CredentialRecord":
        """
        Rebuild a record from its stored dict. The result is clean.

        Raises:
            SerializationError: If fields are missing, mistyped or inconsistent.
        """
        if not isinstance(data, dict):
            raise SerializationError(
                f"credential record must be an object, got {type(data).__name__}"
            )

        password_hash = data.get("password")
        if password_hash is None:
            password_hash = ""
        if not isinstance(password_hash, str):
            raise SerializationError("'password' must be a string")

        code = data.get("reset_code")
        expires = data.get("reset_code_expires")
        if (code is None) != (expires is None):
            raise SerializationError(
                "'reset_code' and 'reset_code_expires' must be set together"
            )
        reset = None
        if code is not None:
            if not isinstance(code, str):
                raise SerializationError("'reset_code' must be a string")
            reset = ResetToken(code=code, expires=_parse_timestamp(expires))

        active = data.get("two_factor")
        pending = data.get("init_two_factor")
        if active is not None:
            if pending is not None:
                logger.warning(
                    "Stored record has active and pending two-factor; "
                    "keeping active, dropping pending setup"
                )
            two_factor = TwoFactor.from_dict(active)
            state = TwoFactorState.ACTIVE
        elif pending is not None:
            two_factor = TwoFactor.from_dict(pending)
            state = TwoFactorState.PENDING
        else:
            two_factor = None
            state = TwoFactorState.UNCONFIGURED

        return cls(
            password_hash=password_hash,
            reset=reset,
            two_factor=two_factor,
            two_factor_state=state,
            clock=clock,
            random_source=random_source,
        )

    @classmethod
    def from_json(
        cls,
        value: Union[str, bytes, None],
        clock: Clock = utc_now,
        random_source: RandomSource = system_random,
    ) -> "CredentialRecord":
        """
        Rebuild a record from a stored column value.

        None yields an empty, unconfigured record.

        Raises:
            SerializationError: If value is not str/bytes/None or not valid JSON.
        """
        if value is None:
            return cls(clock=clock, random_source=random_source)
        if not isinstance(value, (str, bytes, bytearray)):
            raise SerializationError(
                f"don't know how to convert {type(value).__name__} into {cls.__name__}"
            )
        try:
            data = json.loads(value)
        except (UnicodeDecodeError, ValueError) as e:
            raise SerializationError("stored credential record is not valid JSON") from e
        if data is None:
            return cls(clock=clock, random_source=random_source)
        return cls.from_dict(data, clock=clock, random_source=random_source)

    def __eq__(self, other) -> bool:
        if not isinstance(other, CredentialRecord):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return (
            f"CredentialRecord(two_factor_state={self._two_factor_state.value}, "
            f"reset_pending={self._reset is not None}, dirty={self._dirty})"
        )
