"""
Credential handling.

This package provides:
- CredentialRecord: password, reset code and two-factor state for one user
- TwoFactor: TOTP secret and recovery keys
- The error taxonomy raised by both
"""
from .credentials import CredentialRecord, ResetToken, TwoFactorState
from .errors import (
    CredentialError,
    CredentialRejectedError,
    CredentialInfrastructureError,
    EmptyPasswordError,
    PasswordTooWeakError,
    PasswordMismatchError,
    InvalidResetCodeError,
    TwoFactorNotConfiguredError,
    TwoFactorAlreadyActiveError,
    InvalidTwoFactorCodeError,
    PasswordHashingError,
    RandomSourceExhaustedError,
    SerializationError,
)
from .mfa import TwoFactor

__all__ = [
    "CredentialRecord",
    "ResetToken",
    "TwoFactorState",
    "TwoFactor",
    "CredentialError",
    "CredentialRejectedError",
    "CredentialInfrastructureError",
    "EmptyPasswordError",
    "PasswordTooWeakError",
    "PasswordMismatchError",
    "InvalidResetCodeError",
    "TwoFactorNotConfiguredError",
    "TwoFactorAlreadyActiveError",
    "InvalidTwoFactorCodeError",
    "PasswordHashingError",
    "RandomSourceExhaustedError",
    "SerializationError",
]
