"""
Error taxonomy for credential operations.

Two branches:
- CredentialRejectedError: the caller supplied bad input (wrong password,
  stale reset code, bad one-time code). Ordinary rejections.
- CredentialInfrastructureError: hashing, entropy or storage failed.
  These are operational incidents and should be logged as such.
"""


class CredentialError(Exception):
    """Base class for every credential error."""


class CredentialRejectedError(CredentialError):
    """Input was validated and rejected."""


class CredentialInfrastructureError(CredentialError):
    """An underlying primitive (hashing, randomness, storage) failed."""


class EmptyPasswordError(CredentialRejectedError):
    def __init__(self):
        super().__init__("empty password")


class PasswordTooWeakError(CredentialRejectedError):
    """Password scored below the minimum strength tier."""

    def __init__(self, score: int, minimum: int):
        super().__init__(f"password too simple (score {score}, need {minimum})")
        self.score = score
        self.minimum = minimum


class PasswordMismatchError(CredentialRejectedError):
    def __init__(self):
        super().__init__("password does not match")


class InvalidResetCodeError(CredentialRejectedError):
    """Reset code is missing, expired or wrong."""

    def __init__(self):
        super().__init__("invalid reset code")


class TwoFactorNotConfiguredError(CredentialRejectedError):
    def __init__(self):
        super().__init__("two factor authentication not configured")


class TwoFactorAlreadyActiveError(CredentialRejectedError):
    def __init__(self):
        super().__init__("two factor authentication already active")


class InvalidTwoFactorCodeError(CredentialRejectedError):
    def __init__(self):
        super().__init__("invalid two factor authentication code")


class PasswordHashingError(CredentialInfrastructureError):
    """The hashing primitive refused the password."""


class RandomSourceExhaustedError(CredentialInfrastructureError):
    """The secure random source failed or returned too few bytes."""


class SerializationError(CredentialInfrastructureError):
    """A stored credential record could not be encoded or decoded."""
