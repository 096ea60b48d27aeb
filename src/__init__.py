"""
twofactor-credentials - Credential records with password reset and TOTP.

This package provides the credential state machine for a single user:
password hashing and strength checks, time-limited reset codes, and an
optional TOTP second factor with single-use recovery keys.
"""

__version__ = "0.1.0"
