"""
Shared utilities.

This package provides:
- Environment-driven settings
- Secret masking for log output
"""
from .config import AuthSettings, get_settings, get_setting, mask_secret

__all__ = ["AuthSettings", "get_settings", "get_setting", "mask_secret"]
