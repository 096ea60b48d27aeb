"""
Persistence support for credential records.

This package provides:
- credential_column: SQLAlchemy column type and change tracking
"""
