"""
SQLAlchemy column support for credential records.

The whole record is stored as one JSON text value. Wrapping the type with
TrackedCredentialRecord makes in-place mutations (reset_password,
check_two_factor consuming a recovery key, ...) flag the owning row as
modified, so a normal session flush persists them.

Example usage:
    class Account(Base):
        __tablename__ = "accounts"

        id = Column(Integer, primary_key=True)
        auth = Column(TrackedCredentialRecord.as_mutable(CredentialRecordType))

    account.auth.reset_password(timedelta(hours=1))
    session.commit()  # UPDATE issued for accounts.auth

Assigning a plain CredentialRecord stores a tracked copy of it.
"""
import logging

from sqlalchemy import Text
from sqlalchemy.ext.mutable import Mutable
from sqlalchemy.types import TypeDecorator

from ..auth.credentials import CredentialRecord
from ..auth.errors import SerializationError

logger = logging.getLogger(__name__)


class CredentialRecordType(TypeDecorator):
    """Stores a CredentialRecord as JSON text. NULL loads as an empty record."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, CredentialRecord):
            raise SerializationError(
                f"don't know how to store {type(value).__name__} as a credential record"
            )
        return value.to_json()

    def process_result_value(self, value, dialect):
        return CredentialRecord.from_json(value)


class TrackedCredentialRecord(Mutable, CredentialRecord):
    """CredentialRecord that reports its mutations to the owning ORM object."""

    @classmethod
    def coerce(cls, key, value):
        if value is None or isinstance(value, cls):
            return value
        if isinstance(value, CredentialRecord):
            tracked = cls.from_dict(
                value.to_dict(),
                clock=value._clock,
                random_source=value._random_source,
            )
            if value.is_dirty:
                tracked._dirty = True
            return tracked
        return Mutable.coerce(key, value)

    def _touch(self) -> None:
        super()._touch()
        self.changed()
        logger.debug("Credential record changed, owner flagged for update")
