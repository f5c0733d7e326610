"""
SQLAlchemy Type Decorators.

- EncryptedString: transparent encryption/decryption for contact PII columns.
- UTCDateTime: timezone-aware UTC datetimes on every backend.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, String, TypeDecorator

from core.encryption import decrypt_pii, encrypt_pii


class EncryptedString(TypeDecorator):
    """
    SQLAlchemy type that transparently encrypts/decrypts string values.

    Usage in models:
        phone: Mapped[Optional[str]] = mapped_column(EncryptedString(20), nullable=True)

    Encrypted columns cannot be searched; look voters up by national_id.
    """

    impl = String
    cache_ok = True

    def __init__(self, length: int = 255, **kwargs):
        """Initialize with column length (should accommodate encrypted data)."""
        # base64(nonce + ciphertext + tag) plus prefix
        super().__init__(length=length * 2 + 100, **kwargs)

    def process_bind_param(self, value: Optional[str], dialect) -> Optional[str]:
        """Encrypt value before storing in database."""
        if value is None:
            return None
        return encrypt_pii(value)

    def process_result_value(self, value: Optional[str], dialect) -> Optional[str]:
        """Decrypt value when reading from database."""
        if value is None:
            return None
        return decrypt_pii(value)


class UTCDateTime(TypeDecorator):
    """
    DateTime column that always round-trips as an aware UTC datetime.

    PostgreSQL keeps the offset natively; SQLite drops it, so naive values
    read back are tagged as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    """Column default for timestamps."""
    return datetime.now(timezone.utc)
