"""
Field-level encryption for voter contact channels.

Phone numbers and email addresses are sealed with AES-256-GCM before they
reach the database. Without a configured key the values pass through in
clear, which is only tolerated outside production/staging.
"""

import base64
import secrets
from functools import lru_cache
from typing import Optional

import structlog
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from core.config import settings

logger = structlog.get_logger(__name__)


class FieldEncryptionError(Exception):
    """Raised when field encryption/decryption fails."""

    pass


class FieldEncryption:
    """AES-256-GCM encryption for contact fields."""

    # Prefix to identify encrypted data
    ENCRYPTED_PREFIX = "enc:v1:"
    NONCE_SIZE = 12

    def __init__(self, encryption_key: Optional[bytes] = None):
        self._key = encryption_key or self._load_key()
        self._aesgcm = AESGCM(self._key) if self._key else None

        if self._aesgcm is None:
            logger.warning(
                "field_encryption_disabled",
                reason="no_key_configured",
                app_env=settings.APP_ENV,
            )

    def _load_key(self) -> Optional[bytes]:
        """Load the base64-encoded key from settings."""
        key_str = settings.FIELD_ENCRYPTION_KEY
        if not key_str:
            if settings.APP_ENV in ("production", "staging"):
                logger.error("encryption_key_required_in_production", app_env=settings.APP_ENV)
            return None

        try:
            key = base64.b64decode(key_str)
        except ValueError as e:
            logger.error("failed_to_decode_encryption_key", error=str(e))
            return None

        if len(key) != 32:
            logger.error("invalid_encryption_key_length", expected=32, actual=len(key))
            return None
        return key

    @property
    def is_enabled(self) -> bool:
        """Check if encryption is enabled."""
        return self._aesgcm is not None

    def encrypt(self, plaintext: Optional[str]) -> Optional[str]:
        """Encrypt a value, returning ``enc:v1:<base64(nonce + ciphertext)>``."""
        if not plaintext or self._aesgcm is None:
            return plaintext

        nonce = secrets.token_bytes(self.NONCE_SIZE)
        ciphertext = self._aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
        return self.ENCRYPTED_PREFIX + base64.b64encode(nonce + ciphertext).decode("ascii")

    def decrypt(self, ciphertext: Optional[str]) -> Optional[str]:
        """Decrypt a value produced by :meth:`encrypt`; clear values pass through."""
        if not ciphertext or not self.is_encrypted(ciphertext):
            return ciphertext

        if self._aesgcm is None:
            raise FieldEncryptionError("Encryption key not configured, cannot decrypt")

        try:
            raw = base64.b64decode(ciphertext[len(self.ENCRYPTED_PREFIX) :])
            plaintext = self._aesgcm.decrypt(raw[: self.NONCE_SIZE], raw[self.NONCE_SIZE :], None)
        except Exception as e:
            logger.error("decryption_failed", error=str(e))
            raise FieldEncryptionError(f"Failed to decrypt field: {e}") from e

        return plaintext.decode("utf-8")

    def is_encrypted(self, value: Optional[str]) -> bool:
        """Check if a value is already encrypted."""
        return value.startswith(self.ENCRYPTED_PREFIX) if value else False


@lru_cache()
def get_field_encryption() -> FieldEncryption:
    """Get the singleton FieldEncryption instance."""
    return FieldEncryption()


def generate_encryption_key() -> str:
    """Generate a new base64-encoded 256-bit encryption key."""
    return base64.b64encode(secrets.token_bytes(32)).decode("ascii")


def encrypt_pii(value: Optional[str]) -> Optional[str]:
    """Encrypt a PII field value."""
    return get_field_encryption().encrypt(value)


def decrypt_pii(value: Optional[str]) -> Optional[str]:
    """Decrypt a PII field value."""
    return get_field_encryption().decrypt(value)
