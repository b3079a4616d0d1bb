"""
Symmetric encryption for secret files.

Fernet (AES-128-CBC + HMAC-SHA256) from ``cryptography``. Keys are the
urlsafe-base64 Fernet key bytes stored per project in ``keys.json``.
"""

from __future__ import annotations

import logging
from typing import Protocol

from .errors import DataDecryptionError, EncryptionUnavailable

logger = logging.getLogger("skconfigure.crypto")


class CryptoProvider(Protocol):
    """Encrypts and decrypts whole files worth of bytes."""

    def encrypt(self, data: bytes, key: bytes) -> bytes: ...

    def decrypt(self, token: bytes, key: bytes) -> bytes: ...

    def generate_key(self) -> bytes: ...


class FernetCrypto:
    """``CryptoProvider`` built on ``cryptography.fernet.Fernet``."""

    def __init__(self) -> None:
        try:
            from cryptography.fernet import Fernet, InvalidToken
        except ImportError as exc:
            raise EncryptionUnavailable() from exc
        self._fernet = Fernet
        self._invalid_token = InvalidToken

    def _cipher(self, key: bytes):
        try:
            return self._fernet(key)
        except (ValueError, TypeError) as exc:
            raise EncryptionUnavailable(f"Invalid encryption key: {exc}") from exc

    def generate_key(self) -> bytes:
        return self._fernet.generate_key()

    def encrypt(self, data: bytes, key: bytes) -> bytes:
        """Encrypt *data*; the token is urlsafe-base64 text as bytes."""
        return self._cipher(key).encrypt(data)

    def decrypt(self, token: bytes, key: bytes) -> bytes:
        """Decrypt a Fernet token.

        Raises:
            DataDecryptionError: If the token is corrupt or the key is wrong.
        """
        try:
            return self._cipher(key).decrypt(token)
        except self._invalid_token as exc:
            raise DataDecryptionError(
                "Unable to decrypt file: the key does not match or the file is corrupt"
            ) from exc
