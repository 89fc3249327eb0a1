"""Credential codec for data source connection params.

Params are stored as a single Fernet token holding canonical JSON. The
token is only ever decrypted transiently while a driver is constructed.
"""

import base64
import binascii
import hashlib
import json
from typing import Any, Dict, Optional

from cryptography.fernet import Fernet, InvalidToken

from sourcelink.config import settings
from sourcelink.exceptions.datasource import DecryptionError
from sourcelink.logging import get_logger

logger = get_logger(__name__)


def _fernet_key(key: str | bytes) -> bytes:
    """Return ``key`` as a Fernet key, stretching plain passphrases with SHA-256."""
    raw = key.encode() if isinstance(key, str) else bytes(key)
    try:
        if len(base64.urlsafe_b64decode(raw)) == 32:
            return raw
    except (binascii.Error, ValueError):
        pass
    return base64.urlsafe_b64encode(hashlib.sha256(raw).digest())


class CredentialCodec:
    """Symmetric encrypt/decrypt of connection params with one process-wide key."""

    def __init__(self, encryption_key: Optional[str | bytes] = None):
        if not encryption_key:
            encryption_key = Fernet.generate_key()
            logger.warning("Using generated encryption key. Set ENCRYPTION_KEY env var in production")
        self.cipher = Fernet(_fernet_key(encryption_key))

    def encrypt(self, params: Dict[str, Any]) -> str:
        """Serialize params to canonical JSON and encrypt them.

        Args:
            params: Backend-specific connection params

        Returns:
            URL-safe ciphertext string

        """
        canonical = json.dumps(params, sort_keys=True, separators=(",", ":"))
        return self.cipher.encrypt(canonical.encode()).decode()

    def decrypt(self, encrypted: str) -> Dict[str, Any]:
        """Decrypt a ciphertext produced by :meth:`encrypt`.

        Args:
            encrypted: Ciphertext string

        Returns:
            The original params dictionary

        Raises:
            DecryptionError: If the ciphertext is malformed or the key is wrong

        """
        if not encrypted or not isinstance(encrypted, str):
            raise DecryptionError("Encrypted params are empty")

        try:
            decrypted = self.cipher.decrypt(encrypted.encode())
        except InvalidToken as e:
            logger.warning("Failed to decrypt data source params - likely encrypted with a different key")
            raise DecryptionError(
                "Invalid encryption token - params may have been encrypted with a different key"
            ) from e

        try:
            params = json.loads(decrypted.decode())
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DecryptionError(f"Decrypted params are not valid JSON: {e}") from e

        if not isinstance(params, dict):
            raise DecryptionError("Decrypted params are not a JSON object")

        return params


_codec: Optional[CredentialCodec] = None


def get_credential_codec() -> CredentialCodec:
    """Get the process-wide codec, creating it from settings on first use."""
    global _codec
    if _codec is None:
        _codec = CredentialCodec(settings.ENCRYPTION_KEY)
    return _codec


def encrypt_params(params: Dict[str, Any]) -> str:
    """Encrypt data source params with the process-wide key."""
    return get_credential_codec().encrypt(params)


def decrypt_datasource_params(encrypted: str) -> Dict[str, Any]:
    """Decrypt data source params with the process-wide key."""
    return get_credential_codec().decrypt(encrypted)
