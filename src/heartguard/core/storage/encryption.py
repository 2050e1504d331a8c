"""Payload encoding for persisted values, with optional Fernet encryption.

Streams, thresholds and settings are stored as compact JSON. When an
encryption key is configured the JSON text is wrapped in a Fernet token
before it reaches SQLite.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class EncryptionError(Exception):
    """Raised when encryption/decryption fails."""


def dumps_compact(data: Any) -> str:
    """Serialize to JSON without insignificant whitespace."""
    return json.dumps(data, separators=(",", ":"))


class PayloadCodec:
    """Encodes JSON-serializable values for storage and decodes them back.

    Usage::

        codec = PayloadCodec()                       # plain JSON
        codec = PayloadCodec(key=Fernet.generate_key().decode())
        stored = codec.encode([{"value": 72, "timestamp": 1}])
        codec.decode(stored)                         # [{"value": 72, ...}]
    """

    def __init__(self, key: str | None = None) -> None:
        """Initialize the codec.

        Args:
            key: Optional Fernet key string. Generate with
                 :meth:`generate_key`. ``None`` or empty disables encryption.

        Raises:
            EncryptionError: If a non-empty key is invalid.
        """
        self._fernet: Fernet | None = None
        if key and key.strip():
            try:
                self._fernet = Fernet(key.encode())
            except (ValueError, TypeError) as exc:
                raise EncryptionError(f"Invalid encryption key: {exc}") from exc

    @property
    def encrypted(self) -> bool:
        """Whether values are encrypted at rest."""
        return self._fernet is not None

    def encode(self, data: Any) -> str:
        """Encode a JSON-serializable value to its stored string form.

        Raises:
            EncryptionError: If serialization or encryption fails.
        """
        try:
            text = dumps_compact(data)
        except (TypeError, ValueError) as exc:
            raise EncryptionError(f"Serialization failed: {exc}") from exc
        if self._fernet is None:
            return text
        return self._fernet.encrypt(text.encode("utf-8")).decode("utf-8")

    def decode(self, stored: str) -> Any:
        """Decode a stored string back to a Python object.

        Raises:
            EncryptionError: If the token is invalid, the key is wrong, or
                the payload is not valid JSON.
        """
        if self._fernet is not None:
            try:
                stored = self._fernet.decrypt(stored.encode("utf-8")).decode("utf-8")
            except InvalidToken as exc:
                raise EncryptionError("Decryption failed: invalid token or wrong key") from exc
        try:
            return json.loads(stored)
        except json.JSONDecodeError as exc:
            raise EncryptionError(f"Stored payload is not valid JSON: {exc}") from exc

    @staticmethod
    def generate_key() -> str:
        """Generate a new Fernet key.

        Returns:
            A URL-safe base64-encoded 32-byte key as a string.
        """
        return Fernet.generate_key().decode("utf-8")
