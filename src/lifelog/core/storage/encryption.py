"""Fernet-based field encryption for sensitive document fields.

Voice transcripts and similar free text are encrypted before a document is
written. Numeric metrics stay in clear text so the store can filter and
order on them.
"""

from __future__ import annotations

import copy
import json
import logging
from typing import Any, Iterable

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class EncryptionError(Exception):
    """Raised when encryption/decryption fails."""


class FieldEncryptor:
    """Encrypts and decrypts selected fields of a JSON document.

    Field paths are dotted (``"payload.transcript"``). Missing paths are
    ignored, so the same path list can be applied to every document of a
    collection.

    Usage::

        encryptor = FieldEncryptor(key="...")
        stored = encryptor.encrypt_fields(doc, ["payload.transcript"])
        doc = encryptor.decrypt_fields(stored, ["payload.transcript"])
    """

    def __init__(self, key: str) -> None:
        """Initialize with a Fernet key.

        Raises:
            EncryptionError: If the key is empty or invalid.
        """
        if not key or not key.strip():
            raise EncryptionError("Encryption key must not be empty")
        try:
            self._fernet = Fernet(key.encode())
        except ValueError as exc:
            raise EncryptionError(f"Invalid encryption key: {exc}") from exc

    def encrypt(self, value: Any) -> str:
        """Encrypt a JSON-serializable value to a Fernet token string."""
        if value is None:
            return ""
        try:
            plaintext = json.dumps(value, separators=(",", ":")).encode("utf-8")
            return self._fernet.encrypt(plaintext).decode("utf-8")
        except (TypeError, ValueError) as exc:
            raise EncryptionError(f"Encryption failed: {exc}") from exc

    def decrypt(self, token: str) -> Any:
        """Decrypt a Fernet token string back to a Python value."""
        if not token:
            return None
        try:
            plaintext = self._fernet.decrypt(token.encode("utf-8"))
            return json.loads(plaintext)
        except InvalidToken as exc:
            raise EncryptionError("Decryption failed: invalid token or wrong key") from exc
        except (TypeError, ValueError) as exc:
            raise EncryptionError(f"Decryption failed: {exc}") from exc

    def encrypt_fields(self, data: dict[str, Any], paths: Iterable[str]) -> dict[str, Any]:
        """Return a copy of ``data`` with every present path encrypted."""
        result = copy.deepcopy(data)
        for path in paths:
            parent, leaf = _resolve_parent(result, path)
            if parent is not None and parent.get(leaf) is not None:
                parent[leaf] = self.encrypt(parent[leaf])
        return result

    def decrypt_fields(self, data: dict[str, Any], paths: Iterable[str]) -> dict[str, Any]:
        """Inverse of :meth:`encrypt_fields`; operates in place and returns ``data``."""
        for path in paths:
            parent, leaf = _resolve_parent(data, path)
            if parent is not None and isinstance(parent.get(leaf), str):
                parent[leaf] = self.decrypt(parent[leaf])
        return data

    @staticmethod
    def generate_key() -> str:
        """Generate a new Fernet key."""
        return Fernet.generate_key().decode("utf-8")


def _resolve_parent(data: dict[str, Any], path: str) -> tuple[dict[str, Any] | None, str]:
    """Walk a dotted path and return (containing dict, leaf key)."""
    *parents, leaf = path.split(".")
    node: Any = data
    for key in parents:
        node = node.get(key) if isinstance(node, dict) else None
        if node is None:
            return None, leaf
    return (node if isinstance(node, dict) else None), leaf
