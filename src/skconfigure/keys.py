"""
Per-project encryption keys, stored in ``keys.json`` at the secrets repo root.

    {
      "my-project": "<fernet key>",
      "other-project": "<fernet key>"
    }

One key per project name. A key is never overwritten once written.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Protocol

from .crypto import CryptoProvider
from .errors import (
    KeysFileCannotBeRead,
    KeysFileCannotBeWritten,
    KeysFileIsNotValidJSON,
    ProjectKeyExists,
)

logger = logging.getLogger("skconfigure.keys")

KEYS_FILENAME = "keys.json"


class KeyStore(Protocol):
    """Lookup and creation of per-project keys."""

    def read_key(self, project_name: str) -> Optional[bytes]: ...

    def generate_key(self, project_name: str) -> bytes: ...


class KeysFile:
    """``KeyStore`` backed by a ``keys.json`` file.

    Args:
        path: Location of ``keys.json``.
        crypto: Provider used to mint new keys.
    """

    def __init__(self, path: Path, crypto: CryptoProvider) -> None:
        self.path = path
        self.crypto = crypto

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            raw = self.path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise KeysFileIsNotValidJSON() from exc
        except OSError as exc:
            raise KeysFileCannotBeRead() from exc
        try:
            data = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError as exc:
            raise KeysFileIsNotValidJSON() from exc
        if not isinstance(data, dict):
            raise KeysFileIsNotValidJSON()
        return data

    def read_key(self, project_name: str) -> Optional[bytes]:
        value = self._load().get(project_name)
        if value is None:
            return None
        if not isinstance(value, str):
            raise KeysFileIsNotValidJSON(f"Key for {project_name!r} is not a string")
        try:
            return value.encode("ascii")
        except UnicodeEncodeError as exc:
            raise KeysFileIsNotValidJSON(f"Key for {project_name!r} is not a valid key") from exc

    def generate_key(self, project_name: str) -> bytes:
        """Create and persist a new key for *project_name*.

        Raises:
            ProjectKeyExists: If the project already has a key.
        """
        keys = self._load()
        if project_name in keys:
            raise ProjectKeyExists(
                f"A key for {project_name!r} already exists in {self.path.name}"
            )
        key = self.crypto.generate_key()
        keys[project_name] = key.decode("ascii")
        try:
            self.path.write_text(json.dumps(keys, indent=2, sort_keys=True) + "\n", encoding="utf-8")
        except OSError as exc:
            raise KeysFileCannotBeWritten() from exc
        logger.info("Generated encryption key for %s", project_name)
        return key
