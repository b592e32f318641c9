"""Credential storage for the AI commit message service."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict, Optional, Protocol

from .config import config_home
from .exceptions import SecretStoreError

GROQ_KEY_NAME = "groq-api-key"
GROQ_KEY_ENV = "GROQ_API_KEY"
SECRETS_FILE_NAME = "secrets.json"


class SecretStore(Protocol):
    def get(self, name: str) -> Optional[str]: ...

    def set(self, name: str, value: str) -> None: ...

    def delete(self, name: str) -> None: ...


def validate_groq_key(key: Optional[str]) -> bool:
    """Groq keys look like ``gsk_`` followed by a long token."""
    return bool(key) and key.isascii() and key.startswith("gsk_") and len(key) > 30


def mask_secret(key: str, visible: int = 10) -> str:
    return f"{key[:visible]}..."


class FileSecretStore:
    """JSON map of secrets kept next to the config file, mode 0600.

    ``get`` falls back to ``$GROQ_API_KEY`` for the Groq key so the tool
    works in environments where nothing has been stored yet.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path or (config_home() / SECRETS_FILE_NAME)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except (OSError, ValueError) as exc:
            raise SecretStoreError(f"Cannot read {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise SecretStoreError(f"{self.path} must contain a JSON object")
        return {str(k): str(v) for k, v in data.items()}

    def _write(self, data: Dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w") as handle:
                json.dump(data, handle, indent=2)
            os.chmod(self.path, 0o600)
        except OSError as exc:
            raise SecretStoreError(f"Cannot write {self.path}: {exc}") from exc

    def get(self, name: str) -> Optional[str]:
        value = self._read().get(name)
        if value:
            return value
        if name == GROQ_KEY_NAME:
            return os.environ.get(GROQ_KEY_ENV) or None
        return None

    def set(self, name: str, value: str) -> None:
        data = self._read()
        data[name] = value
        self._write(data)

    def delete(self, name: str) -> None:
        data = self._read()
        if data.pop(name, None) is not None:
            self._write(data)


class MemorySecretStore:
    """In-process store that forgets everything on exit."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, name: str) -> Optional[str]:
        return self._data.get(name)

    def set(self, name: str, value: str) -> None:
        self._data[name] = value

    def delete(self, name: str) -> None:
        self._data.pop(name, None)
