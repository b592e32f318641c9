"""Exception hierarchy for chronicle."""

from __future__ import annotations

from typing import Optional, Sequence


class ChronicleError(Exception):
    """Base exception for all chronicle errors."""


class GitError(ChronicleError):
    """Raised when a git subprocess exits unsuccessfully."""

    def __init__(
        self,
        message: str,
        command: Optional[Sequence[str]] = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.command = list(command or [])
        self.stderr = stderr


class GitProbeError(GitError):
    """Raised when a read-only repository query cannot be answered."""


class PushError(GitError):
    """Raised when pushing fails after the commit itself succeeded."""


class LLMError(ChronicleError):
    """Raised inside the AI client; never escapes it."""


class ConfigError(ChronicleError):
    """Raised for unreadable or invalid configuration."""


class SecretStoreError(ChronicleError):
    """Raised when the secret store cannot be read or written."""
