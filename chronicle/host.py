"""User-facing surface the engine talks to: notifications and prompts."""

from __future__ import annotations

import getpass
import sys
from enum import Enum
from typing import Callable, Optional, Protocol, TextIO

RESET = "\033[0m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"


class CredentialChoice(Enum):
    """Answer to the one-time 'no API key' prompt."""

    SUPPLY = "supply"
    DISABLE_AI = "disable"
    SKIP = "skip"


class Host(Protocol):
    def info(self, message: str) -> None: ...

    def warn(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def edit_message(self, draft: str) -> Optional[str]:
        """Return the confirmed message, or ``None`` to cancel the commit."""
        ...

    def ask_credential_setup(self) -> CredentialChoice: ...

    def prompt_secret(self) -> Optional[str]: ...


class ConsoleHost:
    """Terminal implementation of :class:`Host`.

    With ``auto_accept`` the drafted message is used unchanged and the
    credential prompt is answered with ``SKIP``, so nothing blocks on stdin.
    """

    def __init__(
        self,
        auto_accept: bool = False,
        out: Optional[TextIO] = None,
        input_fn: Callable[[str], str] = input,
        secret_fn: Callable[[str], str] = getpass.getpass,
        color: Optional[bool] = None,
    ) -> None:
        self.auto_accept = auto_accept
        self.out = out or sys.stdout
        self._input = input_fn
        self._secret = secret_fn
        self.color = self.out.isatty() if color is None else color

    def _emit(self, text: str, tint: str = "") -> None:
        if self.color and tint:
            text = f"{tint}{text}{RESET}"
        print(text, file=self.out)

    def info(self, message: str) -> None:
        self._emit(message, GREEN)

    def warn(self, message: str) -> None:
        self._emit(message, YELLOW)

    def error(self, message: str) -> None:
        self._emit(message, RED)

    def edit_message(self, draft: str) -> Optional[str]:
        if self.auto_accept:
            return draft
        self._emit(f"Proposed commit message: {draft}")
        try:
            answer = self._input(
                "Edit commit message or press Enter (Ctrl-D cancels): "
            )
        except (EOFError, KeyboardInterrupt):
            print(file=self.out)
            return None
        return answer if answer.strip() else draft

    def ask_credential_setup(self) -> CredentialChoice:
        if self.auto_accept:
            return CredentialChoice.SKIP
        try:
            answer = self._input(
                "Groq API key not set. Set it now? [y]es / [n]o / [d]isable AI: "
            )
        except (EOFError, KeyboardInterrupt):
            return CredentialChoice.SKIP
        answer = answer.strip().lower()
        if answer in {"y", "yes"}:
            return CredentialChoice.SUPPLY
        if answer in {"d", "disable", "disable ai"}:
            return CredentialChoice.DISABLE_AI
        return CredentialChoice.SKIP

    def prompt_secret(self) -> Optional[str]:
        try:
            value = self._secret(
                "Enter your GROQ API key (free at console.groq.com/keys): "
            )
        except (EOFError, KeyboardInterrupt):
            return None
        return value.strip() or None
