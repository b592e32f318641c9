"""Commit message generation: AI first, deterministic rules as fallback."""

from __future__ import annotations

import logging
import os
import re
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Sequence

from .config import Config, update_setting
from .exceptions import ChronicleError, GitProbeError
from .git import GitStateProbe
from .host import CredentialChoice, Host
from .llm import DEFAULT_MESSAGE, AICommitClient, AIResult
from .secrets import GROQ_KEY_NAME, SecretStore, validate_groq_key

logger = logging.getLogger(__name__)


class MessageSource(Enum):
    AI = "ai"
    FALLBACK = "fallback"


@dataclass
class GeneratedMessage:
    """A drafted commit message tagged with the strategy that produced it."""

    text: str
    source: MessageSource
    reason: str = ""


def _subject_for(files: Sequence[str]) -> str:
    if len(files) == 1:
        return f"update {os.path.basename(files[0])}"
    return f"update {len(files)} files"


def count_fallback_message(files: Sequence[str]) -> str:
    """Rule-based message from the staged file list alone.

    0 files -> ``chore: update``; 1 file -> ``chore: update <basename>``;
    otherwise ``chore: update <n> files``.
    """
    if not files:
        return DEFAULT_MESSAGE
    return f"chore: {_subject_for(files)}"


# Order doubles as the tie-break when two types match equally often.
_CONTENT_RULES: list[tuple[str, list[str]]] = [
    (
        "docs",
        [r"\.md$", r"\.rst$", r"\.txt$", r"(^|/)docs/", r"(^|/)README"],
    ),
    (
        "test",
        [r"(^|/)tests?/", r"(^|/)test_[^/]*$", r"\.test\.", r"\.spec\.", r"_test\.py$"],
    ),
    ("style", [r"\.css$", r"\.scss$", r"\.sass$", r"\.less$"]),
]


def _classify(path: str) -> str:
    normalized = path.replace("\\", "/")
    for commit_type, patterns in _CONTENT_RULES:
        if any(re.search(p, normalized, re.IGNORECASE) for p in patterns):
            return commit_type
    # build, config and source files alike
    return "chore"


def content_fallback_message(files: Sequence[str]) -> str:
    """Rule-based message that picks a conventional type from file kinds."""
    if not files:
        return DEFAULT_MESSAGE
    counts = Counter(_classify(f) for f in files)
    order = [t for t, _ in _CONTENT_RULES] + ["chore"]
    best = max(order, key=lambda t: (counts.get(t, 0), -order.index(t)))
    return f"{best}: {_subject_for(files)}"


FALLBACK_STRATEGIES: dict[str, Callable[[Sequence[str]], str]] = {
    "count": count_fallback_message,
    "content": content_fallback_message,
}


class MessageGenerator:
    """Produces a commit message for the staged changes; never fails."""

    def __init__(
        self,
        host: Host,
        secrets: SecretStore,
        ai_client_factory: Callable[[Config], AICommitClient] = AICommitClient,
        settings_updater: Callable[[str, Any], Any] = update_setting,
    ) -> None:
        self.host = host
        self.secrets = secrets
        self.ai_client_factory = ai_client_factory
        self.settings_updater = settings_updater

    def generate(self, repo: GitStateProbe, config: Config) -> GeneratedMessage:
        reason = "AI generation disabled"
        if config.use_ai_commit_messages:
            result = self._try_ai(repo, config)
            if result.available and result.message:
                return GeneratedMessage(result.message, MessageSource.AI)
            reason = result.reason
        return GeneratedMessage(
            self.fallback(repo, config), MessageSource.FALLBACK, reason
        )

    def fallback(self, repo: GitStateProbe, config: Config) -> str:
        try:
            files = repo.staged_files()
        except GitProbeError as exc:
            logger.debug("staged file listing failed: %s", exc)
            files = []
        strategy = FALLBACK_STRATEGIES.get(
            config.fallback_strategy, count_fallback_message
        )
        return strategy(files)

    def _try_ai(self, repo: GitStateProbe, config: Config) -> AIResult:
        try:
            secret = self.resolve_secret()
        except ChronicleError as exc:
            return AIResult.unavailable(f"secret store unavailable: {exc}")
        if not secret:
            return AIResult.unavailable("no API key")
        try:
            diff = repo.staged_diff()
        except GitProbeError as exc:
            return AIResult.unavailable(f"staged diff unavailable: {exc}")
        return self.ai_client_factory(config).generate(secret, diff)

    def resolve_secret(self) -> Optional[str]:
        """Return the stored key, offering once to set it up when absent."""
        secret = self.secrets.get(GROQ_KEY_NAME)
        while not secret:
            choice = self.host.ask_credential_setup()
            if choice is CredentialChoice.DISABLE_AI:
                self._disable_ai()
                return None
            if choice is not CredentialChoice.SUPPLY:
                return None
            if not self.store_secret_from_prompt():
                return None
            secret = self.secrets.get(GROQ_KEY_NAME)
        return secret

    def store_secret_from_prompt(self) -> bool:
        """Ask the host for a key, validate and store it."""
        candidate = self.host.prompt_secret()
        if candidate is None:
            return False
        if not validate_groq_key(candidate):
            self.host.warn("Invalid Groq key")
            return False
        try:
            self.secrets.set(GROQ_KEY_NAME, candidate)
        except ChronicleError as exc:
            self.host.error(f"Could not save Groq API key: {exc}")
            return False
        self.host.info("Groq API key saved!")
        return True

    def _disable_ai(self) -> None:
        try:
            self.settings_updater("use_ai_commit_messages", False)
        except ChronicleError as exc:
            self.host.error(f"Could not disable AI commit messages: {exc}")
            return
        self.host.info("AI commit messages disabled.")
