"""AI commit message client (Groq, OpenAI-compatible chat completions).

One best-effort request per cycle: any network error, timeout, non-200
status or malformed body resolves to an unavailable result so callers can
fall back to the rule-based generator. Nothing raises past ``generate``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from .config import Config
from .exceptions import LLMError

logger = logging.getLogger(__name__)

MAX_SUBJECT_LENGTH = 72
DEFAULT_MESSAGE = "chore: update"
CONVENTIONAL_TYPES = ("feat", "fix", "docs", "style", "refactor", "test", "chore")
COMPLETIONS_PATH = "/chat/completions"
MAX_TOKENS = 60
TEMPERATURE = 0.3

_TYPE_PREFIX = re.compile(
    r"^(?:%s)[:(]" % "|".join(CONVENTIONAL_TYPES), re.IGNORECASE
)

PROMPT_TEMPLATE = (
    "One-line conventional commit (<72 chars) for this staged diff:\n"
    "{diff}\n\n"
    "Examples:\n"
    "fix: add login guard\n"
    "feat: add dark mode\n\n"
    "Commit message:"
)


@dataclass
class AIResult:
    """Outcome of one AI request; ``message`` is None when unavailable."""

    message: Optional[str]
    reason: str = ""

    @property
    def available(self) -> bool:
        return self.message is not None

    @classmethod
    def unavailable(cls, reason: str) -> "AIResult":
        return cls(message=None, reason=reason)


def has_conventional_prefix(text: str) -> bool:
    return bool(_TYPE_PREFIX.match(text))


def normalize_commit_message(raw: str) -> str:
    """Coerce model output into a single conventional header of <= 72 chars."""
    stripped = raw.strip()
    text = stripped.splitlines()[0].strip() if stripped else ""
    if not text:
        return DEFAULT_MESSAGE
    if not has_conventional_prefix(text):
        text = f"chore: {text}"
    if len(text) > MAX_SUBJECT_LENGTH:
        text = text[: MAX_SUBJECT_LENGTH - 3] + "..."
    return text


def build_prompt(diff_excerpt: str) -> str:
    return PROMPT_TEMPLATE.format(diff=diff_excerpt)


def _extract_content(data: Any) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise LLMError("Missing choices in completion response") from exc
    if content is None:
        return ""
    if not isinstance(content, str):
        raise LLMError(f"Unexpected content type {type(content).__name__}")
    return content


class AICommitClient:
    """Sends a bounded diff excerpt to the completions endpoint."""

    def __init__(self, config: Optional[Config] = None) -> None:
        self.config = config or Config()

    @property
    def url(self) -> str:
        return self.config.llm_endpoint.rstrip("/") + COMPLETIONS_PATH

    def build_payload(self, diff_excerpt: str) -> dict[str, Any]:
        return {
            "model": self.config.model,
            "messages": [{"role": "user", "content": build_prompt(diff_excerpt)}],
            "max_tokens": MAX_TOKENS,
            "temperature": TEMPERATURE,
        }

    def generate(self, secret: str, diff: str) -> AIResult:
        if not diff or not diff.strip():
            return AIResult.unavailable("empty diff")
        excerpt = diff[: self.config.max_diff_chars]
        try:
            return AIResult(message=self._request(secret, excerpt))
        except LLMError as exc:
            logger.debug("AI commit message unavailable: %s", exc)
            return AIResult.unavailable(str(exc))

    def _request(self, secret: str, excerpt: str) -> str:
        headers = {
            "Authorization": f"Bearer {secret}",
            "Content-Type": "application/json",
        }
        try:
            response = httpx.post(
                self.url,
                headers=headers,
                json=self.build_payload(excerpt),
                timeout=self.config.request_timeout,
            )
        except httpx.TimeoutException as exc:
            raise LLMError(
                f"Request timed out after {self.config.request_timeout}s"
            ) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise LLMError(f"Network error: {exc}") from exc
        except (UnicodeError, ValueError) as exc:
            # headers and URL must encode as ASCII
            raise LLMError(f"Request could not be built: {exc}") from exc

        status = int(getattr(response, "status_code", 0) or 0)
        logger.debug("AI status: %s", status)
        if status != 200:
            raise LLMError(f"AI service returned status {status}")
        try:
            data = response.json()
        except ValueError as exc:
            raise LLMError("AI response is not valid JSON") from exc
        content = _extract_content(data)
        logger.debug("AI raw content: %r", content)
        return normalize_commit_message(content)
