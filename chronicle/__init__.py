"""chronicle - commit and push editor work automatically."""

from importlib import import_module
from typing import TYPE_CHECKING

__version__ = "0.1.0"

# Public API (lazy-exported to avoid import-time side effects)
__all__ = [
    # Config
    "Config", "load_config",
    # Git
    "GitStateProbe", "GitRepo", "ProcessRunner",
    # Message generation
    "AICommitClient", "MessageGenerator", "MessageSource",
    # Orchestration
    "CommitOrchestrator", "CycleOutcome", "CycleResult", "CycleState",
    "PauseController", "SessionStats",
    # Exceptions
    "ChronicleError", "GitError", "GitProbeError", "PushError", "LLMError",
    "ConfigError", "SecretStoreError",
]


def __getattr__(name: str):
    """Lazy attribute loader so ``import chronicle`` stays cheap."""
    mapping = {
        "Config": ("chronicle.config", "Config"),
        "load_config": ("chronicle.config", "load_config"),
        "GitStateProbe": ("chronicle.git", "GitStateProbe"),
        "GitRepo": ("chronicle.git", "GitRepo"),
        "ProcessRunner": ("chronicle.process", "ProcessRunner"),
        "AICommitClient": ("chronicle.llm", "AICommitClient"),
        "MessageGenerator": ("chronicle.commit", "MessageGenerator"),
        "MessageSource": ("chronicle.commit", "MessageSource"),
        "CommitOrchestrator": ("chronicle.core", "CommitOrchestrator"),
        "CycleOutcome": ("chronicle.core", "CycleOutcome"),
        "CycleResult": ("chronicle.core", "CycleResult"),
        "CycleState": ("chronicle.core", "CycleState"),
        "PauseController": ("chronicle.session", "PauseController"),
        "SessionStats": ("chronicle.session", "SessionStats"),
        "ChronicleError": ("chronicle.exceptions", "ChronicleError"),
        "GitError": ("chronicle.exceptions", "GitError"),
        "GitProbeError": ("chronicle.exceptions", "GitProbeError"),
        "PushError": ("chronicle.exceptions", "PushError"),
        "LLMError": ("chronicle.exceptions", "LLMError"),
        "ConfigError": ("chronicle.exceptions", "ConfigError"),
        "SecretStoreError": ("chronicle.exceptions", "SecretStoreError"),
    }
    if name in mapping:
        mod_name, attr = mapping[name]
        mod = import_module(mod_name)
        value = getattr(mod, attr)
        globals()[name] = value  # cache for future access
        return value
    raise AttributeError(f"module 'chronicle' has no attribute {name!r}")


if TYPE_CHECKING:
    from .config import Config, load_config
    from .git import GitStateProbe, GitRepo
    from .process import ProcessRunner
    from .llm import AICommitClient
    from .commit import MessageGenerator, MessageSource
    from .core import CommitOrchestrator, CycleOutcome, CycleResult, CycleState
    from .session import PauseController, SessionStats
    from .exceptions import (
        ChronicleError,
        GitError,
        GitProbeError,
        PushError,
        LLMError,
        ConfigError,
        SecretStoreError,
    )
