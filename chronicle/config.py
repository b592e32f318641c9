"""Configuration management for chronicle."""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

from .exceptions import ConfigError

CONFIG_DIR_ENV = "CHRONICLE_CONFIG_HOME"
CONFIG_FILE_NAME = "config.json"

DEFAULT_FILE_EXTENSIONS = [".js", ".ts", ".jsx", ".tsx", ".css", ".scss", ".html"]
DEFAULT_MODEL = "llama-3.1-8b-instant"
DEFAULT_ENDPOINT = "https://api.groq.com/openai/v1"
FALLBACK_STRATEGIES = ("count", "content")

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}

# setting name -> environment variable consulted before the persisted file
_ENV_KEYS = {
    "auto_commit": "CHRONICLE_AUTO_COMMIT",
    "auto_push": "CHRONICLE_AUTO_PUSH",
    "file_extensions": "CHRONICLE_FILE_EXTENSIONS",
    "use_ai_commit_messages": "CHRONICLE_USE_AI",
    "model": "CHRONICLE_MODEL",
    "llm_endpoint": "CHRONICLE_LLM_ENDPOINT",
    "request_timeout": "CHRONICLE_AI_TIMEOUT",
    "fallback_strategy": "CHRONICLE_FALLBACK_STRATEGY",
}


@dataclass
class Config:
    """Runtime configuration for chronicle."""

    auto_commit: bool = True
    auto_push: bool = True
    file_extensions: List[str] = field(
        default_factory=lambda: list(DEFAULT_FILE_EXTENSIONS)
    )
    use_ai_commit_messages: bool = True
    model: str = DEFAULT_MODEL
    llm_endpoint: str = DEFAULT_ENDPOINT
    request_timeout: float = 10.0
    max_diff_chars: int = 1500
    fallback_strategy: str = "count"

    def tracks_file(self, file_path: str) -> bool:
        """Return True if saves of ``file_path`` count as qualifying."""
        suffix = os.path.splitext(file_path)[1]
        return suffix in self.file_extensions

    def to_dict(self) -> Dict[str, Any]:
        """Serialise configuration to a dict for persistence."""
        return asdict(self)


def config_home() -> Path:
    """Directory holding ``config.json`` and ``secrets.json``."""
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "chronicle"


def config_file_path() -> Path:
    return config_home() / CONFIG_FILE_NAME


def _parse_bool(name: str, raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in _TRUTHY:
        return True
    if text in _FALSY:
        return False
    raise ConfigError(f"Invalid boolean for {name}: {raw!r}")


def _parse_extensions(raw: Any) -> List[str]:
    if isinstance(raw, str):
        items = [part.strip() for part in raw.split(",")]
    else:
        items = [str(part).strip() for part in raw]
    out: List[str] = []
    for item in items:
        if not item:
            continue
        out.append(item if item.startswith(".") else f".{item}")
    return out


def _coerce(name: str, raw: Any) -> Any:
    """Coerce a raw value (env string or JSON value) to the field's type."""
    if name in {"auto_commit", "auto_push", "use_ai_commit_messages"}:
        return _parse_bool(name, raw)
    if name == "file_extensions":
        return _parse_extensions(raw)
    if name == "request_timeout":
        try:
            return float(raw)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid timeout: {raw!r}") from exc
    if name == "max_diff_chars":
        try:
            return int(raw)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid max_diff_chars: {raw!r}") from exc
    if name == "fallback_strategy":
        value = str(raw).strip().lower()
        if value not in FALLBACK_STRATEGIES:
            raise ConfigError(
                f"Unknown fallback strategy {raw!r}; "
                f"expected one of {', '.join(FALLBACK_STRATEGIES)}"
            )
        return value
    return str(raw)


def load_persisted_config() -> Dict[str, Any]:
    """Return the raw persisted settings, or an empty dict."""
    cfg_path = config_file_path()
    if not cfg_path.exists():
        return {}
    try:
        data = json.loads(cfg_path.read_text())
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Cannot read {cfg_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{cfg_path} must contain a JSON object")
    return data


def load_config(overrides: Optional[Dict[str, Any]] = None) -> Config:
    """Build configuration from overrides, environment and config file."""

    overrides = overrides or {}
    persisted = load_persisted_config()
    known = {f.name for f in fields(Config)}
    values: Dict[str, Any] = {}
    for name in known:
        env_key = _ENV_KEYS.get(name)
        if overrides.get(name) is not None:
            raw = overrides[name]
        elif env_key and os.environ.get(env_key):
            raw = os.environ[env_key]
        elif name in persisted:
            raw = persisted[name]
        else:
            continue
        values[name] = _coerce(name, raw)
    return Config(**values)


def save_config(config: Config) -> Path:
    """Persist configuration JSON in the config home."""
    cfg_path = config_file_path()
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    cfg_path.write_text(json.dumps(config.to_dict(), indent=2))
    return cfg_path


def update_setting(name: str, value: Any) -> Config:
    """Persist a single setting, leaving the others as stored."""
    known = {f.name for f in fields(Config)}
    if name not in known:
        raise ConfigError(f"Unknown setting: {name}")
    persisted = load_persisted_config()
    persisted[name] = _coerce(name, value)
    stored = Config(
        **{k: _coerce(k, v) for k, v in persisted.items() if k in known}
    )
    save_config(stored)
    return stored
