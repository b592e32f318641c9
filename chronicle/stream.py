"""JSON-lines event session: lets an editor drive the orchestrator over stdio.

Input, one object per line::

    {"event": "save", "path": "/repo/src/a.ts"}
    {"event": "switch", "path": "/repo/src/b.ts"}
    {"event": "command", "name": "commit-now" | "pause" | "resume" | "status"}
    {"event": "reply", "value": ...}          # answer to a prompt

Output is ``{"event": ..., "payload": {...}}`` per line on stdout. Events
other than ``reply`` that arrive while a prompt is open are handled after
the prompt is answered.
"""

from __future__ import annotations

import json
import sys
from collections import deque
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Deque, Dict, Iterable, Iterator, Optional, TextIO

from .core import CommitOrchestrator, CycleResult
from .host import CredentialChoice


def _serialise(value: Any) -> Any:
    if isinstance(value, CycleResult):
        return value.to_dict()
    if isinstance(value, dict):
        return {str(key): _serialise(val) for key, val in value.items()}
    if isinstance(value, (list, tuple)):
        return [_serialise(item) for item in value]
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    return value


class StreamHost:
    """Host that reports as JSON events and reads prompt answers as replies."""

    def __init__(
        self,
        lines: Iterable[str],
        out: Optional[TextIO] = None,
        auto_accept: bool = False,
    ) -> None:
        self._lines: Iterator[str] = iter(lines)
        self.out = out or sys.stdout
        self.auto_accept = auto_accept
        self._deferred: Deque[Dict[str, Any]] = deque()

    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        message = {"event": event, "payload": _serialise(payload)}
        self.out.write(json.dumps(message) + "\n")
        self.out.flush()

    def next_event(self) -> Optional[Dict[str, Any]]:
        """Return the next event, replaying any held back during a prompt."""
        if self._deferred:
            return self._deferred.popleft()
        return self._read_event()

    def _read_event(self) -> Optional[Dict[str, Any]]:
        """Return the next well-formed input line, or None at end of input."""
        for line in self._lines:
            line = line.strip()
            if not line:
                continue
            try:
                data = json.loads(line)
            except ValueError as exc:
                self.emit("error", {"message": f"Malformed event: {exc}"})
                continue
            if not isinstance(data, dict) or "event" not in data:
                self.emit("error", {"message": "Event must be an object with 'event'"})
                continue
            return data
        return None

    def _await_reply(self, kind: str, payload: Dict[str, Any]) -> Any:
        self.emit(kind, payload)
        while True:
            data = self._read_event()
            if data is None:
                return None
            if data.get("event") == "reply":
                return data.get("value")
            # dispatched once the prompt is answered
            self._deferred.append(data)

    def info(self, message: str) -> None:
        self.emit("info", {"message": message})

    def warn(self, message: str) -> None:
        self.emit("warn", {"message": message})

    def error(self, message: str) -> None:
        self.emit("error", {"message": message})

    def edit_message(self, draft: str) -> Optional[str]:
        if self.auto_accept:
            return draft
        value = self._await_reply("confirm", {"draft": draft})
        return None if value is None else str(value)

    def ask_credential_setup(self) -> CredentialChoice:
        if self.auto_accept:
            return CredentialChoice.SKIP
        value = self._await_reply(
            "credential", {"choices": [c.value for c in CredentialChoice]}
        )
        try:
            return CredentialChoice(value)
        except ValueError:
            return CredentialChoice.SKIP

    def prompt_secret(self) -> Optional[str]:
        value = self._await_reply("secret", {"name": "groq-api-key"})
        if value is None:
            return None
        return str(value).strip() or None


class EventSession:
    """Dispatches stream events to one :class:`CommitOrchestrator`."""

    def __init__(
        self,
        orchestrator: CommitOrchestrator,
        host: StreamHost,
        root: Optional[Path] = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.host = host
        self.root = root
        self._commands: Dict[str, Callable[[], None]] = {
            "commit-now": self._commit_now,
            "pause": self.orchestrator.pause,
            "resume": self.orchestrator.resume,
            "status": self._status,
        }

    def run(self) -> int:
        self.host.emit("ready", {"root": self.root})
        while True:
            data = self.host.next_event()
            if data is None:
                return 0
            self.handle(data)

    def handle(self, data: Dict[str, Any]) -> None:
        event = data.get("event")
        if event == "save":
            path = data.get("path")
            if not path:
                self.host.error("save event requires 'path'")
                return
            self.orchestrator.on_save(str(path))
        elif event == "switch":
            path = data.get("path")
            result = self.orchestrator.on_active_file_changed(
                str(path) if path else None, root=self._root_for(path)
            )
            self.host.emit("cycle", {"result": result})
        elif event == "command":
            name = str(data.get("name", ""))
            handler = self._commands.get(name)
            if handler is None:
                self.host.error(f"Unknown command: {name}")
                return
            handler()
        elif event == "reply":
            self.host.error("Unexpected reply: no prompt is pending")
        else:
            self.host.error(f"Unknown event: {event}")

    def _root_for(self, path: Optional[str]) -> Optional[Path]:
        """The session root if ``path`` lies inside it; otherwise resolve per file."""
        if self.root is None or not path:
            return None
        try:
            Path(str(path)).resolve().relative_to(self.root.resolve())
        except ValueError:
            return None
        return self.root

    def _commit_now(self) -> None:
        if self.root is None:
            self.host.error("No workspace folder.")
            return
        result = self.orchestrator.commit_now(self.root)
        self.host.emit("cycle", {"result": result})

    def _status(self) -> None:
        self.host.emit("status", self.orchestrator.status())
