"""Commit orchestration: decides when to commit, then commits and pushes."""

from __future__ import annotations

import logging
import os
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

from .commit import GeneratedMessage, MessageGenerator, MessageSource
from .config import Config, load_config
from .exceptions import ChronicleError, GitError
from .git import GitRepo, find_git_repo_root, is_git_repository
from .host import Host
from .llm import DEFAULT_MESSAGE
from .process import ProcessRunner
from .secrets import FileSecretStore, SecretStore
from .session import PauseController, SessionStats

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class CycleState(Enum):
    IDLE = "idle"
    PROBING = "probing"
    STAGING = "staging"
    MESSAGE_DRAFTING = "message_drafting"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    COMMITTING = "committing"
    PUSHING = "pushing"
    REPORTING = "reporting"


# Forward edges only; every state may also drop back to IDLE.
_TRANSITIONS: Dict[CycleState, set] = {
    CycleState.IDLE: {CycleState.PROBING},
    CycleState.PROBING: {CycleState.STAGING},
    CycleState.STAGING: {CycleState.MESSAGE_DRAFTING},
    CycleState.MESSAGE_DRAFTING: {CycleState.AWAITING_CONFIRMATION},
    CycleState.AWAITING_CONFIRMATION: {CycleState.COMMITTING},
    CycleState.COMMITTING: {CycleState.PUSHING, CycleState.REPORTING},
    CycleState.PUSHING: {CycleState.REPORTING},
    CycleState.REPORTING: set(),
}


class CycleOutcome(Enum):
    COMMITTED = "committed"
    PUSH_FAILED = "push_failed"
    NOT_A_REPOSITORY = "not_a_repository"
    NO_CHANGES = "no_changes"
    CONFLICTS = "conflicts"
    CANCELED = "canceled"
    FAILED = "failed"
    BUSY = "busy"
    SUPPRESSED = "suppressed"
    NOT_TRIGGERED = "not_triggered"


@dataclass
class CycleResult:
    """What one trigger led to."""

    outcome: CycleOutcome
    state: CycleState = CycleState.IDLE
    root: Optional[str] = None
    message: Optional[str] = None
    source: Optional[MessageSource] = None
    pushed: bool = False
    files_committed: int = 0
    summary: str = ""
    error: Optional[str] = None
    history: list[CycleState] = field(default_factory=list)

    @property
    def committed(self) -> bool:
        return self.outcome in {CycleOutcome.COMMITTED, CycleOutcome.PUSH_FAILED}

    @property
    def started(self) -> bool:
        """True if the cycle got as far as probing the repository."""
        return CycleState.PROBING in self.history

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "state": self.state.value,
            "root": self.root,
            "message": self.message,
            "source": self.source.value if self.source else None,
            "pushed": self.pushed,
            "files_committed": self.files_committed,
            "summary": self.summary,
            "error": self.error,
            "history": [s.value for s in self.history],
        }


class _CycleRun:
    """Tracks the state of one in-flight cycle and enforces legal moves."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.state = CycleState.IDLE
        self.history: list[CycleState] = []

    def advance(self, new_state: CycleState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Illegal cycle transition {self.state.value} -> {new_state.value}"
            )
        logger.debug("%s: %s -> %s", self.root, self.state.value, new_state.value)
        self.state = new_state
        self.history.append(new_state)

    def finish(self, outcome: CycleOutcome, **kwargs: Any) -> CycleResult:
        last = self.state
        self.state = CycleState.IDLE
        self.history.append(CycleState.IDLE)
        logger.info("cycle in %s ended: %s", self.root, outcome.value)
        return CycleResult(
            outcome=outcome,
            state=last,
            root=str(self.root),
            history=list(self.history),
            **kwargs,
        )


def _same_file(a: str, b: str) -> bool:
    return os.path.normpath(a) == os.path.normpath(b)


class CommitOrchestrator:
    """Owns the trigger logic, the pause window and the session counters.

    One instance serves a host process. Collaborators are injected so tests
    can drive it with a fake process runner, host and clock.
    """

    def __init__(
        self,
        host: Host,
        secrets: Optional[SecretStore] = None,
        runner: Optional[ProcessRunner] = None,
        clock: Callable[[], float] = time.time,
        config_loader: Callable[[], Config] = load_config,
        message_generator: Optional[MessageGenerator] = None,
    ) -> None:
        self.host = host
        self.secrets = secrets if secrets is not None else FileSecretStore()
        self.runner = runner or ProcessRunner()
        self.config_loader = config_loader
        self.pause_controller = PauseController(clock)
        self.stats = SessionStats()
        self.message_generator = message_generator or MessageGenerator(
            host, self.secrets
        )
        self._pending_save: Optional[str] = None
        self._busy: set[str] = set()
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------
    @property
    def pending_save(self) -> Optional[str]:
        with self._lock:
            return self._pending_save

    def on_save(self, file_path: PathLike) -> bool:
        """Remember ``file_path`` as the latest qualifying save."""
        try:
            config = self.config_loader()
        except ChronicleError as exc:
            logger.warning("ignoring save, configuration unreadable: %s", exc)
            return False
        path = str(file_path)
        if not config.auto_commit or not config.tracks_file(path):
            return False
        with self._lock:
            self._pending_save = path
        return True

    def on_active_file_changed(
        self,
        file_path: Optional[PathLike],
        root: Optional[PathLike] = None,
    ) -> CycleResult:
        """Run a cycle if attention moved away from the last saved file."""
        if file_path is None:
            return CycleResult(CycleOutcome.NOT_TRIGGERED)
        pending = self.pending_save
        if pending is None:
            return CycleResult(CycleOutcome.NOT_TRIGGERED)
        if self.pause_controller.is_active():
            return CycleResult(CycleOutcome.SUPPRESSED)
        if _same_file(str(file_path), pending):
            return CycleResult(CycleOutcome.NOT_TRIGGERED)

        repo_root = Path(root) if root is not None else find_git_repo_root(file_path)
        if repo_root is None or not is_git_repository(repo_root):
            logger.debug("%s is not inside a git repository", file_path)
            return CycleResult(CycleOutcome.NOT_A_REPOSITORY)

        result = self.run_cycle(repo_root)
        if result.outcome is not CycleOutcome.BUSY:
            with self._lock:
                if self._pending_save == pending:
                    self._pending_save = None
        return result

    def commit_now(self, root: PathLike) -> CycleResult:
        """Manual trigger: skips the save/switch gate and the pause window."""
        if not is_git_repository(root):
            self.host.error("Not a git repo.")
            return CycleResult(CycleOutcome.NOT_A_REPOSITORY, root=str(root))
        return self.run_cycle(root)

    def pause(self) -> None:
        self.pause_controller.pause()
        self.host.info("Auto-commit paused for 1 hour.")

    def resume(self) -> None:
        self.pause_controller.resume()
        self.host.info("Auto-commit resumed.")

    def is_paused(self) -> bool:
        return self.pause_controller.is_active()

    def status(self) -> Dict[str, Any]:
        snapshot: Dict[str, Any] = dict(self.stats.snapshot())
        snapshot["paused"] = self.is_paused()
        snapshot["pause_remaining"] = round(self.pause_controller.remaining(), 1)
        snapshot["pending_save"] = self.pending_save
        return snapshot

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------
    def run_cycle(self, root: PathLike) -> CycleResult:
        """Run one probe/stage/draft/confirm/commit/push/report cycle.

        Never raises for git, network or configuration failures; they are
        reported to the host and returned as the result's outcome.
        """
        repo_root = Path(root)
        key = str(repo_root.resolve(strict=False))
        with self._lock:
            if key in self._busy:
                logger.info("cycle already running in %s; trigger ignored", key)
                return CycleResult(CycleOutcome.BUSY, root=str(repo_root))
            self._busy.add(key)
        try:
            return self._run(repo_root)
        finally:
            with self._lock:
                self._busy.discard(key)

    def _run(self, root: Path) -> CycleResult:
        run = _CycleRun(root)
        try:
            config = self.config_loader()
        except ChronicleError as exc:
            self.host.error(f"Commit failed: {exc}")
            return run.finish(CycleOutcome.FAILED, error=str(exc))

        repo = GitRepo(root, self.runner)
        draft: Optional[GeneratedMessage] = None
        try:
            run.advance(CycleState.PROBING)
            if not repo.has_pending_changes():
                return run.finish(CycleOutcome.NO_CHANGES)
            if repo.has_unresolved_conflicts():
                self.host.warn("Chronicle: Merge conflicts. Skipped.")
                return run.finish(CycleOutcome.CONFLICTS)

            run.advance(CycleState.STAGING)
            repo.stage_all()

            run.advance(CycleState.MESSAGE_DRAFTING)
            draft = self.message_generator.generate(repo, config)

            run.advance(CycleState.AWAITING_CONFIRMATION)
            confirmed = self.host.edit_message(draft.text)
            if confirmed is None:
                self.host.info("Commit canceled.")
                return run.finish(
                    CycleOutcome.CANCELED, message=draft.text, source=draft.source
                )
            message = confirmed if confirmed.strip() else DEFAULT_MESSAGE

            run.advance(CycleState.COMMITTING)
            repo.commit(message)
        except ChronicleError as exc:
            self.host.error(f"Commit failed: {exc}")
            return run.finish(
                CycleOutcome.FAILED,
                message=draft.text if draft else None,
                source=draft.source if draft else None,
                error=getattr(exc, "stderr", "") or str(exc),
            )

        pushed = False
        push_error: Optional[str] = None
        if config.auto_push:
            run.advance(CycleState.PUSHING)
            try:
                repo.push()
                pushed = True
            except GitError as exc:
                push_error = exc.stderr or str(exc)

        run.advance(CycleState.REPORTING)
        try:
            files = repo.changed_files_since_previous_commit()
        except GitError as exc:
            logger.debug("post-commit file count unavailable: %s", exc)
            files = []
        self.stats.record_commit(len(files))
        snap = self.stats.snapshot()
        summary = "Committed{}! Today: {} commits, {} files".format(
            " & pushed" if pushed else "",
            snap["commits"],
            snap["files_committed"],
        )
        if push_error is not None:
            self.host.error(f"{summary} Push failed: {push_error}")
            outcome = CycleOutcome.PUSH_FAILED
        else:
            self.host.info(summary)
            outcome = CycleOutcome.COMMITTED
        return run.finish(
            outcome,
            message=message,
            source=draft.source,
            pushed=pushed,
            files_committed=len(files),
            summary=summary,
            error=push_error,
        )
