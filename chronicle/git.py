"""Git operations for chronicle."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Type, Union

from .exceptions import GitError, GitProbeError, PushError
from .process import ProcessResult, ProcessRunner

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def is_git_repository(path: PathLike) -> bool:
    """Return True if ``path`` holds a ``.git`` entry (directory or file)."""
    return (Path(path) / ".git").exists()


def find_git_repo_root(start_path: Optional[PathLike] = None) -> Optional[Path]:
    """Return the nearest directory at or above ``start_path`` with ``.git``.

    A file path starts the search at its parent directory. Returns ``None``
    when no ancestor is a git working copy.
    """

    path = Path(start_path or Path.cwd()).expanduser().resolve(strict=False)
    if path.is_file() or not path.exists():
        path = path.parent

    for candidate in (path, *path.parents):
        if is_git_repository(candidate):
            return candidate
    return None


def _lines(output: str) -> list[str]:
    return [line.strip() for line in output.splitlines() if line.strip()]


class GitStateProbe:
    """Read-only questions about the state of one working copy."""

    def __init__(
        self, repo_path: PathLike, runner: Optional[ProcessRunner] = None
    ) -> None:
        self.repo_path = Path(repo_path)
        self.runner = runner or ProcessRunner()

    def _exec(self, args: list[str]) -> ProcessResult:
        return self.runner.run(["git", *args], cwd=self.repo_path)

    def _run_git_command(
        self, args: list[str], error_cls: Type[GitError] = GitProbeError
    ) -> str:
        """Run a git command and return stdout, raising ``error_cls`` on failure."""
        result = self._exec(args)
        if not result.ok:
            cmd = " ".join(args)
            raise error_cls(
                f"Git command failed: {cmd}\n{result.diagnostic}",
                command=["git", *args],
                stderr=result.diagnostic,
            )
        return result.stdout

    def has_pending_changes(self) -> bool:
        """True iff ``git status --porcelain`` reports anything."""
        return bool(self._run_git_command(["status", "--porcelain"]).strip())

    def has_unresolved_conflicts(self) -> bool:
        """True iff any path is listed by the unmerged diff filter."""
        output = self._run_git_command(
            ["diff", "--name-only", "--diff-filter=U"]
        )
        return bool(_lines(output))

    def staged_files(self) -> list[str]:
        return _lines(self._run_git_command(["diff", "--name-only", "--cached"]))

    def staged_diff(self) -> str:
        """Full patch of the index against HEAD."""
        return self._run_git_command(["diff", "--cached"])

    def has_previous_commit(self) -> bool:
        return self._exec(["rev-parse", "--verify", "--quiet", "HEAD~1"]).ok

    def changed_files_since_previous_commit(self) -> list[str]:
        """Paths differing from ``HEAD~1``; empty when there is no such commit."""
        if not self.has_previous_commit():
            logger.debug("no previous commit in %s", self.repo_path)
            return []
        return _lines(self._run_git_command(["diff", "--name-only", "HEAD~1"]))


class GitRepo(GitStateProbe):
    """Probe plus the three mutating operations of a commit cycle."""

    def stage_all(self) -> None:
        """Stage all changes (including new and deleted files)."""
        self._run_git_command(["add", "-A"], error_cls=GitError)

    def commit(self, message: str) -> None:
        """Create a commit with the given message.

        The message travels as its own argv element so quotes and other
        shell metacharacters are passed through untouched.
        """
        self._run_git_command(["commit", "-m", message], error_cls=GitError)

    def push(self) -> str:
        """Push the current branch to its configured upstream."""
        return self._run_git_command(["push"], error_cls=PushError)
