import os
import shutil
import subprocess
from collections.abc import Generator
from pathlib import Path
from typing import Optional

import pytest

from chronicle.host import CredentialChoice
from chronicle.process import ProcessResult


@pytest.fixture(autouse=True)
def isolate_config(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> Generator[Path, None, None]:
    for key in list(os.environ):
        if key.startswith("CHRONICLE_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("GROQ_API_KEY", raising=False)
    home = tmp_path / "chronicle-home"
    monkeypatch.setenv("CHRONICLE_CONFIG_HOME", str(home))
    yield home


class FakeRunner:
    """ProcessRunner double answering git commands from a script.

    ``responses`` maps a space-joined git argument prefix (e.g.
    ``"status --porcelain"``) to a ProcessResult or to stdout text.
    Unscripted commands succeed with empty output.
    """

    def __init__(self, responses: Optional[dict] = None) -> None:
        self.responses = dict(responses or {})
        self.calls: list[list[str]] = []

    def run(self, args, cwd):
        cmd = [str(a) for a in args]
        self.calls.append(cmd)
        joined = " ".join(cmd[1:])
        for prefix in sorted(self.responses, key=len, reverse=True):
            if joined.startswith(prefix):
                value = self.responses[prefix]
                if isinstance(value, ProcessResult):
                    return value
                return ProcessResult(args=cmd, returncode=0, stdout=value)
        return ProcessResult(args=cmd, returncode=0, stdout="")

    def git_calls(self) -> list[str]:
        return [" ".join(c[1:]) for c in self.calls]

    def called(self, prefix: str) -> bool:
        return any(c.startswith(prefix) for c in self.git_calls())


class FakeHost:
    """Host double recording notifications and answering prompts."""

    def __init__(
        self,
        reply="__draft__",
        credential_choice: CredentialChoice = CredentialChoice.SKIP,
        secret: Optional[str] = None,
    ) -> None:
        self.reply = reply
        self.credential_choice = credential_choice
        self.secret = secret
        self.infos: list[str] = []
        self.warnings: list[str] = []
        self.errors: list[str] = []
        self.drafts: list[str] = []
        self.credential_prompts = 0

    def info(self, message):
        self.infos.append(message)

    def warn(self, message):
        self.warnings.append(message)

    def error(self, message):
        self.errors.append(message)

    def edit_message(self, draft):
        self.drafts.append(draft)
        if self.reply == "__draft__":
            return draft
        return self.reply

    def ask_credential_setup(self):
        self.credential_prompts += 1
        return self.credential_choice

    def prompt_secret(self):
        return self.secret


@pytest.fixture
def fake_host() -> FakeHost:
    return FakeHost()


def _git(cwd: Path, *args: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        ["git", *args], cwd=cwd, capture_output=True, text=True, check=True
    )


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """A real repository with one commit, isolated from user git config."""
    if shutil.which("git") is None:
        pytest.skip("git executable not available")
    repo = tmp_path / "repo"
    repo.mkdir()
    _git(repo, "init", "-q")
    _git(repo, "config", "user.email", "dev@example.com")
    _git(repo, "config", "user.name", "Dev")
    _git(repo, "config", "commit.gpgsign", "false")
    (repo / "README.md").write_text("hello\n")
    _git(repo, "add", "README.md")
    _git(repo, "commit", "-q", "-m", "chore: init")
    return repo


@pytest.fixture
def run_git():
    return _git
