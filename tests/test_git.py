import shutil

import pytest
from conftest import FakeRunner

from chronicle.exceptions import GitError, GitProbeError, PushError
from chronicle.git import GitRepo, GitStateProbe, find_git_repo_root, is_git_repository
from chronicle.process import ProcessResult


def _fail(stderr="fatal: not a git repository"):
    return ProcessResult(args=["git"], returncode=128, stderr=stderr)


def test_is_git_repository_checks_dot_git(tmp_path):
    assert not is_git_repository(tmp_path)
    (tmp_path / ".git").mkdir()
    assert is_git_repository(tmp_path)


def test_is_git_repository_accepts_git_file(tmp_path):
    # worktrees and submodules use a .git file
    (tmp_path / ".git").write_text("gitdir: ../elsewhere\n")
    assert is_git_repository(tmp_path)


def test_find_git_repo_root_walks_up_from_file(tmp_path):
    (tmp_path / ".git").mkdir()
    nested = tmp_path / "src" / "ui"
    nested.mkdir(parents=True)
    target = nested / "app.ts"
    target.write_text("x")
    assert find_git_repo_root(target) == tmp_path.resolve()


def test_find_git_repo_root_none_outside_repo(tmp_path):
    lonely = tmp_path / "lonely"
    lonely.mkdir()
    root = find_git_repo_root(lonely / "missing.ts")
    assert root is None or not str(root).startswith(str(lonely.resolve()))


def test_has_pending_changes():
    runner = FakeRunner({"status --porcelain": " M a.ts\n"})
    assert GitStateProbe("/repo", runner).has_pending_changes() is True
    runner = FakeRunner({"status --porcelain": "\n"})
    assert GitStateProbe("/repo", runner).has_pending_changes() is False


def test_has_unresolved_conflicts_uses_unmerged_filter():
    runner = FakeRunner({"diff --name-only --diff-filter=U": "a.ts\n"})
    probe = GitStateProbe("/repo", runner)
    assert probe.has_unresolved_conflicts() is True
    assert runner.git_calls() == ["diff --name-only --diff-filter=U"]


def test_staged_files_filters_blank_lines():
    runner = FakeRunner({"diff --name-only --cached": "a.ts\n\nsrc/b.ts\n"})
    assert GitStateProbe("/repo", runner).staged_files() == ["a.ts", "src/b.ts"]


def test_probe_failure_raises_probe_error_with_diagnostic():
    runner = FakeRunner({"status": _fail()})
    with pytest.raises(GitProbeError) as ei:
        GitStateProbe("/repo", runner).has_pending_changes()
    assert ei.value.stderr == "fatal: not a git repository"
    assert ei.value.command == ["git", "status", "--porcelain"]


def test_changed_files_since_previous_commit_without_parent():
    runner = FakeRunner({"rev-parse --verify --quiet HEAD~1": _fail("")})
    probe = GitStateProbe("/repo", runner)
    assert probe.changed_files_since_previous_commit() == []
    assert not runner.called("diff --name-only HEAD~1")


def test_changed_files_since_previous_commit():
    runner = FakeRunner(
        {
            "rev-parse --verify --quiet HEAD~1": "abc123\n",
            "diff --name-only HEAD~1": "a.ts\nb.ts\n",
        }
    )
    probe = GitStateProbe("/repo", runner)
    assert probe.changed_files_since_previous_commit() == ["a.ts", "b.ts"]


def test_mutations_raise_git_error_and_push_error():
    runner = FakeRunner({"commit": _fail("nothing to commit"), "push": _fail("rejected")})
    repo = GitRepo("/repo", runner)
    with pytest.raises(GitError) as ei:
        repo.commit("chore: update")
    assert not isinstance(ei.value, GitProbeError)
    with pytest.raises(PushError):
        repo.push()


def test_commit_passes_message_as_single_argument():
    runner = FakeRunner()
    GitRepo("/repo", runner).commit('fix: handle "quoted" $HOME')
    assert runner.calls[-1] == ["git", "commit", "-m", 'fix: handle "quoted" $HOME']


def test_stage_all_stages_whole_tree():
    runner = FakeRunner()
    GitRepo("/repo", runner).stage_all()
    assert runner.git_calls() == ["add -A"]


@pytest.mark.integration
def test_probe_against_real_repository(git_repo, run_git):
    probe = GitRepo(git_repo)
    assert probe.has_pending_changes() is False
    assert probe.changed_files_since_previous_commit() == []

    (git_repo / "app.ts").write_text("export {}\n")
    assert probe.has_pending_changes() is True
    assert probe.staged_files() == []

    probe.stage_all()
    assert probe.staged_files() == ["app.ts"]
    assert "app.ts" in probe.staged_diff()
    assert probe.has_unresolved_conflicts() is False

    probe.commit("feat: add app")
    assert probe.has_pending_changes() is False
    assert probe.changed_files_since_previous_commit() == ["app.ts"]
    log = run_git(git_repo, "log", "-1", "--pretty=%s").stdout.strip()
    assert log == "feat: add app"


@pytest.mark.integration
def test_probe_outside_repository_raises(tmp_path):
    if shutil.which("git") is None:
        pytest.skip("git executable not available")
    plain = tmp_path / "plain"
    plain.mkdir()
    # keep git from discovering an enclosing repository
    (plain / ".git").write_text("gitdir: /nonexistent\n")
    with pytest.raises(GitProbeError):
        GitStateProbe(plain).has_pending_changes()
