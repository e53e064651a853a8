"""Tests for the automatic head-commit revert against a real git remote."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from deliverygate.exec import ExecError, ExecResult
from deliverygate.exec import run_git as real_run_git
from deliverygate.recovery import RecoveryReason, RevertRequest, perform_auto_revert
from deliverygate.recovery.decision import RECOVERY_TRAILER


def _git(repo: Path, *args: str) -> str:
    result = subprocess.run(["git", *args], cwd=repo, check=True, capture_output=True, text=True)
    return result.stdout.strip()


@pytest.fixture
def pushed_repo(tmp_path: Path, git_repo: Path) -> tuple[Path, Path, str]:
    """A clone with a bare origin whose ``main`` head adds ``feature.txt``."""
    origin = tmp_path / "origin.git"
    origin.mkdir()
    _git(origin, "init", "--bare", "-b", "main")
    _git(git_repo, "remote", "add", "origin", str(origin))

    (git_repo / "feature.txt").write_text("feature\n", encoding="utf-8")
    _git(git_repo, "add", "feature.txt")
    _git(git_repo, "commit", "-m", "feat: add feature")
    _git(git_repo, "push", "origin", "main")
    return git_repo, origin, _git(git_repo, "rev-parse", "HEAD")


def _request(head_sha: str) -> RevertRequest:
    return RevertRequest(
        target_branch="main",
        head_sha=head_sha,
        workflow_name="Integration Gate",
        source_run_id="1001",
        source_run_attempt=2,
    )


def test_revert_is_pushed(pushed_repo: tuple[Path, Path, str]) -> None:
    repo, origin, head = pushed_repo

    result = perform_auto_revert(_request(head), repo_root=repo)

    assert result.reason is RecoveryReason.AUTO_REVERT_PUSHED
    assert result.revert_commit_sha == _git(origin, "rev-parse", "main")
    assert not (repo / "feature.txt").exists()

    message = _git(origin, "log", "-1", "--format=%B", "main")
    assert message.startswith('Revert "feat: add feature"')
    assert RECOVERY_TRAILER in message
    assert f"Failed-Head-Sha: {head}" in message
    assert _git(origin, "log", "-1", "--format=%an", "main") == "github-actions[bot]"


def test_advanced_main_skips_revert(pushed_repo: tuple[Path, Path, str]) -> None:
    repo, origin, head = pushed_repo
    (repo / "later.txt").write_text("later\n", encoding="utf-8")
    _git(repo, "add", "later.txt")
    _git(repo, "commit", "-m", "feat: later change")
    _git(repo, "push", "origin", "main")
    advanced = _git(repo, "rev-parse", "HEAD")

    result = perform_auto_revert(_request(head), repo_root=repo)

    assert result.reason is RecoveryReason.MAIN_ADVANCED_NO_REVERT
    assert result.revert_commit_sha is None
    assert _git(origin, "rev-parse", "main") == advanced


def test_failed_commit_restores_working_tree(
    pushed_repo: tuple[Path, Path, str], monkeypatch: pytest.MonkeyPatch
) -> None:
    repo, origin, head = pushed_repo

    def flaky_run_git(args: list[str], *, repo_root: Path, check: bool = True):
        if args[0] == "commit":
            result = real_run_git(["rev-parse", "HEAD"], repo_root=repo_root)
            raise ExecError(result)
        return real_run_git(args, repo_root=repo_root, check=check)

    monkeypatch.setattr("deliverygate.recovery.revert.run_git", flaky_run_git)

    with pytest.raises(ExecError):
        perform_auto_revert(_request(head), repo_root=repo)

    assert _git(repo, "rev-parse", "HEAD") == head
    assert _git(repo, "status", "--porcelain") == ""
    assert (repo / "feature.txt").exists()
    assert _git(origin, "rev-parse", "main") == head


def test_hung_abort_still_resets_and_keeps_original_error(
    pushed_repo: tuple[Path, Path, str], monkeypatch: pytest.MonkeyPatch
) -> None:
    repo, origin, head = pushed_repo
    calls: list[list[str]] = []

    def hanging_run_git(args: list[str], *, repo_root: Path, check: bool = True):
        calls.append(args)
        if args[0] == "commit":
            raise ExecError(ExecResult(("git", "commit"), repo_root, 1, "", "commit rejected"))
        if args == ["revert", "--abort"]:
            raise ExecError(ExecResult(("git", "revert", "--abort"), repo_root, -1, "", "timed out after 120s"))
        return real_run_git(args, repo_root=repo_root, check=check)

    monkeypatch.setattr("deliverygate.recovery.revert.run_git", hanging_run_git)

    with pytest.raises(ExecError, match="commit rejected"):
        perform_auto_revert(_request(head), repo_root=repo)

    assert ["reset", "--hard", head] in calls
    assert _git(repo, "rev-parse", "HEAD") == head
    assert _git(repo, "status", "--porcelain") == ""
    assert _git(origin, "rev-parse", "main") == head
