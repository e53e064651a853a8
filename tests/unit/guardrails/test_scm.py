"""Tests for git lookups against a real repository."""

from __future__ import annotations

import subprocess
from pathlib import Path

from deliverygate import scm


def _git(repo: Path, *args: str) -> str:
    result = subprocess.run(["git", *args], cwd=repo, check=True, capture_output=True, text=True)
    return result.stdout.strip()


def test_changed_files_between_commits(git_repo: Path) -> None:
    base = scm.head_sha(git_repo)
    (git_repo / "apps").mkdir()
    (git_repo / "apps" / "server.ts").write_text("export {}\n", encoding="utf-8")
    (git_repo / "README.md").write_text("# repo\n\nmore\n", encoding="utf-8")
    _git(git_repo, "add", ".")
    _git(git_repo, "commit", "-m", "feat: server")
    head = scm.head_sha(git_repo)

    assert scm.parent_sha(git_repo, head) == base
    assert scm.changed_files(git_repo, base, head) == ["README.md", "apps/server.ts"]


def test_staged_files_excludes_deletions(git_repo: Path) -> None:
    (git_repo / "new.txt").write_text("new\n", encoding="utf-8")
    _git(git_repo, "add", "new.txt")
    _git(git_repo, "rm", "-q", "README.md")

    assert scm.staged_files(git_repo) == ["new.txt"]


def test_current_branch_prefers_ci_variables(git_repo: Path) -> None:
    assert scm.current_branch(git_repo, {"GITHUB_REF_NAME": "release"}) == "release"
    assert scm.current_branch(git_repo, {"GITHUB_REF": "refs/heads/hotfix"}) == "hotfix"
    assert scm.current_branch(git_repo, {"GITHUB_REF": "refs/tags/v1"}) == "main"
    assert scm.current_branch(git_repo) == "main"


def test_current_branch_detached_head(git_repo: Path) -> None:
    _git(git_repo, "checkout", "-q", "--detach")

    assert scm.current_branch(git_repo, {}) == ""


def test_remote_branch_head_sees_pushes_from_elsewhere(tmp_path: Path, git_repo: Path) -> None:
    origin = tmp_path / "origin.git"
    origin.mkdir()
    _git(origin, "init", "--bare", "-b", "main")
    _git(git_repo, "remote", "add", "origin", str(origin))
    _git(git_repo, "push", "origin", "main")

    other = tmp_path / "other"
    subprocess.run(["git", "clone", "-q", str(origin), str(other)], check=True, capture_output=True)
    _git(other, "config", "user.email", "other@example.com")
    _git(other, "config", "user.name", "Other User")
    _git(other, "config", "commit.gpgsign", "false")
    (other / "other.txt").write_text("other\n", encoding="utf-8")
    _git(other, "add", "other.txt")
    _git(other, "commit", "-m", "feat: other")
    _git(other, "push", "-q", "origin", "main")

    assert scm.remote_branch_head(git_repo, "origin", "main") == _git(other, "rev-parse", "HEAD")
    assert scm.head_sha(git_repo) != _git(other, "rev-parse", "HEAD")
