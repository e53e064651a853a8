"""Source control lookups used by the CLI."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

from deliverygate.exec import git_output, run_git
from deliverygate.scope.globs import normalize_path


def _lines(output: str) -> list[str]:
    return sorted({normalize_path(line) for line in output.splitlines() if line.strip()})


def head_sha(repo_root: Path) -> str:
    return git_output(["rev-parse", "HEAD"], repo_root=repo_root)


def parent_sha(repo_root: Path, sha: str) -> str:
    return git_output(["rev-parse", f"{sha}^"], repo_root=repo_root)


def changed_files(repo_root: Path, base_sha: str, head: str) -> list[str]:
    """Paths changed between the merge base of ``base_sha`` and ``head``."""
    return _lines(git_output(["diff", "--name-only", f"{base_sha}...{head}"], repo_root=repo_root))


def staged_files(repo_root: Path) -> list[str]:
    """Added, copied, modified or renamed paths in the index."""
    return _lines(
        git_output(["diff", "--cached", "--name-only", "--diff-filter=ACMR"], repo_root=repo_root)
    )


def current_branch(repo_root: Path, env: Mapping[str, str] | None = None) -> str:
    """Resolve the branch from CI variables, else from the checkout.

    Returns an empty string on a detached HEAD.
    """
    environ = env or {}
    explicit = environ.get("GITHUB_REF_NAME", "").strip()
    if explicit:
        return explicit
    ref = environ.get("GITHUB_REF", "").strip()
    if ref.startswith("refs/heads/"):
        return ref[len("refs/heads/") :]

    completed = run_git(["symbolic-ref", "--quiet", "--short", "HEAD"], repo_root=repo_root, check=False)
    if completed.returncode != 0:
        return ""
    return completed.stdout.strip()


def remote_branch_head(repo_root: Path, remote: str, branch: str) -> str:
    """Fetch ``remote/branch`` and return the commit it points at."""
    run_git(["fetch", "--no-tags", "--prune", remote, branch], repo_root=repo_root)
    return git_output(["rev-parse", f"{remote}/{branch}"], repo_root=repo_root)
