"""Automatic revert of a failing mainline head commit.

This is the only path that writes to source control. The remote branch head
is re-read right before mutating; if it moved past the failing commit the
revert is skipped. Any failure while reverting or committing aborts the
revert and hard-resets to the failing commit before the error propagates.
"""

from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path

from deliverygate.exec import ExecError, git_output, run_git
from deliverygate.recovery.decision import RECOVERY_TRAILER, RecoveryAction, RecoveryReason

logger = logging.getLogger(__name__)

BOT_NAME = "github-actions[bot]"
BOT_EMAIL = "github-actions[bot]@users.noreply.github.com"


@dataclass(frozen=True)
class RevertRequest:
    target_branch: str
    head_sha: str
    workflow_name: str
    source_run_id: str
    source_run_attempt: int


@dataclass(frozen=True)
class RevertResult:
    action: RecoveryAction
    reason: RecoveryReason
    revert_commit_sha: str | None = None


def build_revert_message(subject: str, request: RevertRequest) -> str:
    """Commit message carrying the recovery trailer and failure provenance."""
    lines = [
        f'Revert "{subject}"',
        "",
        "Automatically reverted by main-red-recovery after repeated deterministic gate failure.",
        RECOVERY_TRAILER,
        f"Failed-Workflow: {request.workflow_name}",
        f"Failed-Run-Id: {request.source_run_id}",
        f"Failed-Run-Attempt: {request.source_run_attempt}",
        f"Failed-Head-Sha: {request.head_sha}",
    ]
    return "\n".join(lines) + "\n"


def _restore(repo_root: Path, head_sha: str) -> None:
    # Both steps run even if the first one fails; neither may mask the original error.
    for args in (["revert", "--abort"], ["reset", "--hard", head_sha]):
        try:
            completed = run_git(args, repo_root=repo_root, check=False)
        except ExecError as exc:
            logger.error("git %s did not complete: %s", " ".join(args), exc)
            continue
        if completed.returncode != 0:
            logger.warning("git %s: %s", " ".join(args), completed.stderr.strip())


def perform_auto_revert(request: RevertRequest, *, repo_root: Path) -> RevertResult:
    """Revert ``request.head_sha`` on the target branch and push.

    Returns:
        ``MAIN_ADVANCED_NO_REVERT`` when the remote head moved, otherwise
        ``AUTO_REVERT_PUSHED`` with the new commit SHA

    Raises:
        ExecError: If a git step fails; the working tree is restored first
    """
    branch = request.target_branch
    remote_ref = f"origin/{branch}"

    run_git(["fetch", "origin", branch], repo_root=repo_root)
    remote_head = git_output(["rev-parse", remote_ref], repo_root=repo_root)
    if remote_head != request.head_sha:
        logger.warning(
            "%s advanced to %s (failing head %s); skipping revert",
            remote_ref,
            remote_head,
            request.head_sha,
        )
        return RevertResult(RecoveryAction.NOOP, RecoveryReason.MAIN_ADVANCED_NO_REVERT)

    run_git(["checkout", "-B", branch, remote_ref], repo_root=repo_root)
    run_git(["config", "user.name", BOT_NAME], repo_root=repo_root)
    run_git(["config", "user.email", BOT_EMAIL], repo_root=repo_root)

    subject = git_output(["show", "-s", "--format=%s", request.head_sha], repo_root=repo_root)
    message = build_revert_message(subject, request)

    with tempfile.TemporaryDirectory(prefix="main-red-recovery-") as tmp:
        message_path = Path(tmp) / f"{request.head_sha}.txt"
        message_path.write_text(message, encoding="utf-8")
        try:
            run_git(["revert", "--no-commit", request.head_sha], repo_root=repo_root)
            run_git(["commit", "--file", str(message_path)], repo_root=repo_root)
        except ExecError:
            logger.error("revert of %s failed; restoring working tree", request.head_sha)
            _restore(repo_root, request.head_sha)
            raise

    revert_sha = git_output(["rev-parse", "HEAD"], repo_root=repo_root)
    run_git(["push", "origin", f"HEAD:{branch}"], repo_root=repo_root)
    logger.info("pushed revert %s of %s to %s", revert_sha, request.head_sha, branch)

    return RevertResult(
        RecoveryAction.REVERT_HEAD_COMMIT,
        RecoveryReason.AUTO_REVERT_PUSHED,
        revert_commit_sha=revert_sha,
    )
