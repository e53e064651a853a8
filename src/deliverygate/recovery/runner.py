"""End-to-end mainline recovery for one completed workflow run."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from deliverygate.artifacts.writer import TimestampMode, write_stage_artifact
from deliverygate.recovery.decision import (
    DeterministicJobs,
    RecoveryAction,
    RecoveryInputs,
    RecoveryReason,
    collect_failed_job_names,
    decide_recovery_action,
    is_recovery_revert_commit,
)
from deliverygate.recovery.github import GitHubClient
from deliverygate.recovery.revert import RevertRequest, perform_auto_revert

logger = logging.getLogger(__name__)

RECOVERY_STAGE = "main-recovery"


@dataclass(frozen=True)
class WorkflowRunEvent:
    """The completed workflow run that triggered recovery."""

    run_id: str
    workflow_name: str
    event: str
    head_branch: str
    head_sha: str
    conclusion: str
    run_attempt: int = 1
    html_url: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> WorkflowRunEvent:
        """Build from a ``workflow_run`` webhook payload."""
        run = payload.get("workflow_run")
        if not isinstance(run, dict):
            raise ValueError("event payload has no workflow_run object")
        try:
            attempt = int(run.get("run_attempt") or 1)
        except (TypeError, ValueError):
            attempt = 1
        head_sha = str(run.get("head_sha") or "").strip()
        if not head_sha:
            raise ValueError("workflow_run.head_sha is missing")
        return cls(
            run_id=str(run.get("id") or "").strip(),
            workflow_name=str(run.get("name") or "").strip(),
            event=str(run.get("event") or "").strip(),
            head_branch=str(run.get("head_branch") or "").strip(),
            head_sha=head_sha,
            conclusion=str(run.get("conclusion") or "").strip(),
            run_attempt=max(attempt, 1),
            html_url=run.get("html_url") or None,
        )


@dataclass(frozen=True)
class RecoveryRunResult:
    action: RecoveryAction
    reason: RecoveryReason
    hard_deterministic_failure: bool
    failed_jobs: tuple[str, ...]
    recovery_revert_commit: bool
    revert_commit_sha: str | None
    artifact_path: Path

    @property
    def code(self) -> str:
        return self.reason.value


def recover_main(
    event: WorkflowRunEvent,
    client: GitHubClient,
    *,
    repo_root: Path,
    artifact_root: Path,
    target_branch: str = "main",
    timestamp_mode: TimestampMode = "now",
    allow_list: DeterministicJobs | None = None,
    recovery_run_url: str | None = None,
) -> RecoveryRunResult:
    """Decide and carry out the recovery action, then record it as an artifact."""
    base: dict[str, Any] = {
        "repository": client.repository,
        "workflowName": event.workflow_name,
        "sourceRunId": event.run_id,
        "sourceRunAttempt": event.run_attempt,
        "sourceRunHtmlUrl": event.html_url,
        "sourceEvent": event.event,
        "headBranch": event.head_branch,
        "headSha": event.head_sha,
        "conclusion": event.conclusion,
        "targetBranch": target_branch,
        "recoveryRunHtmlUrl": recovery_run_url,
    }

    failed_jobs: tuple[str, ...] = ()
    recovery_revert = False
    hard = False
    revert_sha: str | None = None

    if event.event != "push" or event.head_branch != target_branch:
        action, reason = RecoveryAction.NOOP, RecoveryReason.SOURCE_NOT_MAIN_PUSH_EVENT
    else:
        failed_jobs = collect_failed_job_names(client.list_run_jobs(event.run_id))
        commit = client.get_commit(event.head_sha)
        recovery_revert = is_recovery_revert_commit(
            message=str((commit.get("commit") or {}).get("message") or ""),
            author_login=str((commit.get("author") or {}).get("login") or ""),
            committer_login=str((commit.get("committer") or {}).get("login") or ""),
        )

        decision = decide_recovery_action(
            RecoveryInputs(
                workflow_name=event.workflow_name,
                conclusion=event.conclusion,
                run_attempt=event.run_attempt,
                failed_job_names=failed_jobs,
                recovery_revert_commit=recovery_revert,
            ),
            allow_list,
        )
        action, reason = decision.action, decision.reason
        hard = decision.hard_deterministic_failure
        logger.info("recovery decision for %s: %s (%s)", event.head_sha, action.value, reason.value)

        if decision.action is RecoveryAction.RERUN_FAILED_JOBS:
            client.rerun_failed_jobs(event.run_id)
        elif decision.action is RecoveryAction.REVERT_HEAD_COMMIT:
            outcome = perform_auto_revert(
                RevertRequest(
                    target_branch=target_branch,
                    head_sha=event.head_sha,
                    workflow_name=event.workflow_name,
                    source_run_id=event.run_id,
                    source_run_attempt=event.run_attempt,
                ),
                repo_root=repo_root,
            )
            action, reason, revert_sha = outcome.action, outcome.reason, outcome.revert_commit_sha

    path = write_stage_artifact(
        artifact_root,
        stage=RECOVERY_STAGE,
        sha=event.head_sha,
        name="result",
        payload={
            **base,
            "action": action.value,
            "reasonCode": reason.value,
            "hardDeterministicFailure": hard,
            "failedJobs": list(failed_jobs),
            "recoveryRevertCommit": recovery_revert,
            "revertCommitSha": revert_sha,
        },
        schema_name="recovery_result",
        timestamp_mode=timestamp_mode,
    )

    return RecoveryRunResult(
        action=action,
        reason=reason,
        hard_deterministic_failure=hard,
        failed_jobs=failed_jobs,
        recovery_revert_commit=recovery_revert,
        revert_commit_sha=revert_sha,
        artifact_path=path,
    )
