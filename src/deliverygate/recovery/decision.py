"""Mainline recovery decision: rerun once, then revert.

``decide_recovery_action`` is a pure function over an already-resolved
``RecoveryInputs`` value. Only allow-listed workflows whose failures are
confined to known deterministic jobs are eligible for automatic action.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

DETERMINISTIC_FAILURE_JOBS: dict[str, frozenset[str]] = {
    "Integration Gate": frozenset(
        {
            "determine-scope",
            "build-compile",
            "migration-safety",
            "runtime-contract-smoke",
            "minimal-integration-smoke",
            "integration-gate",
        }
    ),
}

RECOVERY_TRAILER = "Main-Red-Recovery: true"
_TRAILER_PATTERN = re.compile(r"^Main-Red-Recovery:\s*true\b", re.IGNORECASE | re.MULTILINE)


class RecoveryAction(str, Enum):
    NOOP = "noop"
    RERUN_FAILED_JOBS = "rerun-failed-jobs"
    REVERT_HEAD_COMMIT = "revert-head-commit"


class RecoveryReason(str, Enum):
    WORKFLOW_NOT_SUPPORTED = "WORKFLOW_NOT_SUPPORTED"
    HEAD_ALREADY_RECOVERY_REVERT = "HEAD_ALREADY_RECOVERY_REVERT"
    NOT_HARD_DETERMINISTIC_FAILURE = "NOT_HARD_DETERMINISTIC_FAILURE"
    RERUN_FAILED_JOBS_REQUESTED = "RERUN_FAILED_JOBS_REQUESTED"
    AUTO_REVERT_REQUIRED = "AUTO_REVERT_REQUIRED"
    MAIN_ADVANCED_NO_REVERT = "MAIN_ADVANCED_NO_REVERT"
    AUTO_REVERT_PUSHED = "AUTO_REVERT_PUSHED"
    SOURCE_NOT_MAIN_PUSH_EVENT = "SOURCE_NOT_MAIN_PUSH_EVENT"


@dataclass(frozen=True)
class RecoveryInputs:
    workflow_name: str
    conclusion: str
    run_attempt: int
    failed_job_names: tuple[str, ...] = ()
    recovery_revert_commit: bool = False


@dataclass(frozen=True)
class RecoveryDecision:
    action: RecoveryAction
    reason: RecoveryReason
    hard_deterministic_failure: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action.value,
            "reasonCode": self.reason.value,
            "hardDeterministicFailure": self.hard_deterministic_failure,
        }


def collect_failed_job_names(jobs: Iterable[Mapping[str, Any]]) -> tuple[str, ...]:
    """Names of jobs whose conclusion is ``failure``, in listing order."""
    names: list[str] = []
    for job in jobs:
        if str(job.get("conclusion") or "").lower() != "failure":
            continue
        name = str(job.get("name") or "").strip()
        if name:
            names.append(name)
    return tuple(names)


def is_recovery_revert_commit(message: str, author_login: str = "", committer_login: str = "") -> bool:
    """Detect a commit produced by a previous recovery run.

    The ``Main-Red-Recovery: true`` trailer on its own line is authoritative.
    Failing that, a ``Revert "`` subject counts only when both the author and
    the committer are bot accounts.
    """
    text = message or ""
    if _TRAILER_PATTERN.search(text):
        return True
    bot_actor = (author_login or "").lower().endswith("[bot]") and (
        committer_login or ""
    ).lower().endswith("[bot]")
    return text.startswith('Revert "') and bot_actor


@dataclass(frozen=True)
class DeterministicJobs:
    """Allow-list of workflows and their deterministic job sets."""

    workflows: Mapping[str, frozenset[str]] = field(
        default_factory=lambda: dict(DETERMINISTIC_FAILURE_JOBS)
    )

    def supports(self, workflow_name: str) -> bool:
        return workflow_name in self.workflows

    def is_hard_deterministic_failure(
        self, workflow_name: str, conclusion: str, failed_job_names: Iterable[str]
    ) -> bool:
        if (conclusion or "").strip().lower() != "failure":
            return False
        allowed = self.workflows.get(workflow_name)
        names = list(failed_job_names)
        if not allowed or not names:
            return False
        return all(name in allowed for name in names)


def is_hard_deterministic_failure(
    workflow_name: str,
    conclusion: str,
    failed_job_names: Iterable[str],
    allow_list: DeterministicJobs | None = None,
) -> bool:
    return (allow_list or DeterministicJobs()).is_hard_deterministic_failure(
        workflow_name, conclusion, failed_job_names
    )


def decide_recovery_action(
    inputs: RecoveryInputs, allow_list: DeterministicJobs | None = None
) -> RecoveryDecision:
    """Decide between noop, one rerun of failed jobs, and reverting HEAD."""
    jobs = allow_list or DeterministicJobs()

    if not jobs.supports(inputs.workflow_name):
        return RecoveryDecision(RecoveryAction.NOOP, RecoveryReason.WORKFLOW_NOT_SUPPORTED)

    if inputs.recovery_revert_commit:
        return RecoveryDecision(RecoveryAction.NOOP, RecoveryReason.HEAD_ALREADY_RECOVERY_REVERT)

    hard = jobs.is_hard_deterministic_failure(
        inputs.workflow_name, inputs.conclusion, inputs.failed_job_names
    )
    if not hard:
        return RecoveryDecision(RecoveryAction.NOOP, RecoveryReason.NOT_HARD_DETERMINISTIC_FAILURE)

    if inputs.run_attempt <= 1:
        return RecoveryDecision(
            RecoveryAction.RERUN_FAILED_JOBS, RecoveryReason.RERUN_FAILED_JOBS_REQUESTED, True
        )

    return RecoveryDecision(RecoveryAction.REVERT_HEAD_COMMIT, RecoveryReason.AUTO_REVERT_REQUIRED, True)
