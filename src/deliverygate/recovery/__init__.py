"""Mainline auto-recovery: rerun once, then revert."""

from deliverygate.recovery.decision import (
    DETERMINISTIC_FAILURE_JOBS,
    DeterministicJobs,
    RecoveryAction,
    RecoveryDecision,
    RecoveryInputs,
    RecoveryReason,
    collect_failed_job_names,
    decide_recovery_action,
    is_hard_deterministic_failure,
    is_recovery_revert_commit,
)
from deliverygate.recovery.github import GitHubApiError, GitHubClient
from deliverygate.recovery.revert import RevertRequest, RevertResult, perform_auto_revert
from deliverygate.recovery.runner import RecoveryRunResult, WorkflowRunEvent, recover_main

__all__ = [
    "DETERMINISTIC_FAILURE_JOBS",
    "DeterministicJobs",
    "GitHubApiError",
    "GitHubClient",
    "RecoveryAction",
    "RecoveryDecision",
    "RecoveryInputs",
    "RecoveryReason",
    "RecoveryRunResult",
    "RevertRequest",
    "RevertResult",
    "WorkflowRunEvent",
    "collect_failed_job_names",
    "decide_recovery_action",
    "is_hard_deterministic_failure",
    "is_recovery_revert_commit",
    "perform_auto_revert",
    "recover_main",
]
