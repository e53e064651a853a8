"""Block unreviewed high-risk commits on the mainline branch."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Literal

from deliverygate.policy.types import HighRiskCategory, HighRiskMainlinePolicy
from deliverygate.scope.classifier import normalize_changed_files
from deliverygate.scope.globs import filter_matching

PR_COMMANDS: tuple[str, ...] = (
    "git switch -c <type>/<scope>-<summary>",
    'git commit -m "<type>(<scope>): <summary>"',
    "git push -u origin <branch>",
    "gh pr create --fill",
)


@dataclass(frozen=True)
class HighRiskMatch:
    id: str
    rationale: str
    matched_files: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "rationale": self.rationale, "matchedFiles": list(self.matched_files)}


@dataclass(frozen=True)
class HighRiskCheckResult:
    status: Literal["pass", "fail"]
    reason_code: str
    branch: str
    staged_files: tuple[str, ...]
    matches: tuple[HighRiskMatch, ...] = ()
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "reasonCode": self.reason_code,
            "branch": self.branch,
            "stagedFiles": list(self.staged_files),
            "matches": [match.to_dict() for match in self.matches],
        }


def map_high_risk_matches(
    staged_files: Iterable[str], categories: Iterable[HighRiskCategory]
) -> tuple[HighRiskMatch, ...]:
    """Categories with at least one matching staged file, in policy order."""
    files = list(staged_files)
    matches = []
    for category in categories:
        matched = filter_matching(files, category.patterns)
        if matched:
            matches.append(HighRiskMatch(category.id, category.rationale, tuple(matched)))
    return tuple(matches)


def build_failure_message(
    policy: HighRiskMainlinePolicy, branch: str, matches: Iterable[HighRiskMatch]
) -> str:
    match_list = list(matches)
    lines = [
        f"{policy.rule_id} High-risk mainline commit blocked",
        "",
        "Why this was flagged:",
        f"- Branch: {branch or '(unknown)'}",
        f"- Matched high-risk categories: {len(match_list)}",
    ]
    for match in match_list:
        lines.append(f"- {match.id}")
        lines.append(f"  Rationale: {match.rationale}")
        lines.append("  Triggered staged files:")
        lines.extend(f"  - {path}" for path in match.matched_files)

    lines.extend(["", "Required next action:"])
    action = "Open a PR reviewed by CODEOWNER before integrating this high-risk change"
    if policy.require_pull_request_on_main:
        lines.append(f"{action}.")
    else:
        lines.append(f"{action} (policy recommendation).")
    lines.append("Suggested commands:")
    lines.extend(f"  {command}" for command in PR_COMMANDS)

    lines.extend(
        [
            "",
            "Code-owner review:",
            f"- Request review from {', '.join(policy.code_owners)}.",
        ]
    )
    return "\n".join(lines)


def run_high_risk_mainline_check(
    policy: HighRiskMainlinePolicy, branch: str, staged_files: Iterable[str]
) -> HighRiskCheckResult:
    """Evaluate staged files on ``branch`` against the high-risk categories."""
    files = tuple(normalize_changed_files(staged_files))

    if branch != policy.main_branch:
        return HighRiskCheckResult("pass", "NOT_MAIN_BRANCH", branch, files)
    if not files:
        return HighRiskCheckResult("pass", "NO_STAGED_FILES", branch, files)

    matches = map_high_risk_matches(files, policy.categories)
    if not matches:
        return HighRiskCheckResult("pass", "NO_HIGH_RISK_MATCHES", branch, files)

    return HighRiskCheckResult(
        "fail",
        "HIGH_RISK_MAINLINE_PR_REQUIRED",
        branch,
        files,
        matches,
        message=build_failure_message(policy, branch, matches),
    )
