"""Installation and environment integrity checks (doctor command).

Validates that deliverygate can load its packaged schemas, read the policy
document, and reach the source-control and CI collaborators it depends on.
"""

from __future__ import annotations

import platform
import shutil
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Literal

from deliverygate.artifacts.canonical_json import write_json
from deliverygate.artifacts.writer import TimestampMode, get_timestamp
from deliverygate.config import Settings
from deliverygate.policy.loader import load_policy
from deliverygate.policy.types import PolicyError
from deliverygate.utils.schema_registry import SchemaRegistry

REQUIRED_SCHEMAS: tuple[str, ...] = (
    "contract_result",
    "docs_drift_result",
    "fresh_head_result",
    "gate_result",
    "high_risk_result",
    "recovery_result",
    "release_decision",
    "scope_result",
)


@dataclass
class CheckItem:
    """Individual check result."""

    id: str
    status: Literal["pass", "fail", "warn"]
    message: str
    remediation: list[str] = field(default_factory=list)


@dataclass
class DoctorReport:
    """Complete doctor check report."""

    schema_version: str = "1"
    generated_at: str = ""
    timestamp_mode: str = "now"
    status: Literal["passed", "failed"] = "passed"
    environment: dict[str, Any] = field(default_factory=dict)
    schemas: dict[str, Any] = field(default_factory=dict)
    checks: dict[str, Any] = field(default_factory=dict)


def _check_schema_registry() -> CheckItem:
    """Schema package data must ship every artifact schema."""
    available = set(SchemaRegistry().available)
    missing = sorted(set(REQUIRED_SCHEMAS) - available)
    if missing:
        return CheckItem(
            id="schema_registry",
            status="fail",
            message=f"Missing required schemas: {missing}. Found: {len(available)} schemas",
            remediation=[
                "Schema bundling is broken in wheel packaging.",
                "Ensure deliverygate_schemas is listed in [tool.hatch.build.targets.wheel] packages.",
                "Then reinstall: pip install --force-reinstall -e .",
            ],
        )
    return CheckItem(
        id="schema_registry",
        status="pass",
        message=f"Schema registry OK: {len(available)} schemas available",
    )


def _check_policy(policy_path: Path) -> CheckItem:
    try:
        policy = load_policy(policy_path)
    except PolicyError as e:
        return CheckItem(
            id="policy",
            status="fail",
            message=str(e),
            remediation=[
                f"Fix the policy document at {policy_path}",
                "Or point DELIVERYGATE_POLICY_PATH / --policy at the right file",
                "Validate with: deliverygate policy validate",
            ],
        )
    return CheckItem(
        id="policy",
        status="pass",
        message=f"Policy {policy_path} is valid (version {policy.version})",
    )


def _check_git(repo_root: Path) -> CheckItem:
    git_exe = shutil.which("git") is not None
    git_repo = any((parent / ".git").exists() for parent in [repo_root, *repo_root.parents])
    if git_exe and git_repo:
        return CheckItem(id="git_availability", status="pass", message="Git is available and repository detected")
    return CheckItem(
        id="git_availability",
        status="warn",
        message=f"Git not fully available (exe: {git_exe}, repo: {git_repo})",
        remediation=["Install git and run from within the repository checkout"],
    )


def _check_github(settings: Settings) -> CheckItem:
    if settings.github_token and settings.github_repository:
        return CheckItem(
            id="github_credentials",
            status="pass",
            message=f"GitHub credentials present for {settings.github_repository}",
        )
    return CheckItem(
        id="github_credentials",
        status="warn",
        message="GITHUB_TOKEN or GITHUB_REPOSITORY is not set; recover-main will not run",
        remediation=["Export GITHUB_TOKEN and GITHUB_REPOSITORY in the recovery workflow"],
    )


def run_doctor(
    settings: Settings,
    *,
    repo_root: Path,
    out_dir: Path | None = None,
    timestamp_mode: TimestampMode = "now",
) -> DoctorReport:
    """Run the integrity checks and optionally write JSON and Markdown reports."""
    report = DoctorReport(
        generated_at=get_timestamp(timestamp_mode),
        timestamp_mode=timestamp_mode,
        environment={
            "python_version": platform.python_version(),
            "platform": platform.platform(),
            "cwd": str(Path.cwd()),
        },
    )

    checks = [
        _check_schema_registry(),
        _check_policy(settings.policy_path),
        _check_git(repo_root),
        _check_github(settings),
    ]

    available = list(SchemaRegistry().available)
    report.schemas = {
        "available": available,
        "required": list(REQUIRED_SCHEMAS),
        "missing": [name for name in REQUIRED_SCHEMAS if name not in available],
    }

    failed = sum(1 for c in checks if c.status == "fail")
    report.checks = {
        "passed": sum(1 for c in checks if c.status == "pass"),
        "failed": failed,
        "warnings": sum(1 for c in checks if c.status == "warn"),
        "items": [asdict(c) for c in checks],
    }
    report.status = "passed" if failed == 0 else "failed"

    if out_dir is not None:
        write_json(out_dir / "DOCTOR_REPORT.json", asdict(report))
        (out_dir / "DOCTOR_REPORT.md").write_text(render_markdown(report, checks), encoding="utf-8")

    return report


def render_markdown(report: DoctorReport, checks: list[CheckItem]) -> str:
    """Human-readable doctor report, one section per check."""
    lines = [
        "# deliverygate Doctor Report",
        "",
        f"**Status**: {report.status.upper()} ({report.generated_at}, {report.timestamp_mode})",
        "",
        "| Passed | Failed | Warnings |",
        "| --- | --- | --- |",
        f"| {report.checks['passed']} | {report.checks['failed']} | {report.checks['warnings']} |",
        "",
    ]
    for check in checks:
        lines.extend([f"## {check.id}: {check.status}", "", check.message, ""])
        if check.remediation:
            lines.extend(f"- {step}" for step in check.remediation)
            lines.append("")
    return "\n".join(lines)
