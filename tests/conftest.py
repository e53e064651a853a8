"""Pytest configuration and fixtures for deliverygate tests."""

from __future__ import annotations

import copy
import json
import subprocess
from pathlib import Path
from typing import Any

import pytest

from deliverygate.policy import Policy

POLICY_DATA: dict[str, Any] = {
    "version": "1",
    "scopeRules": {
        "runtime": ["apps/api/**", "apps/web/**", "packages/**"],
        "desktop": ["apps/desktop/**"],
        "infra": ["infra/**"],
        "identity": ["infra/identity/**", "apps/api/src/auth/**"],
        "docsOnly": ["docs/**", "**/*.md"],
        "migration": ["apps/api/migrations/**"],
        "infraRollout": ["infra/rollout/**"],
    },
    "commitStage": {
        "requiredChecks": ["determine-scope", "commit-test-suite"],
        "slo": {"targetSeconds": 600, "mode": "observe"},
    },
    "integrationGate": {"requiredChecks": ["determine-scope", "build-compile"]},
    "acceptanceStage": {
        "requiredChecks": ["load-release-candidate"],
        "requiredFlowIds": ["sign-in", "checkout"],
    },
    "deploymentStage": {"requiredChecks": ["deploy-release-candidate"]},
    "docsDriftRules": {
        "blockingPaths": ["apps/**", "infra/**"],
        "docsCriticalPaths": ["packages/contracts/**", "schemas/**/*.json"],
        "docTargets": ["docs/**", "README.md"],
    },
    "highRiskMainlinePolicy": {
        "ruleId": "HIGH_RISK_MAINLINE",
        "mainBranch": "main",
        "requirePullRequestOnMain": True,
        "codeOwners": ["@platform-team"],
        "categories": [
            {
                "id": "identity-config",
                "patterns": ["infra/identity/**"],
                "rationale": "Identity changes affect every sign-in.",
            },
            {
                "id": "ci-workflows",
                "patterns": [".github/workflows/**"],
                "rationale": "Pipeline definitions gate every release.",
            },
        ],
    },
}


def pytest_sessionfinish(session, exitstatus):
    """Check that coverage data was collected if --cov was requested.

    This prevents silent "no data collected" scenarios that produce 0% coverage
    without failing the test run.
    """
    cov_enabled = any("--cov" in str(arg) for arg in session.config.args)
    if not cov_enabled:
        return

    coverage_files = list(Path.cwd().glob(".coverage*"))
    if not coverage_files:
        pytest.exit(
            "Coverage was enabled but no data was collected. "
            "Check that tests import from 'deliverygate' (the package) not 'src/deliverygate'.",
            returncode=1,
        )


@pytest.fixture
def policy_data() -> dict[str, Any]:
    """A fresh, mutable copy of a valid policy document."""
    return copy.deepcopy(POLICY_DATA)


@pytest.fixture
def policy(policy_data: dict[str, Any]) -> Policy:
    return Policy.from_dict(policy_data)


@pytest.fixture
def policy_file(tmp_path: Path, policy_data: dict[str, Any]) -> Path:
    path = tmp_path / "pipeline-policy.json"
    path.write_text(json.dumps(policy_data, indent=2), encoding="utf-8")
    return path


def _git(repo: Path, *args: str) -> str:
    result = subprocess.run(["git", *args], cwd=repo, check=True, capture_output=True, text=True)
    return result.stdout.strip()


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """Create a temporary git repository on ``main`` with one commit."""
    repo = tmp_path / "repo"
    repo.mkdir()
    _git(repo, "init", "-b", "main")
    _git(repo, "config", "user.email", "test@example.com")
    _git(repo, "config", "user.name", "Test User")
    _git(repo, "config", "commit.gpgsign", "false")
    (repo / "README.md").write_text("# repo\n", encoding="utf-8")
    _git(repo, "add", "README.md")
    _git(repo, "commit", "-m", "init")
    return repo
