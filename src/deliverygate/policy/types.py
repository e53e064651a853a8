"""Pipeline policy value objects."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

SloMode = Literal["observe", "enforce"]

SCOPE_DIMENSIONS: tuple[str, ...] = (
    "runtime",
    "desktop",
    "infra",
    "identity",
    "docsOnly",
    "migration",
    "infraRollout",
)

DEFAULT_REQUIRED_REFS: tuple[str, ...] = ("apiRef", "webRef")


class PolicyError(ValueError):
    """Raised when the policy document is malformed.

    This is an environment/configuration error, not a detected violation.
    """


@dataclass(frozen=True)
class ScopeRules:
    """Glob rule sets per scope dimension."""

    runtime: tuple[str, ...]
    desktop: tuple[str, ...]
    infra: tuple[str, ...]
    identity: tuple[str, ...]
    docs_only: tuple[str, ...]
    migration: tuple[str, ...]
    infra_rollout: tuple[str, ...]


@dataclass(frozen=True)
class StageSlo:
    """Timing SLO target and enforcement mode."""

    target_seconds: int
    mode: SloMode


@dataclass(frozen=True)
class StagePolicy:
    """Per-stage required check list (plus optional SLO)."""

    required_checks: tuple[str, ...] = ()
    slo: StageSlo | None = None


@dataclass(frozen=True)
class DocsDriftRules:
    """Path sets driving the two-tier docs drift check."""

    blocking_paths: tuple[str, ...]
    docs_critical_paths: tuple[str, ...]
    doc_targets: tuple[str, ...]


@dataclass(frozen=True)
class HighRiskCategory:
    """A named group of high-risk paths with its review rationale."""

    id: str
    patterns: tuple[str, ...]
    rationale: str


@dataclass(frozen=True)
class HighRiskMainlinePolicy:
    """Rules for blocking unreviewed high-risk commits on the mainline."""

    rule_id: str
    main_branch: str
    require_pull_request_on_main: bool
    code_owners: tuple[str, ...]
    categories: tuple[HighRiskCategory, ...]


@dataclass(frozen=True)
class Policy:
    """Validated, immutable pipeline policy.

    Build instances with ``Policy.from_dict`` or ``load_policy`` only; both
    reject malformed documents at load time.
    """

    version: str
    scope_rules: ScopeRules
    commit_stage: StagePolicy
    integration_gate: StagePolicy
    acceptance_stage: StagePolicy
    deployment_stage: StagePolicy
    docs_drift_rules: DocsDriftRules
    required_flow_ids: tuple[str, ...] = ()
    required_refs: tuple[str, ...] = DEFAULT_REQUIRED_REFS
    require_fresh_head_on_auto: bool = True
    high_risk_mainline_policy: HighRiskMainlinePolicy | None = None

    @classmethod
    def from_dict(cls, data: object) -> Policy:
        """Validate shape and build the policy; raise ``PolicyError`` on the first violation."""
        from deliverygate.policy.loader import parse_policy

        return parse_policy(data)

    def stage(self, stage_key: str) -> StagePolicy:
        """Return the stage policy for a gate stage key."""
        mapping = {
            "commit-stage": self.commit_stage,
            "integration-gate": self.integration_gate,
            "automated-acceptance-test-gate": self.acceptance_stage,
            "deployment-stage": self.deployment_stage,
        }
        if stage_key not in mapping:
            raise KeyError(f"Unknown stage: {stage_key}")
        return mapping[stage_key]
