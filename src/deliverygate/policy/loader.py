"""Pipeline policy loading and fail-fast shape validation.

The policy document is JSON (``.json``) or YAML (``.yaml``/``.yml``). Any
shape violation raises ``PolicyError`` naming the offending field; callers
treat it as an environment error rather than a policy violation.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from deliverygate.policy.types import (
    DEFAULT_REQUIRED_REFS,
    SCOPE_DIMENSIONS,
    DocsDriftRules,
    HighRiskCategory,
    HighRiskMainlinePolicy,
    Policy,
    PolicyError,
    ScopeRules,
    StagePolicy,
    StageSlo,
)

REQUIRED_TOP_LEVEL: tuple[str, ...] = (
    "version",
    "scopeRules",
    "commitStage",
    "acceptanceStage",
    "docsDriftRules",
)

SLO_MODES: tuple[str, ...] = ("observe", "enforce")


def load_policy(policy_path: Path) -> Policy:
    """Read and validate a policy document.

    Raises:
        PolicyError: If the file is missing, unparseable, or malformed
    """
    if not policy_path.exists():
        raise PolicyError(f"Pipeline policy not found: {policy_path}")

    text = policy_path.read_text(encoding="utf-8")
    try:
        if policy_path.suffix.lower() in {".yaml", ".yml"}:
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except json.JSONDecodeError as e:
        raise PolicyError(f"Malformed JSON policy at {policy_path}: {e}") from e
    except yaml.YAMLError as e:
        raise PolicyError(f"Malformed YAML policy at {policy_path}: {e}") from e

    return parse_policy(data)


def _string_array(value: Any, field_name: str, *, non_empty: bool) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise PolicyError(f"{field_name} must be an array")
    if non_empty and not value:
        raise PolicyError(f"{field_name} must be a non-empty array")
    for index, entry in enumerate(value):
        if not isinstance(entry, str) or not entry.strip():
            raise PolicyError(f"{field_name}[{index}] must be a non-empty string")
    return tuple(entry.strip() for entry in value)


def _object(value: Any, field_name: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise PolicyError(f"{field_name} must be an object")
    return value


def _positive_int(value: Any, field_name: str) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise PolicyError(f"{field_name} must be a positive integer")
    return value


def _parse_slo(value: Any, field_name: str) -> StageSlo:
    slo = _object(value, field_name)
    target = _positive_int(slo.get("targetSeconds"), f"{field_name}.targetSeconds")
    mode = slo.get("mode")
    if mode not in SLO_MODES:
        raise PolicyError(f"{field_name}.mode must be one of: {', '.join(SLO_MODES)}")
    return StageSlo(target_seconds=target, mode=mode)


def _parse_stage(data: dict[str, Any], key: str, *, required_checks_non_empty: bool) -> StagePolicy:
    if key not in data:
        return StagePolicy()
    stage = _object(data[key], key)
    if "requiredChecks" not in stage and not required_checks_non_empty:
        return StagePolicy()
    checks = _string_array(
        stage.get("requiredChecks"),
        f"{key}.requiredChecks",
        non_empty=required_checks_non_empty,
    )
    return StagePolicy(required_checks=checks)


def _parse_high_risk(value: Any) -> HighRiskMainlinePolicy:
    section = _object(value, "highRiskMainlinePolicy")

    code_owners = _string_array(
        section.get("codeOwners"),
        "highRiskMainlinePolicy.codeOwners",
        non_empty=True,
    )
    for owner in code_owners:
        if not owner.startswith("@"):
            raise PolicyError(
                f"highRiskMainlinePolicy.codeOwners entry must start with '@': {owner}"
            )

    raw_categories = section.get("categories")
    if not isinstance(raw_categories, list) or not raw_categories:
        raise PolicyError("highRiskMainlinePolicy.categories must be a non-empty array")

    categories: list[HighRiskCategory] = []
    seen_ids: set[str] = set()
    for index, raw in enumerate(raw_categories):
        prefix = f"highRiskMainlinePolicy.categories[{index}]"
        category = _object(raw, prefix)

        category_id = category.get("id")
        if not isinstance(category_id, str) or not category_id.strip():
            raise PolicyError(f"{prefix}.id must be a non-empty string")
        if category_id in seen_ids:
            raise PolicyError(f"{prefix}.id is duplicated: {category_id}")
        seen_ids.add(category_id)

        patterns = _string_array(category.get("patterns"), f"{prefix}.patterns", non_empty=True)

        rationale = category.get("rationale")
        if not isinstance(rationale, str) or not rationale.strip():
            raise PolicyError(f"{prefix}.rationale must be a non-empty string")

        categories.append(
            HighRiskCategory(id=category_id, patterns=patterns, rationale=rationale.strip())
        )

    rule_id = section.get("ruleId", "HIGH_RISK_MAINLINE")
    main_branch = section.get("mainBranch", "main")
    if not isinstance(rule_id, str) or not rule_id.strip():
        raise PolicyError("highRiskMainlinePolicy.ruleId must be a non-empty string")
    if not isinstance(main_branch, str) or not main_branch.strip():
        raise PolicyError("highRiskMainlinePolicy.mainBranch must be a non-empty string")

    require_pr = section.get("requirePullRequestOnMain", True)
    if not isinstance(require_pr, bool):
        raise PolicyError("highRiskMainlinePolicy.requirePullRequestOnMain must be a boolean")

    return HighRiskMainlinePolicy(
        rule_id=rule_id.strip(),
        main_branch=main_branch.strip(),
        require_pull_request_on_main=require_pr,
        code_owners=code_owners,
        categories=tuple(categories),
    )


def parse_policy(data: Any) -> Policy:
    """Validate a decoded policy document and build an immutable ``Policy``."""
    if not isinstance(data, dict):
        raise PolicyError("Pipeline policy must be an object")

    for key in REQUIRED_TOP_LEVEL:
        if key not in data:
            raise PolicyError(f"Pipeline policy missing required field: {key}")

    version = data["version"]
    if isinstance(version, bool) or not isinstance(version, (str, int)) or str(version).strip() == "":
        raise PolicyError("version must be a non-empty string or integer")

    scope_data = _object(data["scopeRules"], "scopeRules")
    scope_sets = {
        key: _string_array(scope_data.get(key), f"scopeRules.{key}", non_empty=True)
        for key in SCOPE_DIMENSIONS
    }
    scope_rules = ScopeRules(
        runtime=scope_sets["runtime"],
        desktop=scope_sets["desktop"],
        infra=scope_sets["infra"],
        identity=scope_sets["identity"],
        docs_only=scope_sets["docsOnly"],
        migration=scope_sets["migration"],
        infra_rollout=scope_sets["infraRollout"],
    )

    docs_data = _object(data["docsDriftRules"], "docsDriftRules")
    docs_drift_rules = DocsDriftRules(
        blocking_paths=_string_array(
            docs_data.get("blockingPaths"), "docsDriftRules.blockingPaths", non_empty=False
        ),
        docs_critical_paths=_string_array(
            docs_data.get("docsCriticalPaths"), "docsDriftRules.docsCriticalPaths", non_empty=False
        ),
        doc_targets=_string_array(
            docs_data.get("docTargets"), "docsDriftRules.docTargets", non_empty=False
        ),
    )

    commit_data = _object(data["commitStage"], "commitStage")
    commit_stage = StagePolicy(
        required_checks=_string_array(
            commit_data.get("requiredChecks"), "commitStage.requiredChecks", non_empty=True
        ),
        slo=_parse_slo(commit_data.get("slo"), "commitStage.slo"),
    )

    acceptance_data = _object(data["acceptanceStage"], "acceptanceStage")
    acceptance_stage = _parse_stage(data, "acceptanceStage", required_checks_non_empty=False)
    required_flow_ids: tuple[str, ...] = ()
    if "requiredFlowIds" in acceptance_data:
        required_flow_ids = _string_array(
            acceptance_data["requiredFlowIds"], "acceptanceStage.requiredFlowIds", non_empty=False
        )

    required_refs = DEFAULT_REQUIRED_REFS
    if "releaseCandidate" in data:
        candidate = _object(data["releaseCandidate"], "releaseCandidate")
        if "requiredRefs" in candidate:
            required_refs = _string_array(
                candidate["requiredRefs"], "releaseCandidate.requiredRefs", non_empty=True
            )

    require_fresh_head = True
    if "productionStage" in data:
        production = _object(data["productionStage"], "productionStage")
        if "requireFreshHeadOnAuto" in production:
            require_fresh_head = production["requireFreshHeadOnAuto"]
            if not isinstance(require_fresh_head, bool):
                raise PolicyError("productionStage.requireFreshHeadOnAuto must be a boolean")

    high_risk = None
    if "highRiskMainlinePolicy" in data:
        high_risk = _parse_high_risk(data["highRiskMainlinePolicy"])

    return Policy(
        version=str(version),
        scope_rules=scope_rules,
        commit_stage=commit_stage,
        integration_gate=_parse_stage(data, "integrationGate", required_checks_non_empty=False),
        acceptance_stage=acceptance_stage,
        deployment_stage=_parse_stage(data, "deploymentStage", required_checks_non_empty=False),
        docs_drift_rules=docs_drift_rules,
        required_flow_ids=required_flow_ids,
        required_refs=required_refs,
        require_fresh_head_on_auto=require_fresh_head,
        high_risk_mainline_policy=high_risk,
    )
