"""Tests for the two-tier docs drift evaluator."""

from __future__ import annotations

from deliverygate.policy import Policy
from deliverygate.scope.docs_drift import ADVISORY_CODE, BLOCKING_CODE, evaluate_docs_drift


def test_docs_critical_change_without_doc_update_blocks(policy: Policy) -> None:
    result = evaluate_docs_drift(policy.docs_drift_rules, ["packages/contracts/a.ts"])

    assert result.docs_critical_paths_changed == ("packages/contracts/a.ts",)
    assert result.touched_doc_targets == ()
    assert result.should_block is True
    assert result.status == "fail"
    assert result.reason_codes == (BLOCKING_CODE,)
    assert result.reason_details[0].blocking is True
    assert "packages/contracts/a.ts" in result.reason_details[0].message


def test_docs_critical_change_with_doc_update_passes(policy: Policy) -> None:
    result = evaluate_docs_drift(
        policy.docs_drift_rules, ["packages/contracts/a.ts", "docs/contracts.md"]
    )

    assert result.docs_updated is True
    assert result.should_block is False
    assert result.status == "pass"
    assert result.reason_codes == ()


def test_blocking_path_without_doc_update_is_advisory(policy: Policy) -> None:
    result = evaluate_docs_drift(policy.docs_drift_rules, ["apps/api/src/routes.ts"])

    assert result.touches_blocking_paths is True
    assert result.should_block is False
    assert result.status == "pass"
    assert result.reason_codes == (ADVISORY_CODE,)
    assert result.reason_details[0].blocking is False


def test_blocking_path_with_root_readme_update(policy: Policy) -> None:
    result = evaluate_docs_drift(policy.docs_drift_rules, ["infra/main.bicep", "README.md"])

    assert result.reason_codes == ()


def test_critical_takes_precedence_over_advisory(policy: Policy) -> None:
    result = evaluate_docs_drift(
        policy.docs_drift_rules, ["apps/api/a.ts", "schemas/v1/order.json"]
    )

    assert result.reason_codes == (BLOCKING_CODE,)


def test_unrelated_changes_have_no_reasons(policy: Policy) -> None:
    result = evaluate_docs_drift(policy.docs_drift_rules, ["tools/lint.sh"])

    assert result.touches_blocking_paths is False
    assert result.touches_docs_critical_paths is False
    assert result.reason_codes == ()


def test_to_dict(policy: Policy) -> None:
    data = evaluate_docs_drift(policy.docs_drift_rules, ["packages/contracts/a.ts"]).to_dict()

    assert data["status"] == "fail"
    assert data["shouldBlock"] is True
    assert data["expectedDocTargets"] == ["docs/**", "README.md"]
    assert data["reasonDetails"][0]["code"] == BLOCKING_CODE
