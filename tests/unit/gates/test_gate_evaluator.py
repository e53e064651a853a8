"""Tests for the shared gate decision algorithm."""

from __future__ import annotations

import pytest

from deliverygate.artifacts import canonical_dumps
from deliverygate.contracts import ContractResult
from deliverygate.gates import (
    ContractSignal,
    DocsDriftSignal,
    RequiredCheck,
    SloSignal,
    StageDefinition,
    evaluate_gate,
    normalize_check_results,
)
from deliverygate.gates.types import CHECK_OUTCOMES

COMMIT = StageDefinition(
    key="commit-stage",
    checks=(
        RequiredCheck("determine-scope"),
        RequiredCheck("commit-test-suite", "runtime"),
    ),
)


def test_required_conditional_check_failure() -> None:
    result = evaluate_gate(
        COMMIT,
        {"determine-scope": "success", "commit-test-suite": "failure"},
        {"runtime": True},
    )

    assert result.pass_ is False
    assert result.reason_codes == ("CHECK_COMMIT_TEST_SUITE_REQUIRED_NOT_SUCCESS",)
    assert result.reason_details[0].message == "commit-test-suite required but result is failure"


@pytest.mark.parametrize("outcome", CHECK_OUTCOMES)
def test_not_required_check_never_contributes(outcome: str) -> None:
    result = evaluate_gate(
        COMMIT,
        {"determine-scope": "success", "commit-test-suite": outcome},
        {"runtime": False},
    )

    assert result.pass_ is True
    assert result.reason_codes == ()


def test_required_successful_check_never_contributes() -> None:
    result = evaluate_gate(
        COMMIT,
        {"determine-scope": "success", "commit-test-suite": "success"},
        {"runtime": True},
    )

    assert result.pass_ is True
    assert result.reason_codes == ()


def test_missing_flag_is_treated_as_required() -> None:
    result = evaluate_gate(COMMIT, {"determine-scope": "success"}, {})

    assert result.reason_codes == ("CHECK_COMMIT_TEST_SUITE_REQUIRED_NOT_SUCCESS",)


def test_missing_always_required_check_is_unknown() -> None:
    result = evaluate_gate(COMMIT, {}, {"runtime": False})

    assert result.check_results["determine-scope"] == "unknown"
    assert result.reason_codes == ("CHECK_DETERMINE_SCOPE_NOT_SUCCESS",)
    assert result.reason_details[0].message == "determine-scope result is unknown"


def test_required_skip_is_called_out() -> None:
    result = evaluate_gate(
        COMMIT,
        {"determine-scope": "success", "commit-test-suite": "skipped"},
        {"runtime": True},
    )

    assert "must not be skipped" in result.reason_details[0].message


def test_normalize_check_results() -> None:
    normalized = normalize_check_results(
        {"a": " SUCCESS ", "b": "exploded", "c": "", "extra": "success"},
        ["a", "b", "c", "d"],
    )

    assert normalized == {"a": "success", "b": "unknown", "c": "unknown", "d": "unknown"}


def test_docs_drift_blocking_not_pass() -> None:
    checks = {"determine-scope": "success", "commit-test-suite": "success"}

    blocked = evaluate_gate(
        COMMIT, checks, {"runtime": True}, docs_drift=DocsDriftSignal(blocking=True, status="fail")
    )
    advisory = evaluate_gate(
        COMMIT, checks, {"runtime": True}, docs_drift=DocsDriftSignal(blocking=False, status="fail")
    )

    assert blocked.reason_codes == ("DOCS_DRIFT_BLOCKING_NOT_PASS",)
    assert advisory.pass_ is True


def test_enforced_slo_not_met() -> None:
    result = evaluate_gate(
        COMMIT,
        {"determine-scope": "success", "commit-test-suite": "success"},
        {"runtime": True},
        slo=SloSignal(mode="enforce", target_seconds=600, observed_seconds=900.5),
    )

    assert result.reason_codes == ("COMMIT_STAGE_SLO_NOT_MET",)
    assert result.reason_details[0].message.endswith("requires <= 600s; observed 900.5s")


def test_enforced_slo_unknown_observation_fails() -> None:
    result = evaluate_gate(
        COMMIT,
        {"determine-scope": "success", "commit-test-suite": "success"},
        {"runtime": True},
        slo=SloSignal(mode="enforce", target_seconds=600),
    )

    assert result.reason_codes == ("COMMIT_STAGE_SLO_NOT_MET",)
    assert "observed unknown" in result.reason_details[0].message


def test_observed_slo_never_fails() -> None:
    result = evaluate_gate(
        COMMIT,
        {"determine-scope": "success", "commit-test-suite": "success"},
        {"runtime": True},
        slo=SloSignal(mode="observe", target_seconds=600, observed_seconds=5000),
    )

    assert result.pass_ is True


def test_required_contract_not_pass() -> None:
    failed = ContractResult(status="fail", reason_codes=("IDENTITY_API_IDENTIFIER_URI_MISSING",))

    result = evaluate_gate(
        COMMIT,
        {"determine-scope": "success", "commit-test-suite": "success"},
        {"runtime": True},
        contracts=(
            ContractSignal("IDENTITY", required=True, result=failed),
            ContractSignal("SECRETS", required=True, result=None),
            ContractSignal("RELEASE_CANDIDATE_REFS", required=False, result=None),
        ),
    )

    assert result.reason_codes == (
        "CONFIG_CONTRACT_IDENTITY_NOT_PASS",
        "CONFIG_CONTRACT_SECRETS_NOT_PASS",
    )
    assert "IDENTITY_API_IDENTIFIER_URI_MISSING" in result.reason_details[0].message
    assert "no contract result" in result.reason_details[1].message


def test_reason_code_order() -> None:
    result = evaluate_gate(
        COMMIT,
        {"determine-scope": "failure", "commit-test-suite": "cancelled"},
        {"runtime": True},
        docs_drift=DocsDriftSignal(blocking=True, status="fail"),
        slo=SloSignal(mode="enforce", target_seconds=10, observed_seconds=11),
        contracts=(ContractSignal("SECRETS", required=True),),
    )

    assert result.reason_codes == (
        "CHECK_DETERMINE_SCOPE_NOT_SUCCESS",
        "CHECK_COMMIT_TEST_SUITE_REQUIRED_NOT_SUCCESS",
        "DOCS_DRIFT_BLOCKING_NOT_PASS",
        "COMMIT_STAGE_SLO_NOT_MET",
        "CONFIG_CONTRACT_SECRETS_NOT_PASS",
    )


def test_identical_inputs_give_identical_canonical_json() -> None:
    checks = {"commit-test-suite": "timed_out", "determine-scope": "success"}

    first = evaluate_gate(COMMIT, checks, {"runtime": True})
    second = evaluate_gate(COMMIT, dict(reversed(list(checks.items()))), {"runtime": True})

    assert canonical_dumps(first.to_dict()) == canonical_dumps(second.to_dict())


def test_with_required_checks_adds_always_required() -> None:
    extended = COMMIT.with_required_checks(["determine-scope", "lint", "lint"])

    assert extended.check_names == ("determine-scope", "commit-test-suite", "lint")
    assert extended.checks[-1].always_required is True
    assert COMMIT.with_required_checks(["determine-scope"]) is COMMIT


def test_to_dict_shape() -> None:
    data = evaluate_gate(COMMIT, {}, {"runtime": False}).to_dict()

    assert data["stage"] == "commit-stage"
    assert data["pass"] is False
    assert data["reasonDetails"] == [
        {"code": "CHECK_DETERMINE_SCOPE_NOT_SUCCESS", "message": "determine-scope result is unknown"}
    ]
    assert "informationalCodes" not in data
    assert "decision" not in data
