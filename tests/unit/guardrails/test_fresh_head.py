"""Tests for the release candidate freshness guardrail."""

from __future__ import annotations

import pytest

from deliverygate.guardrails.fresh_head import (
    FRESH_HEAD_FAIL,
    FRESH_HEAD_NOT_REQUIRED,
    FRESH_HEAD_PASS,
    evaluate_fresh_head,
    requires_fresh_head,
)

CANDIDATE = "a" * 40
CURRENT = "b" * 40


def test_current_head_passes() -> None:
    result = evaluate_fresh_head(
        CANDIDATE, f"{CANDIDATE}\n", remote_ref="origin/main", trigger="auto", required_on_auto=True
    )

    assert result.status == "pass"
    assert result.reason_code == FRESH_HEAD_PASS
    assert result.remote_head == CANDIDATE


def test_stale_candidate_fails() -> None:
    result = evaluate_fresh_head(
        CANDIDATE, CURRENT, remote_ref="origin/main", trigger="auto", required_on_auto=True
    )

    assert result.status == "fail"
    assert result.reason_code == FRESH_HEAD_FAIL
    assert result.message == (
        f"Refusing stale deploy release candidate {CANDIDATE}; current origin/main is {CURRENT}"
    )
    assert result.to_dict()["remoteHead"] == CURRENT


@pytest.mark.parametrize(
    "trigger, required_on_auto",
    [("manual", True), ("auto", False), ("manual", False)],
)
def test_not_required(trigger: str, required_on_auto: bool) -> None:
    result = evaluate_fresh_head(
        CANDIDATE, None, remote_ref="origin/main", trigger=trigger, required_on_auto=required_on_auto
    )

    assert result.status == "pass"
    assert result.reason_code == FRESH_HEAD_NOT_REQUIRED
    assert result.remote_head is None


def test_required_check_needs_remote_head() -> None:
    assert requires_fresh_head(True, "auto") is True

    with pytest.raises(ValueError, match="remote head is required"):
        evaluate_fresh_head(CANDIDATE, None, remote_ref="origin/main", trigger="auto", required_on_auto=True)
