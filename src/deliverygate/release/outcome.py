"""Release outcome decision.

Aggregates the per-stage results into one releaseable verdict. Every
ambiguous signal resolves to NO with an explicit reason code.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Literal

StageDecision = Literal["YES", "NO", "REPLAY"]

_DECISIONS: tuple[str, ...] = ("YES", "NO", "REPLAY")


def normalize_decision(value: object, fallback: StageDecision = "NO") -> StageDecision:
    """Upper-case a decision string; missing or unrecognized values become ``fallback``."""
    if not isinstance(value, str):
        return fallback
    normalized = value.strip().upper()
    if normalized in _DECISIONS:
        return normalized  # type: ignore[return-value]
    return fallback


def _clean_codes(codes: Iterable[object] | None) -> tuple[str, ...]:
    if not codes:
        return ()
    return tuple(str(code).strip() for code in codes if code is not None and str(code).strip())


@dataclass(frozen=True)
class ReleaseInputs:
    """Raw stage results and decisions as reported by CI."""

    replay_mode: bool = False
    commit_stage_result: str = "unknown"
    load_release_candidate_result: str = "unknown"
    acceptance_stage_result: str = "unknown"
    deployment_stage_result: str = "unknown"
    acceptance_decision: str | None = None
    acceptance_reason_codes: tuple[str, ...] = ()
    production_decision: str | None = None
    production_reason_codes: tuple[str, ...] = ()
    deploy_required: bool = True


@dataclass(frozen=True)
class ReleaseOutcome:
    replay_mode: bool
    deploy_required: bool
    commit_stage_decision: StageDecision
    acceptance_decision: StageDecision
    production_decision: StageDecision
    releaseable: bool
    reason_codes: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "replayMode": self.replay_mode,
            "deployRequired": self.deploy_required,
            "commitStage": self.commit_stage_decision,
            "acceptance": self.acceptance_decision,
            "production": self.production_decision,
            "releaseable": self.releaseable,
            "reasonCodes": list(self.reason_codes),
        }


def _is_success(value: str) -> bool:
    return value.strip().lower() == "success"


def evaluate_release_outcome(inputs: ReleaseInputs) -> ReleaseOutcome:
    """Derive the release outcome from stage results.

    Replay mode trusts prior commit-stage evidence and reports ``REPLAY``. A
    release candidate that did not load successfully makes the release
    non-releaseable no matter what the other stages say.
    """
    replay = inputs.replay_mode
    commit_ok = _is_success(inputs.commit_stage_result)
    load_ok = _is_success(inputs.load_release_candidate_result)

    commit_decision: StageDecision
    if replay:
        commit_decision = "REPLAY"
    else:
        commit_decision = "YES" if commit_ok else "NO"

    acceptance = normalize_decision(inputs.acceptance_decision)
    production = normalize_decision(inputs.production_decision)
    acceptance_codes = _clean_codes(inputs.acceptance_reason_codes)
    production_codes = _clean_codes(inputs.production_reason_codes)

    codes: list[str] = []

    def add(code: str) -> None:
        if code not in codes:
            codes.append(code)

    if not replay and not commit_ok:
        add("COMMIT_STAGE_FAILED")
    if not load_ok:
        add("LOAD_RELEASE_CANDIDATE_NOT_SUCCESS")

    if not acceptance_codes:
        if not _is_success(inputs.acceptance_stage_result):
            add("AUTOMATED_ACCEPTANCE_TEST_GATE_NOT_SUCCESS")
        if acceptance != "YES":
            add("ACCEPTANCE_DECISION_NOT_YES")
    if not production_codes:
        if not _is_success(inputs.deployment_stage_result):
            add("DEPLOYMENT_STAGE_NOT_SUCCESS")
        if production != "YES":
            add("PRODUCTION_DECISION_NOT_YES")

    for code in acceptance_codes + production_codes:
        add(code)

    decisions_yes = acceptance == "YES" and production == "YES"
    if replay:
        releaseable = decisions_yes
    else:
        releaseable = commit_decision == "YES" and decisions_yes
    releaseable = releaseable and load_ok

    return ReleaseOutcome(
        replay_mode=replay,
        deploy_required=inputs.deploy_required,
        commit_stage_decision=commit_decision,
        acceptance_decision=acceptance,
        production_decision=production,
        releaseable=releaseable,
        reason_codes=tuple(codes),
    )
