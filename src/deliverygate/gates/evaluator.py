"""The gate decision algorithm shared by every checkpoint.

``evaluate_gate`` is pure: identical inputs give identical ``GateResult``
values and byte-identical canonical JSON. Reason codes are appended in a
fixed order: checks (definition order), docs drift, SLO, contracts.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from deliverygate.gates.types import (
    ContractSignal,
    DocsDriftSignal,
    GateReason,
    GateResult,
    SloSignal,
    check_code_name,
    normalize_check_results,
)


@dataclass(frozen=True)
class RequiredCheck:
    """A check in a stage; ``flag`` names the requirement flag, None means always required."""

    name: str
    flag: str | None = None

    @property
    def always_required(self) -> bool:
        return self.flag is None


@dataclass(frozen=True)
class StageDefinition:
    key: str
    checks: tuple[RequiredCheck, ...]

    @property
    def check_names(self) -> tuple[str, ...]:
        return tuple(check.name for check in self.checks)

    def with_required_checks(self, names: Iterable[str]) -> StageDefinition:
        """Add policy-listed checks unknown to this stage as always-required."""
        known = set(self.check_names)
        extra: list[RequiredCheck] = []
        for name in names:
            if name not in known:
                extra.append(RequiredCheck(name))
                known.add(name)
        if not extra:
            return self
        return StageDefinition(key=self.key, checks=self.checks + tuple(extra))


def _check_reason(check: RequiredCheck, outcome: str, required: bool) -> GateReason | None:
    if outcome == "success":
        return None
    code_name = check_code_name(check.name)
    if check.always_required:
        return GateReason(
            code=f"CHECK_{code_name}_NOT_SUCCESS",
            message=f"{check.name} result is {outcome}",
        )
    if not required:
        return None
    message = f"{check.name} required but result is {outcome}"
    if outcome == "skipped":
        message += " (a required check must not be skipped)"
    return GateReason(code=f"CHECK_{code_name}_REQUIRED_NOT_SUCCESS", message=message)


def _format_seconds(value: float | int | None) -> str:
    if value is None:
        return "unknown"
    return f"{value:g}s"


def evaluate_gate(
    definition: StageDefinition,
    check_results: Mapping[str, object],
    required_flags: Mapping[str, bool],
    *,
    docs_drift: DocsDriftSignal | None = None,
    slo: SloSignal | None = None,
    contracts: Iterable[ContractSignal] = (),
) -> GateResult:
    """Combine check outcomes, requirement flags and contract status into a decision.

    A conditional check whose flag is absent from ``required_flags`` is
    treated as required.
    """
    normalized = normalize_check_results(check_results, definition.check_names)
    reasons: list[GateReason] = []

    for check in definition.checks:
        required = check.always_required or required_flags.get(check.flag or "", True)
        reason = _check_reason(check, normalized[check.name], required)
        if reason is not None:
            reasons.append(reason)

    if docs_drift is not None and docs_drift.blocking and docs_drift.status != "pass":
        reasons.append(
            GateReason(
                code="DOCS_DRIFT_BLOCKING_NOT_PASS",
                message=f"docs-drift blocking is true but docs drift status is {docs_drift.status}",
            )
        )

    if slo is not None and slo.mode == "enforce" and not slo.met:
        stage_code = check_code_name(definition.key)
        reasons.append(
            GateReason(
                code=f"{stage_code}_SLO_NOT_MET",
                message=(
                    f"{definition.key} timing SLO enforce mode requires <= "
                    f"{_format_seconds(slo.target_seconds)}; observed "
                    f"{_format_seconds(slo.observed_seconds)}"
                ),
            )
        )

    for contract in contracts:
        if not contract.required:
            continue
        if contract.result is not None and contract.result.passed:
            continue
        code_name = check_code_name(contract.name)
        if contract.result is None:
            detail = "no contract result was provided"
        else:
            codes = ", ".join(contract.result.reason_codes) or "no reason codes"
            detail = f"status is {contract.result.status}: {codes}"
        reasons.append(
            GateReason(
                code=f"CONFIG_CONTRACT_{code_name}_NOT_PASS",
                message=f"{contract.name} contract required but {detail}",
            )
        )

    return GateResult(
        stage=definition.key,
        check_results=normalized,
        pass_=not reasons,
        reason_codes=tuple(reason.code for reason in reasons),
        reason_details=tuple(reasons),
    )
