"""Gate inputs and results."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Literal

from deliverygate.contracts.types import ContractResult

CHECK_OUTCOMES: tuple[str, ...] = (
    "success",
    "failure",
    "cancelled",
    "timed_out",
    "skipped",
    "unknown",
)

Decision = Literal["YES", "NO"]


def check_code_name(name: str) -> str:
    """``commit-test-suite`` -> ``COMMIT_TEST_SUITE``."""
    return re.sub(r"[^A-Za-z0-9]", "_", name.strip()).upper()


def normalize_outcome(value: object) -> str:
    """Map a raw CI result onto the known outcomes; anything else is ``unknown``."""
    if not isinstance(value, str):
        return "unknown"
    normalized = value.strip().lower()
    return normalized if normalized in CHECK_OUTCOMES else "unknown"


def normalize_check_results(raw: Mapping[str, object], expected: Iterable[str]) -> dict[str, str]:
    """Project raw results onto the expected check names.

    Missing, empty, or unrecognized values become ``unknown``; keys outside
    ``expected`` are dropped.
    """
    return {name: normalize_outcome(raw.get(name)) for name in expected}


@dataclass(frozen=True)
class GateReason:
    code: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


@dataclass(frozen=True)
class DocsDriftSignal:
    """Docs drift input to a gate: whether the check is blocking, and its status."""

    blocking: bool
    status: str


@dataclass(frozen=True)
class SloSignal:
    """Stage timing input; only ``enforce`` mode can fail a gate."""

    mode: str
    target_seconds: int | None = None
    observed_seconds: float | None = None

    @property
    def met(self) -> bool:
        if self.observed_seconds is None or self.target_seconds is None:
            return False
        return self.observed_seconds <= self.target_seconds


@dataclass(frozen=True)
class ContractSignal:
    """A contract the gate requires to pass when ``required`` is true."""

    name: str
    required: bool
    result: ContractResult | None = None


@dataclass(frozen=True)
class GateResult:
    """Immutable decision for one gate at one commit."""

    stage: str
    check_results: Mapping[str, str]
    pass_: bool
    reason_codes: tuple[str, ...] = ()
    reason_details: tuple[GateReason, ...] = ()
    informational_codes: tuple[str, ...] = ()
    decision: Decision | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "stage": self.stage,
            "checkResults": dict(self.check_results),
            "pass": self.pass_,
            "reasonCodes": list(self.reason_codes),
            "reasonDetails": [reason.to_dict() for reason in self.reason_details],
        }
        if self.informational_codes:
            data["informationalCodes"] = list(self.informational_codes)
        if self.decision is not None:
            data["decision"] = self.decision
        return data
