"""Shared contract result shape."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Literal

ContractStatus = Literal["pass", "fail"]


@dataclass(frozen=True)
class ContractReason:
    code: str
    message: str
    field: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.field is not None:
            data["field"] = self.field
        return data


@dataclass(frozen=True)
class ContractResult:
    """Outcome of one contract validator.

    The gate evaluator consumes it as a required-and-not-pass signal.
    """

    status: ContractStatus
    reason_codes: tuple[str, ...] = ()
    reason_details: tuple[ContractReason, ...] = ()

    @property
    def passed(self) -> bool:
        return self.status == "pass"

    @classmethod
    def from_reasons(cls, reasons: Iterable[ContractReason]) -> ContractResult:
        details = tuple(reasons)
        return cls(
            status="pass" if not details else "fail",
            reason_codes=tuple(reason.code for reason in details),
            reason_details=details,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContractResult:
        """Rebuild a result from an upstream artifact; anything but ``pass`` fails closed."""
        codes = data.get("reasonCodes") or []
        return cls(
            status="pass" if data.get("status") == "pass" else "fail",
            reason_codes=tuple(str(code) for code in codes if str(code).strip()),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "reasonCodes": list(self.reason_codes),
            "reasonDetails": [reason.to_dict() for reason in self.reason_details],
        }
