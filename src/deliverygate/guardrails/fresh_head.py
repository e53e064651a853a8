"""Refuse to deploy a release candidate that is no longer the mainline head.

Only automatic deploys are held to this; a manual dispatch may redeploy an
older candidate on purpose.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

DeployTrigger = Literal["auto", "manual"]

FRESH_HEAD_PASS = "FRESH_HEAD_PASS"
FRESH_HEAD_FAIL = "FRESH_HEAD_FAIL"
FRESH_HEAD_NOT_REQUIRED = "FRESH_HEAD_NOT_REQUIRED"


@dataclass(frozen=True)
class FreshHeadResult:
    status: Literal["pass", "fail"]
    reason_code: str
    head_sha: str
    remote_ref: str
    remote_head: str | None
    trigger: DeployTrigger

    @property
    def message(self) -> str:
        if self.reason_code == FRESH_HEAD_FAIL:
            return (
                f"Refusing stale deploy release candidate {self.head_sha}; "
                f"current {self.remote_ref} is {self.remote_head}"
            )
        if self.reason_code == FRESH_HEAD_NOT_REQUIRED:
            return f"Freshness check not required for {self.trigger} deploy of {self.head_sha}"
        return f"Deploy release candidate is current {self.remote_ref} head: {self.head_sha}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "reasonCode": self.reason_code,
            "candidateSha": self.head_sha,
            "remoteRef": self.remote_ref,
            "remoteHead": self.remote_head,
            "trigger": self.trigger,
        }


def requires_fresh_head(required_on_auto: bool, trigger: DeployTrigger) -> bool:
    return required_on_auto and trigger == "auto"


def evaluate_fresh_head(
    head_sha: str,
    remote_head: str | None,
    *,
    remote_ref: str,
    trigger: DeployTrigger,
    required_on_auto: bool,
) -> FreshHeadResult:
    """Compare the candidate with the current remote head.

    ``remote_head`` may be None only when the check is not required.
    """
    candidate = head_sha.strip()
    if not requires_fresh_head(required_on_auto, trigger):
        return FreshHeadResult("pass", FRESH_HEAD_NOT_REQUIRED, candidate, remote_ref, remote_head, trigger)
    if remote_head is None:
        raise ValueError("remote head is required for an automatic deploy freshness check")
    current = remote_head.strip()
    if candidate != current:
        return FreshHeadResult("fail", FRESH_HEAD_FAIL, candidate, remote_ref, current, trigger)
    return FreshHeadResult("pass", FRESH_HEAD_PASS, candidate, remote_ref, current, trigger)
