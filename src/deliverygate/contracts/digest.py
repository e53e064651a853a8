"""Release candidate image reference digest pinning."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping

from deliverygate.contracts.types import ContractReason, ContractResult

DIGEST_PATTERN = re.compile(r"^[^\s@]+@sha256:[0-9a-fA-F]{64}$")

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def ref_code_name(ref_name: str) -> str:
    """``apiRef`` -> ``API_REF``."""
    snake = _CAMEL_BOUNDARY.sub("_", ref_name.strip())
    return re.sub(r"[^A-Za-z0-9]+", "_", snake).strip("_").upper()


def is_digest_pinned(ref: str) -> bool:
    return bool(DIGEST_PATTERN.match(ref))


def validate_release_candidate_refs(
    scope_required: bool,
    refs: Mapping[str, object],
    required_refs: Iterable[str] = ("apiRef", "webRef"),
) -> ContractResult:
    """Require every ref to be present and pinned as ``repo@sha256:<64 hex>``.

    Missing refs are reported before malformed ones. When the change scope
    does not call for a release candidate the contract passes.
    """
    if not scope_required:
        return ContractResult(status="pass")

    names = list(required_refs)
    values = {name: str(refs.get(name) or "").strip() for name in names}

    reasons: list[ContractReason] = []
    for name in names:
        if not values[name]:
            reasons.append(
                ContractReason(
                    code=f"CANDIDATE_{ref_code_name(name)}_MISSING",
                    message=f"Release candidate is missing {name}.",
                    field=name,
                )
            )
    for name in names:
        value = values[name]
        if value and not is_digest_pinned(value):
            reasons.append(
                ContractReason(
                    code=f"CANDIDATE_{ref_code_name(name)}_NOT_DIGEST",
                    message=f"{name} must be pinned as <repo>@sha256:<64-hex>, got: {value}",
                    field=name,
                )
            )
    return ContractResult.from_reasons(reasons)
