"""Two-tier documentation drift evaluation.

Docs-critical paths (contracts, schemas) block when no documentation target
changes alongside them. Other blocking paths only produce an advisory code.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Literal

from deliverygate.policy.types import DocsDriftRules
from deliverygate.scope.classifier import normalize_changed_files
from deliverygate.scope.globs import filter_matching

BLOCKING_CODE = "DOCS_DRIFT_BLOCKING_DOC_TARGET_MISSING"
ADVISORY_CODE = "DOCS_DRIFT_ADVISORY_DOC_TARGET_MISSING"


@dataclass(frozen=True)
class ReasonDetail:
    code: str
    message: str
    blocking: bool

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "blocking": self.blocking}


@dataclass(frozen=True)
class DocsDriftResult:
    """Outcome of a docs drift evaluation."""

    blocking_paths_changed: tuple[str, ...]
    docs_critical_paths_changed: tuple[str, ...]
    touched_doc_targets: tuple[str, ...]
    expected_doc_targets: tuple[str, ...]
    reason_codes: tuple[str, ...] = ()
    reason_details: tuple[ReasonDetail, ...] = field(default_factory=tuple)

    @property
    def touches_blocking_paths(self) -> bool:
        return bool(self.blocking_paths_changed)

    @property
    def touches_docs_critical_paths(self) -> bool:
        return bool(self.docs_critical_paths_changed)

    @property
    def docs_updated(self) -> bool:
        return bool(self.touched_doc_targets)

    @property
    def should_block(self) -> bool:
        return self.touches_docs_critical_paths and not self.docs_updated

    @property
    def status(self) -> Literal["pass", "fail"]:
        return "fail" if self.should_block else "pass"

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "touchesBlockingPaths": self.touches_blocking_paths,
            "touchesDocsCriticalPaths": self.touches_docs_critical_paths,
            "blockingPathsChanged": list(self.blocking_paths_changed),
            "docsCriticalPathsChanged": list(self.docs_critical_paths_changed),
            "docsUpdated": self.docs_updated,
            "touchedDocTargets": list(self.touched_doc_targets),
            "expectedDocTargets": list(self.expected_doc_targets),
            "shouldBlock": self.should_block,
            "reasonCodes": list(self.reason_codes),
            "reasonDetails": [detail.to_dict() for detail in self.reason_details],
        }


def evaluate_docs_drift(rules: DocsDriftRules, changed_files: Iterable[str]) -> DocsDriftResult:
    """Evaluate a changed-path set against the docs drift rules."""
    paths = normalize_changed_files(changed_files)

    blocking_changed = tuple(filter_matching(paths, rules.blocking_paths))
    critical_changed = tuple(filter_matching(paths, rules.docs_critical_paths))
    touched_targets = tuple(filter_matching(paths, rules.doc_targets))
    expected = tuple(rules.doc_targets)
    targets_text = ", ".join(expected) or "(none configured)"

    details: list[ReasonDetail] = []
    if critical_changed and not touched_targets:
        details.append(
            ReasonDetail(
                code=BLOCKING_CODE,
                message=(
                    f"Docs-critical paths changed ({', '.join(critical_changed)}) "
                    f"without updating any doc target: {targets_text}"
                ),
                blocking=True,
            )
        )
    elif blocking_changed and not touched_targets:
        details.append(
            ReasonDetail(
                code=ADVISORY_CODE,
                message=(
                    f"Blocking paths changed ({', '.join(blocking_changed)}); "
                    f"consider updating a doc target: {targets_text}"
                ),
                blocking=False,
            )
        )

    return DocsDriftResult(
        blocking_paths_changed=blocking_changed,
        docs_critical_paths_changed=critical_changed,
        touched_doc_targets=touched_targets,
        expected_doc_targets=expected,
        reason_codes=tuple(detail.code for detail in details),
        reason_details=tuple(details),
    )
