"""Change scope classification and docs drift evaluation."""

from deliverygate.scope.classifier import (
    ChangeScope,
    classify_kind,
    normalize_changed_files,
    resolve_change_scope,
)
from deliverygate.scope.docs_drift import DocsDriftResult, evaluate_docs_drift
from deliverygate.scope.globs import matches_any_pattern, matches_glob

__all__ = [
    "ChangeScope",
    "DocsDriftResult",
    "classify_kind",
    "evaluate_docs_drift",
    "matches_any_pattern",
    "matches_glob",
    "normalize_changed_files",
    "resolve_change_scope",
]
