"""Release outcome decision."""

from deliverygate.release.outcome import (
    ReleaseInputs,
    ReleaseOutcome,
    evaluate_release_outcome,
    normalize_decision,
)

__all__ = ["ReleaseInputs", "ReleaseOutcome", "evaluate_release_outcome", "normalize_decision"]
