"""Gate decision evaluation for the four pipeline checkpoints."""

from deliverygate.gates.evaluator import RequiredCheck, StageDefinition, evaluate_gate
from deliverygate.gates.stages import (
    ACCEPTANCE_STAGE,
    COMMIT_STAGE,
    DEPLOYMENT_STAGE,
    INTEGRATION_GATE,
    evaluate_acceptance_stage,
    evaluate_commit_stage,
    evaluate_deployment_stage,
    evaluate_integration_gate,
)
from deliverygate.gates.types import (
    ContractSignal,
    DocsDriftSignal,
    GateResult,
    SloSignal,
    normalize_check_results,
)

__all__ = [
    "ACCEPTANCE_STAGE",
    "COMMIT_STAGE",
    "DEPLOYMENT_STAGE",
    "INTEGRATION_GATE",
    "ContractSignal",
    "DocsDriftSignal",
    "GateResult",
    "RequiredCheck",
    "SloSignal",
    "StageDefinition",
    "evaluate_acceptance_stage",
    "evaluate_commit_stage",
    "evaluate_deployment_stage",
    "evaluate_gate",
    "evaluate_integration_gate",
    "normalize_check_results",
]
