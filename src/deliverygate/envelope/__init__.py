"""Guardrail envelope protocol."""

from deliverygate.envelope.errors import GuardrailEnvironmentError, GuardrailViolation
from deliverygate.envelope.guardrail import (
    CheckReport,
    Envelope,
    GuardrailOutcome,
    emit_envelope,
    run_guardrail,
)

__all__ = [
    "CheckReport",
    "Envelope",
    "GuardrailEnvironmentError",
    "GuardrailOutcome",
    "GuardrailViolation",
    "emit_envelope",
    "run_guardrail",
]
