"""Guardrail error kinds.

A ``GuardrailViolation`` is a detected policy or contract violation and
carries its own reporting fields. Anything else raised inside a guardrail,
``GuardrailEnvironmentError`` included, is reported as an unexpected
environment error.
"""

from __future__ import annotations

from collections.abc import Iterable

DEFAULT_REF = "docs/ccs.md#output-format"


def normalize_line(value: object, fallback: str) -> str:
    """Return ``value`` stripped, or ``fallback`` when it is not a non-blank string."""
    if not isinstance(value, str):
        return fallback
    stripped = value.strip()
    return stripped or fallback


def normalize_commands(commands: Iterable[object] | None) -> tuple[str, ...]:
    """Strip command lines and drop blanks and non-strings."""
    if not commands:
        return ()
    stripped = (entry.strip() for entry in commands if isinstance(entry, str))
    return tuple(entry for entry in stripped if entry)


class GuardrailViolation(Exception):
    """A violation of the contract the guardrail enforces."""

    def __init__(
        self,
        code: str,
        why: str,
        fix: str | None = None,
        do_commands: Iterable[str] | None = None,
        ref: str | None = None,
    ) -> None:
        self.code = normalize_line(code, "CCS_UNSPECIFIED_FAILURE")
        self.why = normalize_line(why, "Guardrail failed.")
        self.fix = normalize_line(fix, "Apply the required guardrail fix.")
        self.do_commands = normalize_commands(do_commands)
        self.ref = normalize_line(ref, DEFAULT_REF)
        super().__init__(self.why)


class GuardrailEnvironmentError(RuntimeError):
    """The guardrail could not run: missing input, tool, or credentials."""
