"""Uniform pass/fail reporting wrapper for every guardrail.

Output lines are a parsed contract::

    CCS:PASS <id> CODE:<code>

    CCS:FAIL <id> CODE:<code>
    WHY: <root cause>
    FIX: <corrective action>
    DO:
    <command>
    REF: <doc anchor>

PASS goes to stdout and FAIL lines go to stderr. Exit code is 1 for any
failure path and 0 otherwise.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

import typer

from deliverygate.envelope.errors import (
    DEFAULT_REF,
    GuardrailViolation,
    normalize_commands,
    normalize_line,
)

logger = logging.getLogger(__name__)

DEFAULT_PASS_CODE = "CCS000"
UNEXPECTED_ERROR_CODE = "CCS_UNEXPECTED_ERROR"
DOCTOR_COMMAND = "deliverygate doctor"

EnvelopeStatus = Literal["pass", "fail"]
Emit = Callable[[str, bool], None]


@dataclass(frozen=True)
class CheckReport:
    """What a guardrail body returns.

    ``payload`` is the evidence the caller writes as an artifact; it is not
    part of the envelope.
    """

    status: EnvelopeStatus = "pass"
    code: str | None = None
    why: str | None = None
    fix: str | None = None
    do_commands: tuple[str, ...] = ()
    ref: str | None = None
    payload: Any = None


@dataclass(frozen=True)
class Envelope:
    """Reporting projection of one guardrail run."""

    guardrail_id: str
    status: EnvelopeStatus
    code: str
    why: str | None = None
    fix: str | None = None
    do_commands: tuple[str, ...] = field(default_factory=tuple)
    ref: str | None = None

    def lines(self) -> list[str]:
        if self.status == "pass":
            return [f"CCS:PASS {self.guardrail_id} CODE:{self.code}"]
        return [
            f"CCS:FAIL {self.guardrail_id} CODE:{self.code}",
            f"WHY: {self.why}",
            f"FIX: {self.fix}",
            "DO:",
            *self.do_commands,
            f"REF: {self.ref}",
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "guardrailId": self.guardrail_id,
            "status": self.status,
            "code": self.code,
            "why": self.why,
            "fix": self.fix,
            "doCommands": list(self.do_commands),
            "ref": self.ref,
        }


@dataclass(frozen=True)
class GuardrailOutcome:
    envelope: Envelope
    exit_code: int
    report: CheckReport | None = None


def default_fix(guardrail_id: str) -> str:
    return f"Restore {guardrail_id} contract conditions."


def default_do_commands(command: str | None) -> tuple[str, ...]:
    commands: list[str] = []
    if command and command.strip():
        commands.append(command.strip())
    commands.append(DOCTOR_COMMAND)
    return tuple(commands)


def pass_envelope(guardrail_id: str, code: str | None, *, pass_code: str = DEFAULT_PASS_CODE) -> Envelope:
    return Envelope(guardrail_id=guardrail_id, status="pass", code=normalize_line(code, pass_code))


def fail_envelope(
    guardrail_id: str,
    *,
    code: str | None,
    why: str | None,
    fix: str | None,
    do_commands: Iterable[str] | None,
    ref: str | None,
    command: str | None = None,
    fallback_code: str = "CCS_FAIL",
) -> Envelope:
    """Build a FAIL envelope, replacing blank fields with their defaults."""
    commands = normalize_commands(do_commands)
    return Envelope(
        guardrail_id=guardrail_id,
        status="fail",
        code=normalize_line(code, fallback_code),
        why=normalize_line(why, "Guardrail contract failed."),
        fix=normalize_line(fix, default_fix(guardrail_id)),
        do_commands=commands or default_do_commands(command),
        ref=normalize_line(ref, DEFAULT_REF),
    )


def echo_line(line: str, is_error: bool) -> None:
    typer.echo(line, err=is_error)


def emit_envelope(envelope: Envelope, emit: Emit | None = None) -> None:
    """Write the envelope lines; FAIL lines go to the error stream."""
    writer = emit or echo_line
    is_error = envelope.status == "fail"
    for line in envelope.lines():
        writer(line, is_error)


def _overrides(mapped: Mapping[str, Any]) -> dict[str, Any]:
    """Non-blank envelope fields from an error mapper."""
    overrides: dict[str, Any] = {}
    for key in ("code", "why", "fix", "ref"):
        value = mapped.get(key)
        if isinstance(value, str) and value.strip():
            overrides[key] = value
    commands = normalize_commands(mapped.get("do_commands"))
    if commands:
        overrides["do_commands"] = commands
    return overrides


def run_guardrail(
    guardrail_id: str,
    run: Callable[[], CheckReport | None],
    *,
    command: str | None = None,
    pass_code: str = DEFAULT_PASS_CODE,
    pass_ref: str = DEFAULT_REF,
    map_error: Callable[[Exception], Mapping[str, Any] | None] | None = None,
    emit: Emit | None = None,
) -> GuardrailOutcome:
    """Run ``run`` and report the result through the envelope protocol.

    Args:
        guardrail_id: Stable identifier printed in every envelope line
        run: Guardrail body; returns a ``CheckReport`` or raises
        command: Command that reproduces the check, used as the first DO line
        pass_code: Code printed when the body reports no code of its own
        pass_ref: Doc anchor used when a failure carries none
        map_error: Optional translation of unexpected exceptions; the fields it
            returns (code, why, fix, do_commands, ref) override the unexpected-error
            defaults and blank ones keep them
        emit: Line writer, defaults to ``typer.echo``

    Returns:
        GuardrailOutcome with the envelope, the exit code and the body's report
    """
    try:
        report = run()
    except GuardrailViolation as violation:
        envelope = fail_envelope(
            guardrail_id,
            code=violation.code,
            why=violation.why,
            fix=violation.fix,
            do_commands=violation.do_commands,
            ref=violation.ref or pass_ref,
            command=command,
        )
        emit_envelope(envelope, emit)
        return GuardrailOutcome(envelope=envelope, exit_code=1)
    except Exception as exc:
        logger.debug("guardrail %s raised unexpectedly", guardrail_id, exc_info=True)
        fields: dict[str, Any] = {
            "code": UNEXPECTED_ERROR_CODE,
            "why": normalize_line(str(exc), "Unexpected guardrail runtime error."),
            "fix": default_fix(guardrail_id),
            "do_commands": default_do_commands(command),
            "ref": pass_ref,
        }
        mapped = map_error(exc) if map_error is not None else None
        if mapped:
            fields.update(_overrides(mapped))
        envelope = fail_envelope(
            guardrail_id,
            **fields,
            command=command,
            fallback_code=UNEXPECTED_ERROR_CODE,
        )
        emit_envelope(envelope, emit)
        return GuardrailOutcome(envelope=envelope, exit_code=1)

    if report is not None and report.status == "fail":
        envelope = fail_envelope(
            guardrail_id,
            code=report.code,
            why=report.why,
            fix=report.fix,
            do_commands=report.do_commands,
            ref=report.ref or pass_ref,
            command=command,
        )
        emit_envelope(envelope, emit)
        return GuardrailOutcome(envelope=envelope, exit_code=1, report=report)

    envelope = pass_envelope(guardrail_id, report.code if report else None, pass_code=pass_code)
    emit_envelope(envelope, emit)
    return GuardrailOutcome(envelope=envelope, exit_code=0, report=report)
