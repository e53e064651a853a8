"""Validate artifact payloads against the packaged JSON Schemas."""

from __future__ import annotations

from typing import Any

from deliverygate.utils.schema_registry import get_validator


def _format_error(path: list[Any], message: str) -> str:
    if not path:
        return message
    return f"{'.'.join(str(part) for part in path)}: {message}"


def validate_data(data: Any, schema_name: str, strict: bool = True) -> tuple[bool, list[str]]:
    """Check ``data`` against ``schema_name``.

    Errors are reported in document path order so the message for a given
    payload is stable between runs.

    Returns:
        ``(True, [])`` when valid, otherwise ``(False, messages)`` in non-strict mode

    Raises:
        KeyError: If the schema is not packaged
        ValueError: If validation fails and ``strict`` is set
    """
    errors = sorted(get_validator(schema_name).iter_errors(data), key=lambda e: [str(p) for p in e.path])
    messages = [_format_error(list(error.path), error.message) for error in errors]
    if not messages:
        return True, []
    if strict:
        details = "\n".join(f"  - {message}" for message in messages)
        raise ValueError(f"Schema validation failed for '{schema_name}':\n{details}")
    return False, messages
