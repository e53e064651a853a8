"""Artifact JSON Schemas loaded from package data only.

Schemas ship inside the ``deliverygate_schemas`` package so a pipeline step
validates the same way whatever directory it runs from.
"""

from __future__ import annotations

import json
from functools import lru_cache
from importlib.resources import files
from typing import Any

from jsonschema.validators import Draft202012Validator

SCHEMA_PACKAGE = "deliverygate_schemas"
SCHEMA_SUFFIX = ".schema.json"


def _canonical(name: str) -> str:
    return name[: -len(SCHEMA_SUFFIX)] if name.endswith(SCHEMA_SUFFIX) else name


class SchemaRegistry:
    """Names and contents of the packaged artifact schemas."""

    def __init__(self) -> None:
        try:
            entries = [item.name for item in files(SCHEMA_PACKAGE).iterdir()]
        except (ModuleNotFoundError, FileNotFoundError):
            # Broken install; get_text reports the missing schema by name.
            entries = []
        self.available: tuple[str, ...] = tuple(
            sorted(_canonical(entry) for entry in entries if entry.endswith(SCHEMA_SUFFIX))
        )

    def get_text(self, name: str) -> str:
        """Raw schema text.

        Raises:
            KeyError: If the schema is not packaged; the message lists what is
        """
        schema_name = _canonical(name)
        if schema_name not in self.available:
            raise KeyError(
                f"Schema '{schema_name}' not found in {SCHEMA_PACKAGE} package data.\n"
                f"Available schemas: {', '.join(self.available) or '(none)'}\n"
                "Reinstall with: pip install --force-reinstall -e ."
            )
        return (files(SCHEMA_PACKAGE) / f"{schema_name}{SCHEMA_SUFFIX}").read_text(encoding="utf-8")

    def get_json(self, name: str) -> dict[str, Any]:
        text = self.get_text(name)
        try:
            schema = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Schema '{_canonical(name)}' contains invalid JSON: {e}") from e
        if not isinstance(schema, dict):
            raise ValueError(f"Schema '{_canonical(name)}' is not a JSON object")
        return schema


@lru_cache(maxsize=1)
def get_registry() -> SchemaRegistry:
    """Process-wide registry."""
    return SchemaRegistry()


@lru_cache(maxsize=None)
def get_validator(name: str) -> Draft202012Validator:
    """Compiled Draft 2020-12 validator for a packaged schema."""
    schema = get_registry().get_json(name)
    Draft202012Validator.check_schema(schema)
    return Draft202012Validator(schema)
