"""Append-only evidence artifact writer keyed by (stage, commit SHA)."""

from __future__ import annotations

import json
import logging
import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal

from deliverygate.artifacts.canonical_json import sha256_file, write_json
from deliverygate.schemas.validator import validate_data

logger = logging.getLogger(__name__)

TimestampMode = Literal["deterministic", "now"]

ARTIFACT_SCHEMA_VERSION = "1"
ARTIFACT_INDEX_FILENAME = "ARTIFACT_INDEX.json"
DETERMINISTIC_TIMESTAMP = "1970-01-01T00:00:00Z"

_SEGMENT_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class ArtifactConflictError(RuntimeError):
    """Raised when an artifact would replace one written under another schemaVersion."""


def get_timestamp(timestamp_mode: TimestampMode = "now") -> str:
    """Return an ISO-8601 timestamp, fixed in deterministic mode."""
    if timestamp_mode == "deterministic":
        return DETERMINISTIC_TIMESTAMP
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def artifact_path(artifact_root: Path, stage: str, sha: str, name: str) -> Path:
    """Return ``<artifact-root>/<stage>/<sha>/<name>.json``."""
    for label, value in (("stage", stage), ("sha", sha), ("name", name)):
        if not _SEGMENT_PATTERN.match(value):
            raise ValueError(f"Invalid artifact {label} segment: {value!r}")
    return artifact_root / stage / sha / f"{name}.json"


def write_stage_artifact(
    artifact_root: Path,
    *,
    stage: str,
    sha: str,
    name: str,
    payload: dict[str, Any],
    schema_name: str | None = None,
    timestamp_mode: TimestampMode = "now",
) -> Path:
    """Write a stage artifact and refresh the per-commit artifact index.

    ``schemaVersion`` and ``generatedAt`` are added when the payload does not
    carry them. When ``schema_name`` is given the payload is validated against
    the packaged JSON Schema before anything touches disk.

    Raises:
        ArtifactConflictError: If an artifact already exists at the target
            path with a different ``schemaVersion``.
        ValueError: If schema validation fails.
    """
    path = artifact_path(artifact_root, stage, sha, name)

    document: dict[str, Any] = {
        "schemaVersion": ARTIFACT_SCHEMA_VERSION,
        "generatedAt": get_timestamp(timestamp_mode),
        **payload,
    }

    if schema_name is not None:
        validate_data(document, schema_name, strict=True)

    if path.exists():
        existing_version = _read_schema_version(path)
        if existing_version != str(document["schemaVersion"]):
            raise ArtifactConflictError(
                f"Refusing to overwrite {path}: existing schemaVersion "
                f"{existing_version!r} != {document['schemaVersion']!r}"
            )

    write_json(path, document)
    _refresh_index(path.parent)
    logger.info("wrote artifact %s", path)
    return path


def read_stage_artifact(artifact_root: Path, *, stage: str, sha: str, name: str) -> dict[str, Any]:
    """Load a previously written stage artifact."""
    path = artifact_path(artifact_root, stage, sha, name)
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Artifact {path} is not a JSON object")
    return data


def _read_schema_version(path: Path) -> str | None:
    try:
        existing = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        return None
    if not isinstance(existing, dict) or "schemaVersion" not in existing:
        return None
    return str(existing["schemaVersion"])


def _refresh_index(commit_dir: Path) -> None:
    entries = [
        {"name": item.name, "sha256": sha256_file(item)}
        for item in sorted(commit_dir.glob("*.json"))
        if item.name != ARTIFACT_INDEX_FILENAME
    ]
    write_json(
        commit_dir / ARTIFACT_INDEX_FILENAME,
        {"schemaVersion": ARTIFACT_SCHEMA_VERSION, "artifacts": entries},
    )
