"""Evidence artifact helpers."""

from deliverygate.artifacts.canonical_json import canonical_dumps
from deliverygate.artifacts.writer import (
    ArtifactConflictError,
    artifact_path,
    get_timestamp,
    read_stage_artifact,
    write_stage_artifact,
)

__all__ = [
    "ArtifactConflictError",
    "artifact_path",
    "canonical_dumps",
    "get_timestamp",
    "read_stage_artifact",
    "write_stage_artifact",
]
