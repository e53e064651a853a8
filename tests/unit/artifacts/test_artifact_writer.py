"""Tests for stage artifact writing and the per-commit index."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from deliverygate.artifacts import (
    ArtifactConflictError,
    artifact_path,
    canonical_dumps,
    get_timestamp,
    read_stage_artifact,
    write_stage_artifact,
)
from deliverygate.artifacts.canonical_json import sha256_file

SHA = "0123456789abcdef0123456789abcdef01234567"


def _scope_payload() -> dict[str, Any]:
    return {
        "headSha": SHA,
        "baseSha": None,
        "changedFiles": ["apps/api/src/server.ts"],
        "kind": "runtime",
        "scope": {
            "runtime": True,
            "desktop": False,
            "infra": False,
            "identity": False,
            "docsOnly": False,
            "migration": False,
            "infraRollout": False,
            "requiresReleaseCandidate": True,
            "requiresIdentityContract": False,
            "requiresMigrationSafety": False,
        },
    }


def test_deterministic_write(tmp_path: Path) -> None:
    path = write_stage_artifact(
        tmp_path,
        stage="scope",
        sha=SHA,
        name="result",
        payload={"headSha": SHA, "note": "x"},
        timestamp_mode="deterministic",
    )

    assert path == tmp_path / "scope" / SHA / "result.json"
    text = path.read_text(encoding="utf-8")
    assert text.endswith("}\n")
    data = json.loads(text)
    assert data["schemaVersion"] == "1"
    assert data["generatedAt"] == "1970-01-01T00:00:00Z"
    assert list(data) == sorted(data)


def test_rewrite_is_byte_identical(tmp_path: Path) -> None:
    kwargs: dict[str, Any] = {
        "stage": "scope",
        "sha": SHA,
        "name": "result",
        "payload": _scope_payload(),
        "schema_name": "scope_result",
        "timestamp_mode": "deterministic",
    }

    first = write_stage_artifact(tmp_path, **kwargs).read_bytes()
    second = write_stage_artifact(tmp_path, **kwargs).read_bytes()

    assert first == second


def test_index_lists_artifacts_with_digests(tmp_path: Path) -> None:
    for name in ("result", "decision"):
        write_stage_artifact(
            tmp_path, stage="gates", sha=SHA, name=name, payload={}, timestamp_mode="deterministic"
        )

    commit_dir = tmp_path / "gates" / SHA
    index = json.loads((commit_dir / "ARTIFACT_INDEX.json").read_text(encoding="utf-8"))

    assert [entry["name"] for entry in index["artifacts"]] == ["decision.json", "result.json"]
    assert index["artifacts"][1]["sha256"] == sha256_file(commit_dir / "result.json")


def test_schema_version_conflict(tmp_path: Path) -> None:
    path = artifact_path(tmp_path, "scope", SHA, "result")
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps({"schemaVersion": "0"}), encoding="utf-8")

    with pytest.raises(ArtifactConflictError, match="schemaVersion"):
        write_stage_artifact(tmp_path, stage="scope", sha=SHA, name="result", payload={})

    assert json.loads(path.read_text(encoding="utf-8")) == {"schemaVersion": "0"}


def test_schema_failure_writes_nothing(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="scope_result"):
        write_stage_artifact(
            tmp_path,
            stage="scope",
            sha=SHA,
            name="result",
            payload={"headSha": SHA},
            schema_name="scope_result",
        )

    assert not (tmp_path / "scope").exists()


@pytest.mark.parametrize(
    "stage, sha, name",
    [("../escape", SHA, "result"), ("scope", "", "result"), ("scope", SHA, "a/b"), ("scope", SHA, ".hidden")],
)
def test_invalid_segments(tmp_path: Path, stage: str, sha: str, name: str) -> None:
    with pytest.raises(ValueError, match="Invalid artifact"):
        artifact_path(tmp_path, stage, sha, name)


def test_read_stage_artifact(tmp_path: Path) -> None:
    write_stage_artifact(
        tmp_path,
        stage="release",
        sha=SHA,
        name="decision",
        payload={"releaseable": True},
        timestamp_mode="deterministic",
    )

    data = read_stage_artifact(tmp_path, stage="release", sha=SHA, name="decision")

    assert data["releaseable"] is True


def test_canonical_dumps_is_stable() -> None:
    assert canonical_dumps({"b": 1, "a": [1, "é"]}) == '{"a":[1,"é"],"b":1}'


def test_timestamp_modes() -> None:
    assert get_timestamp("deterministic") == "1970-01-01T00:00:00Z"
    assert get_timestamp("now").endswith("Z")
