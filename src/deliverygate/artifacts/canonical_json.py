"""Canonical JSON helpers for deterministic evidence artifacts."""

from __future__ import annotations

import hashlib
import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path


def canonical_dumps(obj: Any) -> str:
    """Serialize a JSON-compatible object with stable canonical formatting."""
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def pretty_dumps(obj: Any) -> str:
    """Serialize for on-disk artifacts: sorted keys, two-space indent, trailing newline."""
    return f"{json.dumps(obj, indent=2, sort_keys=True, ensure_ascii=False)}\n"


def write_json(path: Path, obj: Any) -> None:
    """Write pretty-printed JSON as UTF-8."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(pretty_dumps(obj), encoding="utf-8")


def sha256_file(path: Path) -> str:
    """Compute SHA-256 for file bytes."""
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        while True:
            chunk = handle.read(65536)
            if not chunk:
                break
            digest.update(chunk)
    return digest.hexdigest()
