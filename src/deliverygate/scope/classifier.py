"""Change scope classification.

Maps a changed-path list onto the scope flags that drive which checks each
gate requires. Documentation-only paths are removed before any other
dimension is evaluated, so a README edit under ``infra/`` never turns on
infra-scoped checks.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import asdict, dataclass
from typing import Any, Literal

from deliverygate.policy.types import Policy
from deliverygate.scope.globs import matches_any_pattern, normalize_path

CandidateKind = Literal["runtime", "infra", "identity", "desktop", "checks"]

SCOPE_FLAG_KEYS: tuple[str, ...] = (
    "runtime",
    "desktop",
    "infra",
    "identity",
    "migration",
    "infraRollout",
    "docsOnly",
)


@dataclass(frozen=True)
class ChangeScope:
    """Scope flags derived from a changed-path set."""

    runtime: bool = False
    desktop: bool = False
    infra: bool = False
    identity: bool = False
    migration: bool = False
    infra_rollout: bool = False
    docs_only: bool = False

    @property
    def requires_infra_convergence(self) -> bool:
        return self.runtime and self.infra

    @property
    def requires_migrations(self) -> bool:
        return self.runtime and self.migration

    @property
    def requires_release_candidate(self) -> bool:
        """Whether a digest-pinned release candidate must exist for this change."""
        return self.runtime or self.infra or self.requires_infra_convergence

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        return {
            "runtime": data["runtime"],
            "desktop": data["desktop"],
            "infra": data["infra"],
            "identity": data["identity"],
            "migration": data["migration"],
            "infraRollout": data["infra_rollout"],
            "docsOnly": data["docs_only"],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChangeScope:
        """Build a scope from its artifact form.

        Raises:
            ValueError: If any flag is absent or not a JSON boolean
        """
        missing = [key for key in SCOPE_FLAG_KEYS if key not in data]
        if missing:
            raise ValueError(f"scope is missing flag(s): {', '.join(missing)}")
        malformed = [key for key in SCOPE_FLAG_KEYS if not isinstance(data[key], bool)]
        if malformed:
            raise ValueError(f"scope flag(s) must be booleans: {', '.join(malformed)}")

        return cls(
            runtime=data["runtime"],
            desktop=data["desktop"],
            infra=data["infra"],
            identity=data["identity"],
            migration=data["migration"],
            infra_rollout=data["infraRollout"],
            docs_only=data["docsOnly"],
        )


def normalize_changed_files(changed_files: Iterable[str]) -> list[str]:
    """Normalize, de-duplicate and sort a changed-path list."""
    normalized = {normalize_path(path) for path in changed_files}
    normalized.discard("")
    return sorted(normalized)


def resolve_change_scope(policy: Policy, changed_files: Iterable[str]) -> ChangeScope:
    """Classify a changed-path set against the policy's scope rules."""
    paths = normalize_changed_files(changed_files)
    rules = policy.scope_rules

    docs_only = bool(paths) and all(matches_any_pattern(path, rules.docs_only) for path in paths)
    non_docs = [path for path in paths if not matches_any_pattern(path, rules.docs_only)]

    def touches(patterns: tuple[str, ...]) -> bool:
        return any(matches_any_pattern(path, patterns) for path in non_docs)

    return ChangeScope(
        runtime=touches(rules.runtime),
        desktop=touches(rules.desktop),
        infra=touches(rules.infra),
        identity=touches(rules.identity),
        migration=touches(rules.migration),
        infra_rollout=touches(rules.infra_rollout),
        docs_only=docs_only,
    )


def classify_kind(scope: ChangeScope) -> CandidateKind:
    """Pick the release candidate kind; runtime dominates the other flags."""
    if scope.runtime:
        return "runtime"
    if scope.infra:
        return "infra"
    if scope.identity:
        return "identity"
    if scope.desktop:
        return "desktop"
    return "checks"
