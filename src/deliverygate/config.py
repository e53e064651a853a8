"""Process-level settings assembled once at entry.

Decision functions never read the environment; the CLI resolves a single
``Settings`` value here and passes what each command needs explicitly.
Precedence for every field: CLI option, then environment variable, then the
built-in default.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from deliverygate.artifacts.writer import TimestampMode

POLICY_PATH_ENV = "DELIVERYGATE_POLICY_PATH"
ARTIFACT_ROOT_ENV = "DELIVERYGATE_ARTIFACT_ROOT"
TIMESTAMP_MODE_ENV = "DELIVERYGATE_TIMESTAMP_MODE"
LOG_LEVEL_ENV = "DELIVERYGATE_LOG_LEVEL"

DEFAULT_POLICY_PATH = Path(".github/policy/pipeline-policy.json")
DEFAULT_ARTIFACT_ROOT = Path(".artifacts")
DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_GITHUB_SERVER_URL = "https://github.com"


@dataclass(frozen=True)
class Settings:
    """Immutable run configuration.

    ``environment`` is a read-only snapshot taken when the settings were
    resolved. Commands that validate arbitrary variable names (the identity
    contract, CI branch detection) read it instead of ``os.environ``.
    """

    policy_path: Path
    artifact_root: Path
    timestamp_mode: TimestampMode
    log_level: str
    github_token: str | None
    github_repository: str | None
    github_api_url: str
    github_server_url: str = DEFAULT_GITHUB_SERVER_URL
    github_event_path: Path | None = None
    github_run_id: str | None = None
    github_sha: str | None = None
    environment: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({}),
        compare=False,
        repr=False,
    )

    @property
    def run_url(self) -> str | None:
        """Web URL of the current workflow run, when running inside one."""
        if not self.github_run_id or not self.github_repository:
            return None
        return f"{self.github_server_url}/{self.github_repository}/actions/runs/{self.github_run_id}"


def normalize_timestamp_mode(timestamp_mode: str) -> TimestampMode:
    """Normalize timestamp modes; ``wallclock`` is accepted as an alias of ``now``."""
    normalized = timestamp_mode.strip().lower()
    if normalized == "deterministic":
        return "deterministic"
    if normalized in {"now", "wallclock"}:
        return "now"
    raise ValueError(
        f"Unsupported timestamp mode: {timestamp_mode}. "
        "Expected one of: deterministic, now, wallclock."
    )


def _pick(cli_value: str | None, env: Mapping[str, str], name: str) -> str | None:
    if cli_value is not None and cli_value.strip():
        return cli_value.strip()
    env_value = env.get(name, "").strip()
    return env_value or None


def load_settings(
    *,
    policy_path: Path | None = None,
    artifact_root: Path | None = None,
    timestamp_mode: str | None = None,
    log_level: str | None = None,
    env: Mapping[str, str] | None = None,
) -> Settings:
    """Resolve settings from CLI overrides and the process environment."""
    environ = os.environ if env is None else env

    resolved_policy = _pick(str(policy_path) if policy_path else None, environ, POLICY_PATH_ENV)
    resolved_root = _pick(str(artifact_root) if artifact_root else None, environ, ARTIFACT_ROOT_ENV)
    resolved_mode = _pick(timestamp_mode, environ, TIMESTAMP_MODE_ENV) or "now"
    resolved_level = _pick(log_level, environ, LOG_LEVEL_ENV) or "WARNING"
    event_path = _pick(None, environ, "GITHUB_EVENT_PATH")

    return Settings(
        policy_path=Path(resolved_policy) if resolved_policy else DEFAULT_POLICY_PATH,
        artifact_root=Path(resolved_root) if resolved_root else DEFAULT_ARTIFACT_ROOT,
        timestamp_mode=normalize_timestamp_mode(resolved_mode),
        log_level=resolved_level.upper(),
        github_token=_pick(None, environ, "GITHUB_TOKEN"),
        github_repository=_pick(None, environ, "GITHUB_REPOSITORY"),
        github_api_url=_pick(None, environ, "GITHUB_API_URL") or DEFAULT_GITHUB_API_URL,
        github_server_url=(_pick(None, environ, "GITHUB_SERVER_URL") or DEFAULT_GITHUB_SERVER_URL).rstrip("/"),
        github_event_path=Path(event_path) if event_path else None,
        github_run_id=_pick(None, environ, "GITHUB_RUN_ID"),
        github_sha=_pick(None, environ, "GITHUB_SHA"),
        environment=MappingProxyType(dict(environ)),
    )
