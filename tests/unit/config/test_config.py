"""Tests for settings resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from deliverygate.config import (
    DEFAULT_ARTIFACT_ROOT,
    DEFAULT_GITHUB_API_URL,
    DEFAULT_GITHUB_SERVER_URL,
    DEFAULT_POLICY_PATH,
    load_settings,
    normalize_timestamp_mode,
)


def test_defaults() -> None:
    settings = load_settings(env={})

    assert settings.policy_path == DEFAULT_POLICY_PATH
    assert settings.artifact_root == DEFAULT_ARTIFACT_ROOT
    assert settings.timestamp_mode == "now"
    assert settings.log_level == "WARNING"
    assert settings.github_token is None
    assert settings.github_api_url == DEFAULT_GITHUB_API_URL


def test_environment_overrides_defaults() -> None:
    settings = load_settings(
        env={
            "DELIVERYGATE_POLICY_PATH": "ci/policy.json",
            "DELIVERYGATE_ARTIFACT_ROOT": "out/evidence",
            "DELIVERYGATE_TIMESTAMP_MODE": "deterministic",
            "DELIVERYGATE_LOG_LEVEL": "debug",
            "GITHUB_TOKEN": " token-123 ",
            "GITHUB_REPOSITORY": "acme/platform",
        }
    )

    assert settings.policy_path == Path("ci/policy.json")
    assert settings.artifact_root == Path("out/evidence")
    assert settings.timestamp_mode == "deterministic"
    assert settings.log_level == "DEBUG"
    assert settings.github_token == "token-123"
    assert settings.github_repository == "acme/platform"


def test_cli_values_win_over_environment() -> None:
    settings = load_settings(
        policy_path=Path("cli/policy.json"),
        timestamp_mode="wallclock",
        env={"DELIVERYGATE_POLICY_PATH": "env/policy.json", "DELIVERYGATE_TIMESTAMP_MODE": "deterministic"},
    )

    assert settings.policy_path == Path("cli/policy.json")
    assert settings.timestamp_mode == "now"


def test_blank_values_fall_through() -> None:
    settings = load_settings(timestamp_mode="  ", env={"DELIVERYGATE_TIMESTAMP_MODE": "  "})

    assert settings.timestamp_mode == "now"


@pytest.mark.parametrize(
    "value, expected",
    [("deterministic", "deterministic"), (" NOW ", "now"), ("wallclock", "now")],
)
def test_normalize_timestamp_mode(value: str, expected: str) -> None:
    assert normalize_timestamp_mode(value) == expected


def test_invalid_timestamp_mode() -> None:
    with pytest.raises(ValueError, match="Unsupported timestamp mode"):
        load_settings(env={"DELIVERYGATE_TIMESTAMP_MODE": "sometimes"})


def test_github_run_context_is_resolved_once() -> None:
    settings = load_settings(
        env={
            "GITHUB_REPOSITORY": "acme/platform",
            "GITHUB_RUN_ID": "2002",
            "GITHUB_SERVER_URL": "https://github.example.com/",
            "GITHUB_EVENT_PATH": "/tmp/event.json",
            "GITHUB_SHA": " abc123 ",
            "AZURE_TENANT_ID": "tenant",
        }
    )

    assert settings.github_event_path == Path("/tmp/event.json")
    assert settings.github_sha == "abc123"
    assert settings.run_url == "https://github.example.com/acme/platform/actions/runs/2002"
    assert settings.environment["AZURE_TENANT_ID"] == "tenant"


def test_github_run_context_defaults() -> None:
    settings = load_settings(env={})

    assert settings.github_server_url == DEFAULT_GITHUB_SERVER_URL
    assert settings.github_event_path is None
    assert settings.run_url is None
    assert dict(settings.environment) == {}


def test_environment_snapshot_is_read_only() -> None:
    source = {"AZURE_TENANT_ID": "tenant"}
    settings = load_settings(env=source)
    source["AZURE_TENANT_ID"] = "changed"

    assert settings.environment["AZURE_TENANT_ID"] == "tenant"
    with pytest.raises(TypeError):
        settings.environment["AZURE_TENANT_ID"] = "other"  # type: ignore[index]
