"""Required secret existence contract."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from pathlib import Path

from deliverygate.contracts.types import ContractReason, ContractResult
from deliverygate.exec import run_command

logger = logging.getLogger(__name__)

DEFAULT_REQUIRED_SECRET_NAMES: tuple[str, ...] = (
    "postgres-admin-password",
    "web-session-secret",
    "entra-client-secret",
    "auth-oidc-state-encryption-key",
    "oauth-token-signing-secret",
)

SecretExists = Callable[[str], bool]


def parse_secret_names(raw: str | None) -> tuple[str, ...]:
    """Split a comma-separated list; empty input means the default set."""
    names = tuple(entry.strip() for entry in (raw or "").split(",") if entry.strip())
    return names or DEFAULT_REQUIRED_SECRET_NAMES


def validate_required_secrets(names: Iterable[str], secret_exists: SecretExists) -> ContractResult:
    """Report ``SECRET_MISSING`` once per secret the lookup cannot find."""
    reasons = [
        ContractReason(
            code="SECRET_MISSING",
            message=f"Required secret is missing: {name}",
            field=name,
        )
        for name in names
        if not secret_exists(name)
    ]
    return ContractResult.from_reasons(reasons)


def keyvault_secret_lookup(vault_name: str, *, cwd: Path | None = None) -> SecretExists:
    """Build a lookup backed by ``az keyvault secret show``.

    A non-zero exit means the secret is absent or unreadable; both count as
    missing. A missing ``az`` binary propagates as an environment error.
    """
    working_dir = cwd or Path.cwd()

    def exists(secret_name: str) -> bool:
        result = run_command(
            [
                "az",
                "keyvault",
                "secret",
                "show",
                "--vault-name",
                vault_name,
                "--name",
                secret_name,
                "--query",
                "id",
                "--output",
                "tsv",
            ],
            cwd=working_dir,
            check=False,
        )
        if result.returncode != 0:
            logger.info(
                "secret %s not readable in %s: %s",
                secret_name,
                vault_name,
                result.stderr.strip() or "unknown error",
            )
            return False
        return True

    return exists
