"""Identity configuration shape contract."""

from __future__ import annotations

import ipaddress
import re
from collections.abc import Mapping
from dataclasses import dataclass, field

from deliverygate.contracts.types import ContractReason, ContractResult

API_IDENTIFIER_URI_PATTERN = re.compile(r"^api://[A-Za-z0-9][A-Za-z0-9._:/-]*$")
_LABEL_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")

UNROUTABLE_HOSTS = frozenset({"localhost"})
UNROUTABLE_SUFFIXES: tuple[str, ...] = (
    ".localhost",
    ".local",
    ".internal",
    ".test",
    ".invalid",
    ".example",
)


@dataclass(frozen=True)
class IdentityConfigInput:
    """Resolved identity configuration.

    ``env`` holds the values of ``required_env_names``; ``custom_domains``
    maps a setting name (``API_CUSTOM_DOMAIN``) to its configured host.
    """

    api_identifier_uri: str = ""
    legacy_audience: str = ""
    required_env_names: tuple[str, ...] = ()
    env: Mapping[str, str] = field(default_factory=dict)
    custom_domains: Mapping[str, str] = field(default_factory=dict)

    @property
    def resolved_api_identifier_uri(self) -> str:
        return self.api_identifier_uri.strip() or self.legacy_audience.strip()


def _is_ip_literal(host: str) -> bool:
    candidate = host[1:-1] if host.startswith("[") and host.endswith("]") else host
    try:
        ipaddress.ip_address(candidate)
    except ValueError:
        return False
    return True


def check_custom_domain(setting: str, raw_value: str) -> ContractReason | None:
    """Return a reason when ``raw_value`` is not a bare, routable host name."""
    value = raw_value.strip().lower()
    if value.endswith("."):
        value = value[:-1]

    if _is_ip_literal(value):
        return ContractReason(
            code="IDENTITY_CUSTOM_DOMAIN_UNROUTABLE",
            message=f"{setting} must be a DNS host name, not an IP literal: {raw_value}",
            field=setting,
        )

    if any(marker in value for marker in ("://", "/", "?", "#", "@", ":")):
        return ContractReason(
            code="IDENTITY_CUSTOM_DOMAIN_INVALID",
            message=(
                f"{setting} must be a bare host name without scheme, path, query, "
                f"fragment, port or credentials: {raw_value}"
            ),
            field=setting,
        )

    if value in UNROUTABLE_HOSTS:
        return ContractReason(
            code="IDENTITY_CUSTOM_DOMAIN_UNROUTABLE",
            message=f"{setting} points at a loopback host: {raw_value}",
            field=setting,
        )

    labels = value.split(".")
    if len(value) > 253 or len(labels) < 2 or not all(_LABEL_PATTERN.match(label) for label in labels):
        return ContractReason(
            code="IDENTITY_CUSTOM_DOMAIN_INVALID",
            message=f"{setting} is not a valid multi-label host name: {raw_value}",
            field=setting,
        )

    if value.endswith(UNROUTABLE_SUFFIXES):
        return ContractReason(
            code="IDENTITY_CUSTOM_DOMAIN_UNROUTABLE",
            message=f"{setting} points at a loopback or reserved host: {raw_value}",
            field=setting,
        )
    return None


def validate_identity_config(config: IdentityConfigInput) -> ContractResult:
    """Validate required values, the API identifier URI and custom domains."""
    reasons: list[ContractReason] = []

    for name in config.required_env_names:
        if not str(config.env.get(name) or "").strip():
            reasons.append(
                ContractReason(
                    code="IDENTITY_REQUIRED_ENV_MISSING",
                    message=f"Missing required identity config value: {name}",
                    field=name,
                )
            )

    api_uri = config.api_identifier_uri.strip()
    legacy = config.legacy_audience.strip()
    if api_uri and legacy and api_uri != legacy:
        reasons.append(
            ContractReason(
                code="IDENTITY_API_IDENTIFIER_URI_CONFLICT",
                message="API identifier URI and legacy audience are both set but differ.",
                field="API_IDENTIFIER_URI",
            )
        )

    resolved = config.resolved_api_identifier_uri
    if not resolved:
        reasons.append(
            ContractReason(
                code="IDENTITY_API_IDENTIFIER_URI_MISSING",
                message="Set the API identifier URI (preferred) or the legacy audience.",
                field="API_IDENTIFIER_URI",
            )
        )
    elif not API_IDENTIFIER_URI_PATTERN.match(resolved):
        reasons.append(
            ContractReason(
                code="IDENTITY_API_IDENTIFIER_URI_INVALID_FORMAT",
                message=(
                    "API identifier URI must start with 'api://' and contain only "
                    "URI-safe path characters."
                ),
                field="API_IDENTIFIER_URI",
            )
        )

    for setting in sorted(config.custom_domains):
        value = config.custom_domains[setting]
        if not value or not value.strip():
            continue
        reason = check_custom_domain(setting, value)
        if reason is not None:
            reasons.append(reason)

    return ContractResult.from_reasons(reasons)
