"""Tests for the identity configuration contract."""

from __future__ import annotations

import pytest

from deliverygate.contracts import IdentityConfigInput, validate_identity_config
from deliverygate.contracts.identity import check_custom_domain

VALID_URI = "api://deliverygate-api"


def test_valid_config_passes() -> None:
    result = validate_identity_config(
        IdentityConfigInput(
            api_identifier_uri=VALID_URI,
            required_env_names=("AZURE_TENANT_ID",),
            env={"AZURE_TENANT_ID": "00000000-0000-0000-0000-000000000000"},
            custom_domains={"API_CUSTOM_DOMAIN": "api.acme.com", "WEB_CUSTOM_DOMAIN": "www.acme.com."},
        )
    )

    assert result.passed is True


def test_legacy_audience_alone_is_accepted() -> None:
    result = validate_identity_config(IdentityConfigInput(legacy_audience="api://legacy-api"))

    assert result.passed is True


def test_missing_identifier() -> None:
    result = validate_identity_config(IdentityConfigInput())

    assert result.reason_codes == ("IDENTITY_API_IDENTIFIER_URI_MISSING",)


def test_conflicting_identifier_and_audience() -> None:
    result = validate_identity_config(
        IdentityConfigInput(api_identifier_uri=VALID_URI, legacy_audience="api://other")
    )

    assert result.reason_codes == ("IDENTITY_API_IDENTIFIER_URI_CONFLICT",)


@pytest.mark.parametrize("uri", ["https://deliverygate-api", "api://", "api://-leading", "api://has space"])
def test_invalid_identifier_format(uri: str) -> None:
    result = validate_identity_config(IdentityConfigInput(api_identifier_uri=uri))

    assert result.reason_codes == ("IDENTITY_API_IDENTIFIER_URI_INVALID_FORMAT",)


def test_required_env_missing_comes_first() -> None:
    result = validate_identity_config(
        IdentityConfigInput(
            required_env_names=("AZURE_TENANT_ID", "AZURE_CLIENT_ID"),
            env={"AZURE_CLIENT_ID": "set", "AZURE_TENANT_ID": "  "},
        )
    )

    assert result.reason_codes == (
        "IDENTITY_REQUIRED_ENV_MISSING",
        "IDENTITY_API_IDENTIFIER_URI_MISSING",
    )
    assert result.reason_details[0].field == "AZURE_TENANT_ID"


@pytest.mark.parametrize(
    "host, code",
    [
        ("https://api.acme.com", "IDENTITY_CUSTOM_DOMAIN_INVALID"),
        ("api.acme.com/path", "IDENTITY_CUSTOM_DOMAIN_INVALID"),
        ("api.acme.com:443", "IDENTITY_CUSTOM_DOMAIN_INVALID"),
        ("api.acme.com?x=1", "IDENTITY_CUSTOM_DOMAIN_INVALID"),
        ("user@api.acme.com", "IDENTITY_CUSTOM_DOMAIN_INVALID"),
        ("intranet", "IDENTITY_CUSTOM_DOMAIN_INVALID"),
        ("bad_label.acme.com", "IDENTITY_CUSTOM_DOMAIN_INVALID"),
        ("-edge.acme.com", "IDENTITY_CUSTOM_DOMAIN_INVALID"),
        ("localhost", "IDENTITY_CUSTOM_DOMAIN_UNROUTABLE"),
        ("svc.localhost", "IDENTITY_CUSTOM_DOMAIN_UNROUTABLE"),
        ("printer.local", "IDENTITY_CUSTOM_DOMAIN_UNROUTABLE"),
        ("api.corp.internal", "IDENTITY_CUSTOM_DOMAIN_UNROUTABLE"),
        ("api.acme.test", "IDENTITY_CUSTOM_DOMAIN_UNROUTABLE"),
        ("api.example", "IDENTITY_CUSTOM_DOMAIN_UNROUTABLE"),
        ("10.0.0.1", "IDENTITY_CUSTOM_DOMAIN_UNROUTABLE"),
        ("[::1]", "IDENTITY_CUSTOM_DOMAIN_UNROUTABLE"),
    ],
)
def test_custom_domain_rules(host: str, code: str) -> None:
    reason = check_custom_domain("API_CUSTOM_DOMAIN", host)

    assert reason is not None
    assert reason.code == code
    assert reason.field == "API_CUSTOM_DOMAIN"


@pytest.mark.parametrize("host", ["api.acme.com", "API.Acme.COM", "a-b.c-d.io", "api.acme.com."])
def test_routable_custom_domains(host: str) -> None:
    assert check_custom_domain("API_CUSTOM_DOMAIN", host) is None


def test_domains_are_reported_in_setting_order() -> None:
    result = validate_identity_config(
        IdentityConfigInput(
            api_identifier_uri=VALID_URI,
            custom_domains={
                "WEB_CUSTOM_DOMAIN": "localhost",
                "API_CUSTOM_DOMAIN": "https://api.acme.com",
                "AUTH_CUSTOM_DOMAIN": "",
            },
        )
    )

    assert [reason.field for reason in result.reason_details] == [
        "API_CUSTOM_DOMAIN",
        "WEB_CUSTOM_DOMAIN",
    ]
    assert result.reason_codes == (
        "IDENTITY_CUSTOM_DOMAIN_INVALID",
        "IDENTITY_CUSTOM_DOMAIN_UNROUTABLE",
    )
