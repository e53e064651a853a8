"""Declarative contract validators."""

from deliverygate.contracts.digest import validate_release_candidate_refs
from deliverygate.contracts.identity import IdentityConfigInput, validate_identity_config
from deliverygate.contracts.secrets import keyvault_secret_lookup, validate_required_secrets
from deliverygate.contracts.types import ContractReason, ContractResult

__all__ = [
    "ContractReason",
    "ContractResult",
    "IdentityConfigInput",
    "keyvault_secret_lookup",
    "validate_identity_config",
    "validate_release_candidate_refs",
    "validate_required_secrets",
]
