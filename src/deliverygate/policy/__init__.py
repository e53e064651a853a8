"""Pipeline policy document: typed, validated, immutable."""

from deliverygate.policy.loader import load_policy, parse_policy
from deliverygate.policy.types import (
    DocsDriftRules,
    HighRiskCategory,
    HighRiskMainlinePolicy,
    Policy,
    PolicyError,
    ScopeRules,
    StagePolicy,
    StageSlo,
)

__all__ = [
    "DocsDriftRules",
    "HighRiskCategory",
    "HighRiskMainlinePolicy",
    "Policy",
    "PolicyError",
    "ScopeRules",
    "StagePolicy",
    "StageSlo",
    "load_policy",
    "parse_policy",
]
