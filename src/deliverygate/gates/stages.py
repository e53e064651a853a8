"""The four gate checkpoints and the scope flags that drive them."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from deliverygate.contracts.types import ContractResult
from deliverygate.gates.evaluator import RequiredCheck, StageDefinition, evaluate_gate
from deliverygate.gates.types import (
    ContractSignal,
    Decision,
    DocsDriftSignal,
    GateReason,
    GateResult,
    SloSignal,
    normalize_check_results,
)
from deliverygate.policy.types import Policy
from deliverygate.scope.classifier import ChangeScope
from deliverygate.scope.docs_drift import DocsDriftResult

COMMIT_STAGE = StageDefinition(
    key="commit-stage",
    checks=(
        RequiredCheck("determine-scope"),
        RequiredCheck("commit-test-suite", "runtime"),
        RequiredCheck("desktop-commit-test-suite", "desktop"),
        RequiredCheck("infra-static-check", "infra"),
        RequiredCheck("identity-static-check", "identity"),
    ),
)

INTEGRATION_GATE = StageDefinition(
    key="integration-gate",
    checks=(
        RequiredCheck("determine-scope"),
        RequiredCheck("build-compile", "build"),
        RequiredCheck("migration-safety", "migration"),
        RequiredCheck("runtime-contract-smoke", "runtimeSmoke"),
        RequiredCheck("minimal-integration-smoke", "integration"),
    ),
)

ACCEPTANCE_STAGE = StageDefinition(
    key="automated-acceptance-test-gate",
    checks=(
        RequiredCheck("load-release-candidate"),
        RequiredCheck("runtime-api-system-acceptance", "runtime"),
        RequiredCheck("runtime-browser-acceptance", "runtime"),
        RequiredCheck("runtime-migration-image-acceptance", "runtime"),
        RequiredCheck("infra-readonly-acceptance", "infra"),
        RequiredCheck("identity-readonly-acceptance", "identity"),
    ),
)

DEPLOYMENT_STAGE = StageDefinition(
    key="deployment-stage",
    checks=(
        RequiredCheck("deploy-release-candidate", "deployment"),
        RequiredCheck("production-blackbox-verify", "blackbox"),
    ),
)

STAGE_DEFINITIONS: dict[str, StageDefinition] = {
    definition.key: definition
    for definition in (COMMIT_STAGE, INTEGRATION_GATE, ACCEPTANCE_STAGE, DEPLOYMENT_STAGE)
}


def stage_definition(policy: Policy, stage_key: str) -> StageDefinition:
    """Return the stage definition extended with the policy's required checks."""
    return STAGE_DEFINITIONS[stage_key].with_required_checks(policy.stage(stage_key).required_checks)


def docs_drift_signal(result: DocsDriftResult) -> DocsDriftSignal:
    """Docs drift is blocking for a gate once docs-critical paths are touched."""
    return DocsDriftSignal(blocking=result.touches_docs_critical_paths, status=result.status)


def commit_stage_flags(scope: ChangeScope) -> dict[str, bool]:
    return {
        "runtime": scope.runtime,
        "desktop": scope.desktop,
        "infra": scope.infra,
        "identity": scope.identity,
    }


def integration_gate_flags(scope: ChangeScope) -> dict[str, bool]:
    return {
        "build": scope.runtime or scope.desktop,
        "migration": scope.migration,
        "runtimeSmoke": scope.runtime,
        "integration": scope.runtime or scope.infra,
    }


def acceptance_stage_flags(scope: ChangeScope) -> dict[str, bool]:
    return {
        "runtime": scope.runtime,
        "infra": scope.infra,
        "identity": scope.identity,
    }


def deployment_stage_flags(scope: ChangeScope, deployment_required: bool) -> dict[str, bool]:
    return {
        "deployment": deployment_required,
        "blackbox": deployment_required and scope.requires_release_candidate,
    }


def evaluate_commit_stage(
    policy: Policy,
    scope: ChangeScope,
    check_results: Mapping[str, object],
    *,
    docs_drift: DocsDriftSignal | None = None,
    observed_seconds: float | None = None,
) -> GateResult:
    """Decide the commit stage; the policy SLO applies when it is configured."""
    slo_policy = policy.commit_stage.slo
    slo = None
    if slo_policy is not None:
        slo = SloSignal(
            mode=slo_policy.mode,
            target_seconds=slo_policy.target_seconds,
            observed_seconds=observed_seconds,
        )
    return evaluate_gate(
        stage_definition(policy, COMMIT_STAGE.key),
        check_results,
        commit_stage_flags(scope),
        docs_drift=docs_drift,
        slo=slo,
    )


def evaluate_integration_gate(
    policy: Policy,
    scope: ChangeScope,
    check_results: Mapping[str, object],
    *,
    docs_drift: DocsDriftSignal | None = None,
) -> GateResult:
    return evaluate_gate(
        stage_definition(policy, INTEGRATION_GATE.key),
        check_results,
        integration_gate_flags(scope),
        docs_drift=docs_drift,
    )


def evaluate_acceptance_stage(
    policy: Policy,
    scope: ChangeScope,
    check_results: Mapping[str, object],
    *,
    candidate_refs: ContractResult | None = None,
    identity: ContractResult | None = None,
) -> GateResult:
    """Decide the automated acceptance test gate and its YES/NO decision."""
    result = evaluate_gate(
        stage_definition(policy, ACCEPTANCE_STAGE.key),
        check_results,
        acceptance_stage_flags(scope),
        contracts=(
            ContractSignal(
                "RELEASE_CANDIDATE_REFS",
                required=scope.requires_release_candidate,
                result=candidate_refs,
            ),
            ContractSignal("IDENTITY", required=scope.identity, result=identity),
        ),
    )
    return _with_decision(result, "YES" if result.pass_ else "NO")


def evaluate_deployment_stage(
    policy: Policy,
    scope: ChangeScope,
    check_results: Mapping[str, object],
    *,
    acceptance_decision: str,
    acceptance_reason_codes: Iterable[str] = (),
    deployment_required: bool,
    secrets: ContractResult | None = None,
    require_secrets: bool = True,
) -> GateResult:
    """Decide the deployment stage and the production decision.

    A non-YES acceptance decision short-circuits to NO and carries the
    acceptance reason codes through. Without a deployment the stage passes
    with ``NO_DEPLOYMENT_REQUIRED`` as an informational code.
    """
    definition = stage_definition(policy, DEPLOYMENT_STAGE.key)
    carried = tuple(code.strip() for code in acceptance_reason_codes if code and code.strip())

    if acceptance_decision.strip().upper() != "YES":
        codes = carried or ("ACCEPTANCE_DECISION_NOT_YES",)
        return GateResult(
            stage=definition.key,
            check_results=normalize_check_results(check_results, definition.check_names),
            pass_=False,
            reason_codes=codes,
            reason_details=tuple(
                GateReason(code=code, message=f"acceptance decision is not YES ({code})")
                for code in codes
            ),
            decision="NO",
        )

    if not deployment_required:
        return GateResult(
            stage=definition.key,
            check_results=normalize_check_results(check_results, definition.check_names),
            pass_=True,
            informational_codes=("NO_DEPLOYMENT_REQUIRED",),
            decision="YES",
        )

    result = evaluate_gate(
        definition,
        check_results,
        deployment_stage_flags(scope, deployment_required),
        contracts=(ContractSignal("SECRETS", required=require_secrets, result=secrets),),
    )
    return _with_decision(result, "YES" if result.pass_ else "NO")


def _with_decision(result: GateResult, decision: Decision) -> GateResult:
    return GateResult(
        stage=result.stage,
        check_results=result.check_results,
        pass_=result.pass_,
        reason_codes=result.reason_codes,
        reason_details=result.reason_details,
        informational_codes=result.informational_codes,
        decision=decision,
    )
