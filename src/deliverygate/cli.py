"""deliverygate CLI - pipeline gate decisions, contracts and mainline recovery."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.logging import RichHandler

from deliverygate import __version__, scm
from deliverygate.artifacts.writer import write_stage_artifact
from deliverygate.config import Settings, load_settings
from deliverygate.contracts.digest import validate_release_candidate_refs
from deliverygate.contracts.identity import IdentityConfigInput, validate_identity_config
from deliverygate.contracts.secrets import (
    keyvault_secret_lookup,
    parse_secret_names,
    validate_required_secrets,
)
from deliverygate.contracts.types import ContractResult
from deliverygate.envelope.errors import GuardrailEnvironmentError, GuardrailViolation
from deliverygate.envelope.guardrail import CheckReport, run_guardrail
from deliverygate.gates.stages import (
    evaluate_acceptance_stage,
    evaluate_commit_stage,
    evaluate_deployment_stage,
    evaluate_integration_gate,
)
from deliverygate.gates.types import DocsDriftSignal, GateResult
from deliverygate.guardrails.fresh_head import FRESH_HEAD_FAIL, evaluate_fresh_head, requires_fresh_head
from deliverygate.guardrails.high_risk import PR_COMMANDS, run_high_risk_mainline_check
from deliverygate.policy.loader import load_policy
from deliverygate.policy.types import Policy
from deliverygate.recovery.github import GitHubClient
from deliverygate.recovery.runner import WorkflowRunEvent, recover_main
from deliverygate.release.outcome import ReleaseInputs, evaluate_release_outcome
from deliverygate.scope.classifier import (
    ChangeScope,
    classify_kind,
    normalize_changed_files,
    resolve_change_scope,
)
from deliverygate.scope.docs_drift import BLOCKING_CODE, evaluate_docs_drift

logger = logging.getLogger(__name__)

cli = typer.Typer(
    name="deliverygate",
    help="deliverygate - release decision core for continuous-delivery pipelines",
    no_args_is_help=True,
)
policy_app = typer.Typer(help="Pipeline policy document commands.", no_args_is_help=True)
gate_app = typer.Typer(help="Stage gate decisions.", no_args_is_help=True)
release_app = typer.Typer(help="Release outcome decisions.", no_args_is_help=True)
contract_app = typer.Typer(help="Configuration contract validators.", no_args_is_help=True)
cli.add_typer(policy_app, name="policy")
cli.add_typer(gate_app, name="gate")
cli.add_typer(release_app, name="release")
cli.add_typer(contract_app, name="contract")

# Summaries go to stderr; stdout carries only the envelope PASS line.
console = Console(stderr=True)

GATE_DO_COMMANDS = (
    'gh run view "$GITHUB_RUN_ID" --log',
    "fix forward on main and push a corrective commit",
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"deliverygate {__version__}")
        raise typer.Exit()


def _configure_logging(level_name: str) -> None:
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        raise typer.BadParameter(f"Unknown log level: {level_name}", param_hint="--log-level")
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


@cli.callback()
def _cli_callback(
    ctx: typer.Context,
    policy: Path | None = typer.Option(
        None,
        "--policy",
        help="Pipeline policy document (env: DELIVERYGATE_POLICY_PATH)",
    ),
    artifact_root: Path | None = typer.Option(
        None,
        "--artifact-root",
        help="Root directory for evidence artifacts (env: DELIVERYGATE_ARTIFACT_ROOT)",
    ),
    timestamp_mode: str | None = typer.Option(
        None,
        "--timestamp-mode",
        help="Timestamp mode: deterministic, now or wallclock (env: DELIVERYGATE_TIMESTAMP_MODE)",
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Log level for stderr diagnostics (env: DELIVERYGATE_LOG_LEVEL)",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        help="Show deliverygate version and exit.",
        is_eager=True,
        callback=_version_callback,
    ),
) -> None:
    """Resolve run settings once; every command receives them through the context."""
    _ = version
    try:
        settings = load_settings(
            policy_path=policy,
            artifact_root=artifact_root,
            timestamp_mode=timestamp_mode,
            log_level=log_level,
        )
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--timestamp-mode / DELIVERYGATE_TIMESTAMP_MODE") from e
    _configure_logging(settings.log_level)
    ctx.obj = settings


def _settings(ctx: typer.Context) -> Settings:
    settings = ctx.obj
    if not isinstance(settings, Settings):
        settings = load_settings()
        ctx.obj = settings
    return settings


def _finish(
    guardrail_id: str,
    body: Any,
    *,
    command: str,
    pass_code: str,
    pass_ref: str,
    map_error: Any = None,
) -> None:
    outcome = run_guardrail(
        guardrail_id,
        body,
        command=command,
        pass_code=pass_code,
        pass_ref=pass_ref,
        map_error=map_error,
    )
    raise typer.Exit(code=outcome.exit_code)


def _json_input(value: str, option: str) -> Any:
    """Parse an option given as inline JSON or ``@path`` to a JSON file."""
    text = value
    if value.startswith("@"):
        path = Path(value[1:])
        if not path.exists():
            raise GuardrailEnvironmentError(f"{option} file not found: {path}")
        text = path.read_text(encoding="utf-8")
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise GuardrailEnvironmentError(f"{option} is not valid JSON: {e}") from e


def _string_list(value: str | None, option: str) -> list[str]:
    if value is None or not value.strip():
        return []
    data = _json_input(value, option)
    if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
        raise GuardrailEnvironmentError(f"{option} must be a JSON array of strings")
    return data


def _json_object(value: str, option: str) -> dict[str, Any]:
    data = _json_input(value, option)
    if not isinstance(data, dict):
        raise GuardrailEnvironmentError(f"{option} must be a JSON object")
    return data


def _load_scope(value: str) -> ChangeScope:
    data = _json_object(value, "--scope")
    inner = data.get("scope")
    try:
        return ChangeScope.from_dict(inner if isinstance(inner, dict) else data)
    except ValueError as e:
        raise GuardrailEnvironmentError(f"--scope is not a complete scope result: {e}") from e


def _load_contract(value: str | None, option: str) -> ContractResult | None:
    if value is None:
        return None
    return ContractResult.from_dict(_json_object(value, option))


def _load_docs_drift(value: str | None) -> DocsDriftSignal | None:
    if value is None:
        return None
    data = _json_object(value, "--docs-drift")
    touches = data.get("touchesDocsCriticalPaths")
    if not isinstance(touches, bool):
        raise GuardrailEnvironmentError("--docs-drift must carry a boolean touchesDocsCriticalPaths")
    status = data.get("status")
    if not isinstance(status, str) or not status.strip():
        raise GuardrailEnvironmentError("--docs-drift must carry a non-empty status")
    return DocsDriftSignal(blocking=touches, status=status.strip().lower())


def _head_sha(repo_root: Path, head_sha: str | None) -> str:
    return head_sha.strip() if head_sha and head_sha.strip() else scm.head_sha(repo_root)


def _resolve_changed_files(
    repo_root: Path,
    head_sha: str,
    base_sha: str | None,
    changed_files: str | None,
) -> tuple[list[str], str | None]:
    if changed_files is not None:
        return normalize_changed_files(_string_list(changed_files, "--changed-files")), base_sha
    base = base_sha or scm.parent_sha(repo_root, head_sha)
    return scm.changed_files(repo_root, base, head_sha), base


def _print_reasons(title: str, reasons: list[tuple[str, str]]) -> None:
    if not reasons:
        return
    console.print(title, style="bold red")
    for code, message in reasons:
        console.print(f"- [{code}] {message}", markup=False)


def _gate_report(result: GateResult, path: Path, *, pass_code: str, ref: str) -> CheckReport:
    _print_reasons(
        f"{result.stage} blocking reasons:",
        [(reason.code, reason.message) for reason in result.reason_details],
    )
    if not result.pass_:
        raise GuardrailViolation(
            code=result.reason_codes[0],
            why=f"{result.stage} blocked ({len(result.reason_codes)} reason(s)).",
            fix=f"All required {result.stage} checks must pass.",
            do_commands=[GATE_DO_COMMANDS[0], f"cat {path}", GATE_DO_COMMANDS[1]],
            ref=ref,
        )
    code = result.informational_codes[0] if result.informational_codes else pass_code
    return CheckReport(status="pass", code=code, payload=result.to_dict())


def _write_gate(settings: Settings, head_sha: str, scope: ChangeScope, result: GateResult) -> Path:
    return write_stage_artifact(
        settings.artifact_root,
        stage=result.stage,
        sha=head_sha,
        name="result",
        payload={"headSha": head_sha, "scope": scope.to_dict(), **result.to_dict()},
        schema_name="gate_result",
        timestamp_mode=settings.timestamp_mode,
    )


def _contract_report(
    settings: Settings,
    head_sha: str,
    contract: str,
    name: str,
    result: ContractResult,
    *,
    fix: str,
    ref: str,
    pass_code: str,
) -> CheckReport:
    path = write_stage_artifact(
        settings.artifact_root,
        stage="contracts",
        sha=head_sha,
        name=name,
        payload={"headSha": head_sha, "contract": contract, **result.to_dict()},
        schema_name="contract_result",
        timestamp_mode=settings.timestamp_mode,
    )
    _print_reasons(
        f"{contract} contract validation failed:",
        [(reason.code, reason.message) for reason in result.reason_details],
    )
    if not result.passed:
        raise GuardrailViolation(
            code=result.reason_codes[0],
            why=f"{contract} contract failed ({len(result.reason_codes)} reason(s)).",
            fix=fix,
            do_commands=[f"cat {path}"],
            ref=ref,
        )
    return CheckReport(status="pass", code=pass_code, payload=result.to_dict())


@policy_app.command(name="validate")
def policy_validate_cmd(ctx: typer.Context) -> None:
    """Validate the pipeline policy document shape."""
    settings = _settings(ctx)

    def body() -> CheckReport:
        policy = load_policy(settings.policy_path)
        console.print(f"Policy {settings.policy_path} is valid (version {policy.version})")
        return CheckReport(status="pass", code="POLICY_VALID")

    _finish(
        "policy.shape",
        body,
        command="deliverygate policy validate",
        pass_code="POLICY_VALID",
        pass_ref="docs/ccs.md#output-format",
    )


@cli.command(name="scope")
def scope_cmd(
    ctx: typer.Context,
    head_sha: str | None = typer.Option(None, "--head-sha", help="Commit under test (default: HEAD)"),
    base_sha: str | None = typer.Option(None, "--base-sha", help="Diff base (default: parent of head)"),
    changed_files: str | None = typer.Option(
        None,
        "--changed-files",
        help="JSON array (or @file) of changed paths; skips git diff",
    ),
    repo_root: Path = typer.Option(Path("."), "--repo-root", help="Repository root"),
) -> None:
    """Classify the change scope of a commit."""
    settings = _settings(ctx)

    def body() -> CheckReport:
        policy = load_policy(settings.policy_path)
        sha = _head_sha(repo_root, head_sha)
        files, base = _resolve_changed_files(repo_root, sha, base_sha, changed_files)
        scope = resolve_change_scope(policy, files)
        kind = classify_kind(scope)
        payload = {
            "headSha": sha,
            "baseSha": base,
            "changedFiles": files,
            "scope": scope.to_dict(),
            "kind": kind,
            "requiresInfraConvergence": scope.requires_infra_convergence,
            "requiresMigrations": scope.requires_migrations,
            "requiredFlowIds": list(policy.required_flow_ids),
        }
        path = write_stage_artifact(
            settings.artifact_root,
            stage="scope",
            sha=sha,
            name="result",
            payload=payload,
            schema_name="scope_result",
            timestamp_mode=settings.timestamp_mode,
        )
        console.print(f"Change kind: {kind} ({len(files)} file(s)) -> {path}")
        return CheckReport(status="pass", code="SCOPE_RESOLVED", payload=payload)

    _finish(
        "scope.resolve",
        body,
        command="deliverygate scope",
        pass_code="SCOPE_RESOLVED",
        pass_ref="docs/commit-stage-policy.md#scope-rules",
    )


@cli.command(name="docs-drift")
def docs_drift_cmd(
    ctx: typer.Context,
    head_sha: str | None = typer.Option(None, "--head-sha", help="Commit under test (default: HEAD)"),
    base_sha: str | None = typer.Option(None, "--base-sha", help="Diff base (default: parent of head)"),
    changed_files: str | None = typer.Option(
        None,
        "--changed-files",
        help="JSON array (or @file) of changed paths; skips git diff",
    ),
    repo_root: Path = typer.Option(Path("."), "--repo-root", help="Repository root"),
) -> None:
    """Check that docs-critical changes come with documentation updates."""
    settings = _settings(ctx)
    ref = "docs/commit-stage-policy.md#docs-drift"

    def body() -> CheckReport:
        policy = load_policy(settings.policy_path)
        sha = _head_sha(repo_root, head_sha)
        files, _ = _resolve_changed_files(repo_root, sha, base_sha, changed_files)
        drift = evaluate_docs_drift(policy.docs_drift_rules, files)
        path = write_stage_artifact(
            settings.artifact_root,
            stage="docs-drift",
            sha=sha,
            name="result",
            payload={"headSha": sha, **drift.to_dict()},
            schema_name="docs_drift_result",
            timestamp_mode=settings.timestamp_mode,
        )
        for detail in drift.reason_details:
            console.print(f"- [{detail.code}] {detail.message}", markup=False)
        if drift.should_block:
            raise GuardrailViolation(
                code=BLOCKING_CODE,
                why="Docs-critical paths changed without any doc target update.",
                fix=f"Update one of: {', '.join(drift.expected_doc_targets) or '(no doc targets configured)'}",
                do_commands=[f"cat {path}", "git add <doc-target> && git commit --amend --no-edit"],
                ref=ref,
            )
        code = drift.reason_codes[0] if drift.reason_codes else "DOCS_DRIFT_PASS"
        return CheckReport(status="pass", code=code, payload=drift.to_dict())

    _finish(
        "docs-drift.check",
        body,
        command="deliverygate docs-drift",
        pass_code="DOCS_DRIFT_PASS",
        pass_ref=ref,
    )


@gate_app.command(name="commit")
def gate_commit_cmd(
    ctx: typer.Context,
    head_sha: str = typer.Option(..., "--head-sha", help="Commit the gate decides"),
    check_results: str = typer.Option(..., "--check-results", help="JSON object (or @file) of check outcomes"),
    scope: str = typer.Option(..., "--scope", help="Scope JSON (or @file, e.g. the scope artifact)"),
    docs_drift: str | None = typer.Option(None, "--docs-drift", help="Docs drift artifact JSON (or @file)"),
    observed_seconds: float | None = typer.Option(
        None,
        "--observed-seconds",
        help="Observed time to commit gate, for the SLO",
    ),
) -> None:
    """Decide the commit stage."""
    settings = _settings(ctx)
    ref = "docs/commit-stage-policy.md#commit-stage-checks"

    def body() -> CheckReport:
        policy = load_policy(settings.policy_path)
        change_scope = _load_scope(scope)
        result = evaluate_commit_stage(
            policy,
            change_scope,
            _json_object(check_results, "--check-results"),
            docs_drift=_load_docs_drift(docs_drift),
            observed_seconds=observed_seconds,
        )
        path = _write_gate(settings, head_sha, change_scope, result)
        return _gate_report(result, path, pass_code="COMMIT_STAGE_PASS", ref=ref)

    _finish(
        "commit-stage.decision",
        body,
        command="deliverygate gate commit",
        pass_code="COMMIT_STAGE_PASS",
        pass_ref=ref,
    )


@gate_app.command(name="integration")
def gate_integration_cmd(
    ctx: typer.Context,
    head_sha: str = typer.Option(..., "--head-sha", help="Commit the gate decides"),
    check_results: str = typer.Option(..., "--check-results", help="JSON object (or @file) of check outcomes"),
    scope: str = typer.Option(..., "--scope", help="Scope JSON (or @file, e.g. the scope artifact)"),
    docs_drift: str | None = typer.Option(None, "--docs-drift", help="Docs drift artifact JSON (or @file)"),
) -> None:
    """Decide the integration gate."""
    settings = _settings(ctx)
    ref = "docs/commit-stage-policy.md#integration-gate-checks"

    def body() -> CheckReport:
        policy = load_policy(settings.policy_path)
        change_scope = _load_scope(scope)
        result = evaluate_integration_gate(
            policy,
            change_scope,
            _json_object(check_results, "--check-results"),
            docs_drift=_load_docs_drift(docs_drift),
        )
        path = _write_gate(settings, head_sha, change_scope, result)
        return _gate_report(result, path, pass_code="INTEGRATION_GATE_PASS", ref=ref)

    _finish(
        "integration-gate.decision",
        body,
        command="deliverygate gate integration",
        pass_code="INTEGRATION_GATE_PASS",
        pass_ref=ref,
    )


@gate_app.command(name="acceptance")
def gate_acceptance_cmd(
    ctx: typer.Context,
    head_sha: str = typer.Option(..., "--head-sha", help="Commit the gate decides"),
    check_results: str = typer.Option(..., "--check-results", help="JSON object (or @file) of check outcomes"),
    scope: str = typer.Option(..., "--scope", help="Scope JSON (or @file, e.g. the scope artifact)"),
    candidate_refs: str | None = typer.Option(
        None,
        "--candidate-refs-contract",
        help="Release candidate refs contract result JSON (or @file)",
    ),
    identity: str | None = typer.Option(
        None,
        "--identity-contract",
        help="Identity config contract result JSON (or @file)",
    ),
) -> None:
    """Decide the automated acceptance test gate."""
    settings = _settings(ctx)
    ref = "docs/acceptance-stage.md#automated-acceptance-test-gate"

    def body() -> CheckReport:
        policy = load_policy(settings.policy_path)
        change_scope = _load_scope(scope)
        result = evaluate_acceptance_stage(
            policy,
            change_scope,
            _json_object(check_results, "--check-results"),
            candidate_refs=_load_contract(candidate_refs, "--candidate-refs-contract"),
            identity=_load_contract(identity, "--identity-contract"),
        )
        path = _write_gate(settings, head_sha, change_scope, result)
        return _gate_report(result, path, pass_code="ACCEPTANCE_STAGE_PASS", ref=ref)

    _finish(
        "acceptance-stage.decision",
        body,
        command="deliverygate gate acceptance",
        pass_code="ACCEPTANCE_STAGE_PASS",
        pass_ref=ref,
    )


@gate_app.command(name="deployment")
def gate_deployment_cmd(
    ctx: typer.Context,
    head_sha: str = typer.Option(..., "--head-sha", help="Commit the gate decides"),
    check_results: str = typer.Option(..., "--check-results", help="JSON object (or @file) of check outcomes"),
    scope: str = typer.Option(..., "--scope", help="Scope JSON (or @file, e.g. the scope artifact)"),
    acceptance_decision: str = typer.Option("NO", "--acceptance-decision", help="Acceptance decision (YES/NO)"),
    acceptance_reason_codes: str | None = typer.Option(
        None,
        "--acceptance-reason-codes",
        help="JSON array of acceptance reason codes",
    ),
    deployment_required: bool = typer.Option(
        True,
        "--deployment-required/--no-deployment-required",
        help="Whether this candidate deploys",
    ),
    secrets: str | None = typer.Option(None, "--secrets-contract", help="Secrets contract result JSON (or @file)"),
    require_secrets: bool = typer.Option(
        True,
        "--require-secrets/--no-require-secrets",
        help="Require a passing secrets contract when deploying",
    ),
) -> None:
    """Decide the deployment stage and the production decision."""
    settings = _settings(ctx)
    ref = "docs/deployment-stage.md#deployment-stage-failure"

    def body() -> CheckReport:
        policy = load_policy(settings.policy_path)
        change_scope = _load_scope(scope)
        result = evaluate_deployment_stage(
            policy,
            change_scope,
            _json_object(check_results, "--check-results"),
            acceptance_decision=acceptance_decision,
            acceptance_reason_codes=_string_list(acceptance_reason_codes, "--acceptance-reason-codes"),
            deployment_required=deployment_required,
            secrets=_load_contract(secrets, "--secrets-contract"),
            require_secrets=require_secrets,
        )
        path = _write_gate(settings, head_sha, change_scope, result)
        return _gate_report(result, path, pass_code="DEPLOYMENT_STAGE_PASS", ref=ref)

    _finish(
        "deployment.stage-decision",
        body,
        command="deliverygate gate deployment",
        pass_code="DEPLOYMENT_STAGE_PASS",
        pass_ref=ref,
    )


@release_app.command(name="decide")
def release_decide_cmd(
    ctx: typer.Context,
    head_sha: str = typer.Option(..., "--head-sha", help="Commit the decision is recorded under"),
    candidate_sha: str | None = typer.Option(None, "--candidate-sha", help="Release candidate commit"),
    replay: bool = typer.Option(False, "--replay/--no-replay", help="Replay a prior candidate"),
    commit_stage_result: str = typer.Option("unknown", "--commit-stage-result"),
    load_release_candidate_result: str = typer.Option("unknown", "--load-release-candidate-result"),
    acceptance_stage_result: str = typer.Option("unknown", "--acceptance-stage-result"),
    deployment_stage_result: str = typer.Option("unknown", "--deployment-stage-result"),
    acceptance_decision: str | None = typer.Option(None, "--acceptance-decision"),
    acceptance_reason_codes: str | None = typer.Option(None, "--acceptance-reason-codes", help="JSON array"),
    production_decision: str | None = typer.Option(None, "--production-decision"),
    production_reason_codes: str | None = typer.Option(None, "--production-reason-codes", help="JSON array"),
    deploy_required: bool = typer.Option(True, "--deploy-required/--no-deploy-required"),
) -> None:
    """Aggregate stage results into the final release decision."""
    settings = _settings(ctx)
    ref = "docs/release.md#release-decision"

    def body() -> CheckReport:
        outcome = evaluate_release_outcome(
            ReleaseInputs(
                replay_mode=replay,
                commit_stage_result=commit_stage_result,
                load_release_candidate_result=load_release_candidate_result,
                acceptance_stage_result=acceptance_stage_result,
                deployment_stage_result=deployment_stage_result,
                acceptance_decision=acceptance_decision,
                acceptance_reason_codes=tuple(
                    _string_list(acceptance_reason_codes, "--acceptance-reason-codes")
                ),
                production_decision=production_decision,
                production_reason_codes=tuple(
                    _string_list(production_reason_codes, "--production-reason-codes")
                ),
                deploy_required=deploy_required,
            )
        )
        payload = {"headSha": head_sha, "candidateSha": candidate_sha or head_sha, **outcome.to_dict()}
        path = write_stage_artifact(
            settings.artifact_root,
            stage="release",
            sha=head_sha,
            name="decision",
            payload=payload,
            schema_name="release_decision",
            timestamp_mode=settings.timestamp_mode,
        )
        if not outcome.releaseable:
            raise GuardrailViolation(
                code=outcome.reason_codes[0] if outcome.reason_codes else "RELEASE_NOT_RELEASEABLE",
                why=f"Release decision is NO ({', '.join(outcome.reason_codes) or 'no reason codes'}).",
                fix="Every stage must report success and a YES decision before release.",
                do_commands=[f"cat {path}", GATE_DO_COMMANDS[0]],
                ref=ref,
            )
        return CheckReport(status="pass", code="RELEASEABLE", payload=payload)

    _finish(
        "release.decision",
        body,
        command="deliverygate release decide",
        pass_code="RELEASEABLE",
        pass_ref=ref,
    )


@contract_app.command(name="refs")
def contract_refs_cmd(
    ctx: typer.Context,
    head_sha: str = typer.Option(..., "--head-sha", help="Commit the contract is recorded under"),
    scope: str = typer.Option(..., "--scope", help="Scope JSON (or @file, e.g. the scope artifact)"),
    refs: str = typer.Option(..., "--refs", help='Candidate refs JSON object (or @file), e.g. {"apiRef": ...}'),
) -> None:
    """Require digest-pinned release candidate image references."""
    settings = _settings(ctx)
    ref = "docs/release-candidate.md#digest-pinning"

    def body() -> CheckReport:
        policy: Policy = load_policy(settings.policy_path)
        change_scope = _load_scope(scope)
        data = _json_object(refs, "--refs")
        candidate = data.get("candidate")
        result = validate_release_candidate_refs(
            change_scope.requires_release_candidate,
            candidate if isinstance(candidate, dict) else data,
            policy.required_refs,
        )
        return _contract_report(
            settings,
            head_sha,
            "RELEASE_CANDIDATE_REFS",
            "release-candidate-refs",
            result,
            fix="Publish images and record refs as <repo>@sha256:<digest>.",
            ref=ref,
            pass_code="CANDIDATE_REFS_PINNED",
        )

    _finish(
        "contract.release-candidate-refs",
        body,
        command="deliverygate contract refs",
        pass_code="CANDIDATE_REFS_PINNED",
        pass_ref=ref,
    )


@contract_app.command(name="identity")
def contract_identity_cmd(
    ctx: typer.Context,
    head_sha: str = typer.Option(..., "--head-sha", help="Commit the contract is recorded under"),
    api_identifier_uri: str = typer.Option("", "--api-identifier-uri", help="Preferred API identifier URI"),
    legacy_audience: str = typer.Option("", "--legacy-audience", help="Legacy audience value"),
    required_env: str = typer.Option(
        "",
        "--required-env",
        help="Comma-separated environment variable names that must be set",
    ),
    custom_domain: list[str] | None = typer.Option(
        None,
        "--custom-domain",
        help="NAME=HOST custom domain setting (repeatable)",
    ),
) -> None:
    """Validate identity configuration shape."""
    settings = _settings(ctx)
    ref = "docs/identity.md#config-contract"

    def body() -> CheckReport:
        names = tuple(name.strip() for name in required_env.split(",") if name.strip())
        domains: dict[str, str] = {}
        for entry in custom_domain or []:
            setting, sep, host = entry.partition("=")
            if not sep or not setting.strip():
                raise GuardrailEnvironmentError(f"--custom-domain must be NAME=HOST, got: {entry}")
            domains[setting.strip()] = host
        result = validate_identity_config(
            IdentityConfigInput(
                api_identifier_uri=api_identifier_uri,
                legacy_audience=legacy_audience,
                required_env_names=names,
                env={name: settings.environment.get(name, "") for name in names},
                custom_domains=domains,
            )
        )
        return _contract_report(
            settings,
            head_sha,
            "IDENTITY",
            "identity-config",
            result,
            fix="Set the missing identity values and use api:// URIs and bare routable domains.",
            ref=ref,
            pass_code="IDENTITY_CONFIG_VALID",
        )

    _finish(
        "contract.identity-config",
        body,
        command="deliverygate contract identity",
        pass_code="IDENTITY_CONFIG_VALID",
        pass_ref=ref,
    )


@contract_app.command(name="secrets")
def contract_secrets_cmd(
    ctx: typer.Context,
    head_sha: str = typer.Option(..., "--head-sha", help="Commit the contract is recorded under"),
    vault_name: str = typer.Option(..., "--vault-name", help="Key Vault holding the secrets"),
    secret_names: str | None = typer.Option(
        None,
        "--secret-names",
        help="Comma-separated secret names (default: the standard deployment set)",
    ),
) -> None:
    """Check that every required secret exists in the vault."""
    settings = _settings(ctx)
    ref = "docs/deployment-stage.md#required-secrets"

    def body() -> CheckReport:
        names = parse_secret_names(secret_names)
        result = validate_required_secrets(names, keyvault_secret_lookup(vault_name))
        return _contract_report(
            settings,
            head_sha,
            "SECRETS",
            "required-secrets",
            result,
            fix=f"Create the missing secrets in {vault_name} and rerun.",
            ref=ref,
            pass_code="SECRETS_PRESENT",
        )

    _finish(
        "contract.required-secrets",
        body,
        command="deliverygate contract secrets",
        pass_code="SECRETS_PRESENT",
        pass_ref=ref,
    )


@cli.command(name="high-risk")
def high_risk_cmd(
    ctx: typer.Context,
    repo_root: Path = typer.Option(Path("."), "--repo-root", help="Repository root"),
    branch: str | None = typer.Option(None, "--branch", help="Branch name (default: resolved from CI or git)"),
    head_sha: str | None = typer.Option(None, "--head-sha", help="Commit to record under (default: HEAD)"),
) -> None:
    """Block unreviewed high-risk staged changes on the main branch."""
    settings = _settings(ctx)
    ref = "docs/high-risk-mainline.md#troubleshooting"

    def body() -> CheckReport:
        policy = load_policy(settings.policy_path)
        high_risk = policy.high_risk_mainline_policy
        if high_risk is None:
            raise GuardrailEnvironmentError("Policy has no highRiskMainlinePolicy section")

        resolved_branch = branch if branch is not None else scm.current_branch(repo_root, settings.environment)
        result = run_high_risk_mainline_check(high_risk, resolved_branch, scm.staged_files(repo_root))
        sha = _head_sha(repo_root, head_sha)
        write_stage_artifact(
            settings.artifact_root,
            stage="high-risk",
            sha=sha,
            name="result",
            payload={"headSha": sha, **result.to_dict()},
            schema_name="high_risk_result",
            timestamp_mode=settings.timestamp_mode,
        )
        if result.status == "fail":
            console.print(result.message or "", markup=False)
            raise GuardrailViolation(
                code=result.reason_code,
                why=f"High-risk staged files were detected on {result.branch or 'main'}.",
                fix="Route this change through a PR with CODEOWNER review.",
                do_commands=PR_COMMANDS,
                ref=ref,
            )
        return CheckReport(status="pass", code=result.reason_code, payload=result.to_dict())

    _finish(
        "high-risk.mainline-policy",
        body,
        command="deliverygate high-risk",
        pass_code="NO_HIGH_RISK_MATCHES",
        pass_ref=ref,
    )


@cli.command(name="fresh-head")
def fresh_head_cmd(
    ctx: typer.Context,
    head_sha: str | None = typer.Option(
        None,
        "--head-sha",
        help="Release candidate commit being deployed (default: $GITHUB_SHA)",
    ),
    trigger: str = typer.Option("auto", "--trigger", help="Deploy trigger: auto or manual"),
    remote: str = typer.Option("origin", "--remote", help="Remote holding the mainline branch"),
    branch: str = typer.Option("main", "--branch", help="Mainline branch"),
    repo_root: Path = typer.Option(Path("."), "--repo-root", help="Repository checkout"),
) -> None:
    """Refuse an automatic deploy of a candidate that is no longer the mainline head."""
    settings = _settings(ctx)
    ref = "docs/deployment-stage.md#fresh-release-candidate"

    def body() -> CheckReport:
        candidate = (head_sha or settings.github_sha or "").strip()
        if not candidate:
            raise GuardrailEnvironmentError("--head-sha or GITHUB_SHA must name the release candidate")
        mode = trigger.strip().lower()
        if mode not in ("auto", "manual"):
            raise GuardrailEnvironmentError(f"--trigger must be auto or manual, got: {trigger}")

        policy = load_policy(settings.policy_path)
        remote_head = None
        if requires_fresh_head(policy.require_fresh_head_on_auto, mode):
            remote_head = scm.remote_branch_head(repo_root, remote, branch)
        result = evaluate_fresh_head(
            candidate,
            remote_head,
            remote_ref=f"{remote}/{branch}",
            trigger=mode,
            required_on_auto=policy.require_fresh_head_on_auto,
        )
        write_stage_artifact(
            settings.artifact_root,
            stage="fresh-head",
            sha=candidate,
            name="result",
            payload={"headSha": candidate, **result.to_dict()},
            schema_name="fresh_head_result",
            timestamp_mode=settings.timestamp_mode,
        )
        console.print(result.message, markup=False)
        if result.status == "fail":
            raise GuardrailViolation(
                code=FRESH_HEAD_FAIL,
                why=result.message,
                fix="Deploy only the current main head release candidate.",
                do_commands=[f"git fetch {remote} {branch}", f"git rev-parse {remote}/{branch}"],
                ref=ref,
            )
        return CheckReport(status="pass", code=result.reason_code, payload=result.to_dict())

    _finish(
        "deployment.release-candidate-fresh",
        body,
        command="deliverygate fresh-head",
        pass_code="FRESH_HEAD_PASS",
        pass_ref=ref,
        map_error=lambda exc: {
            "code": FRESH_HEAD_FAIL,
            "fix": "Deploy only the current main head release candidate.",
        },
    )


@cli.command(name="recover-main")
def recover_main_cmd(
    ctx: typer.Context,
    event_path: Path | None = typer.Option(
        None,
        "--event-path",
        help="workflow_run event payload (default: $GITHUB_EVENT_PATH)",
    ),
    target_branch: str = typer.Option("main", "--target-branch", help="Protected branch to recover"),
    repo_root: Path = typer.Option(Path("."), "--repo-root", help="Repository checkout used for reverts"),
) -> None:
    """React to a completed mainline workflow run: rerun once, then revert."""
    settings = _settings(ctx)
    ref = "docs/main-red-recovery.md#decision-table"

    def body() -> CheckReport:
        if not settings.github_token or not settings.github_repository:
            raise GuardrailEnvironmentError("GITHUB_TOKEN and GITHUB_REPOSITORY must be set")

        path_value = event_path or settings.github_event_path
        if path_value is None or not path_value.exists():
            raise GuardrailEnvironmentError(f"workflow_run event payload not found: {path_value}")
        event = WorkflowRunEvent.from_payload(_json_object(f"@{path_value}", "--event-path"))

        with GitHubClient(
            settings.github_repository,
            settings.github_token,
            base_url=settings.github_api_url,
        ) as client:
            result = recover_main(
                event,
                client,
                repo_root=repo_root,
                artifact_root=settings.artifact_root,
                target_branch=target_branch,
                timestamp_mode=settings.timestamp_mode,
                recovery_run_url=settings.run_url,
            )
        console.print(f"Recovery: {result.action.value} ({result.code}) -> {result.artifact_path}")
        return CheckReport(status="pass", code=result.code)

    _finish(
        "main-red-recovery",
        body,
        command="deliverygate recover-main",
        pass_code="CCS000",
        pass_ref=ref,
    )


@cli.command(name="doctor")
def doctor_cmd(
    ctx: typer.Context,
    out: Path | None = typer.Option(None, "--out", "-o", help="Output directory for doctor reports"),
    repo_root: Path = typer.Option(Path("."), "--repo-root", help="Repository root"),
) -> None:
    """Run installation and environment integrity checks."""
    from deliverygate.doctor import run_doctor

    settings = _settings(ctx)

    def body() -> CheckReport:
        report = run_doctor(
            settings,
            repo_root=repo_root,
            out_dir=out,
            timestamp_mode=settings.timestamp_mode,
        )
        console.print(f"Doctor status: {report.status.upper()}")
        for item in report.checks["items"]:
            console.print(f"  {item['status']:<4} {item['id']}: {item['message']}", markup=False)
        if report.status == "failed":
            failed = [item["id"] for item in report.checks["items"] if item["status"] == "fail"]
            return CheckReport(
                status="fail",
                code="DOCTOR_CHECKS_FAILED",
                why=f"Doctor checks failed: {', '.join(failed)}.",
                fix="Apply the remediation listed for each failed check.",
                do_commands=("deliverygate doctor --out out/doctor",),
            )
        return CheckReport(status="pass", code="DOCTOR_PASS")

    _finish(
        "doctor",
        body,
        command="deliverygate doctor",
        pass_code="DOCTOR_PASS",
        pass_ref="docs/ccs.md#output-format",
    )


if __name__ == "__main__":
    cli()
