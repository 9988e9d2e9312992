from __future__ import annotations

import asyncio
import json
import os
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, NoReturn, TypeVar

import typer
from rich.console import Console
from rich.table import Table
from temporalio.service import RPCError

from flowvault.artifacts.errors import ArtifactStoreError, InvalidKeyError, VersionNotFoundError
from flowvault.artifacts.protocol import (
    RollbackOutcome,
    delete_all_versions,
    delete_workflow_version,
    describe_workflow,
    rollback_workflow,
)
from flowvault.artifacts.store import ArtifactStore
from flowvault.config.load import (
    DEFAULT_CONFIG_FILE,
    ConfigError,
    WorkflowConfigError,
    load_config,
    load_workflow_config,
    scaffold_default_config,
    scaffold_workflow_config,
)
from flowvault.config.models import FlowvaultConfig
from flowvault.constants import TRIGGER_TYPES
from flowvault.deploy.orchestrator import deploy_workflow
from flowvault.deploy.registry import DeploymentRegistrar
from flowvault.logging.audit import AuditLogger
from flowvault.packaging.bundle import BundleError
from flowvault.security.identity import CredentialsMissingError, require_credentials, resolve_deployer
from flowvault.storage.objects import MinioObjectStore
from flowvault.workflow_temporal.client import (
    cancel_workflow,
    describe_workflow_status,
    generate_workflow_id,
    get_client,
    query_workflow,
    signal_workflow,
    start_workflow_run,
    terminate_workflow,
    wait_for_result,
)

app = typer.Typer(help="Deploy versioned Temporal workflows to MinIO storage")

T = TypeVar("T")

CONFIG_OPTION_HELP = "Path to flowvault.toml configuration file."


def build_store(cfg: FlowvaultConfig) -> ArtifactStore:
    credentials = require_credentials(cfg.object_store)
    objects = MinioObjectStore.from_config(
        cfg.object_store,
        access_key=credentials.access_key,
        secret_key=credentials.secret_key,
    )
    objects.ensure_bucket()
    return ArtifactStore(objects, audit=AuditLogger(Path(cfg.audit.logs_dir)))


def build_registrar(cfg: FlowvaultConfig, tenant: str | None = None) -> DeploymentRegistrar | None:
    token = os.getenv(cfg.registry.token_env)
    if not cfg.registry.api_url or not token:
        return None
    return DeploymentRegistrar(cfg.registry.api_url, token, tenant=tenant or cfg.registry.tenant)


def _load_config(config: str) -> FlowvaultConfig:
    try:
        return load_config(config)
    except ConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _open_store(cfg: FlowvaultConfig) -> ArtifactStore:
    try:
        return build_store(cfg)
    except CredentialsMissingError as exc:
        raise typer.BadParameter(str(exc)) from exc
    except ValueError as exc:
        # The MinIO client rejects endpoints that carry a scheme or path.
        raise typer.BadParameter(f"Invalid object store endpoint {cfg.object_store.endpoint!r}: {exc}") from exc
    except ArtifactStoreError as exc:
        _fail(str(exc), exc)


def _fail(message: str, exc: Exception | None = None) -> NoReturn:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(code=1) from exc


def _run_temporal(call: Callable[[], Awaitable[T]]) -> T:
    try:
        return asyncio.run(call())
    except (RPCError, RuntimeError) as exc:
        _fail(f"Temporal request failed: {exc}", exc)


@app.command()
def init(
    path: str = typer.Option(
        DEFAULT_CONFIG_FILE,
        "--path",
        help="Path where flowvault.toml will be created.",
    ),
    workflow: str | None = typer.Option(
        None,
        "--workflow",
        help="Also scaffold a workflow directory with this name next to the config file.",
    ),
    trigger: str = typer.Option(
        "manual",
        "--trigger",
        help="Trigger type for the scaffolded workflow: schedule, polling, webhook or manual.",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        help="Overwrite existing config/template files if they already exist.",
    ),
) -> None:
    target = Path(path)
    if target.exists() and not force:
        raise typer.BadParameter(f"{path} already exists. Use --force to overwrite.")
    if trigger not in TRIGGER_TYPES:
        raise typer.BadParameter(f"Unknown trigger type '{trigger}'.")

    scaffold_default_config(target)
    typer.echo(f"Initialized {target}")

    if workflow:
        workflow_dir = target.parent / workflow
        workflow_dir.mkdir(parents=True, exist_ok=True)
        workflow_toml = workflow_dir / "workflow.toml"
        if not workflow_toml.exists() or force:
            scaffold_workflow_config(
                workflow_toml,
                name=workflow,
                task_queue=f"{workflow}-queue",
                trigger_type=trigger,
            )
        entrypoint = workflow_dir / "workflow.py"
        if not entrypoint.exists() or force:
            entrypoint.write_text(
                f'"""Workflow definition for {workflow}."""\n',
                encoding="utf-8",
            )
        typer.echo(f"Scaffolded workflow {workflow_dir}")


@app.command()
def deploy(
    path: Path = typer.Argument(..., help="Workflow directory containing workflow.toml and a workflow entrypoint."),
    version: str | None = typer.Option(
        None,
        "--version",
        "-v",
        help="Version id to deploy. Defaults to a YYYYMMDD-HHMMSS timestamp.",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite the version if it already exists.",
    ),
    tenant: str | None = typer.Option(
        None,
        "--tenant",
        help="Tenant to register the deployment under, when the API supports it.",
    ),
    config: str = typer.Option(DEFAULT_CONFIG_FILE, "--config", help=CONFIG_OPTION_HELP),
) -> None:
    cfg = _load_config(config)
    store = _open_store(cfg)
    registrar = build_registrar(cfg, tenant)
    try:
        result = deploy_workflow(
            store,
            path,
            deployer=resolve_deployer(),
            version=version,
            force=force,
            registrar=registrar,
            audit=store.audit,
        )
    except (BundleError, WorkflowConfigError, InvalidKeyError) as exc:
        raise typer.BadParameter(str(exc)) from exc
    except ArtifactStoreError as exc:
        _fail(str(exc), exc)
    finally:
        if registrar is not None:
            registrar.close()

    typer.echo("Workflow deployed successfully!")
    typer.echo(f"  Name:      {result.config.name}")
    typer.echo(f"  Version:   {result.version}")
    typer.echo(f"  Namespace: {result.config.namespace}")
    typer.echo(f"  TaskQueue: {result.config.task_queue}")
    typer.echo(f"  Trigger:   {result.config.trigger.type}")
    typer.echo(f"  Checksum:  {result.checksum[:16]}...")
    typer.echo(f"  Location:  {result.bundle_key}")
    if result.registration is None:
        typer.echo("Deployment uploaded but not registered (no API url or token).")
    elif not result.registration.success:
        typer.echo(f"Deployment uploaded but not registered: {result.registration.message}")


@app.command("list")
def list_workflows(
    namespace: str | None = typer.Option(None, "--namespace", "-n", help="Only show workflows in this namespace."),
    versions: bool = typer.Option(False, "--versions", help="Show all versions for each workflow."),
    config: str = typer.Option(DEFAULT_CONFIG_FILE, "--config", help=CONFIG_OPTION_HELP),
) -> None:
    cfg = _load_config(config)
    store = _open_store(cfg)
    try:
        names = sorted(store.list_workflows())
        if not names:
            typer.echo("No workflows found.")
            return

        table = Table(title=f"{len(names)} workflow(s)")
        for column in ("Workflow", "Latest", "Namespace", "TaskQueue", "Trigger", "Deployed"):
            table.add_column(column)
        if versions:
            table.add_column("Versions")

        for name in names:
            latest = store.get_latest_version(name)
            metadata = store.get_metadata(name, latest) if latest else None
            if namespace and (metadata is None or metadata.namespace != namespace):
                continue
            row = [
                name,
                latest or "-",
                metadata.namespace if metadata else "-",
                metadata.task_queue if metadata else "-",
                metadata.trigger.type if metadata else "-",
                metadata.deployed_at if metadata else "-",
            ]
            if versions:
                row.append(", ".join(store.list_versions(name)))
            table.add_row(*row)
    except ArtifactStoreError as exc:
        _fail(str(exc), exc)

    Console().print(table)


@app.command("ls", hidden=True)
def ls(
    namespace: str | None = typer.Option(None, "--namespace", "-n"),
    versions: bool = typer.Option(False, "--versions"),
    config: str = typer.Option(DEFAULT_CONFIG_FILE, "--config"),
) -> None:
    list_workflows(namespace=namespace, versions=versions, config=config)


@app.command()
def info(
    workflow: str = typer.Argument(..., help="Workflow name."),
    version: str | None = typer.Option(
        None,
        "--version",
        "-v",
        help="Version to inspect. If omitted, shows the latest version.",
    ),
    verify: bool = typer.Option(False, "--verify", help="Re-hash the stored bundle and compare it to the checksum."),
    config: str = typer.Option(DEFAULT_CONFIG_FILE, "--config", help=CONFIG_OPTION_HELP),
) -> None:
    cfg = _load_config(config)
    store = _open_store(cfg)
    try:
        details = describe_workflow(store, workflow, version)
        if not details.found:
            _fail(f"Workflow not found: {workflow}")
        if details.metadata is None:
            if details.dangling:
                typer.echo(
                    f"Latest pointer for {workflow} references {details.latest_version}, "
                    "but its metadata is missing. Use rollback or delete to repair it."
                )
            else:
                typer.echo(f"No metadata found for {workflow}@{details.target_version}")
            raise typer.Exit(code=1)
        verified = store.verify_bundle(workflow, details.target_version) if verify else None
    except ArtifactStoreError as exc:
        _fail(str(exc), exc)

    metadata = details.metadata
    typer.echo(f"Workflow: {metadata.name}")
    typer.echo("Configuration:")
    typer.echo(f"  Namespace:   {metadata.namespace}")
    typer.echo(f"  TaskQueue:   {metadata.task_queue}")
    typer.echo(f"  Trigger:     {metadata.trigger.type}")
    if metadata.trigger.config:
        typer.echo(f"  Config:      {json.dumps(metadata.trigger.config)}")
    typer.echo("Version Info:")
    latest_marker = " (latest)" if details.target_version == details.latest_version else ""
    typer.echo(f"  Current:     {details.target_version}{latest_marker}")
    typer.echo(f"  Deployed:    {metadata.deployed_at}")
    typer.echo(f"  Deployed by: {metadata.deployed_by or 'unknown'}")
    typer.echo(f"  Checksum:    {metadata.checksum}")
    if verify:
        typer.echo(f"  Verified:    {'ok' if verified else 'MISMATCH' if verified is False else 'bundle missing'}")
    typer.echo("All Versions:")
    for v in details.versions:
        marker = " (latest)" if v == details.latest_version else ""
        current = " <--" if v == details.target_version else ""
        typer.echo(f"  - {v}{marker}{current}")


@app.command()
def rollback(
    workflow: str = typer.Argument(..., help="Workflow name."),
    version: str | None = typer.Option(
        None,
        "--version",
        "-v",
        help="Target version. If omitted, rolls back one version from the current latest.",
    ),
    config: str = typer.Option(DEFAULT_CONFIG_FILE, "--config", help=CONFIG_OPTION_HELP),
) -> None:
    cfg = _load_config(config)
    store = _open_store(cfg)
    try:
        result = rollback_workflow(store, workflow, version)
    except VersionNotFoundError as exc:
        raise typer.BadParameter(f"{exc} Available versions: {', '.join(exc.available)}") from exc
    except ArtifactStoreError as exc:
        _fail(str(exc), exc)

    if result.outcome == RollbackOutcome.NO_VERSIONS:
        typer.echo(f"No versions found for workflow: {workflow}")
    elif result.outcome == RollbackOutcome.SINGLE_VERSION:
        typer.echo("Only one version exists, cannot rollback.")
    elif result.outcome == RollbackOutcome.ALREADY_LATEST:
        typer.echo(f"Version {result.current} is already the latest.")
    else:
        typer.echo("Rollback successful!")
        typer.echo(f"  Workflow:  {workflow}")
        typer.echo(f"  Previous:  {result.previous or '-'}")
        typer.echo(f"  Current:   {result.current}")


@app.command()
def delete(
    workflow: str = typer.Argument(..., help="Workflow name."),
    version: str | None = typer.Option(None, "--version", "-v", help="Delete a specific version."),
    all_versions: bool = typer.Option(False, "--all", help="Delete every version of the workflow."),
    config: str = typer.Option(DEFAULT_CONFIG_FILE, "--config", help=CONFIG_OPTION_HELP),
) -> None:
    if not version and not all_versions:
        raise typer.BadParameter("Please specify --version or --all.")
    if version and all_versions:
        raise typer.BadParameter("--version and --all are mutually exclusive.")

    cfg = _load_config(config)
    store = _open_store(cfg)
    try:
        if all_versions:
            result = delete_all_versions(store, workflow)
        else:
            result = delete_workflow_version(store, workflow, version)
    except VersionNotFoundError as exc:
        raise typer.BadParameter(f"{exc} Available versions: {', '.join(exc.available)}") from exc
    except ArtifactStoreError as exc:
        _fail(str(exc), exc)

    if not result.deleted_versions:
        typer.echo(f"No versions found for workflow: {workflow}")
        return
    if all_versions:
        typer.echo(f"Deleted all {len(result.deleted_versions)} versions of {workflow}.")
    else:
        typer.echo(f"Deleted version {version}")
    if result.new_latest:
        typer.echo(f"Latest version updated to: {result.new_latest}")
    if result.pointer_orphaned:
        typer.echo(f"Latest pointer for {workflow} now references a deleted version.")


def _parse_input(input_json: str | None, input_file: Path | None) -> Any:
    if input_file is not None:
        if not input_file.exists():
            raise typer.BadParameter(f"Input file not found: {input_file}")
        raw = input_file.read_text(encoding="utf-8")
    elif input_json is not None:
        raw = input_json
    else:
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"Invalid input JSON: {exc}") from exc


@app.command()
def run(
    path: Path = typer.Argument(..., help="Workflow directory containing workflow.toml."),
    input_json: str | None = typer.Option(None, "--input", help="JSON input passed to the workflow."),
    input_file: Path | None = typer.Option(None, "--input-file", help="Path to a JSON file used as workflow input."),
    workflow_id: str | None = typer.Option(None, "--workflow-id", help="Explicit workflow id. Generated if omitted."),
    wait: bool = typer.Option(False, "--wait", help="Wait for the workflow to complete and print its result."),
    config: str = typer.Option(DEFAULT_CONFIG_FILE, "--config", help=CONFIG_OPTION_HELP),
) -> None:
    cfg = _load_config(config)
    try:
        workflow_cfg = load_workflow_config(path)
    except WorkflowConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc
    payload = _parse_input(input_json, input_file)
    resolved_id = workflow_id or generate_workflow_id(workflow_cfg.name)

    async def _start() -> tuple[dict, Any]:
        client = await get_client(cfg.temporal.address, workflow_cfg.namespace)
        started = await start_workflow_run(
            client,
            workflow_cfg.name,
            payload,
            workflow_id=resolved_id,
            task_queue=workflow_cfg.task_queue,
        )
        result = await wait_for_result(client, resolved_id) if wait else None
        return started, result

    started, result = _run_temporal(_start)
    typer.echo(f"Started workflow {started['workflow_id']} (run {started['run_id']})")
    if wait:
        typer.echo(json.dumps(result, indent=2, default=str))


@app.command()
def signal(
    workflow_id: str = typer.Argument(..., help="Workflow id to signal."),
    signal_name: str = typer.Argument(..., help="Signal name."),
    data: str | None = typer.Option(None, "--data", help="Signal payload. Parsed as JSON when possible."),
    config: str = typer.Option(DEFAULT_CONFIG_FILE, "--config", help=CONFIG_OPTION_HELP),
) -> None:
    cfg = _load_config(config)
    payload: Any = None
    if data is not None:
        try:
            payload = json.loads(data)
        except json.JSONDecodeError:
            payload = data

    async def _signal() -> None:
        client = await get_client(cfg.temporal.address, cfg.temporal.namespace)
        await signal_workflow(client, workflow_id, signal_name, payload)

    _run_temporal(_signal)
    typer.echo(f"Sent signal {signal_name} to {workflow_id}")


@app.command()
def query(
    workflow_id: str = typer.Argument(..., help="Workflow id to query."),
    query_name: str = typer.Argument(..., help="Query name."),
    config: str = typer.Option(DEFAULT_CONFIG_FILE, "--config", help=CONFIG_OPTION_HELP),
) -> None:
    cfg = _load_config(config)

    async def _query() -> Any:
        client = await get_client(cfg.temporal.address, cfg.temporal.namespace)
        return await query_workflow(client, workflow_id, query_name)

    typer.echo(json.dumps(_run_temporal(_query), indent=2, default=str))


@app.command()
def cancel(
    workflow_id: str = typer.Argument(..., help="Workflow id to cancel."),
    config: str = typer.Option(DEFAULT_CONFIG_FILE, "--config", help=CONFIG_OPTION_HELP),
) -> None:
    cfg = _load_config(config)

    async def _cancel() -> None:
        client = await get_client(cfg.temporal.address, cfg.temporal.namespace)
        await cancel_workflow(client, workflow_id)

    _run_temporal(_cancel)
    typer.echo(f"Cancellation requested for {workflow_id}")


@app.command()
def terminate(
    workflow_id: str = typer.Argument(..., help="Workflow id to terminate."),
    reason: str | None = typer.Option(None, "--reason", help="Reason recorded with the termination."),
    config: str = typer.Option(DEFAULT_CONFIG_FILE, "--config", help=CONFIG_OPTION_HELP),
) -> None:
    cfg = _load_config(config)

    async def _terminate() -> None:
        client = await get_client(cfg.temporal.address, cfg.temporal.namespace)
        await terminate_workflow(client, workflow_id, reason)

    _run_temporal(_terminate)
    typer.echo(f"Terminated {workflow_id}")


@app.command()
def status(
    workflow_id: str = typer.Argument(..., help="Workflow id to describe."),
    config: str = typer.Option(DEFAULT_CONFIG_FILE, "--config", help=CONFIG_OPTION_HELP),
) -> None:
    cfg = _load_config(config)

    async def _status() -> dict:
        client = await get_client(cfg.temporal.address, cfg.temporal.namespace)
        return await describe_workflow_status(client, workflow_id)

    typer.echo(json.dumps(_run_temporal(_status), indent=2))


if __name__ == "__main__":
    app()
