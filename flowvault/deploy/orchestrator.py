from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from flowvault.artifacts.store import ArtifactStore, bundle_key_for
from flowvault.artifacts.versioning import generate_version, validate_version_id
from flowvault.config.load import load_workflow_config
from flowvault.config.models import WorkflowConfig
from flowvault.deploy.registry import DeploymentRegistrar, RegistrationResult
from flowvault.logging.audit import AuditLogger
from flowvault.packaging.bundle import compute_checksum, create_bundle, validate_workflow_dir
from flowvault.state.models import WorkflowMetadata, utc_now_iso


@dataclass(frozen=True)
class DeployResult:
    config: WorkflowConfig
    version: str
    checksum: str
    bundle_key: str
    size_bytes: int
    registration: RegistrationResult | None = None


def build_metadata(
    config: WorkflowConfig,
    *,
    version: str,
    checksum: str,
    deployer: str | None,
    deployed_at: str | None = None,
) -> WorkflowMetadata:
    return WorkflowMetadata(
        name=config.name,
        version=version,
        namespace=config.namespace,
        task_queue=config.task_queue,
        trigger=config.trigger,
        deployed_at=deployed_at or utc_now_iso(),
        deployed_by=deployer,
        checksum=checksum,
    )


def registration_payload(config: WorkflowConfig, *, version: str, checksum: str) -> dict:
    return {
        "name": config.name,
        "namespace": config.namespace,
        "taskQueue": config.task_queue,
        "version": version,
        "trigger": config.trigger.model_dump(exclude_none=True),
        "checksum": checksum,
        "minioPath": bundle_key_for(config.name, version),
    }


def deploy_workflow(
    store: ArtifactStore,
    workflow_dir: Path,
    *,
    deployer: str | None,
    version: str | None = None,
    force: bool = False,
    registrar: DeploymentRegistrar | None = None,
    audit: AuditLogger | None = None,
    now: datetime | None = None,
) -> DeployResult:
    workflow_dir = validate_workflow_dir(workflow_dir.expanduser().resolve())
    config = load_workflow_config(workflow_dir)

    version = validate_version_id(version) if version else generate_version(now)
    bundle = create_bundle(workflow_dir)
    checksum = compute_checksum(bundle)
    metadata = build_metadata(config, version=version, checksum=checksum, deployer=deployer)

    bundle_key = store.upload(config.name, version, bundle, metadata, force=force)

    registration = None
    if registrar is not None:
        registration = registrar.register(registration_payload(config, version=version, checksum=checksum))

    if audit is not None:
        audit.log_deploy_event(
            {
                "event_type": "workflow_deployed",
                "workflow": config.name,
                "version": version,
                "checksum": checksum,
                "bundle_key": bundle_key,
                "deployed_by": deployer,
                "forced": force,
                "registered": registration.success if registration else None,
                "registration_message": registration.message if registration else None,
            }
        )

    return DeployResult(
        config=config,
        version=version,
        checksum=checksum,
        bundle_key=bundle_key,
        size_bytes=len(bundle),
        registration=registration,
    )
