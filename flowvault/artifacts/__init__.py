"""Versioned artifact store and the rollback/delete protocols built on it."""

from flowvault.artifacts.errors import (
    ArtifactErrorKind,
    ArtifactStoreError,
    InvalidKeyError,
    ObjectStoreUnavailableError,
    VersionConflictError,
    VersionNotFoundError,
)
from flowvault.artifacts.protocol import (
    DeleteResult,
    RollbackOutcome,
    RollbackResult,
    WorkflowInfo,
    delete_all_versions,
    delete_workflow_version,
    describe_workflow,
    resolve_rollback_target,
    rollback_workflow,
)
from flowvault.artifacts.store import ArtifactStore
from flowvault.artifacts.versioning import generate_version, is_timestamp_version

__all__ = [
    "ArtifactErrorKind",
    "ArtifactStore",
    "ArtifactStoreError",
    "DeleteResult",
    "InvalidKeyError",
    "ObjectStoreUnavailableError",
    "RollbackOutcome",
    "RollbackResult",
    "VersionConflictError",
    "VersionNotFoundError",
    "WorkflowInfo",
    "delete_all_versions",
    "delete_workflow_version",
    "describe_workflow",
    "generate_version",
    "is_timestamp_version",
    "resolve_rollback_target",
    "rollback_workflow",
]
