from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from flowvault.artifacts.errors import VersionNotFoundError
from flowvault.artifacts.store import ArtifactStore
from flowvault.state.models import WorkflowMetadata


class RollbackOutcome(str, Enum):
    ROLLED_BACK = "rolled_back"
    ALREADY_LATEST = "already_latest"
    NO_VERSIONS = "no_versions"
    SINGLE_VERSION = "single_version"


@dataclass(frozen=True)
class RollbackResult:
    workflow_name: str
    outcome: RollbackOutcome
    previous: str | None = None
    current: str | None = None
    versions: tuple[str, ...] = ()


@dataclass(frozen=True)
class DeleteResult:
    workflow_name: str
    deleted_versions: tuple[str, ...] = ()
    new_latest: str | None = None
    pointer_orphaned: bool = False


@dataclass
class WorkflowInfo:
    workflow_name: str
    target_version: str | None
    latest_version: str | None
    metadata: WorkflowMetadata | None
    versions: list[str] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.target_version is not None

    @property
    def dangling(self) -> bool:
        """Latest pointer is set but its version has no readable metadata."""
        return (
            self.latest_version is not None
            and self.target_version == self.latest_version
            and self.metadata is None
        )


def resolve_rollback_target(versions: list[str], current: str | None) -> str:
    """Pick the version one step older than ``current`` in a descending list.

    When ``current`` is missing from the list, or already the oldest entry,
    fall back to the second-newest version instead of failing.
    """
    if len(versions) < 2:
        raise ValueError("rollback needs at least two versions")
    try:
        index = versions.index(current) if current is not None else -1
    except ValueError:
        index = -1
    if index == -1 or index == len(versions) - 1:
        return versions[1]
    return versions[index + 1]


def rollback_workflow(store: ArtifactStore, workflow_name: str, target: str | None = None) -> RollbackResult:
    versions = store.list_versions(workflow_name)
    current = store.get_latest_version(workflow_name)

    if not versions:
        return RollbackResult(workflow_name, RollbackOutcome.NO_VERSIONS, previous=current)
    if len(versions) == 1:
        return RollbackResult(workflow_name, RollbackOutcome.SINGLE_VERSION, current, current, tuple(versions))

    if target is not None:
        if target not in versions:
            raise VersionNotFoundError(workflow_name, target, versions)
        new_version = target
    else:
        new_version = resolve_rollback_target(versions, current)

    if new_version == current:
        return RollbackResult(workflow_name, RollbackOutcome.ALREADY_LATEST, current, current, tuple(versions))

    store.set_latest_version(workflow_name, new_version)
    return RollbackResult(workflow_name, RollbackOutcome.ROLLED_BACK, current, new_version, tuple(versions))


def delete_all_versions(store: ArtifactStore, workflow_name: str) -> DeleteResult:
    versions = store.list_versions(workflow_name)
    current = store.get_latest_version(workflow_name)
    for version in versions:
        store.delete_version(workflow_name, version)
    # The latest object stays behind and is reported as orphaned.
    return DeleteResult(
        workflow_name,
        deleted_versions=tuple(versions),
        pointer_orphaned=current is not None,
    )


def delete_workflow_version(store: ArtifactStore, workflow_name: str, version: str) -> DeleteResult:
    versions = store.list_versions(workflow_name)
    current = store.get_latest_version(workflow_name)
    if version not in versions:
        raise VersionNotFoundError(workflow_name, version, versions)

    store.delete_version(workflow_name, version)

    survivors = [v for v in versions if v != version]
    new_latest = None
    if version == current and survivors:
        new_latest = survivors[0]
        store.set_latest_version(workflow_name, new_latest)

    return DeleteResult(
        workflow_name,
        deleted_versions=(version,),
        new_latest=new_latest,
        pointer_orphaned=version == current and not survivors,
    )


def describe_workflow(store: ArtifactStore, workflow_name: str, version: str | None = None) -> WorkflowInfo:
    latest = store.get_latest_version(workflow_name)
    target = version or latest
    metadata = store.get_metadata(workflow_name, target) if target else None
    return WorkflowInfo(
        workflow_name=workflow_name,
        target_version=target,
        latest_version=latest,
        metadata=metadata,
        versions=store.list_versions(workflow_name),
    )
