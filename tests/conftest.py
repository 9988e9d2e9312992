from __future__ import annotations

from collections.abc import Callable

import pytest

from flowvault.artifacts.errors import ObjectStoreUnavailableError
from flowvault.artifacts.store import ArtifactStore
from flowvault.state.models import TriggerSpec, WorkflowMetadata


class InMemoryObjectStore:
    """Dict-backed stand-in for a bucket with S3 delimiter listing semantics."""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.content_types: dict[str, str] = {}
        self.writes: list[str] = []
        self.fail_on_put_suffix: str | None = None

    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        if self.fail_on_put_suffix and key.endswith(self.fail_on_put_suffix):
            raise ObjectStoreUnavailableError(f"simulated outage writing {key}")
        self.objects[key] = data
        self.content_types[key] = content_type
        self.writes.append(key)

    def get(self, key: str) -> bytes | None:
        return self.objects.get(key)

    def list(self, prefix: str = "", recursive: bool = False) -> list[str]:
        keys = sorted(k for k in self.objects if k.startswith(prefix))
        if recursive:
            return keys
        entries: list[str] = []
        for key in keys:
            rest = key[len(prefix) :]
            entry = prefix + rest.split("/", 1)[0] + "/" if "/" in rest else key
            if entry not in entries:
                entries.append(entry)
        return entries

    def delete(self, key: str) -> None:
        self.objects.pop(key, None)


@pytest.fixture
def objects() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def store(objects: InMemoryObjectStore) -> ArtifactStore:
    return ArtifactStore(objects)


@pytest.fixture
def make_metadata() -> Callable[..., WorkflowMetadata]:
    def _make(name: str = "orders", version: str = "v1", checksum: str = "abc123", **overrides) -> WorkflowMetadata:
        fields = {
            "name": name,
            "version": version,
            "namespace": "default",
            "task_queue": f"{name}-queue",
            "trigger": TriggerSpec(type="manual"),
            "deployed_at": "2024-03-01T00:00:00.000Z",
            "deployed_by": "ci@example.com",
            "checksum": checksum,
        }
        fields.update(overrides)
        return WorkflowMetadata(**fields)

    return _make


@pytest.fixture
def seed(store: ArtifactStore, make_metadata: Callable[..., WorkflowMetadata]) -> Callable[..., None]:
    """Upload the given versions in order; the last one becomes latest."""

    def _seed(name: str, *versions: str) -> None:
        for version in versions:
            store.upload(name, version, f"bundle-{version}".encode(), make_metadata(name, version))

    return _seed
