from __future__ import annotations

from enum import Enum


class ArtifactErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    TRANSPORT = "transport"


class ArtifactStoreError(RuntimeError):
    def __init__(self, message: str, kind: ArtifactErrorKind):
        super().__init__(message)
        self.kind = kind

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={str(self)!r})"


class VersionNotFoundError(ArtifactStoreError):
    def __init__(self, workflow_name: str, version: str, available: list[str] | None = None):
        super().__init__(f"Version {version} not found for workflow {workflow_name}.", ArtifactErrorKind.NOT_FOUND)
        self.workflow_name = workflow_name
        self.version = version
        self.available = list(available or [])


class VersionConflictError(ArtifactStoreError):
    def __init__(self, workflow_name: str, version: str):
        super().__init__(
            f"Version {version} of {workflow_name} already exists. Use --force to overwrite.",
            ArtifactErrorKind.CONFLICT,
        )
        self.workflow_name = workflow_name
        self.version = version


class ObjectStoreUnavailableError(ArtifactStoreError):
    def __init__(self, message: str):
        super().__init__(message, ArtifactErrorKind.TRANSPORT)


class InvalidKeyError(ValueError):
    pass
