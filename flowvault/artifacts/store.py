from __future__ import annotations

import hashlib
import json
from typing import TYPE_CHECKING

from pydantic import ValidationError

from flowvault.artifacts.errors import InvalidKeyError, VersionConflictError
from flowvault.artifacts.versioning import validate_version_id, validate_workflow_name
from flowvault.constants import BUNDLE_FILENAME, LATEST_MARKER, METADATA_FILENAME
from flowvault.logging.audit import AuditLogger
from flowvault.state.models import WorkflowMetadata

if TYPE_CHECKING:
    from flowvault.storage.objects import ObjectStore


class ArtifactStore:
    """Versioned workflow deployments laid out as objects in a single bucket.

    ``<name>/latest`` holds the active version id; every version owns
    ``<name>/<version>/bundle.zip`` and ``<name>/<version>/metadata.json``.
    """

    def __init__(self, objects: ObjectStore, audit: AuditLogger | None = None):
        self.objects = objects
        self.audit = audit

    def upload(
        self,
        workflow_name: str,
        version: str,
        bundle: bytes,
        metadata: WorkflowMetadata,
        *,
        force: bool = False,
    ) -> str:
        validate_workflow_name(workflow_name)
        validate_version_id(version)
        if metadata.name != workflow_name or metadata.version != version:
            raise InvalidKeyError(
                f"metadata describes {metadata.name}@{metadata.version}, not {workflow_name}@{version}"
            )

        if not force and self.version_exists(workflow_name, version):
            self._log({"event_type": "upload_conflict", "workflow": workflow_name, "version": version})
            raise VersionConflictError(workflow_name, version)

        # Pointer goes last: an interrupted upload leaves the previous latest in place.
        bundle_key = bundle_key_for(workflow_name, version)
        self.objects.put(bundle_key, bundle, content_type="application/zip")
        self.objects.put(
            metadata_key_for(workflow_name, version),
            metadata.to_json().encode("utf-8"),
            content_type="application/json",
        )
        self._write_pointer(workflow_name, version)

        self._log(
            {
                "event_type": "version_uploaded",
                "workflow": workflow_name,
                "version": version,
                "checksum": metadata.checksum,
                "forced": force,
                "size_bytes": len(bundle),
            }
        )
        return bundle_key

    def list_workflows(self) -> set[str]:
        return {key.rstrip("/") for key in self.objects.list("", recursive=False) if key.endswith("/")}

    def list_versions(self, workflow_name: str) -> list[str]:
        prefix = f"{workflow_name}/"
        versions = set()
        for key in self.objects.list(prefix, recursive=False):
            if not key.endswith("/"):
                continue
            version = key[len(prefix) :].rstrip("/")
            if version and version != LATEST_MARKER:
                versions.add(version)
        return sorted(versions, reverse=True)

    def version_exists(self, workflow_name: str, version: str) -> bool:
        return bool(self.objects.list(f"{workflow_name}/{version}/", recursive=True))

    def get_latest_version(self, workflow_name: str) -> str | None:
        raw = self.objects.get(latest_key_for(workflow_name))
        if raw is None:
            return None
        version = raw.decode("utf-8").strip()
        return version or None

    def get_metadata(self, workflow_name: str, version: str) -> WorkflowMetadata | None:
        raw = self.objects.get(metadata_key_for(workflow_name, version))
        if raw is None:
            return None
        try:
            return WorkflowMetadata.model_validate(json.loads(raw.decode("utf-8")))
        except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
            self._log(
                {
                    "event_type": "metadata_unparsable",
                    "workflow": workflow_name,
                    "version": version,
                    "error": str(exc).splitlines()[0],
                }
            )
            return None

    def get_bundle(self, workflow_name: str, version: str) -> bytes | None:
        return self.objects.get(bundle_key_for(workflow_name, version))

    def set_latest_version(self, workflow_name: str, version: str) -> None:
        # No existence check; rollback and delete verify their targets first.
        self._write_pointer(workflow_name, version)
        self._log({"event_type": "latest_updated", "workflow": workflow_name, "version": version})

    def delete_version(self, workflow_name: str, version: str) -> list[str]:
        keys = self.objects.list(f"{workflow_name}/{version}/", recursive=True)
        for key in keys:
            self.objects.delete(key)
        if keys:
            self._log({"event_type": "version_deleted", "workflow": workflow_name, "version": version, "keys": keys})
        return keys

    def verify_bundle(self, workflow_name: str, version: str) -> bool | None:
        """Re-hash the stored bundle and compare it to the recorded checksum.

        Returns None when either the bundle or its metadata is missing.
        """
        metadata = self.get_metadata(workflow_name, version)
        bundle = self.get_bundle(workflow_name, version)
        if metadata is None or bundle is None:
            return None
        expected = metadata.checksum.removeprefix("sha256:").lower()
        matches = hashlib.sha256(bundle).hexdigest() == expected
        if not matches:
            self._log({"event_type": "checksum_mismatch", "workflow": workflow_name, "version": version})
        return matches

    def _write_pointer(self, workflow_name: str, version: str) -> None:
        self.objects.put(latest_key_for(workflow_name), version.encode("utf-8"), content_type="text/plain")

    def _log(self, event: dict) -> None:
        if self.audit is not None:
            self.audit.log_store_event(event)


def bundle_key_for(workflow_name: str, version: str) -> str:
    return f"{workflow_name}/{version}/{BUNDLE_FILENAME}"


def metadata_key_for(workflow_name: str, version: str) -> str:
    return f"{workflow_name}/{version}/{METADATA_FILENAME}"


def latest_key_for(workflow_name: str) -> str:
    return f"{workflow_name}/{LATEST_MARKER}"
