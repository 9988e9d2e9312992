from __future__ import annotations

import hashlib
import json
from pathlib import Path

import pytest

from flowvault.artifacts.errors import ArtifactErrorKind, InvalidKeyError, ObjectStoreUnavailableError, VersionConflictError
from flowvault.artifacts.store import ArtifactStore
from flowvault.logging.audit import AuditLogger
from flowvault.state.models import TriggerSpec


def test_upload_then_get_metadata_returns_equal_record(store, make_metadata) -> None:
    metadata = make_metadata("orders", "v1", checksum="sha256:" + "a" * 64)

    key = store.upload("orders", "v1", b"zip-bytes", metadata)

    assert key == "orders/v1/bundle.zip"
    loaded = store.get_metadata("orders", "v1")
    assert loaded == metadata
    assert loaded.checksum == "sha256:" + "a" * 64


def test_upload_writes_bundle_then_metadata_then_pointer(store, objects, make_metadata) -> None:
    store.upload("orders", "v1", b"zip-bytes", make_metadata())

    assert objects.writes == ["orders/v1/bundle.zip", "orders/v1/metadata.json", "orders/latest"]
    assert objects.content_types["orders/v1/bundle.zip"] == "application/zip"
    assert objects.content_types["orders/v1/metadata.json"] == "application/json"
    assert objects.content_types["orders/latest"] == "text/plain"


def test_stored_layout_matches_watcher_contract(store, objects, make_metadata) -> None:
    metadata = make_metadata(
        "orders",
        "20240301-000000",
        trigger=TriggerSpec(type="schedule", config={"cron": "0 * * * *"}),
    )
    store.upload("orders", "20240301-000000", b"zip-bytes", metadata)

    assert objects.objects["orders/latest"] == b"20240301-000000"
    assert objects.objects["orders/20240301-000000/bundle.zip"] == b"zip-bytes"
    payload = json.loads(objects.objects["orders/20240301-000000/metadata.json"])
    assert set(payload) == {
        "name",
        "version",
        "namespace",
        "taskQueue",
        "trigger",
        "deployedAt",
        "deployedBy",
        "checksum",
    }
    assert payload["taskQueue"] == "orders-queue"
    assert payload["trigger"] == {"type": "schedule", "config": {"cron": "0 * * * *"}}


def test_optional_metadata_fields_are_omitted_when_unset(store, objects, make_metadata) -> None:
    store.upload("orders", "v1", b"zip", make_metadata(deployed_by=None))

    payload = json.loads(objects.objects["orders/v1/metadata.json"])
    assert "deployedBy" not in payload
    assert payload["trigger"] == {"type": "manual"}


def test_latest_follows_each_upload(store, make_metadata) -> None:
    for version in ["v1", "v3", "v2"]:
        store.upload("orders", version, b"zip", make_metadata("orders", version))
        assert store.get_latest_version("orders") == version


def test_list_versions_sorted_descending_and_excludes_latest(store, seed) -> None:
    seed("orders", "v1", "v2", "v3")

    assert store.list_versions("orders") == ["v3", "v2", "v1"]


def test_list_versions_does_not_leak_across_similar_names(store, seed) -> None:
    seed("orders", "v1")
    seed("orders-archive", "v9")

    assert store.list_versions("orders") == ["v1"]


def test_list_workflows_returns_set_of_names(store, seed) -> None:
    seed("orders", "v1")
    seed("billing", "v1", "v2")

    assert store.list_workflows() == {"orders", "billing"}


def test_reads_on_unknown_workflow_are_absent_not_errors(store) -> None:
    assert store.get_latest_version("ghost") is None
    assert store.get_metadata("ghost", "v1") is None
    assert store.list_versions("ghost") == []
    assert store.list_workflows() == set()


def test_conflict_without_force_leaves_existing_objects_untouched(store, objects, make_metadata) -> None:
    store.upload("orders", "v1", b"original", make_metadata("orders", "v1", checksum="c1"))
    store.upload("orders", "v2", b"second", make_metadata("orders", "v2", checksum="c2"))
    before = dict(objects.objects)

    with pytest.raises(VersionConflictError) as exc_info:
        store.upload("orders", "v1", b"replacement", make_metadata("orders", "v1", checksum="c3"))

    assert exc_info.value.kind == ArtifactErrorKind.CONFLICT
    assert objects.objects == before
    assert store.get_latest_version("orders") == "v2"


def test_forced_overwrite_rewrites_objects_and_pointer(store, make_metadata) -> None:
    store.upload("orders", "v1", b"original", make_metadata("orders", "v1", checksum="c1"))
    store.upload("orders", "v2", b"second", make_metadata("orders", "v2", checksum="c2"))

    store.upload("orders", "v1", b"replacement", make_metadata("orders", "v1", checksum="c3"), force=True)

    assert store.get_bundle("orders", "v1") == b"replacement"
    assert store.get_metadata("orders", "v1").checksum == "c3"
    assert store.get_latest_version("orders") == "v1"


def test_failed_metadata_write_does_not_advance_pointer(store, objects, make_metadata) -> None:
    store.upload("orders", "v1", b"zip", make_metadata("orders", "v1"))
    objects.fail_on_put_suffix = "metadata.json"

    with pytest.raises(ObjectStoreUnavailableError):
        store.upload("orders", "v2", b"zip", make_metadata("orders", "v2"))

    assert store.get_latest_version("orders") == "v1"
    assert store.get_metadata("orders", "v2") is None


def test_delete_version_is_idempotent(store, seed) -> None:
    seed("orders", "v1", "v2")

    assert store.delete_version("orders", "v1") == ["orders/v1/bundle.zip", "orders/v1/metadata.json"]
    assert store.delete_version("orders", "v1") == []
    assert store.list_versions("orders") == ["v2"]


def test_delete_version_does_not_touch_pointer(store, objects, seed) -> None:
    seed("orders", "v1", "v2")

    store.delete_version("orders", "v2")

    assert store.get_latest_version("orders") == "v2"
    assert store.get_metadata("orders", "v2") is None


def test_set_latest_version_is_permissive(store, seed) -> None:
    seed("orders", "v1")

    store.set_latest_version("orders", "v-missing")

    assert store.get_latest_version("orders") == "v-missing"


def test_latest_pointer_whitespace_is_stripped(store, objects) -> None:
    objects.objects["orders/latest"] = b"v1\n"
    assert store.get_latest_version("orders") == "v1"

    objects.objects["orders/latest"] = b"  "
    assert store.get_latest_version("orders") is None


def test_unparsable_metadata_is_absent_and_audited(objects, tmp_path: Path) -> None:
    audit = AuditLogger(tmp_path / "logs")
    store = ArtifactStore(objects, audit=audit)
    objects.objects["orders/v1/metadata.json"] = b"{not json"
    objects.objects["orders/v2/metadata.json"] = json.dumps({"name": "orders"}).encode()

    assert store.get_metadata("orders", "v1") is None
    assert store.get_metadata("orders", "v2") is None

    events = [json.loads(line) for line in audit.store_events.read_text(encoding="utf-8").splitlines()]
    assert [e["event_type"] for e in events] == ["metadata_unparsable", "metadata_unparsable"]
    assert [e["version"] for e in events] == ["v1", "v2"]


def test_store_mutations_are_audited(objects, make_metadata, tmp_path: Path) -> None:
    audit = AuditLogger(tmp_path / "logs")
    store = ArtifactStore(objects, audit=audit)

    store.upload("orders", "v1", b"zip", make_metadata())
    store.set_latest_version("orders", "v1")
    store.delete_version("orders", "v1")

    events = [json.loads(line) for line in audit.store_events.read_text(encoding="utf-8").splitlines()]
    assert [e["event_type"] for e in events] == ["version_uploaded", "latest_updated", "version_deleted"]


@pytest.mark.parametrize(
    ("name", "version"),
    [("", "v1"), ("orders", ""), ("a/b", "v1"), ("orders", "v/1"), ("orders", "latest")],
)
def test_upload_rejects_invalid_keys(store, make_metadata, name: str, version: str) -> None:
    with pytest.raises(InvalidKeyError):
        store.upload(name, version, b"zip", make_metadata())


def test_verify_bundle_detects_tampering(store, objects, make_metadata) -> None:
    bundle = b"zip-bytes"
    digest = hashlib.sha256(bundle).hexdigest()
    store.upload("orders", "v1", bundle, make_metadata(checksum=digest))
    store.upload("orders", "v2", bundle, make_metadata(version="v2", checksum=f"sha256:{digest}"))

    assert store.verify_bundle("orders", "v1") is True
    assert store.verify_bundle("orders", "v2") is True

    objects.objects["orders/v1/bundle.zip"] = b"tampered"
    assert store.verify_bundle("orders", "v1") is False
    assert store.verify_bundle("orders", "v3") is None


@pytest.mark.parametrize(
    ("meta_name", "meta_version"),
    [("billing", "v1"), ("orders", "v2")],
)
def test_upload_rejects_metadata_for_another_key(store, objects, make_metadata, meta_name: str, meta_version: str) -> None:
    with pytest.raises(InvalidKeyError, match="not orders@v1"):
        store.upload("orders", "v1", b"zip", make_metadata(meta_name, meta_version))

    assert objects.objects == {}
