from __future__ import annotations

import hashlib
import io
import zipfile
from pathlib import Path

from flowvault.constants import WORKFLOW_CONFIG_FILENAME

WORKFLOW_ENTRYPOINTS = ("workflow.py", "workflow.ts", "workflow.js")
EXCLUDED_DIRS = {".git", "__pycache__", "node_modules", ".venv"}
# Fixed timestamp so identical sources produce identical bundles and checksums.
ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


class BundleError(ValueError):
    pass


def validate_workflow_dir(workflow_dir: Path) -> Path:
    if not workflow_dir.exists():
        raise BundleError(f"Workflow directory not found: {workflow_dir}")
    if not workflow_dir.is_dir():
        raise BundleError(f"Not a directory: {workflow_dir}")
    if not (workflow_dir / WORKFLOW_CONFIG_FILENAME).exists():
        raise BundleError(f"No {WORKFLOW_CONFIG_FILENAME} found in {workflow_dir}")
    if not any((workflow_dir / name).exists() for name in WORKFLOW_ENTRYPOINTS):
        raise BundleError(f"No {' or '.join(WORKFLOW_ENTRYPOINTS)} found in {workflow_dir}")
    return workflow_dir


def iter_bundle_files(workflow_dir: Path) -> list[Path]:
    files = []
    for path in sorted(workflow_dir.rglob("*")):
        rel = path.relative_to(workflow_dir)
        if any(part in EXCLUDED_DIRS for part in rel.parts):
            continue
        if path.is_file():
            files.append(path)
    return files


def create_bundle(workflow_dir: Path) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
        for path in iter_bundle_files(workflow_dir):
            info = zipfile.ZipInfo(path.relative_to(workflow_dir).as_posix(), date_time=ZIP_EPOCH)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = 0o644 << 16
            archive.writestr(info, path.read_bytes(), compresslevel=9)
    return buffer.getvalue()


def compute_checksum(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()
