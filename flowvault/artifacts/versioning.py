from __future__ import annotations

from datetime import UTC, datetime

from flowvault.artifacts.errors import InvalidKeyError
from flowvault.constants import LATEST_MARKER

VERSION_FORMAT = "%Y%m%d-%H%M%S"


def generate_version(now: datetime | None = None) -> str:
    """Format an instant as a fixed-width ``YYYYMMDD-HHMMSS`` version id.

    Naive datetimes are taken as UTC. Zero padding keeps lexicographic order
    equal to chronological order, which ``list_versions`` relies on.
    """
    instant = now or datetime.now(UTC)
    if instant.tzinfo is not None:
        instant = instant.astimezone(UTC)
    return instant.strftime(VERSION_FORMAT)


def is_timestamp_version(version: str) -> bool:
    if len(version) != len("YYYYMMDD-HHMMSS"):
        return False
    try:
        datetime.strptime(version, VERSION_FORMAT)
    except ValueError:
        return False
    return True


def validate_workflow_name(name: str) -> str:
    if not name or not name.strip():
        raise InvalidKeyError("workflow name must not be empty")
    if "/" in name:
        raise InvalidKeyError(f"workflow name must not contain '/': {name}")
    return name


def validate_version_id(version: str) -> str:
    if not version or not version.strip():
        raise InvalidKeyError("version must not be empty")
    if "/" in version:
        raise InvalidKeyError(f"version must not contain '/': {version}")
    if version == LATEST_MARKER:
        raise InvalidKeyError(f"'{LATEST_MARKER}' is reserved for the latest pointer")
    return version
