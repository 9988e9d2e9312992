from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from flowvault.config.models import FlowvaultConfig, WorkflowConfig
from flowvault.constants import WORKFLOW_CONFIG_FILENAME


DEFAULT_CONFIG_FILE = "flowvault.toml"

ENV_OVERRIDES = {
    "MINIO_ENDPOINT": ("object_store", "endpoint"),
    "MINIO_PORT": ("object_store", "port"),
    "MINIO_USE_SSL": ("object_store", "use_ssl"),
    "MINIO_BUCKET": ("object_store", "bucket"),
    "TEMPORAL_ADDRESS": ("temporal", "address"),
    "TEMPORAL_NAMESPACE": ("temporal", "namespace"),
    "FLOWVAULT_API_URL": ("registry", "api_url"),
}


class ConfigError(ValueError):
    pass


class WorkflowConfigError(ValueError):
    pass


def load_config(config_path: str | Path | None = None, env: Mapping[str, str] | None = None) -> FlowvaultConfig:
    """Load ``flowvault.toml`` and layer environment overrides on top.

    Overrides are merged before validation, so values from the environment
    go through the same schema checks as values from the file.
    """
    env = os.environ if env is None else env
    path = Path(config_path or DEFAULT_CONFIG_FILE)
    raw: dict[str, Any] = {}
    if path.exists():
        try:
            raw = tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc

    for env_name, (section, field) in ENV_OVERRIDES.items():
        value = env.get(env_name)
        if not value:
            continue
        target = raw.setdefault(section, {})
        if not isinstance(target, dict):
            raise ConfigError(f"[{section}] in {path} must be a table")
        target[field] = value

    try:
        return FlowvaultConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration (file {path} plus environment overrides):\n{exc}") from exc


def load_workflow_config(workflow_dir: Path) -> WorkflowConfig:
    path = workflow_dir / WORKFLOW_CONFIG_FILENAME
    if not path.exists():
        raise WorkflowConfigError(f"No {WORKFLOW_CONFIG_FILENAME} found in {workflow_dir}")

    try:
        raw = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise WorkflowConfigError(f"Invalid TOML in {path}: {exc}") from exc

    try:
        return WorkflowConfig.model_validate(raw)
    except ValidationError as exc:
        raise WorkflowConfigError(f"Invalid workflow config in {path}:\n{exc}") from exc


def scaffold_default_config(target: Path) -> None:
    target.write_text(
        """[object_store]
endpoint = "localhost"
port = 9000
use_ssl = false
bucket = "temporal-workflows"
access_key_env = "MINIO_ACCESS_KEY"
secret_key_env = "MINIO_SECRET_KEY"

[temporal]
address = "localhost:7233"
namespace = "default"

[registry]
token_env = "FLOWVAULT_API_TOKEN"

[audit]
logs_dir = ".flowvault/logs"
""",
        encoding="utf-8",
    )


def scaffold_workflow_config(target: Path, *, name: str, task_queue: str, trigger_type: str = "manual") -> None:
    target.write_text(
        f"""name = "{name}"
namespace = "default"
task_queue = "{task_queue}"

[trigger]
type = "{trigger_type}"
""",
        encoding="utf-8",
    )
