from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

TriggerType = Literal["schedule", "polling", "webhook", "manual"]


class TriggerSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: TriggerType = Field(description="How the workflow engine starts executions of this workflow.")
    config: dict[str, Any] | None = Field(
        default=None,
        description="Trigger-specific settings such as a cron expression or polling interval.",
    )


class WorkflowMetadata(BaseModel):
    """Deployment record stored next to each bundle as ``metadata.json``.

    The workflow engine's watcher reads this file directly, so the JSON shape
    uses camelCase keys and omits unset optional fields.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(description="Workflow name, also the top-level key prefix in the bucket.")
    version: str = Field(description="Version id this record belongs to.")
    namespace: str = Field(description="Temporal namespace the workflow runs in.")
    task_queue: str = Field(alias="taskQueue", description="Temporal task queue polled by the workflow's worker.")
    trigger: TriggerSpec = Field(description="Trigger definition copied from workflow.toml.")
    deployed_at: str = Field(alias="deployedAt", description="ISO-8601 timestamp of the deployment.")
    deployed_by: str | None = Field(default=None, alias="deployedBy", description="Opaque deployer identity.")
    checksum: str = Field(description="sha256 of the bundle, bare hex or prefixed with 'sha256:'.")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)


def utc_now_iso() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
