from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from flowvault.constants import DEFAULT_BUCKET, DEFAULT_NAMESPACE, DEFAULT_TEMPORAL_ADDRESS
from flowvault.state.models import TriggerSpec


class ObjectStoreConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    endpoint: str = "localhost"
    port: int = Field(default=9000, ge=1, le=65535)
    use_ssl: bool = False
    bucket: str = DEFAULT_BUCKET
    access_key_env: str = "MINIO_ACCESS_KEY"
    secret_key_env: str = "MINIO_SECRET_KEY"

    @field_validator("bucket", "endpoint")
    @classmethod
    def validate_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value


class TemporalConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    address: str = DEFAULT_TEMPORAL_ADDRESS
    namespace: str = DEFAULT_NAMESPACE


class RegistryConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    api_url: str | None = Field(default=None, description="Base URL of the platform API. Registration is skipped when unset.")
    token_env: str = "FLOWVAULT_API_TOKEN"
    tenant: str | None = None


class AuditConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    logs_dir: str = ".flowvault/logs"


class FlowvaultConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    object_store: ObjectStoreConfig = Field(default_factory=ObjectStoreConfig)
    temporal: TemporalConfig = Field(default_factory=TemporalConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)


class WorkflowConfig(BaseModel):
    """Contents of a workflow directory's ``workflow.toml``."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(description="Workflow name; becomes the key prefix in the bucket and the Temporal workflow type.")
    namespace: str = Field(default=DEFAULT_NAMESPACE, description="Temporal namespace for executions.")
    task_queue: str = Field(description="Task queue polled by the workflow's worker.")
    trigger: TriggerSpec = Field(description="How executions of the workflow are started.")

    @model_validator(mode="before")
    @classmethod
    def reject_camel_case_keys(cls, data: Any) -> Any:
        if isinstance(data, dict) and "taskQueue" in data:
            raise ValueError("use 'task_queue' instead of 'taskQueue' in workflow.toml")
        return data

    @field_validator("name", "task_queue")
    @classmethod
    def validate_identifier(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        if "/" in value:
            raise ValueError("must not contain '/'")
        return value
