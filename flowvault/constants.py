from __future__ import annotations

DEFAULT_NAMESPACE = "default"
DEFAULT_BUCKET = "temporal-workflows"
DEFAULT_TEMPORAL_ADDRESS = "localhost:7233"

LATEST_MARKER = "latest"
BUNDLE_FILENAME = "bundle.zip"
METADATA_FILENAME = "metadata.json"
WORKFLOW_CONFIG_FILENAME = "workflow.toml"

TRIGGER_TYPES = ("schedule", "polling", "webhook", "manual")
