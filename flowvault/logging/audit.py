from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from flowvault.logging.redaction import redact_obj

STORE_CHANNEL = "store"
DEPLOY_CHANNEL = "deploy"


class AuditLogger:
    """Append-only JSONL trail of bucket mutations and deployments.

    Store events (uploads, pointer moves, deletions, unreadable metadata) and
    deploy events go to separate files under ``logs_dir`` so a deploy history
    can be read without the per-object noise.
    """

    def __init__(self, logs_dir: Path):
        logs_dir.mkdir(parents=True, exist_ok=True)
        self.logs_dir = logs_dir
        self.store_events = logs_dir / f"{STORE_CHANNEL}_events.jsonl"
        self.deploy_events = logs_dir / f"{DEPLOY_CHANNEL}_events.jsonl"

    def log_store_event(self, event: dict[str, Any]) -> None:
        self._append(self.store_events, STORE_CHANNEL, event)

    def log_deploy_event(self, event: dict[str, Any]) -> None:
        self._append(self.deploy_events, DEPLOY_CHANNEL, event)

    def read_events(self, channel: str, workflow: str | None = None) -> list[dict[str, Any]]:
        path = self._path_for(channel)
        if not path.exists():
            return []
        events = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line.strip()]
        if workflow is not None:
            events = [e for e in events if e.get("workflow") == workflow]
        return events

    def _path_for(self, channel: str) -> Path:
        if channel == STORE_CHANNEL:
            return self.store_events
        if channel == DEPLOY_CHANNEL:
            return self.deploy_events
        raise ValueError(f"Unknown audit channel: {channel}")

    def _append(self, path: Path, channel: str, event: dict[str, Any]) -> None:
        record = {
            "timestamp": datetime.now(UTC).isoformat(timespec="milliseconds"),
            "channel": channel,
            **redact_obj(event),
        }
        with path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(record, sort_keys=True, default=str) + "\n")
