"""Audit logging and redaction helpers."""

from flowvault.logging.audit import AuditLogger
from flowvault.logging.redaction import redact_obj, redact_text

__all__ = ["AuditLogger", "redact_obj", "redact_text"]
