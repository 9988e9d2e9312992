"""Masking for credentials that can leak into store and deploy audit events.

Values are masked in three shapes: ``key=value`` style assignments (including
the ``MINIO_SECRET_KEY=...`` env form), bearer tokens, and credentials carried
inside URLs, either as ``user:pass@host`` or as S3 presigned query parameters.
"""

from __future__ import annotations

import re
from typing import Any

MASK = "[REDACTED]"

SENSITIVE_FIELD = re.compile(r"(?i)(access[_-]?key|secret|token|password|authorization|credential|signature)")

_ASSIGNMENT = re.compile(
    r"(?i)(?P<lead>\b[\w-]*(?:access[_-]?key|secret[_-]?key|secret|token|password)\s*[:=]\s*['\"]?)"
    r"(?P<value>[^\s'\",&]+)"
)
_BEARER = re.compile(r"(?i)(?P<lead>\bbearer\s+)(?P<value>[A-Za-z0-9\-._~+/=]+)")
_URL_USERINFO = re.compile(r"(?P<lead>\b[a-z][a-z0-9+.-]*://[^/\s:@]+:)(?P<value>[^@\s/]+)(?=@)")
_PRESIGNED_PARAM = re.compile(
    r"(?i)(?P<lead>[?&]X-Amz-(?:Signature|Credential|Security-Token)=)(?P<value>[^&\s]+)"
)

VALUE_PATTERNS = (_URL_USERINFO, _PRESIGNED_PARAM, _ASSIGNMENT, _BEARER)


def redact_text(value: str) -> str:
    for pattern in VALUE_PATTERNS:
        value = pattern.sub(lambda m: m.group("lead") + MASK, value)
    return value


def redact_obj(value: Any) -> Any:
    """Recursively mask secrets in an event payload.

    Dict entries whose key names a credential are replaced outright; every
    other string is scanned with :func:`redact_text`.
    """
    if isinstance(value, str):
        return redact_text(value)
    if isinstance(value, dict):
        return {key: MASK if SENSITIVE_FIELD.search(str(key)) else redact_obj(inner) for key, inner in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [redact_obj(inner) for inner in value]
    return value
