from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx


@dataclass(frozen=True)
class RegistrationResult:
    success: bool
    message: str


class DeploymentRegistrar:
    """Records a completed upload with the platform API.

    Registration happens after the objects are committed, so a failure here is
    reported to the caller rather than raised.
    """

    def __init__(
        self,
        api_url: str,
        token: str,
        *,
        tenant: str | None = None,
        client: httpx.Client | None = None,
        timeout: float = 10.0,
    ):
        self.api_url = api_url.rstrip("/")
        self.token = token
        self.tenant = tenant
        self.client = client or httpx.Client(timeout=timeout)

    def register(self, payload: dict[str, Any]) -> RegistrationResult:
        params = {"tenant": self.tenant} if self.tenant else None
        try:
            response = self.client.post(
                f"{self.api_url}/workflows/register",
                json=payload,
                params=params,
                headers={"Authorization": f"Bearer {self.token}"},
            )
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            return RegistrationResult(success=False, message=str(exc) or type(exc).__name__)

        if not isinstance(body, dict):
            return RegistrationResult(success=False, message=f"Unexpected response from API (HTTP {response.status_code})")
        success = bool(body.get("success")) and response.is_success
        message = str(body.get("message") or f"HTTP {response.status_code}")
        return RegistrationResult(success=success, message=message)

    def close(self) -> None:
        self.client.close()
