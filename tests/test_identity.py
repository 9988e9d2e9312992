from __future__ import annotations

import pytest

from flowvault.config.models import ObjectStoreConfig
from flowvault.security.identity import CredentialsMissingError, require_credentials, resolve_deployer


def test_credentials_gate_requires_both_keys() -> None:
    cfg = ObjectStoreConfig()

    with pytest.raises(CredentialsMissingError, match="MINIO_SECRET_KEY"):
        require_credentials(cfg, env={"MINIO_ACCESS_KEY": "access"})

    credentials = require_credentials(cfg, env={"MINIO_ACCESS_KEY": "access", "MINIO_SECRET_KEY": "secret"})
    assert credentials.access_key == "access"
    assert credentials.secret_key == "secret"


def test_credentials_gate_honours_configured_env_names() -> None:
    cfg = ObjectStoreConfig(access_key_env="WF_ACCESS", secret_key_env="WF_SECRET")

    credentials = require_credentials(cfg, env={"WF_ACCESS": "a", "WF_SECRET": "s"})

    assert credentials.access_key == "a"


def test_deployer_identity_precedence() -> None:
    assert resolve_deployer({"FLOWVAULT_DEPLOYER": "ci-bot", "USER": "alice"}) == "ci-bot"
    assert resolve_deployer({"USER": "alice"}) == "alice"
    assert resolve_deployer({"USERNAME": "bob"}) == "bob"
    assert resolve_deployer({}) == "unknown"
