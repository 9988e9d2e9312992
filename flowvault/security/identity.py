from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from flowvault.config.models import ObjectStoreConfig

DEPLOYER_ENV_VARS = ("FLOWVAULT_DEPLOYER", "USER", "USERNAME")


class CredentialsMissingError(ValueError):
    pass


@dataclass(frozen=True)
class ObjectStoreCredentials:
    access_key: str
    secret_key: str


def require_credentials(cfg: ObjectStoreConfig, env: Mapping[str, str] | None = None) -> ObjectStoreCredentials:
    env = os.environ if env is None else env
    missing = [name for name in (cfg.access_key_env, cfg.secret_key_env) if not env.get(name)]
    if missing:
        raise CredentialsMissingError(f"Missing required environment variable(s): {', '.join(missing)}")
    return ObjectStoreCredentials(access_key=env[cfg.access_key_env], secret_key=env[cfg.secret_key_env])


def resolve_deployer(env: Mapping[str, str] | None = None) -> str:
    env = os.environ if env is None else env
    for name in DEPLOYER_ENV_VARS:
        value = env.get(name)
        if value:
            return value
    return "unknown"
