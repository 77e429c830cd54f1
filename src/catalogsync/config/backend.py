"""Hosted catalog backend configuration."""

from __future__ import annotations

from dataclasses import dataclass

from .env import require_env_vars

BACKEND_URL_ENV = "CATALOG_API_URL"
BACKEND_KEY_ENV = "CATALOG_API_KEY"


@dataclass(frozen=True, slots=True)
class BackendConfig:
    """Connection settings for the hosted REST backend."""

    base_url: str
    api_key: str
    schema_path: str = "/rest/v1"

    @classmethod
    def from_environment(cls) -> BackendConfig:
        values = require_env_vars((BACKEND_URL_ENV, BACKEND_KEY_ENV))
        return cls(base_url=values[BACKEND_URL_ENV].rstrip("/"), api_key=values[BACKEND_KEY_ENV])

    @property
    def rest_url(self) -> str:
        return f"{self.base_url}{self.schema_path}"


def get_backend_config() -> BackendConfig:
    return BackendConfig.from_environment()
