"""Thin PostgREST client: equality-filtered selects and minimal-return PATCHes."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any, cast

import httpx

from catalogsync.adapters.http_resilience import ResilientClient
from catalogsync.config.http_resilience import ResilienceConfig

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from catalogsync.config.backend import BackendConfig

log = getLogger(__name__)


class PostgrestError(RuntimeError):
    """Raised when the backend answers with an unexpected status or payload."""


def build_resilience_config(config: BackendConfig) -> ResilienceConfig:
    return ResilienceConfig.from_environment(
        base_url=config.rest_url,
        headers={
            "apikey": config.api_key,
            "Authorization": f"Bearer {config.api_key}",
            "Accept": "application/json",
        },
    )


def eq_filters(filters: Mapping[str, str]) -> dict[str, str]:
    return {column: f"eq.{value}" for column, value in filters.items()}


class PostgrestClient:
    """Low-level HTTP client for the hosted catalog tables."""

    def __init__(
        self,
        config: BackendConfig,
        *,
        resilience: ResilienceConfig | None = None,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._resilience = resilience or build_resilience_config(config)
        self._client = (client_factory or ResilientClient)(self._resilience)

    async def __aenter__(self) -> PostgrestClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def select_one(
        self,
        table: str,
        filters: Mapping[str, str],
        *,
        columns: str = "*",
    ) -> dict[str, Any] | None:
        params = {"select": columns, **eq_filters(filters), "limit": "1"}
        response = await self._client.get(f"/{table}", params=params)
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, list):
            raise PostgrestError(f"Unexpected payload for {table}: expected a list of rows")
        rows = cast(list[object], payload)
        if not rows:
            return None
        row = rows[0]
        if not isinstance(row, dict):
            raise PostgrestError(f"Unexpected row in {table}: {row!r}")
        return cast(dict[str, Any], row)

    async def patch(
        self,
        table: str,
        filters: Mapping[str, str],
        values: Mapping[str, object],
    ) -> None:
        response = await self._client.patch(
            f"/{table}",
            params=eq_filters(filters),
            json=dict(values),
            headers={"Prefer": "return=minimal", "Content-Type": "application/json"},
        )
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError:
            log.warning("PATCH %s %s failed: %s", table, dict(filters), response.text)
            raise
        log.debug("PATCH %s %s -> %s", table, dict(filters), sorted(values))
