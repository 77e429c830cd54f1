"""Fetching external catalog records and extracting fields from them."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING, Any, Final, NamedTuple

from catalogsync.domain.errors import CatalogLookupError
from catalogsync.domain.model import MISSING, ExternalRecord, IntegrationType
from catalogsync.domain.paths import get_path, parse_path

if TYPE_CHECKING:
    from catalogsync.domain.ports import ExternalCatalog

log = getLogger(__name__)

# Shorthand names that address well-known record locations directly.
SHORTHAND_FIELDS: Final[dict[str, tuple[str, ...]]] = {
    "name": ("name",),
    "description": ("data", "description"),
    "price": ("data", "price"),
    "image_url": ("data", "image_url"),
}


class CacheKey(NamedTuple):
    source_id: str
    integration_type: IntegrationType
    mapping_id: str


def extract_field(record: ExternalRecord, field_path: str) -> Any:
    """Return the value ``field_path`` names in ``record`` or ``MISSING``.

    Paths whose first segment is ``data`` are read from the record root; any
    other path is read inside the nested ``data`` object. Missing or
    non-traversable segments yield ``MISSING``; this never raises.
    """

    shorthand = SHORTHAND_FIELDS.get(field_path)
    if shorthand is not None:
        return get_path(record.as_mapping(), shorthand)

    segments = parse_path(field_path)
    if not segments:
        return MISSING
    if segments[0] == "data":
        return get_path(record.as_mapping(), segments)
    return get_path(record.data, segments)


@dataclass(slots=True)
class IntegrationDataCache:
    """Process-local record cache; no expiry, cleared explicitly after writes."""

    _records: dict[CacheKey, ExternalRecord] = field(default_factory=dict[CacheKey, ExternalRecord])

    def get(self, key: CacheKey) -> ExternalRecord | None:
        return self._records.get(key)

    def put(self, key: CacheKey, record: ExternalRecord) -> None:
        self._records[key] = record

    def clear(self) -> None:
        self._records.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def __len__(self) -> int:
        return len(self._records)


class IntegrationDataFetcher:
    """Cached, failure-tolerant access to the external catalogs.

    Concurrent requests for the same key share one lookup.
    """

    def __init__(
        self,
        catalog: ExternalCatalog,
        *,
        cache: IntegrationDataCache | None = None,
    ) -> None:
        self.catalog = catalog
        self.cache = cache if cache is not None else IntegrationDataCache()
        self._inflight: dict[CacheKey, asyncio.Task[ExternalRecord | None]] = {}

    async def fetch(
        self,
        mapping_id: str,
        source_id: str,
        integration_type: IntegrationType,
    ) -> ExternalRecord | None:
        key = CacheKey(source_id, IntegrationType(integration_type), mapping_id)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(self._lookup(key))
            self._inflight[key] = task
            task.add_done_callback(partial(self._settle, key))
        # a cancelled caller leaves the shared lookup running for the others
        return await asyncio.shield(task)

    async def fetch_field(
        self,
        mapping_id: str,
        source_id: str,
        integration_type: IntegrationType,
        field_path: str,
    ) -> Any:
        record = await self.fetch(mapping_id, source_id, integration_type)
        if record is None:
            return MISSING
        return extract_field(record, field_path)

    async def lookup(
        self,
        mapping_id: str,
        source_id: str,
        integration_type: IntegrationType,
    ) -> ExternalRecord | None:
        """Uncached fetch used to validate references before writing links."""

        key = CacheKey(source_id, IntegrationType(integration_type), mapping_id)
        return await self._lookup(key)

    async def exists(
        self,
        mapping_id: str,
        source_id: str,
        integration_type: IntegrationType,
    ) -> bool:
        return await self.lookup(mapping_id, source_id, integration_type) is not None

    def clear_cache(self) -> None:
        self.cache.clear()
        self._inflight.clear()

    def _settle(self, key: CacheKey, task: asyncio.Task[ExternalRecord | None]) -> None:
        if task.cancelled() or task.exception() is not None:
            self._forget(key, task)
            return
        if not self._forget(key, task):
            # cache was cleared while the lookup ran
            return
        record = task.result()
        if record is not None:
            self.cache.put(key, record)

    def _forget(self, key: CacheKey, task: asyncio.Task[ExternalRecord | None]) -> bool:
        if self._inflight.get(key) is not task:
            return False
        del self._inflight[key]
        return True

    async def _lookup(self, key: CacheKey) -> ExternalRecord | None:
        try:
            record = await self.catalog.get_record(
                key.mapping_id,
                key.source_id,
                key.integration_type,
            )
        except CatalogLookupError:
            log.warning(
                "Lookup failed for %s record %s in source %s",
                key.integration_type,
                key.mapping_id,
                key.source_id,
                exc_info=True,
            )
            return None
        if record is None:
            log.debug(
                "No %s record %s in source %s",
                key.integration_type,
                key.mapping_id,
                key.source_id,
            )
        return record
