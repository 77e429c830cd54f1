"""Repositories reading and writing the hosted catalog tables."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING, Final

import httpx
from pydantic import ValidationError

from catalogsync.domain.errors import CatalogLookupError, EntityNotFoundError, PersistenceError
from catalogsync.domain.model import (
    Calculation,
    CatalogEntity,
    EntityKind,
    ExternalRecord,
    IntegrationType,
    calculations_to_payload,
    coerce_calculation,
)
from catalogsync.domain.ports import check_writable

from .client import PostgrestError
from .schema import EntityPatch, EntityRow, IntegrationRow, TemplateRow

if TYPE_CHECKING:
    from collections.abc import Mapping

    from catalogsync.domain.model import AttributeTemplate

    from .client import PostgrestClient

ENTITY_TABLES: Final[dict[EntityKind, str]] = {
    EntityKind.PRODUCT: "products",
    EntityKind.CATEGORY: "categories",
}

INTEGRATION_TABLES: Final[dict[IntegrationType, str]] = {
    IntegrationType.PRODUCT: "integration_products",
    IntegrationType.MODIFIER: "integration_modifiers",
    IntegrationType.DISCOUNT: "integration_discounts",
}

TEMPLATE_TABLE: Final = "attribute_templates"

_READ_ERRORS = (httpx.HTTPError, PostgrestError, ValidationError)


class PostgrestEntityRepository:
    """Products first, then categories; ids are unique across both tables."""

    def __init__(self, client: PostgrestClient) -> None:
        self.client = client
        self._kinds: dict[str, EntityKind] = {}

    async def get(self, entity_id: str) -> CatalogEntity | None:
        for kind, table in ENTITY_TABLES.items():
            try:
                row = await self.client.select_one(table, {"id": entity_id})
                if row is None:
                    continue
                entity = EntityRow.model_validate(row).to_domain(kind)
            except _READ_ERRORS as exc:
                raise CatalogLookupError(f"Could not load entity {entity_id}") from exc
            self._kinds[entity_id] = kind
            return entity
        return None

    async def update(self, entity_id: str, fields: Mapping[str, object]) -> None:
        check_writable(fields)
        kind = self._kinds.get(entity_id)
        if kind is None:
            entity = await self.get(entity_id)
            if entity is None:
                raise EntityNotFoundError(entity_id)
            kind = entity.kind
        try:
            await self.client.patch(ENTITY_TABLES[kind], {"id": entity_id}, patch_values(fields))
        except (httpx.HTTPError, PostgrestError) as exc:
            raise PersistenceError(f"Could not update entity {entity_id}") from exc


def patch_values(fields: Mapping[str, object]) -> dict[str, object]:
    """Serialise domain values into the JSON body of a PATCH."""

    values = dict(fields)
    calculations = values.get("price_calculations")
    if isinstance(calculations, dict):
        values["price_calculations"] = calculations_to_payload(
            {
                name: raw if isinstance(raw, Calculation) else coerce_calculation(raw)
                for name, raw in calculations.items()
                if raw
            }
        )
    return EntityPatch.model_validate(values).model_dump(mode="json", exclude_unset=True)


class BufferedEntityRepository:
    """Stages updates until ``flush()``; reads see the staged values."""

    def __init__(self, inner: PostgrestEntityRepository) -> None:
        self.inner = inner
        self._pending: dict[str, dict[str, object]] = {}

    async def get(self, entity_id: str) -> CatalogEntity | None:
        entity = await self.inner.get(entity_id)
        staged = self._pending.get(entity_id)
        if entity is None or not staged:
            return entity
        return _with_fields(entity, staged)

    async def update(self, entity_id: str, fields: Mapping[str, object]) -> None:
        check_writable(fields)
        self._pending.setdefault(entity_id, {}).update(fields)

    @property
    def pending(self) -> dict[str, dict[str, object]]:
        return self._pending

    async def flush(self) -> None:
        while self._pending:
            entity_id, fields = next(iter(self._pending.items()))
            await self.inner.update(entity_id, fields)
            del self._pending[entity_id]

    def discard(self) -> None:
        self._pending.clear()


def _with_fields(entity: CatalogEntity, fields: Mapping[str, object]) -> CatalogEntity:
    changes = dict(fields)
    calculations = changes.get("price_calculations")
    if isinstance(calculations, dict):
        changes["price_calculations"] = {
            name: coerce_calculation(raw) for name, raw in calculations.items() if raw
        }
    integration_type = changes.get("integration_type")
    if integration_type is not None:
        changes["integration_type"] = IntegrationType(str(integration_type))
    return replace(entity, **changes)  # pyright: ignore[reportArgumentType]


class PostgrestTemplateRepository:
    def __init__(self, client: PostgrestClient) -> None:
        self.client = client

    async def get(self, template_id: str) -> AttributeTemplate | None:
        try:
            row = await self.client.select_one(TEMPLATE_TABLE, {"id": template_id})
            return TemplateRow.model_validate(row).to_domain() if row is not None else None
        except _READ_ERRORS as exc:
            raise CatalogLookupError(f"Could not load attribute template {template_id}") from exc


class PostgrestExternalCatalog:
    def __init__(self, client: PostgrestClient) -> None:
        self.client = client

    async def get_record(
        self,
        mapping_id: str,
        source_id: str,
        integration_type: IntegrationType,
    ) -> ExternalRecord | None:
        integration_type = IntegrationType(integration_type)
        try:
            row = await self.client.select_one(
                INTEGRATION_TABLES[integration_type],
                {"mapping_id": mapping_id, "wand_source_id": source_id},
            )
            if row is None:
                return None
            return IntegrationRow.model_validate(row).to_domain(integration_type)
        except _READ_ERRORS as exc:
            raise CatalogLookupError(
                f"Could not load {integration_type} record {mapping_id}"
            ) from exc
