"""Reusable fakes and builders for catalog resolution tests."""

from __future__ import annotations

import asyncio
import copy
import dataclasses
from typing import TYPE_CHECKING, Any, Literal

from catalogsync.domain.errors import CatalogLookupError, EntityNotFoundError
from catalogsync.domain.model import (
    AttributeTemplate,
    CatalogEntity,
    ExternalRecord,
    IntegrationType,
    coerce_calculation,
)
from catalogsync.domain.ports import CatalogRepositories, check_writable

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from types import TracebackType

type RecordKey = tuple[str, str, IntegrationType]

SOURCE_ID = "source-1"


def make_record(
    mapping_id: str,
    *,
    source_id: str = SOURCE_ID,
    integration_type: IntegrationType = IntegrationType.PRODUCT,
    name: str | None = None,
    **data: Any,
) -> ExternalRecord:
    return ExternalRecord(
        mapping_id=mapping_id,
        source_id=source_id,
        integration_type=integration_type,
        name=name,
        data=data,
    )


def make_entity(entity_id: str = "product-1", **fields: Any) -> CatalogEntity:
    return CatalogEntity(id=entity_id, **fields)


def make_linked_entity(
    entity_id: str = "product-1",
    *,
    mapping_id: str = "m-1",
    source_id: str = SOURCE_ID,
    **fields: Any,
) -> CatalogEntity:
    return CatalogEntity(
        id=entity_id,
        mapping_id=mapping_id,
        integration_source_id=source_id,
        integration_type=IntegrationType.PRODUCT,
        **fields,
    )


class FakeExternalCatalog:
    """In-memory external catalogs that count lookups per key."""

    def __init__(
        self,
        records: Iterable[ExternalRecord] = (),
        *,
        failing: Iterable[str] = (),
        delay: bool = False,
    ) -> None:
        self.records: dict[RecordKey, ExternalRecord] = {}
        for record in records:
            self.add(record)
        self.failing = set(failing)
        self.delay = delay
        self.calls: list[RecordKey] = []

    def add(self, record: ExternalRecord) -> None:
        key = (record.mapping_id, record.source_id, record.integration_type)
        self.records[key] = record

    async def get_record(
        self,
        mapping_id: str,
        source_id: str,
        integration_type: IntegrationType,
    ) -> ExternalRecord | None:
        key = (mapping_id, source_id, IntegrationType(integration_type))
        self.calls.append(key)
        if self.delay:
            await asyncio.sleep(0)
        if mapping_id in self.failing:
            raise CatalogLookupError(f"backend down for {mapping_id}")
        return self.records.get(key)


def _copy_entity(entity: CatalogEntity) -> CatalogEntity:
    # field-wise so mapped instances never share their instance state
    values = {item.name: getattr(entity, item.name) for item in dataclasses.fields(entity)}
    return CatalogEntity(**copy.deepcopy(values))


class FakeEntityRepository:
    """Stores entities by id; ``get`` hands out copies like a real store would."""

    def __init__(self, entities: Iterable[CatalogEntity] = ()) -> None:
        self.entities: dict[str, CatalogEntity] = {entity.id: entity for entity in entities}
        self.updates: list[tuple[str, dict[str, object]]] = []
        self.gets: list[str] = []

    def add(self, entity: CatalogEntity) -> None:
        self.entities[entity.id] = entity

    async def get(self, entity_id: str) -> CatalogEntity | None:
        self.gets.append(entity_id)
        entity = self.entities.get(entity_id)
        return _copy_entity(entity) if entity is not None else None

    async def update(self, entity_id: str, fields: Mapping[str, object]) -> None:
        check_writable(fields)
        entity = self.entities.get(entity_id)
        if entity is None:
            raise EntityNotFoundError(entity_id)
        self.updates.append((entity_id, dict(fields)))
        for name, value in fields.items():
            if name == "price_calculations" and isinstance(value, dict):
                value = {key: coerce_calculation(raw) for key, raw in value.items()}
            setattr(entity, name, copy.deepcopy(value))


class FakeTemplateRepository:
    def __init__(self, templates: Iterable[AttributeTemplate] = ()) -> None:
        self.templates = {template.id: template for template in templates}

    async def get(self, template_id: str) -> AttributeTemplate | None:
        return self.templates.get(template_id)


def make_repositories(
    entities: Iterable[CatalogEntity] = (),
    records: Iterable[ExternalRecord] = (),
    templates: Iterable[AttributeTemplate] = (),
) -> CatalogRepositories:
    return CatalogRepositories(
        entities=FakeEntityRepository(entities),
        templates=FakeTemplateRepository(templates),
        catalog=FakeExternalCatalog(records),
    )


class FakeCatalogUnitOfWork:
    """Shares one repository collection; counts commits and rollbacks."""

    def __init__(self, repositories: CatalogRepositories) -> None:
        self._repositories = repositories
        self.commits = 0
        self.rollbacks = 0

    def __enter__(self) -> FakeCatalogUnitOfWork:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        return False

    @property
    def repositories(self) -> CatalogRepositories:
        return self._repositories

    async def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1
