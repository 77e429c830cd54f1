"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from catalogsync.adapters.sqlalchemy.mappings import INTEGRATION_TABLES, attribute_template_table
from catalogsync.domain.errors import CatalogLookupError, EntityNotFoundError
from catalogsync.domain.model import (
    AttributeTemplate,
    CatalogEntity,
    ExternalRecord,
    IntegrationType,
    coerce_calculation,
)
from catalogsync.domain.ports import check_writable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.orm import Session


class SqlAlchemyEntityRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: CatalogEntity) -> None:
        self.session.add(entity)

    async def get(self, entity_id: str) -> CatalogEntity | None:
        try:
            return self.session.get(CatalogEntity, entity_id)
        except SQLAlchemyError as exc:
            raise CatalogLookupError(f"Could not load entity {entity_id}") from exc

    async def update(self, entity_id: str, fields: Mapping[str, object]) -> None:
        check_writable(fields)
        entity = self.session.get(CatalogEntity, entity_id)
        if entity is None:
            raise EntityNotFoundError(entity_id)
        for name, value in fields.items():
            setattr(entity, name, _column_value(name, value))
        self.session.flush()


def _column_value(name: str, value: object) -> object:
    if name == "price_calculations" and value is not None:
        payload = cast("Mapping[str, object]", value)
        return {field: coerce_calculation(raw) for field, raw in payload.items() if raw}
    if name == "integration_type" and value is not None:
        return IntegrationType(str(value))
    return value


class SqlAlchemyTemplateRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, template: AttributeTemplate) -> None:
        self.session.execute(
            attribute_template_table.insert().values(
                id=template.id,
                name=template.name,
                default_values=dict(template.default_values),
                attribute_mappings=dict(template.attribute_mappings),
            )
        )

    async def get(self, template_id: str) -> AttributeTemplate | None:
        stmt = select(attribute_template_table).where(attribute_template_table.c.id == template_id)
        try:
            row = self.session.execute(stmt).mappings().one_or_none()
        except SQLAlchemyError as exc:
            raise CatalogLookupError(f"Could not load attribute template {template_id}") from exc
        if row is None:
            return None
        return AttributeTemplate(
            id=row["id"],
            name=row["name"],
            default_values=row["default_values"] or {},
            attribute_mappings=row["attribute_mappings"] or {},
        )


class SqlAlchemyExternalCatalog:
    """Reads the mirrored integration tables (products, modifiers, discounts)."""

    def __init__(self, session: Session) -> None:
        self.session = session

    async def get_record(
        self,
        mapping_id: str,
        source_id: str,
        integration_type: IntegrationType,
    ) -> ExternalRecord | None:
        table = INTEGRATION_TABLES[IntegrationType(integration_type)]
        stmt = (
            select(table)
            .where(table.c.mapping_id == mapping_id)
            .where(table.c.wand_source_id == source_id)
        )
        try:
            row = self.session.execute(stmt).mappings().one_or_none()
        except SQLAlchemyError as exc:
            raise CatalogLookupError(
                f"Could not load {integration_type} record {mapping_id}"
            ) from exc
        if row is None:
            return None
        data: dict[str, Any] = row["data"] or {}
        return ExternalRecord(
            id=row["id"],
            mapping_id=row["mapping_id"],
            source_id=row["wand_source_id"],
            integration_type=IntegrationType(integration_type),
            name=row["name"],
            data=data,
        )

    def add_record(self, record: ExternalRecord) -> None:
        table = INTEGRATION_TABLES[record.integration_type]
        values: dict[str, Any] = {
            "mapping_id": record.mapping_id,
            "wand_source_id": record.source_id,
            "name": record.name,
            "data": dict(record.data),
        }
        if record.id is not None:
            values["id"] = record.id
        self.session.execute(table.insert().values(**values))
