"""SQLAlchemy mapping metadata for the catalogsync domain model."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING, Any, Final

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    String,
    Table,
    TypeDecorator,
    UniqueConstraint,
    orm,
)
from sqlalchemy.orm import configure_mappers

from catalogsync.domain.model import (
    Calculation,
    CatalogEntity,
    EntityKind,
    IntegrationType,
    calculations_from_payload,
    calculations_to_payload,
    new_id,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class CalculationMapType(TypeDecorator[dict[str, Calculation]]):
    """``{field: Calculation}`` stored as its JSON list-of-parts payload."""

    impl = JSON
    cache_ok = True

    def process_bind_param(
        self,
        value: Mapping[str, Calculation] | None,
        dialect: Dialect,
    ) -> dict[str, list[dict[str, str]]] | None:
        _ = dialect
        if value is None:
            return None
        return calculations_to_payload(calculations_from_payload(value))

    def process_result_value(self, value: Any, dialect: Dialect) -> dict[str, Calculation]:
        _ = dialect
        return calculations_from_payload(value)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Core tables -----------------------------------------------------------------

catalog_entity_table = Table(
    "catalog_entity",
    mapper_registry.metadata,
    Column("id", String(36), primary_key=True, default=new_id),
    Column("kind", Enum(EntityKind, native_enum=False), nullable=False),
    Column("name", String, nullable=False, default=""),
    Column("attributes", JSON, nullable=False, default=dict),
    Column("local_fields", JSON, nullable=False, default=list),
    Column("attribute_overrides", JSON, nullable=False, default=dict),
    Column("disabled_sync_fields", JSON, nullable=False, default=list),
    Column("attribute_mappings", JSON, nullable=False, default=dict),
    Column("price_calculations", CalculationMapType, nullable=False, default=dict),
    Column("mapping_id", String, nullable=True),
    Column("integration_source_id", String, nullable=True),
    Column("integration_type", Enum(IntegrationType, native_enum=False), nullable=True),
    Column("last_synced_at", UTCDateTime(), nullable=True),
    # no foreign key: a dangling parent id resolves as "no parent"
    Column("parent_product_id", String(36), nullable=True),
    Column(
        "attribute_template_id",
        String(36),
        ForeignKey("attribute_template.id", ondelete="SET NULL"),
        nullable=True,
    ),
    Index("ix_catalog_entity_parent_product_id", "parent_product_id"),
)

attribute_template_table = Table(
    "attribute_template",
    mapper_registry.metadata,
    Column("id", String(36), primary_key=True, default=new_id),
    Column("name", String, nullable=False, default=""),
    Column("default_values", JSON, nullable=False, default=dict),
    Column("attribute_mappings", JSON, nullable=False, default=dict),
)


def _integration_table(name: str) -> Table:
    return Table(
        name,
        mapper_registry.metadata,
        Column("id", String(36), primary_key=True, default=new_id),
        Column("mapping_id", String, nullable=False),
        Column("wand_source_id", String, nullable=False),
        Column("name", String, nullable=True),
        Column("data", JSON, nullable=False, default=dict),
        UniqueConstraint("mapping_id", "wand_source_id"),
    )


integration_products_table = _integration_table("integration_products")
integration_modifiers_table = _integration_table("integration_modifiers")
integration_discounts_table = _integration_table("integration_discounts")

INTEGRATION_TABLES: Final[dict[IntegrationType, Table]] = {
    IntegrationType.PRODUCT: integration_products_table,
    IntegrationType.MODIFIER: integration_modifiers_table,
    IntegrationType.DISCOUNT: integration_discounts_table,
}


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(CatalogEntity, catalog_entity_table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
