"""SQLAlchemy adapter package for catalogsync."""

from __future__ import annotations

from .mappings import (
    INTEGRATION_TABLES,
    attribute_template_table,
    catalog_entity_table,
    create_all_tables,
    mapper_registry,
    start_mappers,
)
from .repositories import (
    SqlAlchemyEntityRepository,
    SqlAlchemyExternalCatalog,
    SqlAlchemyTemplateRepository,
)

__all__ = [
    "INTEGRATION_TABLES",
    "SqlAlchemyEntityRepository",
    "SqlAlchemyExternalCatalog",
    "SqlAlchemyTemplateRepository",
    "attribute_template_table",
    "catalog_entity_table",
    "create_all_tables",
    "mapper_registry",
    "start_mappers",
]
