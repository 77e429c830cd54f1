"""Domain port definitions for adapters."""

from __future__ import annotations

from .catalog import ExternalCatalog
from .persistence import WRITABLE_FIELDS, EntityRepository, TemplateRepository, check_writable
from .unit_of_work import (
    CatalogRepositories,
    CatalogUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "WRITABLE_FIELDS",
    "CatalogRepositories",
    "CatalogUnitOfWork",
    "EntityRepository",
    "ExternalCatalog",
    "RepositoryCollection",
    "TemplateRepository",
    "UnitOfWork",
    "check_writable",
]
