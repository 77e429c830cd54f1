"""Hosted catalog backend adapter (PostgREST over httpx)."""

from __future__ import annotations

from .client import PostgrestClient, PostgrestError, build_resilience_config
from .repositories import (
    PostgrestEntityRepository,
    PostgrestExternalCatalog,
    PostgrestTemplateRepository,
)
from .unit_of_work import PostgrestCatalogUnitOfWork, build_repositories

__all__ = [
    "PostgrestCatalogUnitOfWork",
    "PostgrestClient",
    "PostgrestEntityRepository",
    "PostgrestError",
    "PostgrestExternalCatalog",
    "PostgrestTemplateRepository",
    "build_repositories",
    "build_resilience_config",
]
