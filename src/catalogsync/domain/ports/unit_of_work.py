"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from catalogsync.domain.ports.catalog import ExternalCatalog
    from catalogsync.domain.ports.persistence import EntityRepository, TemplateRepository


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@dataclass(slots=True)
class CatalogRepositories(RepositoryCollection):
    """Everything the resolver and link service read from or write to."""

    entities: EntityRepository
    templates: TemplateRepository
    catalog: ExternalCatalog


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Generic unit-of-work boundary around a repository collection."""

    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    async def commit(self) -> None: ...

    def rollback(self) -> None: ...


type CatalogUnitOfWork = UnitOfWork[CatalogRepositories]
