"""Unit of work for the hosted backend: PATCHes are buffered until ``commit()``."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from catalogsync.domain.ports import CatalogRepositories

from .repositories import (
    BufferedEntityRepository,
    PostgrestEntityRepository,
    PostgrestExternalCatalog,
    PostgrestTemplateRepository,
)

if TYPE_CHECKING:
    from types import TracebackType

    from .client import PostgrestClient


class UnitOfWorkStateError(RuntimeError):
    """Raised when repositories are requested outside the ``with`` block."""


def build_repositories(client: PostgrestClient) -> CatalogRepositories:
    return CatalogRepositories(
        entities=PostgrestEntityRepository(client),
        templates=PostgrestTemplateRepository(client),
        catalog=PostgrestExternalCatalog(client),
    )


class PostgrestCatalogUnitOfWork:
    """PostgREST has no multi-request transactions; commit sends one PATCH per entity."""

    def __init__(self, client: PostgrestClient) -> None:
        self.client = client
        self._entities: BufferedEntityRepository | None = None
        self._repositories: CatalogRepositories | None = None

    def __enter__(self) -> PostgrestCatalogUnitOfWork:
        self._entities = BufferedEntityRepository(PostgrestEntityRepository(self.client))
        self._repositories = CatalogRepositories(
            entities=self._entities,
            templates=PostgrestTemplateRepository(self.client),
            catalog=PostgrestExternalCatalog(self.client),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        self.rollback()
        self._entities = None
        self._repositories = None
        return False

    async def commit(self) -> None:
        if self._entities is not None:
            await self._entities.flush()

    def rollback(self) -> None:
        if self._entities is not None:
            self._entities.discard()

    @property
    def repositories(self) -> CatalogRepositories:
        if self._repositories is None:
            raise UnitOfWorkStateError("Unit of work not entered")
        return self._repositories


if TYPE_CHECKING:
    from catalogsync.domain.ports import CatalogUnitOfWork

    def _uow_check(client: PostgrestClient) -> CatalogUnitOfWork:
        return PostgrestCatalogUnitOfWork(client)
