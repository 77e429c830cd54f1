"""Ports for reading the external catalogs."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from catalogsync.domain.model import ExternalRecord, IntegrationType


@runtime_checkable
class ExternalCatalog(Protocol):
    """The product, modifier and discount catalogs mirrored from integrations.

    Implementations return ``None`` for absent records and raise
    ``CatalogLookupError`` when the backing store fails.
    """

    async def get_record(
        self,
        mapping_id: str,
        source_id: str,
        integration_type: IntegrationType,
    ) -> ExternalRecord | None: ...


__all__ = ["ExternalCatalog"]
