"""Ports for reading and writing catalog entities and templates."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from catalogsync.domain.model import AttributeTemplate, CatalogEntity

# Columns the engine is allowed to write back.
WRITABLE_FIELDS: Final = frozenset(
    {
        "attributes",
        "local_fields",
        "attribute_overrides",
        "disabled_sync_fields",
        "attribute_mappings",
        "price_calculations",
        "mapping_id",
        "integration_source_id",
        "integration_type",
        "last_synced_at",
    }
)


def check_writable(fields: Mapping[str, object]) -> None:
    unknown = set(fields) - WRITABLE_FIELDS
    if unknown:
        raise ValueError(f"Fields not writable by the engine: {', '.join(sorted(unknown))}")


@runtime_checkable
class EntityRepository(Protocol):
    """Get-by-id and field writes for products and categories."""

    async def get(self, entity_id: str) -> CatalogEntity | None: ...

    async def update(self, entity_id: str, fields: Mapping[str, object]) -> None: ...


@runtime_checkable
class TemplateRepository(Protocol):
    """Attribute templates supplying defaults and template-level mappings."""

    async def get(self, template_id: str) -> AttributeTemplate | None: ...
