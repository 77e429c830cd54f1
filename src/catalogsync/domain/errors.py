"""Error taxonomy of the resolution and link engine.

Missing data (absent records, unresolvable field paths) is never an error for
the resolver; it degrades to the next precedence tier. Only link mutations that
would leave persisted linkage inconsistent raise.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from catalogsync.domain.model import IntegrationType


class CatalogSyncError(RuntimeError):
    """Base class for engine errors."""


class CatalogLookupError(CatalogSyncError):
    """Raised by adapters when the backing store cannot answer a read."""


class PersistenceError(CatalogSyncError):
    """Raised by adapters when a write is rejected by the backing store."""


class IntegrationLinkError(CatalogSyncError):
    """Base class for link-service validation failures; no write was made."""


class EntityNotFoundError(IntegrationLinkError):
    def __init__(self, entity_id: str) -> None:
        super().__init__(f"Entity {entity_id} not found")
        self.entity_id = entity_id


class OptionNotFoundError(IntegrationLinkError):
    def __init__(self, entity_id: str, option_id: str) -> None:
        super().__init__(f"Option {option_id} not found on entity {entity_id}")
        self.entity_id = entity_id
        self.option_id = option_id


class MappingNotFoundError(IntegrationLinkError):
    def __init__(
        self,
        mapping_id: str,
        source_id: str,
        integration_type: IntegrationType,
    ) -> None:
        super().__init__(
            f"Mapping {mapping_id} not found in {integration_type} catalog of source {source_id}"
        )
        self.mapping_id = mapping_id
        self.source_id = source_id
        self.integration_type = integration_type


class ParentNotLinkedError(IntegrationLinkError):
    def __init__(self, entity_id: str, option_id: str) -> None:
        super().__init__(
            f"Cannot link option {option_id}: entity {entity_id} is not linked to a source"
        )
        self.entity_id = entity_id
        self.option_id = option_id


class CalculationNotConfiguredError(IntegrationLinkError):
    def __init__(self, entity_id: str, option_id: str) -> None:
        super().__init__(f"Option {option_id} on entity {entity_id} has no calculation link")
        self.entity_id = entity_id
        self.option_id = option_id
