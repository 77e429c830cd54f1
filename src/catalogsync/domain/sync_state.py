"""Per-field sync classification and the toggle protocol between sync modes.

Everything here is a pure function of linkage metadata: no I/O, no mutation.
Transitions return a new ``LinkageState`` that the caller persists (see
``IntegrationLinkService.save_linkage_state``).
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Final

from catalogsync.domain.model import SyncState

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from catalogsync.domain.model import CatalogEntity

NON_BADGE_FIELDS: Final = frozenset({"id", "created_at", "updated_at"})


@dataclass(frozen=True, slots=True)
class IntegrationSource:
    """One configured external catalog connection."""

    id: str
    name: str
    is_active: bool = True
    priority: int = 0


@dataclass(frozen=True, slots=True, kw_only=True)
class LinkageState:
    """The linkage-control fields of one entity, as the sync toggles see them."""

    mapping_id: str | None = None
    integration_source_id: str | None = None
    integration_source_name: str | None = None
    attribute_mappings: Mapping[str, Any] = field(default_factory=dict[str, Any])
    attribute_overrides: Mapping[str, bool] = field(default_factory=dict[str, bool])
    disabled_sync_fields: tuple[str, ...] = ()

    @classmethod
    def from_entity(
        cls,
        entity: CatalogEntity,
        *,
        integration_source_name: str | None = None,
    ) -> LinkageState:
        return cls(
            mapping_id=entity.mapping_id,
            integration_source_id=entity.integration_source_id,
            integration_source_name=integration_source_name,
            attribute_mappings=dict(entity.attribute_mappings),
            attribute_overrides=dict(entity.attribute_overrides),
            disabled_sync_fields=tuple(entity.disabled_sync_fields),
        )

    @property
    def is_linked(self) -> bool:
        return bool(self.mapping_id)

    def is_overridden(self, field_name: str) -> bool:
        return bool(self.attribute_overrides.get(field_name))

    def as_entity_fields(self) -> dict[str, object]:
        """Persistable columns, written together so overrides and disabled fields agree."""

        return {
            "attribute_mappings": dict(self.attribute_mappings),
            "attribute_overrides": dict(self.attribute_overrides),
            "disabled_sync_fields": list(self.disabled_sync_fields),
            "integration_source_id": self.integration_source_id,
        }


@dataclass(frozen=True, slots=True)
class AttributeSyncConfig:
    field_name: str
    is_synced: bool
    is_active: bool
    is_disabled: bool
    api_source_id: str | None = None
    api_source_name: str | None = None
    mapped_to: str | None = None


class SyncStateManager:
    """Classify fields into sync states and compute legal transitions."""

    def __init__(
        self,
        state: LinkageState,
        sources: Iterable[IntegrationSource] = (),
        template_mappings: Mapping[str, Any] | None = None,
    ) -> None:
        self.state = state
        self.sources: tuple[IntegrationSource, ...] = tuple(sources)
        self.template_mappings: Mapping[str, Any] = template_mappings or {}

    def get_sync_state(self, field_name: str) -> SyncState:
        has_mapping = self.has_mapping(field_name)
        overridden = self.state.is_overridden(field_name)
        disabled = self.is_sync_disabled(field_name)

        if has_mapping and not overridden and not disabled:
            if self.state.is_linked and self.is_active_mapping(field_name):
                return SyncState.LINKED_ACTIVE
            if self.can_sync(field_name):
                return SyncState.LINKED_INACTIVE
        if overridden or disabled:
            return SyncState.LOCALLY_APPLIED
        return SyncState.NONE

    def has_mapping(self, field_name: str) -> bool:
        return bool(self.state.attribute_mappings.get(field_name)) or bool(
            self.template_mappings.get(field_name)
        )

    def is_sync_disabled(self, field_name: str) -> bool:
        return field_name in self.state.disabled_sync_fields

    def can_sync(self, field_name: str) -> bool:
        return self.has_mapping(field_name) and not self.is_sync_disabled(field_name)

    def is_active_mapping(self, field_name: str) -> bool:
        """Linked, mapped at entity level, and pointed at the currently active source.

        With no explicit source id on the entity, any entity-level mapping of a
        linked entity counts as active.
        """

        if not self.state.is_linked:
            return False
        if not self.state.attribute_mappings.get(field_name):
            return False
        if self.state.integration_source_id:
            active = self.get_active_source()
            return active is not None and active.id == self.state.integration_source_id
        return True

    def can_revert_to_sync(self, field_name: str) -> bool:
        return self.has_mapping(field_name) and (
            self.is_sync_disabled(field_name) or self.state.is_overridden(field_name)
        )

    def get_active_source(self) -> IntegrationSource | None:
        """Highest-priority active source; ties keep configuration order."""

        active = sorted(
            (source for source in self.sources if source.is_active),
            key=lambda source: source.priority,
            reverse=True,
        )
        return active[0] if active else None

    def get_available_sources_for_mapping(self) -> list[IntegrationSource]:
        return [source for source in self.sources if source.is_active]

    def get_inactive_sources_for_mapping(self) -> list[IntegrationSource]:
        return [source for source in self.sources if not source.is_active]

    def get_mapped_field(self, field_name: str) -> str | None:
        entity_mapping = self.state.attribute_mappings.get(field_name)
        if isinstance(entity_mapping, str) and entity_mapping:
            return entity_mapping
        if isinstance(entity_mapping, dict) and entity_mapping.get("type") == "direct":
            direct = entity_mapping.get("directLink")
            if isinstance(direct, dict) and direct.get("field"):
                return str(direct["field"])
        template_mapping = self.template_mappings.get(field_name)
        if isinstance(template_mapping, str) and template_mapping:
            return template_mapping
        return None

    def get_sync_config(self, field_name: str) -> AttributeSyncConfig:
        active = self.get_active_source()
        return AttributeSyncConfig(
            field_name=field_name,
            is_synced=self.get_sync_state(field_name) is SyncState.LINKED_ACTIVE,
            is_active=self.is_active_mapping(field_name),
            is_disabled=self.is_sync_disabled(field_name),
            api_source_id=self.state.integration_source_id,
            api_source_name=self.state.integration_source_name
            or (active.name if active is not None else None),
            mapped_to=self.get_mapped_field(field_name),
        )

    def enable_sync(self, field_name: str) -> LinkageState:
        overrides = {
            name: value
            for name, value in self.state.attribute_overrides.items()
            if name != field_name
        }
        return replace(
            self.state,
            disabled_sync_fields=tuple(
                name for name in self.state.disabled_sync_fields if name != field_name
            ),
            attribute_overrides=overrides,
        )

    def disable_sync(self, field_name: str) -> LinkageState:
        disabled = self.state.disabled_sync_fields
        if field_name not in disabled:
            disabled = (*disabled, field_name)
        return replace(
            self.state,
            disabled_sync_fields=disabled,
            attribute_overrides={**self.state.attribute_overrides, field_name: True},
        )

    def add_mapping(self, field_name: str, mapping: object) -> LinkageState:
        return replace(
            self.state,
            attribute_mappings={**self.state.attribute_mappings, field_name: mapping},
        )

    def remove_mapping(self, field_name: str) -> LinkageState:
        return replace(
            self.state,
            attribute_mappings={
                name: value
                for name, value in self.state.attribute_mappings.items()
                if name != field_name
            },
        )

    def switch_active_source(self, new_source_id: str) -> LinkageState:
        source = next((source for source in self.sources if source.id == new_source_id), None)
        return replace(
            self.state,
            integration_source_id=new_source_id,
            integration_source_name=source.name if source is not None else None,
        )

    def should_show_sync_badge(
        self,
        field_name: str,
        *,
        has_integration: bool,
        has_mapping: bool,
        state: SyncState | None = None,
    ) -> bool:
        current = state if state is not None else self.get_sync_state(field_name)
        if current is SyncState.NONE:
            return False
        if not has_integration and not has_mapping:
            return False
        return field_name not in NON_BADGE_FIELDS
