"""Row schemas of the hosted REST backend (PostgREST dialect)."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from catalogsync.domain.model import (
    AttributeTemplate,
    CatalogEntity,
    EntityKind,
    ExternalRecord,
    IntegrationType,
    calculations_from_payload,
)


class BackendRow(BaseModel):
    # backend tables carry many columns the engine never reads
    model_config = ConfigDict(extra="ignore")


class CalculationPartRow(BackendRow):
    mapping_id: str
    field_path: str
    operation: str = "add"
    integration_type: str = "product"


class EntityRow(BackendRow):
    id: str
    name: str | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)
    local_fields: list[str] = Field(default_factory=list)
    attribute_overrides: dict[str, bool] = Field(default_factory=dict)
    disabled_sync_fields: list[str] = Field(default_factory=list)
    attribute_mappings: dict[str, Any] = Field(default_factory=dict)
    price_calculations: dict[str, list[CalculationPartRow]] = Field(default_factory=dict)
    mapping_id: str | None = None
    integration_source_id: str | None = None
    integration_type: IntegrationType | None = None
    last_synced_at: datetime | None = None
    parent_product_id: str | None = None
    attribute_template_id: str | None = None

    @field_validator("attributes", "attribute_overrides", "attribute_mappings", mode="before")
    @classmethod
    def _null_mapping(cls, value: object) -> object:
        # JSON columns are nullable in the backend
        return {} if value is None else value

    @field_validator("local_fields", "disabled_sync_fields", mode="before")
    @classmethod
    def _null_list(cls, value: object) -> object:
        return [] if value is None else value

    @field_validator("price_calculations", mode="before")
    @classmethod
    def _null_calculations(cls, value: object) -> object:
        if not isinstance(value, dict):
            return {}
        # empty formulas are stored as [] or null and mean "no calculation"
        return {name: parts for name, parts in value.items() if parts}

    def to_domain(self, kind: EntityKind) -> CatalogEntity:
        return CatalogEntity(
            id=self.id,
            kind=kind,
            name=self.name or "",
            attributes=dict(self.attributes),
            local_fields=list(self.local_fields),
            attribute_overrides=dict(self.attribute_overrides),
            disabled_sync_fields=list(self.disabled_sync_fields),
            attribute_mappings=dict(self.attribute_mappings),
            price_calculations=calculations_from_payload(
                {
                    name: [part.model_dump() for part in parts]
                    for name, parts in self.price_calculations.items()
                }
            ),
            mapping_id=self.mapping_id,
            integration_source_id=self.integration_source_id,
            integration_type=self.integration_type,
            last_synced_at=self.last_synced_at,
            parent_product_id=self.parent_product_id,
            attribute_template_id=self.attribute_template_id,
        )


class EntityPatch(BackendRow):
    """Writable columns; dumped with ``exclude_unset`` so only staged fields are sent."""

    model_config = ConfigDict(extra="forbid")

    attributes: dict[str, Any] | None = None
    local_fields: list[str] | None = None
    attribute_overrides: dict[str, bool] | None = None
    disabled_sync_fields: list[str] | None = None
    attribute_mappings: dict[str, Any] | None = None
    price_calculations: dict[str, list[CalculationPartRow]] | None = None
    mapping_id: str | None = None
    integration_source_id: str | None = None
    integration_type: IntegrationType | None = None
    last_synced_at: datetime | None = None


class IntegrationRow(BackendRow):
    id: str | None = None
    mapping_id: str
    wand_source_id: str
    name: str | None = None
    data: dict[str, Any] | None = None

    def to_domain(self, integration_type: IntegrationType) -> ExternalRecord:
        return ExternalRecord(
            id=self.id,
            mapping_id=self.mapping_id,
            source_id=self.wand_source_id,
            integration_type=integration_type,
            name=self.name,
            data=self.data or {},
        )


class TemplateRow(BackendRow):
    id: str
    name: str = ""
    default_values: dict[str, Any] | None = None
    attribute_mappings: dict[str, Any] | None = None

    def to_domain(self) -> AttributeTemplate:
        return AttributeTemplate(
            id=self.id,
            name=self.name,
            default_values=self.default_values or {},
            attribute_mappings=self.attribute_mappings or {},
        )
