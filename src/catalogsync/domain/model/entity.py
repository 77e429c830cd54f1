"""Catalog entities, their options, and the external records they link to."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, cast
from uuid import uuid4

from .calculation import Calculation, coerce_calculation
from .enums import EntityKind, IntegrationType, OptionLinkType
from .missing import MISSING

if TYPE_CHECKING:
    from datetime import datetime

type AttributeBag = dict[str, Any]

OPTIONS_FIELD = "options"
DEFAULT_OPTION_PRICE_FIELD = "data.price"


def new_id() -> str:
    return str(uuid4())


@dataclass(eq=False, kw_only=True)
class CatalogEntity:
    """A product or category with its attribute bag and linkage-control metadata.

    The engine never creates entities; it reads them and writes back the linkage
    fields (``local_fields``, ``disabled_sync_fields``, ``attribute_overrides``,
    ``price_calculations``, ``attribute_mappings`` and the link columns).
    """

    id: str = field(default_factory=new_id)
    kind: EntityKind = EntityKind.PRODUCT
    name: str = ""
    attributes: AttributeBag = field(default_factory=dict[str, Any])
    local_fields: list[str] = field(default_factory=list[str])
    attribute_overrides: dict[str, bool] = field(default_factory=dict[str, bool])
    disabled_sync_fields: list[str] = field(default_factory=list[str])
    attribute_mappings: dict[str, Any] = field(default_factory=dict[str, Any])
    price_calculations: dict[str, Calculation] = field(default_factory=dict[str, Calculation])
    mapping_id: str | None = None
    integration_source_id: str | None = None
    integration_type: IntegrationType | None = None
    last_synced_at: datetime | None = None
    parent_product_id: str | None = None
    attribute_template_id: str | None = None

    @property
    def is_linked(self) -> bool:
        return bool(self.mapping_id and self.integration_source_id)

    def linked_record_key(self) -> tuple[str, str, IntegrationType] | None:
        """Return ``(mapping_id, source_id, integration_type)`` when the entity is linked."""

        if not self.mapping_id or not self.integration_source_id:
            return None
        return (
            self.mapping_id,
            self.integration_source_id,
            self.integration_type or IntegrationType.PRODUCT,
        )

    def raw_attribute(self, field_name: str) -> object:
        return self.attributes.get(field_name, MISSING)

    def is_local_field(self, field_name: str) -> bool:
        return field_name in self.local_fields

    def calculation_for(self, field_name: str) -> Calculation | None:
        return self.price_calculations.get(field_name)

    @property
    def options(self) -> list[Option]:
        raw = self.attributes.get(OPTIONS_FIELD) or []
        if not isinstance(raw, list):
            return []
        items = cast(list[object], raw)
        return [
            Option.from_mapping(cast(Mapping[str, Any], item))
            for item in items
            if isinstance(item, Mapping)
        ]

    def find_option(self, option_id: str) -> Option | None:
        return next((option for option in self.options if option.id == option_id), None)

    def attributes_with_option(self, option: Option) -> AttributeBag:
        """Return a copy of ``attributes`` with ``option`` replacing the entry sharing its id."""

        options = [
            option.to_mapping() if existing.id == option.id else existing.to_mapping()
            for existing in self.options
        ]
        return {**self.attributes, OPTIONS_FIELD: options}


@dataclass(frozen=True, slots=True)
class DirectLink:
    mapping_id: str
    integration_type: IntegrationType = IntegrationType.PRODUCT
    field: str = DEFAULT_OPTION_PRICE_FIELD

    def to_mapping(self) -> dict[str, str]:
        return {
            "mapping_id": self.mapping_id,
            "integration_type": self.integration_type.value,
            "field": self.field,
        }


@dataclass(frozen=True, slots=True)
class OptionLink:
    type: OptionLinkType
    direct_link: DirectLink | None = None
    calculation: Calculation | None = None
    override: bool = False
    calculated_result: float | None = None
    last_calculated_at: str | None = None

    @classmethod
    def direct(cls, mapping_id: str, integration_type: IntegrationType) -> OptionLink:
        return cls(
            type=OptionLinkType.DIRECT,
            direct_link=DirectLink(mapping_id=mapping_id, integration_type=integration_type),
        )

    @classmethod
    def calculated(cls, calculation: Calculation) -> OptionLink:
        return cls(type=OptionLinkType.CALCULATION, calculation=calculation)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> OptionLink:
        direct_payload = payload.get("directLink")
        direct_link = None
        if isinstance(direct_payload, Mapping):
            direct = cast(Mapping[str, Any], direct_payload)
            direct_link = DirectLink(
                mapping_id=str(direct["mapping_id"]),
                integration_type=IntegrationType(direct.get("integration_type", "product")),
                field=str(direct.get("field") or DEFAULT_OPTION_PRICE_FIELD),
            )
        raw_calculation = payload.get("calculation")
        calculated_result = payload.get("calculated_result")
        return cls(
            type=OptionLinkType(payload.get("type", OptionLinkType.DIRECT.value)),
            direct_link=direct_link,
            calculation=coerce_calculation(raw_calculation) if raw_calculation else None,
            override=bool(payload.get("override", False)),
            calculated_result=float(calculated_result) if calculated_result is not None else None,
            last_calculated_at=payload.get("last_calculated_at"),
        )

    def to_mapping(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": self.type.value}
        if self.direct_link is not None:
            payload["directLink"] = self.direct_link.to_mapping()
        if self.calculation is not None:
            payload["calculation"] = self.calculation.to_payload()
        if self.override:
            payload["override"] = True
        if self.calculated_result is not None:
            payload["calculated_result"] = self.calculated_result
        if self.last_calculated_at is not None:
            payload["last_calculated_at"] = self.last_calculated_at
        return payload


_OPTION_KEYS = frozenset({"id", "label", "price", "is_active", "is_out_of_stock", "link"})


@dataclass(frozen=True, slots=True)
class Option:
    """A sub-entity of a product, persisted inside ``attributes["options"]``."""

    id: str
    label: str = ""
    price: float = 0.0
    is_active: bool = True
    is_out_of_stock: bool = False
    link: OptionLink | None = None
    extra: Mapping[str, Any] = field(default_factory=dict[str, Any])

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> Option:
        raw_link = payload.get("link")
        raw_price = payload.get("price")
        return cls(
            id=str(payload.get("id", "")),
            label=str(payload.get("label") or ""),
            price=float(raw_price) if isinstance(raw_price, (int, float)) else 0.0,
            is_active=bool(payload.get("is_active", True)),
            is_out_of_stock=bool(payload.get("is_out_of_stock", False)),
            link=OptionLink.from_mapping(cast(Mapping[str, Any], raw_link))
            if isinstance(raw_link, Mapping)
            else None,
            extra={key: value for key, value in payload.items() if key not in _OPTION_KEYS},
        )

    def to_mapping(self) -> dict[str, Any]:
        return {
            **self.extra,
            "id": self.id,
            "label": self.label,
            "price": self.price,
            "is_active": self.is_active,
            "is_out_of_stock": self.is_out_of_stock,
            "link": self.link.to_mapping() if self.link is not None else None,
        }

    def get(self, field_name: str) -> object:
        if field_name in _OPTION_KEYS:
            return getattr(self, field_name)
        return self.extra.get(field_name, MISSING)

    def with_link(self, link: OptionLink | None) -> Option:
        return replace(self, link=link)


@dataclass(frozen=True, slots=True)
class ExternalRecord:
    """A row of one of the external catalogs (products, modifiers, discounts)."""

    mapping_id: str
    source_id: str
    integration_type: IntegrationType
    name: str | None = None
    data: Mapping[str, Any] = field(default_factory=dict[str, Any])
    id: str | None = None

    def as_mapping(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "mapping_id": self.mapping_id,
            "source_id": self.source_id,
            "integration_type": self.integration_type.value,
            "name": self.name,
            "data": dict(self.data),
        }


@dataclass(frozen=True, slots=True)
class AttributeTemplate:
    """Schema/defaults provider referenced by ``attribute_template_id``."""

    id: str
    name: str = ""
    default_values: Mapping[str, Any] = field(default_factory=dict[str, Any])
    attribute_mappings: Mapping[str, Any] = field(default_factory=dict[str, Any])

    def default_for(self, field_name: str) -> object:
        return self.default_values.get(field_name, MISSING)
