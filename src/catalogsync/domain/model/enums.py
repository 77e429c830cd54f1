"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class EntityKind(StrEnum):
    PRODUCT = "product"
    CATEGORY = "category"


class IntegrationType(StrEnum):
    """Selects one of the three external catalogs."""

    PRODUCT = "product"
    MODIFIER = "modifier"
    DISCOUNT = "discount"


class ValueSource(StrEnum):
    """Precedence tier that supplied a resolved value."""

    LOCAL = "local"
    API = "api"
    CALCULATED = "calculated"
    PARENT = "parent"
    TEMPLATE = "template"
    DEFAULT = "default"


class SyncState(StrEnum):
    LINKED_ACTIVE = "linked-active"
    LINKED_INACTIVE = "linked-inactive"
    LOCALLY_APPLIED = "locally-applied"
    NONE = "none"


class CalculationOperation(StrEnum):
    ADD = "add"
    SUBTRACT = "subtract"
    MULTIPLY = "multiply"
    DIVIDE = "divide"


class OptionLinkType(StrEnum):
    DIRECT = "direct"
    CALCULATION = "calculation"


class ProductType(StrEnum):
    CUSTOM = "custom"
    IMPORTED = "imported"
    LINKED = "linked"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class AttributeKind(StrEnum):
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    RICHTEXT = "richtext"
    IMAGE = "image"
    LIST = "list"
    JSON = "json"
