"""Domain model for catalog value resolution."""

from __future__ import annotations

from .attributes import attribute_kind, is_field_syncable
from .calculation import (
    Calculation,
    CalculationPart,
    calculations_from_payload,
    calculations_to_payload,
    coerce_calculation,
)
from .entity import (
    OPTIONS_FIELD,
    AttributeTemplate,
    CatalogEntity,
    DirectLink,
    ExternalRecord,
    Option,
    OptionLink,
    new_id,
)
from .enums import (
    AttributeKind,
    CalculationOperation,
    EntityKind,
    IntegrationType,
    OptionLinkType,
    ProductType,
    SyncState,
    ValueSource,
)
from .missing import MISSING, Missing, is_missing
from .resolved import ResolutionDetails, ResolvedValue

__all__ = [
    "MISSING",
    "OPTIONS_FIELD",
    "AttributeKind",
    "AttributeTemplate",
    "Calculation",
    "CalculationOperation",
    "CalculationPart",
    "CatalogEntity",
    "DirectLink",
    "EntityKind",
    "ExternalRecord",
    "IntegrationType",
    "Missing",
    "Option",
    "OptionLink",
    "OptionLinkType",
    "ProductType",
    "ResolutionDetails",
    "ResolvedValue",
    "SyncState",
    "ValueSource",
    "attribute_kind",
    "calculations_from_payload",
    "calculations_to_payload",
    "coerce_calculation",
    "is_field_syncable",
    "is_missing",
    "new_id",
]
