"""Calculation formulas referencing external catalog fields."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import cast

from .enums import CalculationOperation, IntegrationType


@dataclass(frozen=True, slots=True)
class CalculationPart:
    """One ordered step of a formula: fetch ``field_path`` from a record and fold it in."""

    mapping_id: str
    field_path: str
    operation: CalculationOperation = CalculationOperation.ADD
    integration_type: IntegrationType = IntegrationType.PRODUCT

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> CalculationPart:
        try:
            mapping_id = payload["mapping_id"]
            field_path = payload["field_path"]
        except KeyError as exc:
            raise ValueError(f"Calculation part is missing {exc.args[0]!r}") from exc
        return cls(
            mapping_id=str(mapping_id),
            field_path=str(field_path),
            operation=CalculationOperation(str(payload.get("operation", "add"))),
            integration_type=IntegrationType(str(payload.get("integration_type", "product"))),
        )

    def to_mapping(self) -> dict[str, str]:
        return {
            "mapping_id": self.mapping_id,
            "integration_type": self.integration_type.value,
            "field_path": self.field_path,
            "operation": self.operation.value,
        }


@dataclass(frozen=True, slots=True)
class Calculation:
    """Non-empty ordered sequence of parts; order defines the fold, not precedence."""

    parts: tuple[CalculationPart, ...]

    def __post_init__(self) -> None:
        if not self.parts:
            raise ValueError("A calculation needs at least one part")

    def __iter__(self) -> Iterator[CalculationPart]:
        return iter(self.parts)

    def __len__(self) -> int:
        return len(self.parts)

    @classmethod
    def of(cls, *parts: CalculationPart) -> Calculation:
        return cls(parts=tuple(parts))

    @classmethod
    def from_payload(cls, payload: Sequence[Mapping[str, object]]) -> Calculation:
        return cls(parts=tuple(CalculationPart.from_mapping(item) for item in payload))

    def to_payload(self) -> list[dict[str, str]]:
        return [part.to_mapping() for part in self.parts]


def coerce_calculation(value: object) -> Calculation:
    """Accept either a ``Calculation`` or its persisted list-of-dicts form."""

    if isinstance(value, Calculation):
        return value
    if isinstance(value, (list, tuple)):
        items = cast(Sequence[object], value)
        parts: list[CalculationPart] = []
        for item in items:
            if isinstance(item, CalculationPart):
                parts.append(item)
            elif isinstance(item, Mapping):
                parts.append(CalculationPart.from_mapping(cast(Mapping[str, object], item)))
            else:
                raise TypeError(f"Unsupported calculation part: {item!r}")
        return Calculation(parts=tuple(parts))
    raise TypeError(f"Unsupported calculation payload: {value!r}")


def calculations_from_payload(payload: object) -> dict[str, Calculation]:
    """Parse a persisted ``price_calculations`` mapping, skipping empty formulas."""

    if not isinstance(payload, Mapping):
        return {}
    calculations: dict[str, Calculation] = {}
    for field_name, raw in cast(Mapping[str, object], payload).items():
        if not raw:
            continue
        calculations[str(field_name)] = coerce_calculation(raw)
    return calculations


def calculations_to_payload(
    calculations: Mapping[str, Calculation],
) -> dict[str, list[dict[str, str]]]:
    return {field_name: calc.to_payload() for field_name, calc in calculations.items()}
