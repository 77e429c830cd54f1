"""Output-only projections produced by value resolution."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .enums import ValueSource
from .missing import MISSING

if TYPE_CHECKING:
    from collections.abc import Iterator
    from datetime import datetime

    from .calculation import Calculation


@dataclass(frozen=True, slots=True, kw_only=True)
class ResolutionDetails:
    """Provenance attached to a resolved value."""

    api_mapping_id: str | None = None
    parent_product_id: str | None = None
    template_id: str | None = None
    calculation_formula: Calculation | None = None
    last_synced_at: datetime | None = None
    # result the parent produced, kept intact so chained ancestors stay reachable
    inherited: ResolvedValue | None = None


@dataclass(frozen=True, slots=True)
class ResolvedValue:
    value: Any
    source: ValueSource
    details: ResolutionDetails | None = None

    @property
    def is_missing(self) -> bool:
        return self.value is MISSING

    def lineage(self) -> Iterator[ResolvedValue]:
        """Yield this value followed by each inherited ancestor result."""

        current: ResolvedValue | None = self
        while current is not None:
            yield current
            current = current.details.inherited if current.details is not None else None

    @property
    def origin(self) -> ResolvedValue:
        """The ancestor result that actually supplied the value."""

        *_, last = self.lineage()
        return last

    @property
    def ancestor_ids(self) -> tuple[str, ...]:
        return tuple(
            link.details.parent_product_id
            for link in self.lineage()
            if link.details is not None and link.details.parent_product_id is not None
        )
