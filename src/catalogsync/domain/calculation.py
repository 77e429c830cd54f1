"""Folding calculation formulas into a single number."""

from __future__ import annotations

import math
import re
from decimal import Decimal
from logging import getLogger
from typing import TYPE_CHECKING, Final

from catalogsync.domain.model import CalculationOperation

if TYPE_CHECKING:
    from collections.abc import Iterable

    from catalogsync.domain.integration_data import IntegrationDataFetcher
    from catalogsync.domain.model import CalculationPart

log = getLogger(__name__)

_LEADING_NUMBER: Final = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")


def to_number(value: object) -> float:
    """Best-effort numeric parse; anything unparseable becomes ``0``.

    Strings are read up to the first character that cannot continue a number,
    so ``"12.50 USD"`` yields ``12.5``.
    """

    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
        return number if math.isfinite(number) else 0.0
    if isinstance(value, str):
        match = _LEADING_NUMBER.match(value)
        if match is None:
            return 0.0
        number = float(match.group(1))
        return number if math.isfinite(number) else 0.0
    return 0.0


def apply_operation(accumulator: float, operation: CalculationOperation, operand: float) -> float:
    match operation:
        case CalculationOperation.ADD:
            return accumulator + operand
        case CalculationOperation.SUBTRACT:
            return accumulator - operand
        case CalculationOperation.MULTIPLY:
            return accumulator * operand
        case CalculationOperation.DIVIDE:
            # division by zero leaves the running result unchanged
            return accumulator / operand if operand != 0 else accumulator


class CalculationEvaluator:
    """Evaluate formulas left to right against values fetched from external records."""

    def __init__(self, fetcher: IntegrationDataFetcher) -> None:
        self.fetcher = fetcher

    async def evaluate(
        self,
        parts: Iterable[CalculationPart],
        integration_source_id: str | None,
    ) -> float:
        """Fold ``parts`` into one number.

        The first part always seeds the accumulator with its own value, whatever its
        operation says; each later part applies its operation to the running result.
        Without a source id nothing is fetched and the result is ``0``.
        """

        if not integration_source_id:
            return 0.0

        result = 0.0
        for index, part in enumerate(parts):
            raw = await self.fetcher.fetch_field(
                part.mapping_id,
                integration_source_id,
                part.integration_type,
                part.field_path,
            )
            operand = to_number(raw)
            if index == 0:
                result = operand
            else:
                result = apply_operation(result, part.operation, operand)
            log.debug(
                "Calculation step %s: %s %s=%r -> %s",
                index,
                part.operation,
                part.field_path,
                raw,
                result,
            )
        return result
