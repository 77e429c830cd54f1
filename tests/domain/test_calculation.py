from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from catalogsync.domain.calculation import CalculationEvaluator, apply_operation, to_number
from catalogsync.domain.integration_data import IntegrationDataFetcher
from catalogsync.domain.model import Calculation, CalculationOperation, CalculationPart
from tests.helpers.catalog import SOURCE_ID, FakeExternalCatalog, make_record


def _evaluate(
    terms: list[tuple[float | str | None, CalculationOperation]],
    *,
    source_id: str | None = SOURCE_ID,
) -> float:
    records = []
    parts = []
    for index, (value, operation) in enumerate(terms):
        mapping_id = f"m-{index}"
        records.append(make_record(mapping_id, price=value))
        parts.append(
            CalculationPart(mapping_id=mapping_id, field_path="data.price", operation=operation)
        )
    fetcher = IntegrationDataFetcher(FakeExternalCatalog(records))
    return asyncio.run(CalculationEvaluator(fetcher).evaluate(Calculation.of(*parts), source_id))


def test_add_then_subtract() -> None:
    assert _evaluate([(10, CalculationOperation.ADD), (3, CalculationOperation.SUBTRACT)]) == 7


def test_first_operation_only_seeds() -> None:
    result = _evaluate([(10, CalculationOperation.SUBTRACT), (3, CalculationOperation.ADD)])

    assert result == 13


def test_divide_by_zero_leaves_result_unchanged() -> None:
    assert _evaluate([(8, CalculationOperation.ADD), (0, CalculationOperation.DIVIDE)]) == 8


def test_multiply_and_divide_fold_left_to_right() -> None:
    result = _evaluate(
        [
            (6, CalculationOperation.ADD),
            (4, CalculationOperation.MULTIPLY),
            (3, CalculationOperation.DIVIDE),
        ]
    )

    assert result == pytest.approx(8)


def test_two_record_price_difference() -> None:
    result = _evaluate([(12.0, CalculationOperation.ADD), (2.5, CalculationOperation.SUBTRACT)])

    assert result == pytest.approx(9.5)


def test_unparseable_and_missing_values_count_as_zero() -> None:
    result = _evaluate(
        [
            (5, CalculationOperation.ADD),
            ("n/a", CalculationOperation.ADD),
            (None, CalculationOperation.ADD),
        ]
    )

    assert result == 5


def test_missing_record_counts_as_zero() -> None:
    fetcher = IntegrationDataFetcher(FakeExternalCatalog([make_record("a", price=4)]))
    formula = Calculation.of(
        CalculationPart(mapping_id="a", field_path="data.price"),
        CalculationPart(mapping_id="absent", field_path="data.price"),
    )

    assert asyncio.run(CalculationEvaluator(fetcher).evaluate(formula, SOURCE_ID)) == 4


def test_no_source_yields_zero_without_fetching() -> None:
    catalog = FakeExternalCatalog([make_record("a", price=4)])
    evaluator = CalculationEvaluator(IntegrationDataFetcher(catalog))
    formula = Calculation.of(CalculationPart(mapping_id="a", field_path="data.price"))

    assert asyncio.run(evaluator.evaluate(formula, None)) == 0
    assert catalog.calls == []


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (3, 3.0),
        (2.5, 2.5),
        (Decimal("1.25"), 1.25),
        ("12.50 USD", 12.5),
        ("  -4", -4.0),
        ("abc", 0.0),
        (None, 0.0),
        (True, 0.0),
        (float("nan"), 0.0),
        ({"price": 1}, 0.0),
    ],
)
def test_to_number(raw: object, expected: float) -> None:
    assert to_number(raw) == expected


def test_apply_operation_covers_every_operation() -> None:
    assert apply_operation(6, CalculationOperation.ADD, 2) == 8
    assert apply_operation(6, CalculationOperation.SUBTRACT, 2) == 4
    assert apply_operation(6, CalculationOperation.MULTIPLY, 2) == 12
    assert apply_operation(6, CalculationOperation.DIVIDE, 2) == 3
