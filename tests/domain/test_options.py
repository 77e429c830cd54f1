from __future__ import annotations

import asyncio

import pytest

from catalogsync.domain.model import (
    Calculation,
    CalculationOperation,
    CalculationPart,
    DirectLink,
    IntegrationType,
    Option,
    OptionLink,
    OptionLinkType,
    ResolvedValue,
    ValueSource,
)
from catalogsync.domain.resolver import ValueResolver
from tests.helpers.catalog import SOURCE_ID, make_record, make_repositories

FORMULA = Calculation.of(
    CalculationPart(mapping_id="base", field_path="data.price"),
    CalculationPart(
        mapping_id="extra",
        field_path="data.price",
        operation=CalculationOperation.ADD,
        integration_type=IntegrationType.MODIFIER,
    ),
)


@pytest.fixture
def resolver() -> ValueResolver:
    return ValueResolver(
        make_repositories(
            records=[
                make_record("shot", name="Extra shot", price=0.75),
                make_record("base", price=3.0),
                make_record("extra", integration_type=IntegrationType.MODIFIER, price=0.5),
            ]
        )
    )


def test_unlinked_option_stays_local_under_linked_parent(resolver: ValueResolver) -> None:
    option = Option(id="o1", label="Oat milk", price=0.6)

    resolved = asyncio.run(resolver.resolve_option_field(option, "price", SOURCE_ID))

    assert resolved.value == 0.6
    assert resolved.source is ValueSource.LOCAL


def test_linked_option_without_parent_source_stays_local(resolver: ValueResolver) -> None:
    option = Option(id="o1", price=0.6, link=OptionLink.direct("shot", IntegrationType.PRODUCT))

    resolved = asyncio.run(resolver.resolve_option_field(option, "price", None))

    assert resolved.source is ValueSource.LOCAL


def test_direct_link_reads_price_and_label(resolver: ValueResolver) -> None:
    link = OptionLink.direct("shot", IntegrationType.PRODUCT)
    option = Option(id="o1", label="Shot", price=0.0, link=link)

    async def scenario() -> tuple[ResolvedValue, ResolvedValue]:
        price = await resolver.resolve_option_field(option, "price", SOURCE_ID)
        label = await resolver.resolve_option_field(option, "label", SOURCE_ID)
        return price, label

    price, label = asyncio.run(scenario())

    assert price.value == 0.75
    assert price.source is ValueSource.API
    assert label.value == "Extra shot"


def test_direct_link_to_absent_record_keeps_local(resolver: ValueResolver) -> None:
    option = Option(id="o1", price=1.0, link=OptionLink.direct("gone", IntegrationType.PRODUCT))

    resolved = asyncio.run(resolver.resolve_option_field(option, "price", SOURCE_ID))

    assert resolved.value == 1.0
    assert resolved.source is ValueSource.LOCAL


def test_calculated_option_price(resolver: ValueResolver) -> None:
    option = Option(id="o1", price=0.0, link=OptionLink.calculated(FORMULA))

    resolved = asyncio.run(resolver.resolve_option_field(option, "price", SOURCE_ID))

    assert resolved.value == pytest.approx(3.5)
    assert resolved.source is ValueSource.CALCULATED


def test_frozen_calculation_reports_local_with_formula(resolver: ValueResolver) -> None:
    link = OptionLink(type=OptionLinkType.CALCULATION, calculation=FORMULA, override=True)
    option = Option(id="o1", price=2.0, link=link)

    resolved = asyncio.run(resolver.resolve_option_field(option, "price", SOURCE_ID))

    assert resolved.value == 2.0
    assert resolved.source is ValueSource.LOCAL
    assert resolved.details is not None
    assert resolved.details.calculation_formula == FORMULA


def test_resolve_all_options_records_calculated_result(resolver: ValueResolver) -> None:
    options = [
        Option(id="plain", label="Plain", price=1.0),
        Option(id="calc", label="Combo", price=0.0, link=OptionLink.calculated(FORMULA)),
    ]

    resolved = asyncio.run(resolver.resolve_all_options(options, SOURCE_ID))

    assert resolved[0] == options[0]
    assert resolved[1].price == pytest.approx(3.5)
    assert resolved[1].link is not None
    assert resolved[1].link.calculated_result == pytest.approx(3.5)
    assert resolved[1].link.last_calculated_at is not None


def test_sync_option_from_api_refreshes_values(resolver: ValueResolver) -> None:
    link = OptionLink.direct("shot", IntegrationType.PRODUCT)
    option = Option(id="o1", label="old", price=0.1, link=link)

    synced = asyncio.run(resolver.sync_option_from_api(option, SOURCE_ID))

    assert synced.label == "Extra shot"
    assert synced.price == 0.75


def test_option_mapping_round_trip_keeps_unknown_keys() -> None:
    payload = {
        "id": "o1",
        "label": "Large",
        "price": 1.5,
        "is_active": True,
        "is_out_of_stock": False,
        "sort_order": 3,
        "link": {
            "type": "direct",
            "directLink": {"mapping_id": "m", "integration_type": "modifier", "field": "data.p"},
        },
    }

    option = Option.from_mapping(payload)

    assert option.get("sort_order") == 3
    assert option.link is not None
    assert option.link.direct_link is not None
    assert option.link.direct_link.integration_type is IntegrationType.MODIFIER
    assert option.to_mapping()["link"]["directLink"]["field"] == "data.p"
    assert option.to_mapping()["sort_order"] == 3


@pytest.mark.parametrize(
    ("price_field", "expected"),
    [("price", 0.75), ("cost", 0.4), ("data.cost", 0.4)],
)
def test_sync_option_from_api_reads_price_like_resolution(
    price_field: str, expected: float
) -> None:
    resolver = ValueResolver(
        make_repositories(records=[make_record("shot", name="Shot", price=0.75, cost=0.4)])
    )
    link = OptionLink(
        type=OptionLinkType.DIRECT,
        direct_link=DirectLink(
            mapping_id="shot", integration_type=IntegrationType.PRODUCT, field=price_field
        ),
    )
    option = Option(id="o1", label="old", price=0.1, link=link)

    async def scenario() -> tuple[Option, ResolvedValue]:
        synced = await resolver.sync_option_from_api(option, SOURCE_ID)
        resolved = await resolver.resolve_option_field(option, "price", SOURCE_ID)
        return synced, resolved

    synced, resolved = asyncio.run(scenario())

    assert synced.price == expected
    assert synced.price == resolved.value
