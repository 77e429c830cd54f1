from __future__ import annotations

from catalogsync.domain import get_product_type
from catalogsync.domain.model import ProductType
from tests.helpers.catalog import make_entity, make_linked_entity


def test_unmapped_product_is_custom() -> None:
    assert get_product_type(make_entity(local_fields=["name"])) is ProductType.CUSTOM


def test_mapped_product_without_local_fields_is_imported() -> None:
    assert get_product_type(make_linked_entity()) is ProductType.IMPORTED


def test_mapped_product_with_local_fields_is_linked() -> None:
    product_type = get_product_type(make_linked_entity(local_fields=["price"]))

    assert product_type is ProductType.LINKED
    assert product_type.label == "Linked"
