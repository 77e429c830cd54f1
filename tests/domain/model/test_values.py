from __future__ import annotations

import copy
import pickle

import pytest

from catalogsync.domain.model import (
    MISSING,
    AttributeKind,
    Missing,
    ResolutionDetails,
    ResolvedValue,
    ValueSource,
    attribute_kind,
    is_field_syncable,
    is_missing,
)


def test_missing_is_a_falsy_singleton() -> None:
    assert Missing() is MISSING
    assert not MISSING
    assert is_missing(MISSING)
    assert not is_missing(None)
    assert copy.deepcopy(MISSING) is MISSING
    assert pickle.loads(pickle.dumps(MISSING)) is MISSING


@pytest.mark.parametrize(
    ("value", "kind"),
    [
        (True, AttributeKind.BOOLEAN),
        (3, AttributeKind.NUMBER),
        (2.5, AttributeKind.NUMBER),
        ("Latte", AttributeKind.TEXT),
        ("https://cdn.example/latte.JPG?w=200", AttributeKind.IMAGE),
        ("<p>Rich</p>", AttributeKind.RICHTEXT),
        (["a"], AttributeKind.LIST),
        ({"a": 1}, AttributeKind.JSON),
        (None, AttributeKind.JSON),
    ],
)
def test_attribute_kind(value: object, kind: AttributeKind) -> None:
    assert attribute_kind(value) is kind


def test_syncable_kinds() -> None:
    assert is_field_syncable("text")
    assert is_field_syncable(AttributeKind.IMAGE)
    assert not is_field_syncable(AttributeKind.LIST)
    assert not is_field_syncable("color")


def test_origin_follows_inherited_chain() -> None:
    root = ResolvedValue("x", ValueSource.API)
    middle = ResolvedValue(
        "x", ValueSource.PARENT, ResolutionDetails(parent_product_id="p2", inherited=root)
    )
    top = ResolvedValue(
        "x", ValueSource.PARENT, ResolutionDetails(parent_product_id="p1", inherited=middle)
    )

    assert top.origin is root
    assert top.ancestor_ids == ("p1", "p2")
    assert list(top.lineage()) == [top, middle, root]
