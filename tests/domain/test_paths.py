from __future__ import annotations

import pytest

from catalogsync.domain.model import MISSING
from catalogsync.domain.paths import get_path, parse_path

PAYLOAD = {
    "name": "Latte",
    "sizes": [{"label": "S", "price": 4}, {"label": "L", "price": None}],
    "nutrition": {"kcal": 120},
}


def test_parse_path_splits_keys_and_indexes() -> None:
    assert parse_path("data.sizes[0].price") == ("data", "sizes", 0, "price")
    assert parse_path("") == ()


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("name", "Latte"),
        ("sizes[0].price", 4),
        ("sizes[1].price", None),
        ("nutrition.kcal", 120),
        (("sizes", 1, "label"), "L"),
    ],
)
def test_get_path_reads_values(path: str, expected: object) -> None:
    assert get_path(PAYLOAD, path) == expected


@pytest.mark.parametrize(
    "path",
    ["unknown", "sizes[5].price", "sizes.price", "name.first", "nutrition[0]", ""],
)
def test_get_path_missing(path: str) -> None:
    assert get_path(PAYLOAD, path) is MISSING
