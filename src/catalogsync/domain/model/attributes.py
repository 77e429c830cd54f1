"""Classification of values held in the open attribute bag."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Final

from .enums import AttributeKind

SYNCABLE_KINDS: Final = frozenset(
    {
        AttributeKind.TEXT,
        AttributeKind.NUMBER,
        AttributeKind.BOOLEAN,
        AttributeKind.IMAGE,
        AttributeKind.RICHTEXT,
    }
)

_IMAGE_SUFFIX = re.compile(r"\.(png|jpe?g|gif|webp|svg)(\?.*)?$", re.IGNORECASE)
_MARKUP = re.compile(r"<[a-zA-Z][^>]*>")


def attribute_kind(value: object) -> AttributeKind:
    """Best-effort kind of a raw attribute value.

    Template definitions are authoritative when present; this is used for values
    that arrive without a declared kind.
    """

    if isinstance(value, bool):
        return AttributeKind.BOOLEAN
    if isinstance(value, (int, float)):
        return AttributeKind.NUMBER
    if isinstance(value, str):
        if _IMAGE_SUFFIX.search(value):
            return AttributeKind.IMAGE
        if _MARKUP.search(value):
            return AttributeKind.RICHTEXT
        return AttributeKind.TEXT
    if isinstance(value, (list, tuple)):
        return AttributeKind.LIST
    if isinstance(value, Mapping):
        return AttributeKind.JSON
    return AttributeKind.JSON


def is_field_syncable(kind: AttributeKind | str) -> bool:
    try:
        return AttributeKind(kind) in SYNCABLE_KINDS
    except ValueError:
        return False
