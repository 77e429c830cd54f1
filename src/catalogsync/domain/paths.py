"""Dot/bracket attribute paths such as ``data.sizes[0].price``."""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any, cast

from catalogsync.domain.model import MISSING

_SEGMENT = re.compile(r"([^.\[\]]+)|\[(\d+)\]")


def parse_path(path: str) -> tuple[str | int, ...]:
    """Split a path into mapping keys (``str``) and sequence indexes (``int``)."""

    segments: list[str | int] = []
    for match in _SEGMENT.finditer(path):
        key, index = match.groups()
        segments.append(int(index) if index is not None else key)
    return tuple(segments)


def get_path(obj: object, path: str | Sequence[str | int]) -> Any:
    """Return the value at ``path`` or ``MISSING`` when any segment cannot be traversed."""

    segments = parse_path(path) if isinstance(path, str) else tuple(path)
    if not segments:
        return MISSING
    current: object = obj
    for segment in segments:
        if isinstance(current, Mapping):
            mapping = cast(Mapping[object, object], current)
            if segment not in mapping:
                return MISSING
            current = mapping[segment]
        elif isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
            if not isinstance(segment, int):
                return MISSING
            items = cast(Sequence[object], current)
            if segment >= len(items):
                return MISSING
            current = items[segment]
        else:
            return MISSING
    return current
