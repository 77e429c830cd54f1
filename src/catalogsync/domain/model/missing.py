"""Sentinel for values that are absent rather than explicitly null."""

from __future__ import annotations

from typing import Final, final


@final
class Missing:
    """Marks a field that does not exist in the record it was looked up in.

    ``None`` is a legitimate stored value (an explicit null); ``MISSING`` means the
    lookup found nothing and the caller should fall through to the next source.
    """

    _instance: Missing | None = None
    __slots__ = ()

    def __new__(cls) -> Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"

    def __reduce__(self) -> str:
        return "MISSING"


MISSING: Final = Missing()


def is_missing(value: object) -> bool:
    return value is MISSING
