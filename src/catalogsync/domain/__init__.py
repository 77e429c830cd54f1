"""Attribute value resolution and integration sync engine."""

from __future__ import annotations

from .classification import get_product_type

__all__ = ["get_product_type"]
