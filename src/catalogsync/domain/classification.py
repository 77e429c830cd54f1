"""Coarse classification of products by how they relate to integrations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from catalogsync.domain.model import ProductType

if TYPE_CHECKING:
    from catalogsync.domain.model import CatalogEntity


def get_product_type(entity: CatalogEntity) -> ProductType:
    """``custom`` without a mapping, ``linked`` when it pins local fields, else ``imported``."""

    if not entity.mapping_id:
        return ProductType.CUSTOM
    if entity.local_fields:
        return ProductType.LINKED
    return ProductType.IMPORTED
