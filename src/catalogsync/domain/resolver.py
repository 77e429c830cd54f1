"""Value resolution: deciding which source supplies a field right now.

Precedence, first match wins:

1. self-resolving composite fields (``options``) -> raw local value
2. field listed in ``local_fields`` -> raw local value
3. calculation registered for the field -> evaluated formula
4. active external link and the record has the field -> external value
5. parent entity present -> parent's resolution, re-tagged ``parent``
6. template default present -> template value
7. otherwise -> raw attribute (possibly ``MISSING``)

Local overrides are checked before calculations, so a field that is both pinned
and calculated resolves to the pinned value.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Any

from catalogsync.config.resolution import ResolutionConfig
from catalogsync.domain.calculation import CalculationEvaluator, to_number
from catalogsync.domain.errors import CatalogLookupError
from catalogsync.domain.integration_data import IntegrationDataFetcher, extract_field
from catalogsync.domain.model import (
    MISSING,
    CatalogEntity,
    Option,
    OptionLinkType,
    ResolutionDetails,
    ResolvedValue,
    ValueSource,
)
from catalogsync.domain.paths import get_path

if TYPE_CHECKING:
    from collections.abc import Iterable

    from catalogsync.domain.ports import CatalogRepositories

log = getLogger(__name__)


@dataclass(slots=True)
class EntityCache:
    """Process-local cache of parent entities looked up by id."""

    _entities: dict[str, CatalogEntity] = field(default_factory=dict[str, CatalogEntity])

    def get(self, entity_id: str) -> CatalogEntity | None:
        return self._entities.get(entity_id)

    def put(self, entity: CatalogEntity) -> None:
        self._entities[entity.id] = entity

    def clear(self) -> None:
        self._entities.clear()

    def __len__(self) -> int:
        return len(self._entities)


class ValueResolver:
    """Apply the precedence protocol to product, category and option fields.

    The resolver owns two caches (external records and parent entities). Clear them
    with ``clear_cache()`` after any write that may change external or parent data;
    ``IntegrationLinkService`` does this automatically when given ``after_write``.
    """

    def __init__(
        self,
        repositories: CatalogRepositories,
        *,
        fetcher: IntegrationDataFetcher | None = None,
        config: ResolutionConfig | None = None,
        entity_cache: EntityCache | None = None,
    ) -> None:
        self.repositories = repositories
        self.fetcher = fetcher or IntegrationDataFetcher(repositories.catalog)
        self.evaluator = CalculationEvaluator(self.fetcher)
        self.config = config or ResolutionConfig()
        self.entity_cache = entity_cache if entity_cache is not None else EntityCache()

    async def resolve_field(self, entity: CatalogEntity, field_name: str) -> ResolvedValue:
        return await self._resolve(entity, field_name, lineage=(entity.id,))

    async def resolve_all_fields(self, entity: CatalogEntity) -> dict[str, ResolvedValue]:
        """Resolve every attribute, local field and calculated field, one at a time."""

        resolved: dict[str, ResolvedValue] = {}
        for field_name in self._field_names(entity):
            if self.config.is_self_resolving(field_name):
                continue
            resolved[field_name] = await self.resolve_field(entity, field_name)
        return resolved

    async def resolve_option_field(
        self,
        option: Option,
        field_name: str,
        parent_integration_source_id: str | None,
    ) -> ResolvedValue:
        """Resolve an option field; options never inherit their product's link."""

        link = option.link
        local = ResolvedValue(value=option.get(field_name), source=ValueSource.LOCAL)
        if link is None or not parent_integration_source_id:
            return local

        if link.type is OptionLinkType.DIRECT and link.direct_link is not None:
            field_path = _option_field_path(field_name, link.direct_link.field)
            if field_path is not None:
                value = await self.fetcher.fetch_field(
                    link.direct_link.mapping_id,
                    parent_integration_source_id,
                    link.direct_link.integration_type,
                    field_path,
                )
                if value is not MISSING:
                    return ResolvedValue(
                        value=value,
                        source=ValueSource.API,
                        details=ResolutionDetails(api_mapping_id=link.direct_link.mapping_id),
                    )

        if (
            link.type is OptionLinkType.CALCULATION
            and link.calculation is not None
            and field_name == "price"
        ):
            details = ResolutionDetails(calculation_formula=link.calculation)
            if link.override:
                return ResolvedValue(value=option.price, source=ValueSource.LOCAL, details=details)
            value = await self.evaluator.evaluate(link.calculation, parent_integration_source_id)
            return ResolvedValue(value=value, source=ValueSource.CALCULATED, details=details)

        return local

    async def resolve_all_options(
        self,
        options: Iterable[Option],
        parent_integration_source_id: str | None,
    ) -> list[Option]:
        """Return copies of ``options`` carrying their resolved label and price."""

        resolved: list[Option] = []
        for option in options:
            label = await self.resolve_option_field(option, "label", parent_integration_source_id)
            price = await self.resolve_option_field(option, "price", parent_integration_source_id)
            updated = replace(option, label=label.value, price=price.value)
            if price.source is ValueSource.CALCULATED and option.link is not None:
                updated = updated.with_link(
                    replace(
                        option.link,
                        calculated_result=price.value,
                        last_calculated_at=datetime.now(UTC).isoformat(),
                    )
                )
            resolved.append(updated)
        return resolved

    async def sync_option_from_api(
        self,
        option: Option,
        parent_integration_source_id: str,
    ) -> Option:
        """Refresh a directly linked option's label and price from its record."""

        if option.link is None or option.link.direct_link is None:
            return option
        direct = option.link.direct_link
        record = await self.fetcher.fetch(
            direct.mapping_id,
            parent_integration_source_id,
            direct.integration_type,
        )
        if record is None:
            return option
        price = to_number(extract_field(record, direct.field))
        return replace(option, label=record.name or option.label, price=price or option.price)

    async def resolve_mapped_attributes(self, entity: CatalogEntity) -> dict[str, Any]:
        """Apply string ``attribute_mappings`` paths against the linked record.

        Returns a copy of the attribute bag; unresolvable paths keep the local value.
        """

        resolved = dict(entity.attributes)
        key = entity.linked_record_key()
        if not entity.attribute_mappings or key is None:
            return resolved
        record = await self.fetcher.fetch(*key)
        if record is None:
            return resolved
        payload = record.as_mapping()
        for attribute, mapping_path in entity.attribute_mappings.items():
            if not isinstance(mapping_path, str):
                continue
            value = get_path(payload, mapping_path)
            if value is not MISSING:
                resolved[attribute] = value
        return resolved

    def clear_cache(self) -> None:
        self.fetcher.clear_cache()
        self.entity_cache.clear()

    async def _resolve(
        self,
        entity: CatalogEntity,
        field_name: str,
        *,
        lineage: tuple[str, ...],
    ) -> ResolvedValue:
        if self.config.is_self_resolving(field_name):
            raw = entity.raw_attribute(field_name)
            return ResolvedValue(
                value=[] if raw is MISSING or raw is None else raw,
                source=ValueSource.LOCAL,
            )

        if entity.is_local_field(field_name):
            return ResolvedValue(value=entity.raw_attribute(field_name), source=ValueSource.LOCAL)

        calculation = entity.calculation_for(field_name)
        if calculation is not None:
            value = await self.evaluator.evaluate(calculation, entity.integration_source_id)
            return ResolvedValue(
                value=value,
                source=ValueSource.CALCULATED,
                details=ResolutionDetails(calculation_formula=calculation),
            )

        key = entity.linked_record_key()
        if key is not None:
            value = await self.fetcher.fetch_field(*key, field_name)
            if value is not MISSING:
                return ResolvedValue(
                    value=value,
                    source=ValueSource.API,
                    details=ResolutionDetails(
                        api_mapping_id=entity.mapping_id,
                        last_synced_at=entity.last_synced_at,
                    ),
                )
            log.debug("Field %s of %s not in linked record, falling through", field_name, entity.id)

        if entity.parent_product_id:
            inherited = await self._resolve_from_parent(entity, field_name, lineage=lineage)
            if inherited is not None:
                return inherited

        if entity.attribute_template_id:
            default = await self._template_default(entity.attribute_template_id, field_name)
            if default is not MISSING:
                return ResolvedValue(
                    value=default,
                    source=ValueSource.TEMPLATE,
                    details=ResolutionDetails(template_id=entity.attribute_template_id),
                )

        return ResolvedValue(value=entity.raw_attribute(field_name), source=ValueSource.DEFAULT)

    async def _resolve_from_parent(
        self,
        entity: CatalogEntity,
        field_name: str,
        *,
        lineage: tuple[str, ...],
    ) -> ResolvedValue | None:
        parent_id = entity.parent_product_id
        if parent_id is None:
            return None
        if parent_id in lineage:
            log.warning(
                "Parent cycle detected resolving %s: %s -> %s",
                field_name,
                " -> ".join(lineage),
                parent_id,
            )
            return None
        if len(lineage) > self.config.max_parent_depth:
            log.warning(
                "Parent chain of %s exceeds %s levels; ignoring inheritance for %s",
                lineage[0],
                self.config.max_parent_depth,
                field_name,
            )
            return None

        parent = await self._get_entity(parent_id)
        if parent is None:
            return None

        parent_result = await self._resolve(parent, field_name, lineage=(*lineage, parent_id))
        details = replace(
            parent_result.details or ResolutionDetails(),
            parent_product_id=parent_id,
            inherited=parent_result,
        )
        return ResolvedValue(value=parent_result.value, source=ValueSource.PARENT, details=details)

    async def _get_entity(self, entity_id: str) -> CatalogEntity | None:
        cached = self.entity_cache.get(entity_id)
        if cached is not None:
            return cached
        try:
            entity = await self.repositories.entities.get(entity_id)
        except CatalogLookupError:
            log.warning("Could not load entity %s", entity_id, exc_info=True)
            return None
        if entity is not None:
            self.entity_cache.put(entity)
        return entity

    async def _template_default(self, template_id: str, field_name: str) -> object:
        try:
            template = await self.repositories.templates.get(template_id)
        except CatalogLookupError:
            log.warning("Could not load attribute template %s", template_id, exc_info=True)
            return MISSING
        if template is None:
            return MISSING
        return template.default_for(field_name)

    @staticmethod
    def _field_names(entity: CatalogEntity) -> list[str]:
        names = [*entity.attributes, *entity.local_fields, *entity.price_calculations]
        return list(dict.fromkeys(names))


def _option_field_path(field_name: str, price_field: str) -> str | None:
    if field_name == "price":
        return price_field
    if field_name == "label":
        return "name"
    return None
