"""Mutations of persisted integration linkage.

Each operation validates first and then performs exactly one write inside its
own unit of work: it either succeeds or raises a named ``IntegrationLinkError``
without writing. Multi-step user actions are independent calls; repeating any
call is safe.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Any

from catalogsync.domain.calculation import to_number
from catalogsync.domain.errors import (
    CalculationNotConfiguredError,
    EntityNotFoundError,
    MappingNotFoundError,
    OptionNotFoundError,
    ParentNotLinkedError,
)
from catalogsync.domain.integration_data import IntegrationDataFetcher, extract_field
from catalogsync.domain.model import (
    IntegrationType,
    OptionLink,
    coerce_calculation,
)
from catalogsync.domain.sync_state import LinkageState, SyncStateManager

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from catalogsync.domain.model import (
        Calculation,
        CalculationPart,
        CatalogEntity,
        ExternalRecord,
        Option,
    )
    from catalogsync.domain.ports import CatalogRepositories, CatalogUnitOfWork
    from catalogsync.domain.sync_state import IntegrationSource

log = getLogger(__name__)

type UnitOfWorkFactory = Callable[[], CatalogUnitOfWork]
type FormulaInput = Calculation | Sequence[CalculationPart] | Sequence[Mapping[str, object]]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class IntegrationLinkService:
    """Link, unlink, calculate and override entities and their options."""

    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory,
        *,
        after_write: Callable[[], None] | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.unit_of_work_factory = unit_of_work_factory
        self.after_write = after_write
        self.clock = clock

    async def link_entity(
        self,
        entity_id: str,
        mapping_id: str,
        source_id: str,
        integration_type: IntegrationType = IntegrationType.PRODUCT,
    ) -> None:
        integration_type = IntegrationType(integration_type)
        with self.unit_of_work_factory() as uow:
            repos = uow.repositories
            await self._require_mapping(repos, mapping_id, source_id, integration_type)
            await self._require_entity(repos, entity_id)
            await repos.entities.update(
                entity_id,
                {
                    "mapping_id": mapping_id,
                    "integration_source_id": source_id,
                    "integration_type": integration_type,
                    "last_synced_at": self.clock(),
                },
            )
            await uow.commit()
        self._written(
            "Linked %s to %s %s in source %s", entity_id, integration_type, mapping_id, source_id
        )

    async def unlink_entity(self, entity_id: str) -> None:
        """Drop the entity-level link; local overrides are left untouched."""

        with self.unit_of_work_factory() as uow:
            repos = uow.repositories
            await self._require_entity(repos, entity_id)
            await repos.entities.update(
                entity_id,
                {
                    "mapping_id": None,
                    "integration_source_id": None,
                    "integration_type": None,
                    "last_synced_at": None,
                },
            )
            await uow.commit()
        self._written("Unlinked %s", entity_id)

    async def link_option(
        self,
        entity_id: str,
        option_id: str,
        mapping_id: str,
        integration_type: IntegrationType = IntegrationType.PRODUCT,
    ) -> None:
        """Link an option to a record in the same source as its (linked) product.

        The record's name and price are copied into the option so it keeps sensible
        static values if it is unlinked later.
        """

        integration_type = IntegrationType(integration_type)
        with self.unit_of_work_factory() as uow:
            repos = uow.repositories
            entity = await self._require_entity(repos, entity_id)
            source_id = entity.integration_source_id
            if not source_id:
                raise ParentNotLinkedError(entity_id, option_id)
            record = await self._require_mapping(repos, mapping_id, source_id, integration_type)
            option = self._require_option(entity, option_id)
            linked = replace(
                option,
                label=record.name or option.label,
                price=to_number(extract_field(record, "data.price")) or option.price,
                link=OptionLink.direct(mapping_id, integration_type),
            )
            await repos.entities.update(
                entity_id, {"attributes": entity.attributes_with_option(linked)}
            )
            await uow.commit()
        self._written(
            "Linked option %s of %s to %s %s", option_id, entity_id, integration_type, mapping_id
        )

    async def unlink_option(self, entity_id: str, option_id: str) -> None:
        """Remove the option's link, keeping its last synced values as local data."""

        await self._write_option(entity_id, option_id, lambda option: option.with_link(None))
        self._written("Unlinked option %s of %s", option_id, entity_id)

    async def set_calculation(
        self,
        entity_id: str,
        field_name: str,
        formula: FormulaInput,
    ) -> None:
        """Attach a formula to ``field_name``; resolution happens on the next read."""

        calculation = coerce_calculation(formula)
        with self.unit_of_work_factory() as uow:
            repos = uow.repositories
            entity = await self._require_entity(repos, entity_id)
            calculations = {**entity.price_calculations, field_name: calculation}
            await repos.entities.update(
                entity_id, {"price_calculations": calculations}
            )
            await uow.commit()
        self._written(
            "Set calculation for %s.%s (%s parts)", entity_id, field_name, len(calculation)
        )

    async def clear_calculation(self, entity_id: str, field_name: str) -> None:
        with self.unit_of_work_factory() as uow:
            repos = uow.repositories
            entity = await self._require_entity(repos, entity_id)
            calculations = {
                name: calc for name, calc in entity.price_calculations.items() if name != field_name
            }
            await repos.entities.update(
                entity_id, {"price_calculations": calculations}
            )
            await uow.commit()
        self._written("Cleared calculation for %s.%s", entity_id, field_name)

    async def set_option_calculation(
        self,
        entity_id: str,
        option_id: str,
        formula: FormulaInput,
    ) -> None:
        calculation = coerce_calculation(formula)
        await self._write_option(
            entity_id,
            option_id,
            lambda option: option.with_link(OptionLink.calculated(calculation)),
        )
        self._written("Set calculation for option %s of %s", option_id, entity_id)

    async def enable_local_override(self, entity_id: str, field_name: str, value: Any) -> None:
        """Pin ``field_name`` to ``value``; sync and calculations stop applying to it."""

        with self.unit_of_work_factory() as uow:
            repos = uow.repositories
            entity = await self._require_entity(repos, entity_id)
            local_fields = list(entity.local_fields)
            if field_name not in local_fields:
                local_fields.append(field_name)
            await repos.entities.update(
                entity_id,
                {
                    "local_fields": local_fields,
                    "attributes": {**entity.attributes, field_name: value},
                },
            )
            await uow.commit()
        self._written("Enabled local override of %s.%s", entity_id, field_name)

    async def clear_local_override(self, entity_id: str, field_name: str) -> None:
        with self.unit_of_work_factory() as uow:
            repos = uow.repositories
            entity = await self._require_entity(repos, entity_id)
            await repos.entities.update(
                entity_id,
                {
                    "local_fields": [name for name in entity.local_fields if name != field_name],
                    "attributes": {
                        name: value
                        for name, value in entity.attributes.items()
                        if name != field_name
                    },
                },
            )
            await uow.commit()
        self._written("Cleared local override of %s.%s", entity_id, field_name)

    async def set_calculation_override(
        self,
        entity_id: str,
        option_id: str,
        fixed_price: float,
    ) -> None:
        """Freeze a calculated option at ``fixed_price``."""

        def freeze(option: Option) -> Option:
            if option.link is None or option.link.calculation is None:
                raise CalculationNotConfiguredError(entity_id, option_id)
            return replace(option, price=fixed_price, link=replace(option.link, override=True))

        await self._write_option(entity_id, option_id, freeze)
        self._written("Froze option %s of %s at %s", option_id, entity_id, fixed_price)

    async def clear_calculation_override(self, entity_id: str, option_id: str) -> None:
        """Return a frozen option to live calculation, restoring its last calculated price."""

        def unfreeze(option: Option) -> Option:
            if option.link is None or option.link.calculation is None:
                raise CalculationNotConfiguredError(entity_id, option_id)
            price = option.link.calculated_result
            return replace(
                option,
                price=price if price is not None else option.price,
                link=replace(option.link, override=False),
            )

        await self._write_option(entity_id, option_id, unfreeze)
        self._written("Unfroze option %s of %s", option_id, entity_id)

    async def save_linkage_state(self, entity_id: str, state: LinkageState) -> None:
        """Persist a sync-state transition in a single write."""

        with self.unit_of_work_factory() as uow:
            repos = uow.repositories
            await self._require_entity(repos, entity_id)
            await repos.entities.update(entity_id, state.as_entity_fields())
            await uow.commit()
        self._written("Saved linkage state of %s", entity_id)

    async def enable_sync(
        self,
        entity_id: str,
        field_name: str,
        *,
        sources: Iterable[IntegrationSource] = (),
    ) -> LinkageState:
        return await self._transition(
            entity_id, lambda manager: manager.enable_sync(field_name), sources=sources
        )

    async def disable_sync(
        self,
        entity_id: str,
        field_name: str,
        *,
        sources: Iterable[IntegrationSource] = (),
    ) -> LinkageState:
        return await self._transition(
            entity_id, lambda manager: manager.disable_sync(field_name), sources=sources
        )

    async def _transition(
        self,
        entity_id: str,
        step: Callable[[SyncStateManager], LinkageState],
        *,
        sources: Iterable[IntegrationSource],
    ) -> LinkageState:
        with self.unit_of_work_factory() as uow:
            repos = uow.repositories
            entity = await self._require_entity(repos, entity_id)
            state = step(SyncStateManager(LinkageState.from_entity(entity), sources))
            await repos.entities.update(entity_id, state.as_entity_fields())
            await uow.commit()
        self._written("Saved linkage state of %s", entity_id)
        return state

    async def _write_option(
        self,
        entity_id: str,
        option_id: str,
        change: Callable[[Option], Option],
    ) -> None:
        with self.unit_of_work_factory() as uow:
            repos = uow.repositories
            entity = await self._require_entity(repos, entity_id)
            option = self._require_option(entity, option_id)
            await repos.entities.update(
                entity_id, {"attributes": entity.attributes_with_option(change(option))}
            )
            await uow.commit()

    @staticmethod
    async def _require_entity(repos: CatalogRepositories, entity_id: str) -> CatalogEntity:
        entity = await repos.entities.get(entity_id)
        if entity is None:
            raise EntityNotFoundError(entity_id)
        return entity

    @staticmethod
    def _require_option(entity: CatalogEntity, option_id: str) -> Option:
        option = entity.find_option(option_id)
        if option is None:
            raise OptionNotFoundError(entity.id, option_id)
        return option

    @staticmethod
    async def _require_mapping(
        repos: CatalogRepositories,
        mapping_id: str,
        source_id: str,
        integration_type: IntegrationType,
    ) -> ExternalRecord:
        record = await IntegrationDataFetcher(repos.catalog).lookup(
            mapping_id, source_id, integration_type
        )
        if record is None:
            raise MappingNotFoundError(mapping_id, source_id, integration_type)
        return record

    def _written(self, message: str, *args: object) -> None:
        log.info(message, *args)
        if self.after_write is not None:
            self.after_write()
