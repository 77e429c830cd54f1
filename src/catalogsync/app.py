"""Application wiring: resolver and link service over a chosen backing store."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from catalogsync.config import get_backend_config, get_resolution_config
from catalogsync.domain.classification import get_product_type
from catalogsync.domain.errors import EntityNotFoundError
from catalogsync.domain.link_service import IntegrationLinkService
from catalogsync.domain.resolver import ValueResolver
from catalogsync.domain.sync_state import IntegrationSource, LinkageState, SyncStateManager

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from catalogsync.config import BackendConfig, ResolutionConfig
    from catalogsync.domain.model import ProductType, ResolvedValue, SyncState
    from catalogsync.domain.ports import CatalogRepositories, CatalogUnitOfWork

log = getLogger(__name__)


class Backend(StrEnum):
    SQL = "sql"
    REST = "rest"


async def _noop() -> None:
    return None


@dataclass(slots=True)
class CatalogServices:
    """The read side (resolver) and write side (link service) sharing one cache policy."""

    repositories: CatalogRepositories
    resolver: ValueResolver
    links: IntegrationLinkService
    aclose: Callable[[], Awaitable[None]] = _noop


def build_services(
    repositories: CatalogRepositories,
    unit_of_work_factory: Callable[[], CatalogUnitOfWork],
    *,
    config: ResolutionConfig | None = None,
    after_write: Callable[[], None] | None = None,
    aclose: Callable[[], Awaitable[None]] = _noop,
) -> CatalogServices:
    resolver = ValueResolver(repositories, config=config or get_resolution_config())

    def invalidate() -> None:
        resolver.clear_cache()
        if after_write is not None:
            after_write()

    links = IntegrationLinkService(unit_of_work_factory, after_write=invalidate)
    return CatalogServices(repositories=repositories, resolver=resolver, links=links, aclose=aclose)


def build_sqlalchemy_services(
    *,
    database_uri: str | None = None,
    config: ResolutionConfig | None = None,
) -> CatalogServices:
    from catalogsync.adapters.sqlalchemy.unit_of_work import (  # noqa: PLC0415
        SqlAlchemyCatalogUnitOfWork,
        build_repositories,
        is_started,
        open_session,
        startup,
    )

    if not is_started():
        startup(database_uri=database_uri)
    session = open_session()

    async def aclose() -> None:
        session.close()

    return build_services(
        build_repositories(session),
        SqlAlchemyCatalogUnitOfWork,
        config=config,
        # the read session must not serve rows cached before the write
        after_write=session.expire_all,
        aclose=aclose,
    )


def build_postgrest_services(
    backend_config: BackendConfig | None = None,
    *,
    config: ResolutionConfig | None = None,
) -> CatalogServices:
    from catalogsync.adapters.postgrest import (  # noqa: PLC0415
        PostgrestCatalogUnitOfWork,
        PostgrestClient,
        build_repositories,
    )

    client = PostgrestClient(backend_config or get_backend_config())
    return build_services(
        build_repositories(client),
        lambda: PostgrestCatalogUnitOfWork(client),
        config=config,
        aclose=client.aclose,
    )


def open_services(backend: Backend | str = Backend.SQL) -> CatalogServices:
    match Backend(backend):
        case Backend.SQL:
            return build_sqlalchemy_services()
        case Backend.REST:
            return build_postgrest_services()


@dataclass(frozen=True, slots=True)
class FieldExplanation:
    field_name: str
    resolved: ResolvedValue
    sync_state: SyncState


@dataclass(frozen=True, slots=True)
class EntityExplanation:
    entity_id: str
    product_type: ProductType
    fields: list[FieldExplanation]


async def explain_entity(
    services: CatalogServices,
    entity_id: str,
    *,
    fields: Sequence[str] = (),
    sources: Iterable[IntegrationSource] | None = None,
) -> EntityExplanation:
    """Resolve fields of one entity and classify their sync state.

    Without explicit ``sources`` the entity's own integration source is taken as
    the only, active, source.
    """

    entity = await services.repositories.entities.get(entity_id)
    if entity is None:
        raise EntityNotFoundError(entity_id)

    if sources is None:
        sources = (
            [IntegrationSource(id=entity.integration_source_id, name=entity.integration_source_id)]
            if entity.integration_source_id
            else []
        )
    template_mappings: dict[str, object] = {}
    if entity.attribute_template_id:
        template = await services.repositories.templates.get(entity.attribute_template_id)
        if template is not None:
            template_mappings = dict(template.attribute_mappings)
    manager = SyncStateManager(LinkageState.from_entity(entity), sources, template_mappings)

    if fields:
        resolved = {name: await services.resolver.resolve_field(entity, name) for name in fields}
    else:
        resolved = await services.resolver.resolve_all_fields(entity)
    log.debug("Explained %s fields of %s", len(resolved), entity_id)
    return EntityExplanation(
        entity_id=entity.id,
        product_type=get_product_type(entity),
        fields=[
            FieldExplanation(
                field_name=name,
                resolved=value,
                sync_state=manager.get_sync_state(name),
            )
            for name, value in resolved.items()
        ],
    )
