from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from catalogsync.adapters.sqlalchemy.repositories import SqlAlchemyExternalCatalog
from catalogsync.app import (
    Backend,
    CatalogServices,
    build_services,
    build_sqlalchemy_services,
    explain_entity,
    open_services,
)
from catalogsync.config import MissingConfigurationError, ResolutionConfig
from catalogsync.domain.errors import EntityNotFoundError
from catalogsync.domain.model import (
    AttributeTemplate,
    CatalogEntity,
    ProductType,
    SyncState,
    ValueSource,
)
from catalogsync.domain.sync_state import IntegrationSource
from tests.helpers.catalog import (
    SOURCE_ID,
    FakeCatalogUnitOfWork,
    make_entity,
    make_linked_entity,
    make_record,
    make_repositories,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from catalogsync.adapters.sqlalchemy.unit_of_work import SqlAlchemyCatalogUnitOfWork
    from catalogsync.domain.ports import CatalogRepositories


def _fake_services(repositories: CatalogRepositories) -> CatalogServices:
    uow = FakeCatalogUnitOfWork(repositories)
    return build_services(repositories, lambda: uow, config=ResolutionConfig())


def test_writes_invalidate_resolver_cache() -> None:
    repositories = make_repositories(
        entities=[make_linked_entity()], records=[make_record("m-1", description="Before")]
    )
    hook_calls: list[str] = []
    uow = FakeCatalogUnitOfWork(repositories)
    services = build_services(
        repositories,
        lambda: uow,
        config=ResolutionConfig(),
        after_write=lambda: hook_calls.append("written"),
    )

    async def scenario() -> None:
        entity = await repositories.entities.get("product-1")
        assert entity is not None
        await services.resolver.resolve_field(entity, "description")
        assert len(services.resolver.fetcher.cache) == 1
        await services.links.enable_local_override("product-1", "unit", "cup")

    asyncio.run(scenario())

    assert len(services.resolver.fetcher.cache) == 0
    assert hook_calls == ["written"]


def test_explain_entity_reports_value_and_sync_state() -> None:
    template = AttributeTemplate(id="t-1", attribute_mappings={"unit": "data.unit"})
    repositories = make_repositories(
        entities=[
            make_linked_entity(
                attribute_mappings={"description": "description"},
                attribute_template_id="t-1",
                local_fields=["name"],
                attributes={"name": "House Latte"},
            )
        ],
        records=[make_record("m-1", description="Milky", unit="cup")],
        templates=[template],
    )
    services = _fake_services(repositories)

    explained = asyncio.run(
        explain_entity(services, "product-1", fields=["name", "description", "unit"])
    )

    assert explained.product_type is ProductType.LINKED
    by_field = {item.field_name: item for item in explained.fields}
    assert by_field["name"].resolved.source is ValueSource.LOCAL
    assert by_field["name"].sync_state is SyncState.NONE
    assert by_field["description"].resolved.value == "Milky"
    assert by_field["description"].sync_state is SyncState.LINKED_ACTIVE
    assert by_field["unit"].sync_state is SyncState.LINKED_INACTIVE


def test_explain_entity_with_inactive_source() -> None:
    repositories = make_repositories(
        entities=[make_linked_entity(attribute_mappings={"description": "description"})]
    )
    sources = [
        IntegrationSource(id=SOURCE_ID, name="Old POS", is_active=False),
        IntegrationSource(id="source-2", name="New POS"),
    ]

    explained = asyncio.run(
        explain_entity(
            _fake_services(repositories), "product-1", fields=["description"], sources=sources
        )
    )

    assert explained.fields[0].sync_state is SyncState.LINKED_INACTIVE


def test_explain_unknown_entity() -> None:
    with pytest.raises(EntityNotFoundError):
        asyncio.run(explain_entity(_fake_services(make_repositories()), "ghost"))


def test_explain_all_fields_by_default() -> None:
    repositories = make_repositories(entities=[make_entity(attributes={"name": "Tea"})])

    explained = asyncio.run(explain_entity(_fake_services(repositories), "product-1"))

    assert explained.entity_id == "product-1"
    assert explained.product_type is ProductType.CUSTOM
    assert [item.field_name for item in explained.fields] == ["name"]
    assert explained.fields[0].sync_state is SyncState.NONE


def test_sqlalchemy_services_see_their_own_writes(
    sqlite_unit_of_work: Callable[[], SqlAlchemyCatalogUnitOfWork],
) -> None:
    with sqlite_unit_of_work() as uow:
        uow.session.add(CatalogEntity(id="product-1", attributes={"description": "Local"}))
        SqlAlchemyExternalCatalog(uow.session).add_record(
            make_record("m-1", description="From POS")
        )
        asyncio.run(uow.commit())
    services = build_sqlalchemy_services(config=ResolutionConfig())

    async def scenario() -> tuple[object, object]:
        entity = await services.repositories.entities.get("product-1")
        assert entity is not None
        before = await services.resolver.resolve_field(entity, "description")
        await services.links.link_entity("product-1", "m-1", SOURCE_ID)
        entity = await services.repositories.entities.get("product-1")
        assert entity is not None
        after = await services.resolver.resolve_field(entity, "description")
        await services.aclose()
        return before.value, after.value

    assert asyncio.run(scenario()) == ("Local", "From POS")


def test_rest_backend_requires_configuration(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CATALOG_API_URL", raising=False)
    monkeypatch.delenv("CATALOG_API_KEY", raising=False)

    with pytest.raises(MissingConfigurationError):
        open_services(Backend.REST)

    with pytest.raises(ValueError, match="graphql"):
        open_services("graphql")
