"""Shared fixtures for catalog tests.

Each test gets its own SQLite database file so that committed state can
be checked from a second, independent session.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test-catalog.db")

from collections.abc import AsyncGenerator, AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from shopcatalog.catalog.service import CatalogService
from shopcatalog.infrastructure.asset_store import LocalAssetStore
from shopcatalog.infrastructure.database import build_engine, build_session_factory, create_tables


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create an engine over a fresh SQLite file with all tables."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def asset_store(tmp_path) -> LocalAssetStore:
    return LocalAssetStore(tmp_path / "assets")


@pytest.fixture
def service(session: AsyncSession, asset_store: LocalAssetStore) -> CatalogService:
    """Create catalog service with a small image size limit."""
    return CatalogService(session, asset_store=asset_store, currency="USD", max_image_bytes=1024)


@pytest.fixture
def reader(session_factory, asset_store) -> Callable[[], Any]:
    """Open a service on a separate session to observe committed state."""

    @asynccontextmanager
    async def open_reader() -> AsyncIterator[CatalogService]:
        async with session_factory() as other:
            yield CatalogService(other, asset_store=asset_store)

    return open_reader


@pytest_asyncio.fixture
async def categories(service: CatalogService) -> dict[str, Any]:
    """Create the default tax and shipping categories."""
    return {
        "tax": await service.create_tax_category("Default"),
        "shipping": await service.create_shipping_category("Default"),
    }


@pytest_asyncio.fixture
async def armour(service: CatalogService, categories: dict[str, Any]) -> dict[str, Any]:
    """Chest Armour with the armour-size axis (Small/Medium/Large) assigned."""
    product = await service.create_product(
        "Chest Armour",
        "Riveted steel breastplate",
        None,
        categories["tax"].id,
        categories["shipping"].id,
        1599,
        sku="CHE-00001",
    )
    size = await service.create_option_type("armour-size", "Size", 1)
    values = {
        name: await service.create_option_value(size.id, name, name[0], position)
        for position, name in enumerate(["Small", "Medium", "Large"], start=1)
    }
    await service.assign_option_types(product.id, [size.id])
    return {"product": product, "size": size, **values}
