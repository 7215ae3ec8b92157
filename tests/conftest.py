from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import httpx
import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from kitchen_command.api import create_app, provide_report_generator
from kitchen_command.client import RecordStoreClient
from kitchen_command.config import Settings
from kitchen_command.database import Base, create_engine, create_session_factory, get_session
from kitchen_command.inventory import InventoryStateManager
from kitchen_command.management import seed_database
from kitchen_command.reports import SalesReportGenerator
from kitchen_command.snapshot import LocalSnapshotCache
from kitchen_command.sync import SyncOutbox


async def _no_sleep(delay: float) -> None:
    return None


@pytest.fixture()
async def app(tmp_path: Path) -> AsyncIterator[FastAPI]:
    db_path = tmp_path / "test.db"
    test_settings = Settings(
        database_url=f"sqlite+aiosqlite:///{db_path}",
        environment="test",
        app_name="Test Record Store",
        report_api_key="",
    )

    engine = create_engine(test_settings)
    async_session = create_session_factory(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async def override_get_session() -> AsyncIterator[AsyncSession]:
        async with async_session() as session:
            yield session

    app = create_app(test_settings)
    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[provide_report_generator] = lambda: SalesReportGenerator(None)
    app.state.test_engine = engine

    yield app

    await engine.dispose()


@pytest.fixture()
async def seeded_app(app: FastAPI) -> FastAPI:
    await seed_database(app.state.test_engine)
    return app


@pytest.fixture()
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture()
async def store_client(seeded_app: FastAPI) -> AsyncIterator[RecordStoreClient]:
    store = RecordStoreClient("http://test", transport=ASGITransport(app=seeded_app))
    yield store
    await store.aclose()


@pytest.fixture()
def snapshot(tmp_path: Path) -> LocalSnapshotCache:
    return LocalSnapshotCache(tmp_path / "products.json")


@pytest.fixture()
async def manager(
    store_client: RecordStoreClient, snapshot: LocalSnapshotCache
) -> InventoryStateManager:
    outbox = SyncOutbox(store_client, sleep=_no_sleep)
    manager = InventoryStateManager(client=store_client, snapshot=snapshot, sync_outbox=outbox)
    await manager.initialize()
    return manager


@pytest.fixture()
def make_store():
    """Build record store clients whose requests are answered by ``handler``."""

    def factory(handler) -> RecordStoreClient:
        return RecordStoreClient("http://store", transport=httpx.MockTransport(handler))

    return factory


@pytest.fixture()
def no_sleep():
    return _no_sleep
