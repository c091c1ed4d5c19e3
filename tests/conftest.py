from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from dbmaster.api.deps import get_pools
from dbmaster.core.pool import (
    ConnectionConfig,
    PoolHandle,
    PoolManager,
    PoolOptions,
    ResolvedPoolOptions,
)
from dbmaster.main import app
from tests.utils.fake_db import FakeDatabase


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def config() -> ConnectionConfig:
    return ConnectionConfig(
        host="db.local", port=3306, user="app", password="secret", database="shop"
    )


def make_handle(
    db: FakeDatabase,
    config: ConnectionConfig,
    options: ResolvedPoolOptions | None = None,
) -> PoolHandle:
    return PoolHandle(
        config,
        options or PoolOptions().resolve(),
        connection_factory=db.connect,
    )


@pytest.fixture
def pool(fake_db: FakeDatabase, config: ConnectionConfig) -> Generator[PoolHandle, None, None]:
    handle = make_handle(fake_db, config)
    yield handle
    handle.close()


@pytest.fixture
def manager(fake_db: FakeDatabase) -> Generator[PoolManager, None, None]:
    pm = PoolManager(
        pool_factory=lambda cfg, opts: PoolHandle(
            cfg, opts, connection_factory=fake_db.connect
        )
    )
    yield pm
    pm.shutdown_all()


@pytest.fixture
def client(manager: PoolManager) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_pools] = lambda: manager
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
