from dbmaster.core.health import check_pools, liveness_check, readiness_check
from dbmaster.core.pool import PoolManager, PoolOptions
from tests.conftest import make_handle
from tests.utils.connection import FINGERPRINT
from tests.utils.fake_db import FakeDatabase


def test_liveness_check() -> None:
    assert liveness_check() == (True, [])


def test_readiness_with_healthy_pool(manager: PoolManager, config) -> None:
    manager.obtain_pool(config)
    assert readiness_check(manager) == (True, [])


def test_readiness_with_dead_pool(manager: PoolManager, fake_db: FakeDatabase, config) -> None:
    manager.obtain_pool(config)
    fake_db.down = True
    ok, failures = readiness_check(manager)
    assert ok is False
    assert failures == [f"pool:{FINGERPRINT}"]


def test_saturated_pool_is_not_probed(fake_db: FakeDatabase, config) -> None:
    handle = make_handle(fake_db, config, PoolOptions(connection_limit=1).resolve())
    pm = PoolManager(pool_factory=lambda cfg, opts: handle)
    try:
        pm.obtain_pool(config)
        with handle.acquire():
            assert check_pools(pm) == []
            assert handle.status()["acquired"] == 1
    finally:
        pm.shutdown_all()


def test_closed_pool_is_skipped(manager: PoolManager, config) -> None:
    handle = manager.obtain_pool(config)
    handle.close()
    assert check_pools(manager) == []
