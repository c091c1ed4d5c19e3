"""PoolHandle tests against the in-memory database."""

import threading
import time

import pymysql
import pytest

from dbmaster.core.config import settings
from dbmaster.core.pool import (
    AcquireTimeoutError,
    ConnectionConfig,
    ConnectionFailedError,
    PoolClosedError,
    PoolHandle,
    PoolOptions,
    QueueLimitError,
)
from tests.conftest import make_handle
from tests.utils.fake_db import FakeDatabase


def _wait_for(predicate, timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        time.sleep(0.01)


def test_acquire_and_release_are_counted(pool: PoolHandle) -> None:
    with pool.acquire() as conn:
        assert pool.status()["checked_out"] == 1
        cur = conn.cursor()
        cur.execute("SELECT 1")
        assert cur.fetchall() == [(1,)]
    status = pool.status()
    assert status["acquired"] == status["released"] == 1
    assert status["checked_out"] == 0
    assert status["checked_in"] == 1


def test_connection_is_reused(pool: PoolHandle, fake_db: FakeDatabase) -> None:
    for _ in range(3):
        with pool.acquire():
            pass
    assert fake_db.opened == 1


def test_release_happens_when_block_raises(pool: PoolHandle) -> None:
    with pytest.raises(RuntimeError):
        with pool.acquire():
            raise RuntimeError("boom")
    status = pool.status()
    assert status["acquired"] == status["released"] == 1
    assert status["checked_out"] == 0


def test_disconnect_error_discards_connection(
    pool: PoolHandle, fake_db: FakeDatabase
) -> None:
    with pytest.raises(pymysql.err.OperationalError):
        with pool.acquire():
            raise pymysql.err.OperationalError(2013, "Lost connection")
    assert fake_db.connections[0].closed
    with pool.acquire():
        pass
    assert fake_db.opened == 2


def test_sql_error_keeps_connection(pool: PoolHandle, fake_db: FakeDatabase) -> None:
    with pytest.raises(pymysql.err.ProgrammingError):
        with pool.acquire() as conn:
            conn.cursor().execute("SELEC nonsense")
    with pool.acquire():
        pass
    assert fake_db.opened == 1
    assert not fake_db.connections[0].closed


def test_acquire_times_out_when_pool_is_exhausted(
    fake_db: FakeDatabase, config: ConnectionConfig
) -> None:
    handle = make_handle(
        fake_db, config, PoolOptions(connection_limit=1, acquire_timeout_ms=50).resolve()
    )
    try:
        with handle.acquire():
            with pytest.raises(AcquireTimeoutError, match="50 ms"):
                with handle.acquire():
                    pass
            assert handle.status()["waiting"] == 0
            assert handle.status()["borrowers"] == 1
        assert handle.status()["checked_out"] == 0
        assert handle.status()["borrowers"] == 0
    finally:
        handle.close()


def test_queue_limit_rejects_extra_waiters(
    fake_db: FakeDatabase, config: ConnectionConfig
) -> None:
    handle = make_handle(
        fake_db,
        config,
        PoolOptions(connection_limit=1, acquire_timeout_ms=5000, queue_limit=1).resolve(),
    )
    waiter_got_connection = threading.Event()

    def waiter() -> None:
        with handle.acquire():
            waiter_got_connection.set()

    try:
        with handle.acquire():
            t = threading.Thread(target=waiter)
            t.start()
            _wait_for(lambda: handle.status()["waiting"] == 1)
            with pytest.raises(QueueLimitError):
                with handle.acquire():
                    pass
        t.join(timeout=5)
        assert waiter_got_connection.is_set()
        assert handle.status()["waiting"] == 0
    finally:
        handle.close()


def test_queue_limit_holds_for_simultaneous_borrowers(
    fake_db: FakeDatabase, config: ConnectionConfig
) -> None:
    def slow_connect(cfg, **kwargs):
        time.sleep(0.2)
        return fake_db.connect(cfg)

    handle = PoolHandle(
        config,
        PoolOptions(connection_limit=1, acquire_timeout_ms=5000, queue_limit=1).resolve(),
        connection_factory=slow_connect,
    )
    barrier = threading.Barrier(5)
    lock = threading.Lock()
    served = 0
    rejected = 0

    def borrower() -> None:
        nonlocal served, rejected
        barrier.wait()
        try:
            with handle.acquire():
                time.sleep(0.05)
            with lock:
                served += 1
        except QueueLimitError:
            with lock:
                rejected += 1

    try:
        threads = [threading.Thread(target=borrower) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)
        assert served == 2
        assert rejected == 3
        status = handle.status()
        assert status["waiting"] == 0
        assert status["borrowers"] == 0
        assert status["acquired"] == status["released"] == 2
    finally:
        handle.close()


def test_connection_limit_is_never_exceeded(
    fake_db: FakeDatabase, config: ConnectionConfig
) -> None:
    handle = make_handle(fake_db, config, PoolOptions(connection_limit=2).resolve())
    peak = 0
    lock = threading.Lock()

    def worker() -> None:
        nonlocal peak
        with handle.acquire():
            with lock:
                peak = max(peak, handle.status()["checked_out"])
            time.sleep(0.01)

    try:
        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert peak <= 2
        assert fake_db.opened <= 2
        status = handle.status()
        assert status["acquired"] == status["released"] == 8
    finally:
        handle.close()


def test_closed_pool_refuses_borrowers(pool: PoolHandle) -> None:
    pool.close()
    assert pool.closed
    with pytest.raises(PoolClosedError):
        with pool.acquire():
            pass


def test_close_is_idempotent(pool: PoolHandle) -> None:
    pool.close()
    pool.close()
    assert pool.status()["closed"] is True


def test_connection_borrowed_during_close_is_closed_on_return(
    pool: PoolHandle, fake_db: FakeDatabase
) -> None:
    with pool.acquire():
        pool.close()
    assert fake_db.connections[0].closed
    assert pool.status()["released"] == 1


def test_connect_failure_raises_connection_failed(
    fake_db: FakeDatabase, config: ConnectionConfig
) -> None:
    fake_db.fail_connect = pymysql.err.OperationalError(1045, "Access denied")
    handle = make_handle(fake_db, config)
    try:
        with pytest.raises(ConnectionFailedError, match="Access denied"):
            with handle.acquire():
                pass
        assert handle.status()["checked_out"] == 0
        assert handle.status()["borrowers"] == 0
    finally:
        handle.close()


def test_probe_runs_select_one(pool: PoolHandle, fake_db: FakeDatabase) -> None:
    pool.probe()
    assert "SELECT 1" in fake_db.connections[0].statements()


def test_probe_fails_when_server_is_down(pool: PoolHandle, fake_db: FakeDatabase) -> None:
    pool.probe()
    fake_db.down = True
    with pytest.raises(pymysql.err.OperationalError):
        pool.probe()
    assert fake_db.connections[0].closed


def test_idle_connection_failing_keepalive_is_replaced(
    pool: PoolHandle, fake_db: FakeDatabase, monkeypatch: pytest.MonkeyPatch
) -> None:
    with pool.acquire():
        pass
    monkeypatch.setattr(settings, "EXTERNAL_DB_KEEPALIVE_IDLE_SEC", -1.0)
    fake_db.fail_ping = 1
    with pool.acquire() as conn:
        conn.cursor().execute("SELECT 1")
    assert fake_db.opened == 2
    assert fake_db.connections[0].closed
    assert not fake_db.connections[1].closed


def test_factory_receives_connect_timeout(config: ConnectionConfig) -> None:
    calls = []
    db = FakeDatabase()

    def factory(cfg, **kwargs):
        calls.append((cfg, kwargs))
        return db.connect(cfg)

    handle = PoolHandle(
        config, PoolOptions(connect_timeout_ms=1234).resolve(), connection_factory=factory
    )
    try:
        with handle.acquire():
            pass
    finally:
        handle.close()
    assert calls == [(config, {"connect_timeout_ms": 1234})]
