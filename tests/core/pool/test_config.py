"""Unit tests for core.pool.config: fingerprints, option defaults, parameter binding."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from dbmaster.core.config import settings
from dbmaster.core.pool import (
    ConnectionConfig,
    InvalidParameterError,
    PoolOptions,
    bind_params,
    clamp_connection_limit,
)


def test_fingerprint_is_host_port_database_user() -> None:
    cfg = ConnectionConfig(host="h", port=3307, user="u", password="p", database="d")
    assert cfg.fingerprint == "h:3307:d:u"


def test_fingerprint_ignores_password() -> None:
    a = ConnectionConfig(host="h", port=3306, user="u", password="p1", database="d")
    b = ConnectionConfig(host="h", port=3306, user="u", password="p2", database="d")
    assert a.fingerprint == b.fingerprint
    assert a != b


def test_password_not_in_repr() -> None:
    cfg = ConnectionConfig(host="h", user="u", password="hunter2", database="d")
    assert "hunter2" not in repr(cfg)


@pytest.mark.parametrize(
    ("requested", "expected"),
    [(0, 1), (1, 1), (20, 20), (21, 20), (1000, 20), (-3, 1), (7, 7)],
)
def test_connection_limit_is_clamped(requested: int, expected: int) -> None:
    assert clamp_connection_limit(requested) == expected
    assert PoolOptions(connection_limit=requested).resolve().connection_limit == expected


def test_resolve_applies_defaults() -> None:
    resolved = PoolOptions().resolve()
    assert resolved.connection_limit == settings.EXTERNAL_DB_POOL_SIZE == 5
    assert resolved.connect_timeout_ms == 30000
    assert resolved.acquire_timeout_ms == 30000
    assert resolved.queue_limit == 0


def test_resolve_keeps_overrides() -> None:
    resolved = PoolOptions(
        connection_limit=3, connect_timeout_ms=500, acquire_timeout_ms=250, queue_limit=4
    ).resolve()
    assert resolved.connection_limit == 3
    assert resolved.connect_timeout_ms == 500
    assert resolved.acquire_timeout_ms == 250
    assert resolved.queue_limit == 4


def test_from_source_accepts_dict_with_username_and_ssl() -> None:
    cfg = ConnectionConfig.from_source(
        {"host": "h", "username": "u", "database": "d", "ssl": True}
    )
    assert cfg.user == "u"
    assert cfg.port == 3306
    assert cfg.password == ""
    assert cfg.use_ssl is True


def test_from_source_requires_host() -> None:
    with pytest.raises(ValueError, match="host"):
        ConnectionConfig.from_source({"user": "u", "database": "d"})


def test_bind_params_accepts_supported_types() -> None:
    values = [None, True, 1, 1.5, Decimal("2.50"), "x", date(2024, 1, 2), datetime(2024, 1, 2, 3, 4)]
    assert bind_params(values) == tuple(values)


def test_bind_params_empty_is_none() -> None:
    assert bind_params(None) is None
    assert bind_params([]) is None


@pytest.mark.parametrize("bad", [[{"a": 1}], [[1, 2]], [object()], [b"raw"]])
def test_bind_params_rejects_other_types(bad: list) -> None:
    with pytest.raises(InvalidParameterError, match="position 0"):
        bind_params(bad)


def test_bind_params_rejects_bare_string() -> None:
    with pytest.raises(InvalidParameterError):
        bind_params("1, 2")  # type: ignore[arg-type]
