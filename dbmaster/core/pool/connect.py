"""
MySQL/MariaDB connection helpers.

Opens pymysql connections from a ConnectionConfig, applies the server-side
execution-time cap, and turns cursors into rows and column metadata.
"""

import logging
import ssl
from dataclasses import dataclass
from typing import Any

import pymysql
from pymysql.constants import FIELD_TYPE

from dbmaster.core.config import settings

from .config import ConnectionConfig, SqlParam
from .errors import ConnectionFailedError

_log = logging.getLogger(__name__)

_FIELD_TYPE_NAMES: dict[int, str] = {}
for _name, _value in vars(FIELD_TYPE).items():
    # CHAR and INTERVAL are aliases of TINY and ENUM; keep the first name
    if _name.isupper() and isinstance(_value, int):
        _FIELD_TYPE_NAMES.setdefault(_value, _name)


@dataclass(frozen=True)
class FieldInfo:
    name: str
    type: str


def _ssl_context() -> ssl.SSLContext:
    """TLS without certificate verification so self-signed server certs are accepted."""
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


def connect(
    config: ConnectionConfig,
    *,
    connect_timeout_ms: int | None = None,
    charset: str | None = None,
) -> Any:
    """
    Open a raw pymysql connection in autocommit mode.

    Transactions are opened explicitly with ``conn.begin()``. Driver errors
    propagate unchanged; callers decide how to wrap them.
    """
    timeout_ms = connect_timeout_ms or settings.EXTERNAL_DB_CONNECT_TIMEOUT_MS
    return pymysql.connect(
        host=config.host,
        port=config.port,
        user=config.user,
        password=config.password,
        database=config.database,
        charset=charset or settings.EXTERNAL_DB_CHARSET,
        connect_timeout=timeout_ms / 1000,
        ssl=_ssl_context() if config.use_ssl else None,
        autocommit=True,
    )


def create_connection(
    config: ConnectionConfig,
    *,
    connect_timeout_ms: int | None = None,
    charset: str | None = None,
) -> Any:
    """
    Open a standalone (not pool-backed) connection with safe session settings.

    Sets the strict ``sql_mode`` and the default execution-time cap. Any
    failure closes the half-open connection and raises ConnectionFailedError.
    """
    conn = None
    try:
        conn = connect(
            config, connect_timeout_ms=connect_timeout_ms, charset=charset
        )
        cur = conn.cursor()
        try:
            cur.execute("SET SESSION sql_mode = %s", (settings.EXTERNAL_DB_SQL_MODE,))
        finally:
            cur.close()
        set_execution_time_cap(conn, settings.EXTERNAL_DB_STATEMENT_TIMEOUT_MS)
        return conn
    except Exception as e:
        _log.error("Error creating database connection to %s: %s", config.fingerprint, e)
        if conn is not None:
            close_connection(conn)
        raise ConnectionFailedError(f"Failed to connect to database: {e}") from e


def close_connection(conn: Any) -> None:
    """Close a standalone connection. The connection counts as closed even if close fails."""
    try:
        conn.close()
    except Exception as e:
        _log.error("Error closing database connection: %s", e)


def is_mariadb(conn: Any) -> bool:
    get_server_info = getattr(conn, "get_server_info", None)
    if get_server_info is None:
        return False
    try:
        return "mariadb" in str(get_server_info()).lower()
    except Exception:
        return False


def set_execution_time_cap(conn: Any, timeout_ms: int) -> None:
    """
    Cap statement run time on this session; the server aborts anything slower.

    MySQL: max_execution_time (ms). MariaDB: max_statement_time (seconds).
    """
    cur = conn.cursor()
    try:
        if is_mariadb(conn):
            cur.execute("SET SESSION max_statement_time = %s", (timeout_ms / 1000,))
        else:
            cur.execute("SET SESSION max_execution_time = %s", (int(timeout_ms),))
    finally:
        cur.close()


def execute(
    conn: Any,
    sql: str,
    params: tuple[SqlParam, ...] | None = None,
    *,
    timeout_ms: int | None = None,
) -> Any:
    """
    Execute SQL with bound parameters and return the open cursor.

    When timeout_ms is set, the execution-time cap is applied first. The
    caller owns the returned cursor and must close it.
    """
    if timeout_ms is not None and timeout_ms > 0:
        set_execution_time_cap(conn, timeout_ms)

    cur = conn.cursor()
    try:
        if params is not None:
            cur.execute(sql, params)
        else:
            cur.execute(sql)
    except Exception:
        cur.close()
        raise
    return cur


def cursor_to_dicts(cursor: Any) -> list[dict[str, Any]]:
    """Convert cursor result to list of dicts."""
    desc = cursor.description
    if not desc:
        return []
    names = [d[0] for d in desc]
    return [dict(zip(names, row, strict=True)) for row in cursor.fetchall()]


def cursor_fields(cursor: Any) -> list[FieldInfo]:
    """Column metadata (name and MySQL type name) for the cursor's result set."""
    desc = cursor.description
    if not desc:
        return []
    return [
        FieldInfo(name=d[0], type=_FIELD_TYPE_NAMES.get(d[1], str(d[1])))
        for d in desc
    ]
