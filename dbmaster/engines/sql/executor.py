"""
Run SQL against a pool: single statements and all-or-nothing transactions.

Each call borrows exactly one connection from the pool and returns it on every
exit path. The execution-time cap is set on the borrowed session before any
statement runs, and parameters are always bound, never formatted into the SQL.
"""

import enum
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from dbmaster.core.config import settings
from dbmaster.core.pool import (
    FieldInfo,
    PoolHandle,
    QueryExecutionError,
    SqlParam,
    TransactionError,
    bind_params,
    cursor_fields,
    cursor_to_dicts,
    execute,
    set_execution_time_cap,
)

_log = logging.getLogger(__name__)


@dataclass
class Statement:
    sql: str
    params: Sequence[SqlParam] | None = None


@dataclass
class QueryResult:
    rows: list[dict[str, Any]] = field(default_factory=list)
    fields: list[FieldInfo] = field(default_factory=list)
    affected_rows: int | None = None
    last_insert_id: int | None = None


class TransactionState(str, enum.Enum):
    ACQUIRED = "acquired"
    BEGUN = "begun"
    RUNNING = "running"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    RELEASED = "released"


def _resolve_timeout(timeout_ms: int | None) -> int:
    if timeout_ms is None or timeout_ms <= 0:
        return settings.EXTERNAL_DB_STATEMENT_TIMEOUT_MS
    return int(timeout_ms)


def _read_cursor(cur: Any) -> QueryResult:
    if cur.description:
        return QueryResult(rows=cursor_to_dicts(cur), fields=cursor_fields(cur))
    return QueryResult(
        affected_rows=cur.rowcount if cur.rowcount is not None else 0,
        last_insert_id=cur.lastrowid or None,
    )


def _as_row_set(result: QueryResult) -> list[dict[str, Any]]:
    """Rows of a SELECT; for DML a single header row with the write counts."""
    if result.fields:
        return result.rows
    return [
        {
            "affected_rows": result.affected_rows,
            "last_insert_id": result.last_insert_id,
        }
    ]


def _as_statement(item: Statement | dict[str, Any]) -> Statement:
    if isinstance(item, Statement):
        return item
    return Statement(sql=item["sql"], params=item.get("params"))


def execute_query(
    pool: PoolHandle,
    sql: str,
    params: Sequence[SqlParam] | None = None,
    timeout_ms: int | None = None,
) -> QueryResult:
    """
    Execute one parameterized statement and return rows and column metadata.

    Raises QueryExecutionError (chained to the driver error) when the
    statement fails; acquisition errors from the pool propagate as raised.
    """
    bound = bind_params(params)
    timeout = _resolve_timeout(timeout_ms)
    with pool.acquire() as conn:
        try:
            cur = execute(conn, sql, bound, timeout_ms=timeout)
            try:
                return _read_cursor(cur)
            finally:
                cur.close()
        except Exception as e:
            _log.error("Error executing query on %s: %s", pool.fingerprint, e)
            raise QueryExecutionError(f"Failed to execute query: {e}") from e


def execute_in_transaction(
    pool: PoolHandle,
    statements: Sequence[Statement | dict[str, Any]],
    timeout_ms: int | None = None,
) -> list[list[dict[str, Any]]]:
    """
    Execute *statements* in order on one connection inside a single transaction.

    Returns one row set per statement, in input order. If any statement fails
    the transaction is rolled back and TransactionError is raised; a failed
    rollback is logged and never replaces the original error.
    """
    stmts = [_as_statement(s) for s in statements]
    bound = [bind_params(s.params) for s in stmts]
    timeout = _resolve_timeout(timeout_ms)

    state: TransactionState | None = None
    outcome: TransactionState | None = None
    try:
        with pool.acquire() as conn:
            state = TransactionState.ACQUIRED
            try:
                set_execution_time_cap(conn, timeout)
                conn.begin()
                state = TransactionState.BEGUN
                results: list[list[dict[str, Any]]] = []
                for stmt, params in zip(stmts, bound, strict=True):
                    state = TransactionState.RUNNING
                    cur = execute(conn, stmt.sql, params)
                    try:
                        results.append(_as_row_set(_read_cursor(cur)))
                    finally:
                        cur.close()
                conn.commit()
                state = TransactionState.COMMITTED
                return results
            except Exception as e:
                failed_state = state
                if state in (TransactionState.BEGUN, TransactionState.RUNNING):
                    try:
                        conn.rollback()
                        state = TransactionState.ROLLED_BACK
                    except Exception as rollback_error:
                        _log.error(
                            "Error rolling back transaction on %s: %s",
                            pool.fingerprint,
                            rollback_error,
                        )
                _log.error(
                    "Error executing transaction on %s (state=%s): %s",
                    pool.fingerprint,
                    failed_state.value,
                    e,
                )
                raise TransactionError(f"Transaction failed: {e}") from e
            finally:
                outcome = state
    finally:
        # runs after acquire() has handed the connection back
        if outcome is not None:
            state = TransactionState.RELEASED
            _log.debug(
                "Transaction on %s ended %s, connection %s",
                pool.fingerprint,
                outcome.value,
                state.value,
            )
