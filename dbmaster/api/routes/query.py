"""
Ad-hoc query and transaction endpoints.

Both borrow a connection from the pool for the request's connection
fingerprint. Database failures are returned as ``success=False`` with a
message; they are not raised as HTTP errors.
"""

import logging
import time
from typing import Any

from fastapi import APIRouter

from dbmaster.api.deps import PoolManagerDep
from dbmaster.core.pool import DatabaseError
from dbmaster.engines.sql import Statement, execute_in_transaction, execute_query
from dbmaster.schemas import (
    FieldOut,
    QueryExecuteIn,
    QueryExecuteOut,
    TransactionIn,
    TransactionOut,
)
from dbmaster.utils import jsonable_rows

_log = logging.getLogger(__name__)

router = APIRouter(prefix="/query", tags=["query"])


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


@router.post("/execute", response_model=QueryExecuteOut)
def execute(pools: PoolManagerDep, body: QueryExecuteIn) -> Any:
    """Run one parameterized statement."""
    start = time.perf_counter()
    config = body.connection.to_config()
    try:
        pool = pools.obtain_pool(
            config, body.pool.to_options() if body.pool else None
        )
        result = execute_query(pool, body.sql, body.params, body.timeout_ms)
    except (DatabaseError, ValueError) as e:
        _log.warning(
            "Query on %s failed after %d ms: %s", config.fingerprint, _elapsed_ms(start), e
        )
        return QueryExecuteOut(success=False, message=f"Query execution failed: {e}")

    elapsed = _elapsed_ms(start)
    _log.info(
        "Query on %s succeeded in %d ms (%d rows)",
        config.fingerprint,
        elapsed,
        len(result.rows),
    )
    return QueryExecuteOut(
        success=True,
        results=jsonable_rows(result.rows),
        fields=[FieldOut(name=f.name, type=f.type) for f in result.fields],
        affected_rows=result.affected_rows,
        last_insert_id=result.last_insert_id,
        execution_time_ms=elapsed,
    )


@router.post("/transaction", response_model=TransactionOut)
def transaction(pools: PoolManagerDep, body: TransactionIn) -> Any:
    """Run statements in order inside one transaction; any failure rolls back all of them."""
    start = time.perf_counter()
    config = body.connection.to_config()
    statements = [Statement(sql=s.sql, params=s.params) for s in body.statements]
    try:
        pool = pools.obtain_pool(
            config, body.pool.to_options() if body.pool else None
        )
        results = execute_in_transaction(pool, statements, body.timeout_ms)
    except (DatabaseError, ValueError) as e:
        _log.warning(
            "Transaction on %s failed after %d ms: %s",
            config.fingerprint,
            _elapsed_ms(start),
            e,
        )
        return TransactionOut(success=False, message=str(e))

    elapsed = _elapsed_ms(start)
    _log.info(
        "Transaction on %s committed %d statements in %d ms",
        config.fingerprint,
        len(statements),
        elapsed,
    )
    return TransactionOut(
        success=True,
        results=[jsonable_rows(rows) for rows in results],
        execution_time_ms=elapsed,
    )
