"""
Table data browser: paged rows with filters and sorting, single-row edits.
"""

import logging
from typing import Any

from fastapi import APIRouter

from dbmaster.api.deps import PoolManagerDep
from dbmaster.core.pool import DatabaseError
from dbmaster.engines.sql import (
    FilterCondition,
    QueryResult,
    delete_row,
    fetch_table_data,
    insert_row,
    update_row,
)
from dbmaster.schemas import (
    FieldOut,
    RowDeleteIn,
    RowInsertIn,
    RowUpdateIn,
    RowWriteOut,
    TableDataIn,
    TableDataOut,
)
from dbmaster.utils import jsonable_rows

_log = logging.getLogger(__name__)

router = APIRouter(prefix="/tables", tags=["tables"])


def _write_out(result: QueryResult, message: str) -> RowWriteOut:
    return RowWriteOut(
        success=True,
        message=message,
        affected_rows=result.affected_rows,
        last_insert_id=result.last_insert_id,
    )


@router.post("/data", response_model=TableDataOut)
def get_table_data(pools: PoolManagerDep, body: TableDataIn) -> Any:
    """One page of rows from a table."""
    config = body.connection.to_config()
    filters = [
        FilterCondition(column=f.column, operator=f.operator, value=f.value)
        for f in body.filters
    ]
    try:
        pool = pools.obtain_pool(config)
        page = fetch_table_data(
            pool,
            body.table,
            page=body.page,
            page_size=body.page_size,
            sort_column=body.sort_column,
            sort_direction=body.sort_direction,
            filters=filters,
            timeout_ms=body.timeout_ms,
        )
    except (DatabaseError, ValueError) as e:
        _log.warning("Table data for %s on %s failed: %s", body.table, config.fingerprint, e)
        return TableDataOut(success=False, message=f"Failed to retrieve table data: {e}")
    return TableDataOut(
        success=True,
        rows=jsonable_rows(page.rows),
        fields=[FieldOut(name=f.name, type=f.type) for f in page.fields],
        page=page.page,
        page_size=page.page_size,
        total=page.total,
        total_pages=page.total_pages,
    )


@router.post("/rows/insert", response_model=RowWriteOut)
def insert_table_row(pools: PoolManagerDep, body: RowInsertIn) -> Any:
    config = body.connection.to_config()
    try:
        pool = pools.obtain_pool(config)
        result = insert_row(pool, body.table, body.data)
    except (DatabaseError, ValueError) as e:
        return RowWriteOut(success=False, message=f"Failed to insert row: {e}")
    return _write_out(result, "Row inserted successfully")


@router.post("/rows/update", response_model=RowWriteOut)
def update_table_row(pools: PoolManagerDep, body: RowUpdateIn) -> Any:
    config = body.connection.to_config()
    try:
        pool = pools.obtain_pool(config)
        result = update_row(
            pool,
            body.table,
            body.primary_key_column,
            body.primary_key_value,
            body.data,
        )
    except (DatabaseError, ValueError) as e:
        return RowWriteOut(success=False, message=f"Failed to update row: {e}")
    return _write_out(result, "Row updated successfully")


@router.post("/rows/delete", response_model=RowWriteOut)
def delete_table_row(pools: PoolManagerDep, body: RowDeleteIn) -> Any:
    config = body.connection.to_config()
    try:
        pool = pools.obtain_pool(config)
        result = delete_row(
            pool, body.table, body.primary_key_column, body.primary_key_value
        )
    except (DatabaseError, ValueError) as e:
        return RowWriteOut(success=False, message=f"Failed to delete row: {e}")
    return _write_out(result, "Row deleted successfully")
