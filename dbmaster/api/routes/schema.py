import logging
from typing import Any

from fastapi import APIRouter

from dbmaster.api.deps import PoolManagerDep
from dbmaster.core.pool import DatabaseError
from dbmaster.engines.sql import fetch_schema
from dbmaster.schemas import SchemaIn, SchemaOut

_log = logging.getLogger(__name__)

router = APIRouter(prefix="/schema", tags=["schema"])


@router.post("/tables", response_model=SchemaOut)
def list_tables(pools: PoolManagerDep, body: SchemaIn) -> Any:
    """Describe one page of tables (columns, keys, indexes) of the connection's database."""
    config = body.connection.to_config()
    try:
        pool = pools.obtain_pool(config)
        schema = fetch_schema(
            pool,
            config.database,
            page=body.page,
            page_size=body.page_size,
            timeout_ms=body.timeout_ms,
        )
    except (DatabaseError, ValueError) as e:
        _log.warning("Schema fetch on %s failed: %s", config.fingerprint, e)
        return SchemaOut(success=False, message=f"Failed to retrieve schema: {e}")
    return SchemaOut(
        success=True,
        tables=schema.tables,
        page=schema.page,
        page_size=schema.page_size,
        total_tables=schema.total_tables,
        total_pages=schema.total_pages,
    )
