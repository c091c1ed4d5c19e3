"""
Connection test endpoint.

Opens a standalone (not pooled) connection, pings it and closes it.
"""

import logging
from typing import Any

from fastapi import APIRouter

from dbmaster.core.pool import (
    DatabaseError,
    close_connection,
    create_connection,
    ping,
)
from dbmaster.schemas import ConnectionIn, ConnectionTestResult

_log = logging.getLogger(__name__)

router = APIRouter(prefix="/connections", tags=["connections"])


def _test_connection(body: ConnectionIn) -> tuple[bool, str]:
    """Connect, run SELECT 1, close."""
    try:
        config = body.to_config()
        conn = create_connection(config)
        try:
            ping(conn)
        finally:
            close_connection(conn)
        return True, "Connection successful"
    except (DatabaseError, ValueError) as e:
        _log.warning("Connection test failed: %s", e)
        return False, f"Connection failed: {e}"
    except Exception as e:
        _log.error("Connection test failed: %s", e, exc_info=True)
        return False, f"Connection failed: {e}"


@router.post("/test", response_model=ConnectionTestResult)
def test_connection(body: ConnectionIn) -> Any:
    """Test connection parameters before saving them."""
    ok, message = _test_connection(body)
    return ConnectionTestResult(success=ok, message=message)
