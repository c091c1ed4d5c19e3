"""
Connection pools and connections for external MySQL/MariaDB databases.

One pool per host:port:database:user, health-checked before reuse.
"""

from .config import (
    ConnectionConfig,
    PoolOptions,
    ResolvedPoolOptions,
    SqlParam,
    bind_params,
    clamp_connection_limit,
)
from .connect import (
    FieldInfo,
    close_connection,
    connect,
    create_connection,
    cursor_fields,
    cursor_to_dicts,
    execute,
    set_execution_time_cap,
)
from .errors import (
    AcquireTimeoutError,
    ConnectionFailedError,
    DatabaseError,
    InvalidParameterError,
    PoolClosedError,
    PoolCreationError,
    QueryExecutionError,
    QueueLimitError,
    TransactionError,
)
from .handle import PoolHandle
from .health import health_check, ping
from .manager import PoolManager, get_pool_manager

__all__ = [
    "AcquireTimeoutError",
    "ConnectionConfig",
    "ConnectionFailedError",
    "DatabaseError",
    "FieldInfo",
    "InvalidParameterError",
    "PoolClosedError",
    "PoolCreationError",
    "PoolHandle",
    "PoolManager",
    "PoolOptions",
    "QueryExecutionError",
    "QueueLimitError",
    "ResolvedPoolOptions",
    "SqlParam",
    "TransactionError",
    "bind_params",
    "clamp_connection_limit",
    "close_connection",
    "connect",
    "create_connection",
    "cursor_fields",
    "cursor_to_dicts",
    "execute",
    "get_pool_manager",
    "health_check",
    "ping",
    "set_execution_time_cap",
]
