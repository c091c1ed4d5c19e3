"""
Errors raised by the pool layer.

Every error carries the operation that failed in its message and is chained
(``raise ... from e``) to the driver error that caused it.
"""


class DatabaseError(Exception):
    """Base class for pool, connection, query and transaction failures."""


class PoolCreationError(DatabaseError):
    """A pool could not be built for the given connection config."""


class ConnectionFailedError(DatabaseError):
    """A physical connection could not be opened."""


class PoolClosedError(DatabaseError):
    """Acquire was attempted on a pool that has been shut down."""


class AcquireTimeoutError(DatabaseError):
    """No connection became free within the pool's acquire timeout."""


class QueueLimitError(DatabaseError):
    """The pool is saturated and its waiting queue is full."""


class QueryExecutionError(DatabaseError):
    """A single statement failed."""


class InvalidParameterError(QueryExecutionError):
    """A bound parameter has a type that cannot be sent to the server."""


class TransactionError(DatabaseError):
    """A statement inside a transaction failed; the transaction was rolled back."""
