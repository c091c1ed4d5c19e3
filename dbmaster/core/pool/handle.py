"""
A bounded pool of physical connections for one connection fingerprint.

Wraps sqlalchemy's QueuePool (pool_size = connection limit, no overflow) so
borrowers wait up to the acquire timeout for a free connection. Adds an
optional cap on how many borrowers may wait, keep-alive pings for idle
connections, per-connection error logging and borrow/return accounting.
"""

import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

import pymysql
from sqlalchemy import event
from sqlalchemy import exc as sa_exc
from sqlalchemy.pool import QueuePool

from dbmaster.core.config import settings

from .config import ConnectionConfig, ResolvedPoolOptions
from .connect import connect
from .errors import (
    AcquireTimeoutError,
    ConnectionFailedError,
    DatabaseError,
    PoolClosedError,
    QueueLimitError,
)
from .health import ping

_log = logging.getLogger(__name__)

# MySQL client errors meaning the session is gone and must not be reused
_DISCONNECT_CODES = frozenset({2006, 2013, 2014, 2045, 2055, 4031})

ConnectionFactory = Callable[..., Any]


def _is_disconnect(exc: BaseException | None) -> bool:
    while exc is not None:
        if isinstance(exc, pymysql.err.InterfaceError):
            return True
        if isinstance(exc, pymysql.err.OperationalError):
            code = exc.args[0] if exc.args else None
            if code in _DISCONNECT_CODES:
                return True
        exc = exc.__cause__
    return False


class PoolHandle:
    """Pool for a single host:port:database:user."""

    def __init__(
        self,
        config: ConnectionConfig,
        options: ResolvedPoolOptions,
        *,
        connection_factory: ConnectionFactory | None = None,
    ) -> None:
        self.config = config
        self.fingerprint = config.fingerprint
        self.connection_limit = options.connection_limit
        self.connect_timeout_ms = options.connect_timeout_ms
        self.acquire_timeout_ms = options.acquire_timeout_ms
        self.queue_limit = options.queue_limit
        self._factory = connection_factory or connect

        self._lock = threading.Lock()
        self._closed = False
        self._waiting = 0
        # borrowers holding or waiting for a connection
        self._borrowers = 0
        self._acquired = 0
        self._released = 0

        self._pool = QueuePool(
            self._create_connection,
            pool_size=self.connection_limit,
            max_overflow=0,
            timeout=self.acquire_timeout_ms / 1000,
            recycle=settings.EXTERNAL_DB_POOL_RECYCLE_SEC,
            reset_on_return="rollback",
        )
        event.listen(self._pool, "connect", self._on_connect)
        event.listen(self._pool, "checkout", self._on_checkout)
        event.listen(self._pool, "checkin", self._on_checkin)
        event.listen(self._pool, "invalidate", self._on_invalidate)

    def __repr__(self) -> str:
        return f"PoolHandle({self.fingerprint!r}, limit={self.connection_limit})"

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Borrowing
    # ------------------------------------------------------------------

    @contextmanager
    def acquire(self) -> Iterator[Any]:
        """
        Borrow one connection for the duration of the ``with`` block.

        The connection goes back to the pool exactly once on every exit path.
        Connections that hit a disconnect error are discarded instead of
        being reused.
        """
        conn = self._checkout()
        try:
            yield conn
        except BaseException as e:
            if _is_disconnect(e) and conn.is_valid:
                conn.invalidate(e)
            raise
        finally:
            self._checkin(conn)

    def probe(self) -> None:
        """Liveness probe: borrow a connection and run SELECT 1. Raises on failure."""
        with self.acquire() as conn:
            ping(conn)

    def _checkout(self) -> Any:
        queued = self._enter_queue()
        try:
            conn = self._pool.connect()
        except BaseException as e:
            with self._lock:
                self._borrowers -= 1
                if queued:
                    self._waiting -= 1
            if isinstance(e, sa_exc.TimeoutError):
                raise AcquireTimeoutError(
                    f"Timed out after {self.acquire_timeout_ms} ms waiting for a "
                    f"connection from pool {self.fingerprint}"
                ) from e
            if isinstance(e, Exception) and not isinstance(e, DatabaseError):
                raise ConnectionFailedError(f"Failed to connect to database: {e}") from e
            raise
        with self._lock:
            if queued:
                self._waiting -= 1
            self._acquired += 1
        return conn

    def _enter_queue(self) -> bool:
        """
        Reserve a borrower slot; return True when the caller has to wait.

        The slot is taken in the same critical section as the check, so a
        burst of callers cannot all see a free pool and overrun the queue.
        """
        with self._lock:
            if self._closed:
                raise PoolClosedError(f"Pool {self.fingerprint} is closed")
            queued = self._borrowers >= self.connection_limit
            if (
                queued
                and self.queue_limit
                and self._borrowers >= self.connection_limit + self.queue_limit
            ):
                raise QueueLimitError(
                    f"Queue limit of {self.queue_limit} reached for pool {self.fingerprint}"
                )
            self._borrowers += 1
            if queued:
                self._waiting += 1
            return queued

    def _checkin(self, conn: Any) -> None:
        try:
            if self._closed and conn.is_valid:
                # pool was shut down while borrowed: close the socket instead of returning it
                conn.invalidate()
            conn.close()
        finally:
            with self._lock:
                self._borrowers -= 1
                self._released += 1

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Refuse new borrowers and close idle connections; borrowed ones close on return."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._pool.dispose()
        _log.info("Closed connection pool %s", self.fingerprint)

    def status(self) -> dict[str, Any]:
        with self._lock:
            return {
                "fingerprint": self.fingerprint,
                "connection_limit": self.connection_limit,
                "queue_limit": self.queue_limit,
                "checked_out": self._pool.checkedout(),
                "checked_in": self._pool.checkedin(),
                "waiting": self._waiting,
                "borrowers": self._borrowers,
                "acquired": self._acquired,
                "released": self._released,
                "closed": self._closed,
            }

    # ------------------------------------------------------------------
    # Pool events
    # ------------------------------------------------------------------

    def _create_connection(self) -> Any:
        return self._factory(self.config, connect_timeout_ms=self.connect_timeout_ms)

    def _on_connect(self, dbapi_connection: Any, connection_record: Any) -> None:
        connection_record.info["last_used"] = time.monotonic()
        _log.debug("Opened connection for pool %s", self.fingerprint)

    def _on_checkout(
        self, dbapi_connection: Any, connection_record: Any, connection_proxy: Any
    ) -> None:
        """Keep-alive: ping connections that sat idle; a dead one is replaced by the pool."""
        last_used = connection_record.info.get("last_used")
        idle_sec = time.monotonic() - last_used if last_used is not None else 0.0
        if idle_sec <= settings.EXTERNAL_DB_KEEPALIVE_IDLE_SEC:
            return
        try:
            dbapi_connection.ping(reconnect=False)
        except Exception as e:
            _log.warning(
                "Idle connection in pool %s failed keep-alive ping: %s",
                self.fingerprint,
                e,
            )
            raise sa_exc.DisconnectionError() from e

    def _on_checkin(self, dbapi_connection: Any, connection_record: Any) -> None:
        connection_record.info["last_used"] = time.monotonic()

    def _on_invalidate(
        self, dbapi_connection: Any, connection_record: Any, exception: Any
    ) -> None:
        if exception is not None:
            _log.error("Connection error in pool %s: %s", self.fingerprint, exception)
