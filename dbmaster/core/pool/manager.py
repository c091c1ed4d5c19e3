"""
Registry of connection pools, one per connection fingerprint.

A cached pool is probed with SELECT 1 before reuse; a pool that fails the
probe is closed and replaced. Check-then-create runs under a per-fingerprint
lock so concurrent callers never build two live pools for the same key.
"""

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from .config import ConnectionConfig, PoolOptions, ResolvedPoolOptions
from .errors import AcquireTimeoutError, PoolCreationError, QueueLimitError
from .handle import PoolHandle

_log = logging.getLogger(__name__)

PoolFactory = Callable[[ConnectionConfig, ResolvedPoolOptions], PoolHandle]


@dataclass
class _KeyLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class PoolManager:
    """Owns the fingerprint -> PoolHandle registry."""

    def __init__(self, pool_factory: PoolFactory | None = None) -> None:
        self._pools: dict[str, PoolHandle] = {}
        self._lock = threading.Lock()
        self._key_locks: dict[str, _KeyLock] = {}
        self._pool_factory: PoolFactory = pool_factory or PoolHandle

    def obtain_pool(
        self,
        config: ConnectionConfig,
        options: PoolOptions | None = None,
    ) -> PoolHandle:
        """Return the healthy cached pool for *config*, or build a new one."""
        key = config.fingerprint
        with self._key_lock(key):
            handle = self._get(key)
            if handle is not None:
                try:
                    handle.probe()
                    return handle
                except (AcquireTimeoutError, QueueLimitError) as e:
                    # saturated, not dead: every connection is in use
                    _log.debug("Pool %s is busy, reusing it: %s", key, e)
                    return handle
                except Exception as e:
                    _log.warning(
                        "Existing pool %s failed health check, creating new pool: %s",
                        key,
                        e,
                    )
                    self._discard(key, handle)

            resolved = (options or PoolOptions()).resolve()
            try:
                handle = self._pool_factory(config, resolved)
            except Exception as e:
                _log.error("Failed to create connection pool for %s: %s", key, e)
                raise PoolCreationError(
                    f"Failed to create database connection: {e}"
                ) from e

            with self._lock:
                self._pools[key] = handle
            _log.info(
                "Created new connection pool for %s with limit of %d connections",
                key,
                resolved.connection_limit,
            )
            return handle

    def get_pool(self, config: ConnectionConfig) -> PoolHandle | None:
        """Registered pool for *config* without probing or creating."""
        return self._get(config.fingerprint)

    def close_pool(self, config: ConnectionConfig) -> bool:
        """Close and unregister the pool for *config*. Returns False if none was registered."""
        key = config.fingerprint
        with self._key_lock(key):
            handle = self._get(key)
            if handle is None:
                return False
            self._discard(key, handle)
            return True

    def shutdown_all(self) -> None:
        """
        Close every pool and clear the registry.

        Best-effort: a pool that fails to close is logged and skipped; the
        registry ends up empty either way.
        """
        with self._lock:
            entries = list(self._pools.items())
        closed = 0
        try:
            for key, handle in entries:
                try:
                    handle.close()
                    closed += 1
                except Exception as e:
                    _log.error("Error closing connection pool %s: %s", key, e, exc_info=True)
        finally:
            with self._lock:
                self._pools.clear()
        _log.info("All connection pools closed (%d of %d cleanly)", closed, len(entries))

    def handles(self) -> list[PoolHandle]:
        with self._lock:
            return list(self._pools.values())

    def stats(self) -> dict[str, object]:
        """Return pool statistics for monitoring."""
        handles = self.handles()
        return {
            "pools": len(handles),
            "details": [h.status() for h in handles],
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._pools)

    def __contains__(self, config: object) -> bool:
        if not isinstance(config, ConnectionConfig):
            return False
        with self._lock:
            return config.fingerprint in self._pools

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @contextmanager
    def _key_lock(self, key: str) -> Iterator[None]:
        """
        Hold the lock for *key*.

        Entries are reference counted and dropped by the last holder, so the
        map only contains fingerprints that are being worked on right now.
        """
        with self._lock:
            entry = self._key_locks.get(key)
            if entry is None:
                entry = self._key_locks[key] = _KeyLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._lock:
                entry.users -= 1
                if entry.users == 0:
                    del self._key_locks[key]

    def _get(self, key: str) -> PoolHandle | None:
        with self._lock:
            return self._pools.get(key)

    def _discard(self, key: str, handle: PoolHandle) -> None:
        """Unregister *handle* and close it; close errors are logged, not raised."""
        with self._lock:
            if self._pools.get(key) is handle:
                del self._pools[key]
        try:
            handle.close()
        except Exception as e:
            _log.error("Error ending faulty pool %s: %s", key, e)


_pool_manager: PoolManager | None = None
_pool_lock = threading.Lock()


def get_pool_manager() -> PoolManager:
    """Return the singleton PoolManager (thread-safe double-checked locking)."""
    global _pool_manager
    if _pool_manager is None:
        with _pool_lock:
            if _pool_manager is None:
                _pool_manager = PoolManager()
    return _pool_manager
