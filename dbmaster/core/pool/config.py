"""
Connection config, pool sizing options and bound-parameter types.

A pool is identified by ``host:port:database:user``. The password is not part
of the fingerprint, so the same host/db/user reuses one pool even when the
caller later presents a different password.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Sequence

from dbmaster.core.config import settings

from .errors import InvalidParameterError

DEFAULT_PORT = 3306
MIN_CONN_LIMIT = 1

# Values that may be bound to a ``%s`` placeholder. Nothing else reaches the driver.
SqlParam = bool | int | float | Decimal | str | date | datetime | None
_SQL_PARAM_TYPES = (bool, int, float, Decimal, str, date, datetime)


def _get(source: Any, key: str) -> Any:
    """Get attribute or dict key from a dict, dataclass or Pydantic model."""
    if isinstance(source, dict):
        return source.get(key)
    return getattr(source, key, None)


@dataclass(frozen=True)
class ConnectionConfig:
    host: str
    user: str
    database: str
    password: str = field(default="", repr=False)
    port: int = DEFAULT_PORT
    use_ssl: bool = False

    @property
    def fingerprint(self) -> str:
        return f"{self.host}:{self.port}:{self.database}:{self.user}"

    @classmethod
    def from_source(cls, source: Any) -> "ConnectionConfig":
        """
        Build a config from a dict or request model.

        Accepts ``user`` or ``username`` and ``use_ssl`` or ``ssl``.
        """
        if isinstance(source, cls):
            return source
        host = _get(source, "host")
        user = _get(source, "user") or _get(source, "username")
        database = _get(source, "database")
        for name, val in [("host", host), ("user", user), ("database", database)]:
            if not val:
                raise ValueError(f"connection config must provide {name}")
        password = _get(source, "password")
        port = _get(source, "port") or DEFAULT_PORT
        use_ssl = _get(source, "use_ssl")
        if use_ssl is None:
            use_ssl = _get(source, "ssl")
        return cls(
            host=str(host),
            user=str(user),
            database=str(database),
            password=password if password is not None else "",
            port=int(port),
            use_ssl=use_ssl in (True, "true", "1", 1),
        )


@dataclass(frozen=True)
class ResolvedPoolOptions:
    """Effective pool settings after defaults and clamping."""

    connection_limit: int
    connect_timeout_ms: int
    acquire_timeout_ms: int
    queue_limit: int


@dataclass(frozen=True)
class PoolOptions:
    """Optional per-pool overrides; ``None`` means use the configured default."""

    connection_limit: int | None = None
    connect_timeout_ms: int | None = None
    acquire_timeout_ms: int | None = None
    queue_limit: int | None = None

    def resolve(self) -> ResolvedPoolOptions:
        return ResolvedPoolOptions(
            connection_limit=clamp_connection_limit(self.connection_limit),
            connect_timeout_ms=self.connect_timeout_ms
            or settings.EXTERNAL_DB_CONNECT_TIMEOUT_MS,
            acquire_timeout_ms=self.acquire_timeout_ms
            or settings.EXTERNAL_DB_ACQUIRE_TIMEOUT_MS,
            queue_limit=max(
                self.queue_limit
                if self.queue_limit is not None
                else settings.EXTERNAL_DB_QUEUE_LIMIT,
                0,
            ),
        )


def clamp_connection_limit(requested: int | None) -> int:
    """Silently clamp to [1, EXTERNAL_DB_POOL_MAX_SIZE]; ``None`` takes the default size."""
    limit = settings.EXTERNAL_DB_POOL_SIZE if requested is None else requested
    return min(max(limit, MIN_CONN_LIMIT), settings.EXTERNAL_DB_POOL_MAX_SIZE)


def bind_params(params: Sequence[Any] | None) -> tuple[SqlParam, ...] | None:
    """
    Validate positional parameters and return them as a tuple.

    Returns None when there are no parameters so the driver does not apply
    ``%`` formatting to SQL that takes none.
    """
    if not params:
        return None
    if isinstance(params, (str, bytes, dict)):
        raise InvalidParameterError(
            f"Query parameters must be a list, got {type(params).__name__}"
        )
    for i, value in enumerate(params):
        if value is not None and not isinstance(value, _SQL_PARAM_TYPES):
            raise InvalidParameterError(
                f"Unsupported parameter type at position {i}: {type(value).__name__}"
            )
    return tuple(params)
