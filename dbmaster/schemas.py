"""
Pydantic schemas for the DB Master HTTP API.

Every response carries ``success`` and ``message``; database failures come
back as ``success=False`` with the error text instead of an HTTP error.
"""

from typing import Any, Literal

from pydantic import Field
from sqlmodel import SQLModel

from dbmaster.core.config import settings
from dbmaster.core.pool import ConnectionConfig, PoolOptions, SqlParam

# ---------------------------------------------------------------------------
# Connection
# ---------------------------------------------------------------------------


class ConnectionIn(SQLModel):
    """Connection parameters for an external MySQL/MariaDB database."""

    host: str = Field(..., min_length=1, max_length=255)
    port: int = Field(default=3306, ge=1, le=65535)
    database: str = Field(..., min_length=1, max_length=255)
    user: str = Field(..., min_length=1, max_length=255)
    password: str = Field(default="", max_length=512)
    use_ssl: bool = Field(
        default=False,
        description="Use TLS. Server certificates are not verified (self-signed allowed).",
    )

    def to_config(self) -> ConnectionConfig:
        return ConnectionConfig.from_source(self)


class PoolOptionsIn(SQLModel):
    """Optional pool sizing; out-of-range connection_limit is clamped to [1, 20]."""

    connection_limit: int | None = None
    connect_timeout_ms: int | None = Field(default=None, gt=0)
    acquire_timeout_ms: int | None = Field(default=None, ge=0)
    queue_limit: int | None = Field(default=None, ge=0)

    def to_options(self) -> PoolOptions:
        return PoolOptions(
            connection_limit=self.connection_limit,
            connect_timeout_ms=self.connect_timeout_ms,
            acquire_timeout_ms=self.acquire_timeout_ms,
            queue_limit=self.queue_limit,
        )


class ConnectionTestResult(SQLModel):
    """Response for POST /connections/test."""

    success: bool
    message: str


# ---------------------------------------------------------------------------
# Query / transaction
# ---------------------------------------------------------------------------


class FieldOut(SQLModel):
    name: str
    type: str


class QueryExecuteIn(SQLModel):
    """Body for POST /query/execute."""

    connection: ConnectionIn
    sql: str = Field(..., min_length=1)
    params: list[SqlParam] = Field(default_factory=list)
    timeout_ms: int | None = Field(default=None, gt=0)
    pool: PoolOptionsIn | None = None


class QueryExecuteOut(SQLModel):
    success: bool
    message: str = ""
    results: list[dict[str, Any]] = Field(default_factory=list)
    fields: list[FieldOut] = Field(default_factory=list)
    affected_rows: int | None = None
    last_insert_id: int | None = None
    execution_time_ms: int | None = None


class StatementIn(SQLModel):
    sql: str = Field(..., min_length=1)
    params: list[SqlParam] = Field(default_factory=list)


class TransactionIn(SQLModel):
    """Body for POST /query/transaction; statements run in order, all or nothing."""

    connection: ConnectionIn
    statements: list[StatementIn] = Field(..., min_length=1)
    timeout_ms: int | None = Field(default=None, gt=0)
    pool: PoolOptionsIn | None = None


class TransactionOut(SQLModel):
    success: bool
    message: str = ""
    results: list[list[dict[str, Any]]] = Field(default_factory=list)
    execution_time_ms: int | None = None


# ---------------------------------------------------------------------------
# Schema browser
# ---------------------------------------------------------------------------


class SchemaIn(SQLModel):
    """Body for POST /schema/tables."""

    connection: ConnectionIn
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=50, ge=1, le=settings.SCHEMA_MAX_PAGE_SIZE)
    timeout_ms: int | None = Field(default=None, gt=0)


class SchemaOut(SQLModel):
    success: bool
    message: str = ""
    tables: list[dict[str, Any]] = Field(default_factory=list)
    page: int = 1
    page_size: int = 50
    total_tables: int = 0
    total_pages: int = 0


# ---------------------------------------------------------------------------
# Table data
# ---------------------------------------------------------------------------


class FilterIn(SQLModel):
    column: str = Field(..., min_length=1)
    operator: Literal[
        "equals",
        "notequals",
        "contains",
        "startswith",
        "endswith",
        "gt",
        "gte",
        "lt",
        "lte",
        "isnull",
        "isnotnull",
    ]
    value: SqlParam = None


class TableDataIn(SQLModel):
    """Body for POST /tables/data."""

    connection: ConnectionIn
    table: str = Field(..., min_length=1, max_length=64)
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=50, ge=1, le=settings.TABLE_DATA_MAX_PAGE_SIZE)
    sort_column: str | None = None
    sort_direction: Literal["asc", "desc"] = "asc"
    filters: list[FilterIn] = Field(default_factory=list)
    timeout_ms: int | None = Field(default=None, gt=0)


class TableDataOut(SQLModel):
    success: bool
    message: str = ""
    rows: list[dict[str, Any]] = Field(default_factory=list)
    fields: list[FieldOut] = Field(default_factory=list)
    page: int = 1
    page_size: int = 50
    total: int = 0
    total_pages: int = 0


class RowInsertIn(SQLModel):
    connection: ConnectionIn
    table: str = Field(..., min_length=1, max_length=64)
    data: dict[str, SqlParam] = Field(..., min_length=1)


class RowUpdateIn(SQLModel):
    connection: ConnectionIn
    table: str = Field(..., min_length=1, max_length=64)
    primary_key_column: str = Field(..., min_length=1, max_length=64)
    primary_key_value: SqlParam
    data: dict[str, SqlParam] = Field(..., min_length=1)


class RowDeleteIn(SQLModel):
    connection: ConnectionIn
    table: str = Field(..., min_length=1, max_length=64)
    primary_key_column: str = Field(..., min_length=1, max_length=64)
    primary_key_value: SqlParam


class RowWriteOut(SQLModel):
    success: bool
    message: str = ""
    affected_rows: int | None = None
    last_insert_id: int | None = None


# ---------------------------------------------------------------------------
# Pools
# ---------------------------------------------------------------------------


class PoolStatsOut(SQLModel):
    pools: int
    details: list[dict[str, Any]] = Field(default_factory=list)


class Message(SQLModel):
    message: str
