"""
Schema introspection, paged table data and single-row edits.

Table and column names are backtick-quoted identifiers; every value (filter
operands, row data, primary keys, LIMIT/OFFSET) is a bound parameter.
"""

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from dbmaster.core.pool import PoolHandle, SqlParam

from .executor import QueryResult, execute_query

# operator -> (SQL template, how the operand is bound)
FILTER_OPERATORS: dict[str, tuple[str, str | None]] = {
    "equals": ("{col} = %s", "value"),
    "notequals": ("{col} <> %s", "value"),
    "contains": ("{col} LIKE %s", "contains"),
    "startswith": ("{col} LIKE %s", "startswith"),
    "endswith": ("{col} LIKE %s", "endswith"),
    "gt": ("{col} > %s", "value"),
    "gte": ("{col} >= %s", "value"),
    "lt": ("{col} < %s", "value"),
    "lte": ("{col} <= %s", "value"),
    "isnull": ("{col} IS NULL", None),
    "isnotnull": ("{col} IS NOT NULL", None),
}


@dataclass
class FilterCondition:
    column: str
    operator: str
    value: SqlParam = None


@dataclass
class TablePage:
    rows: list[dict[str, Any]]
    fields: list[Any]
    page: int
    page_size: int
    total: int
    total_pages: int


@dataclass
class SchemaPage:
    tables: list[dict[str, Any]] = field(default_factory=list)
    page: int = 1
    page_size: int = 50
    total_tables: int = 0
    total_pages: int = 0


def quote_identifier(name: str) -> str:
    """Quote a MySQL identifier with backticks (embedded backticks are doubled)."""
    if not name or not name.strip():
        raise ValueError("Identifier must not be empty")
    if "\x00" in name:
        raise ValueError("Identifier must not contain NUL characters")
    return "`" + name.replace("`", "``") + "`"


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _placeholders(n: int) -> str:
    return ", ".join(["%s"] * n)


def build_where(filters: Sequence[FilterCondition]) -> tuple[str, list[SqlParam]]:
    """Return (`` WHERE ...`` or "", params) for *filters* joined with AND."""
    clauses: list[str] = []
    params: list[SqlParam] = []
    for f in filters:
        op = (f.operator or "").lower()
        if op not in FILTER_OPERATORS:
            raise ValueError(f"Unsupported filter operator: {f.operator}")
        template, binding = FILTER_OPERATORS[op]
        clauses.append(template.format(col=quote_identifier(f.column)))
        if binding is None:
            continue
        if binding == "value":
            params.append(f.value)
            continue
        text = _escape_like(str(f.value if f.value is not None else ""))
        if binding == "contains":
            params.append(f"%{text}%")
        elif binding == "startswith":
            params.append(f"{text}%")
        else:
            params.append(f"%{text}")
    if not clauses:
        return "", params
    return " WHERE " + " AND ".join(clauses), params


def fetch_table_data(
    pool: PoolHandle,
    table: str,
    *,
    page: int = 1,
    page_size: int = 50,
    sort_column: str | None = None,
    sort_direction: str = "asc",
    filters: Sequence[FilterCondition] = (),
    timeout_ms: int | None = None,
) -> TablePage:
    """One page of rows from *table*, plus the total row count under the same filters."""
    page = max(page, 1)
    page_size = max(page_size, 1)
    tbl = quote_identifier(table)
    where, params = build_where(filters)

    count = execute_query(
        pool, f"SELECT COUNT(*) AS count FROM {tbl}{where}", params, timeout_ms
    )
    total = int(count.rows[0]["count"]) if count.rows else 0

    sql = f"SELECT * FROM {tbl}{where}"
    if sort_column:
        direction = "DESC" if (sort_direction or "").lower() == "desc" else "ASC"
        sql += f" ORDER BY {quote_identifier(sort_column)} {direction}"
    sql += " LIMIT %s OFFSET %s"
    result = execute_query(
        pool, sql, [*params, page_size, (page - 1) * page_size], timeout_ms
    )
    return TablePage(
        rows=result.rows,
        fields=result.fields,
        page=page,
        page_size=page_size,
        total=total,
        total_pages=math.ceil(total / page_size),
    )


def insert_row(
    pool: PoolHandle,
    table: str,
    data: Mapping[str, SqlParam],
    *,
    timeout_ms: int | None = None,
) -> QueryResult:
    if not data:
        raise ValueError("Row data must not be empty")
    cols = ", ".join(quote_identifier(c) for c in data)
    sql = (
        f"INSERT INTO {quote_identifier(table)} ({cols}) "
        f"VALUES ({_placeholders(len(data))})"
    )
    return execute_query(pool, sql, list(data.values()), timeout_ms)


def update_row(
    pool: PoolHandle,
    table: str,
    primary_key_column: str,
    primary_key_value: SqlParam,
    data: Mapping[str, SqlParam],
    *,
    timeout_ms: int | None = None,
) -> QueryResult:
    if not data:
        raise ValueError("Row data must not be empty")
    assignments = ", ".join(f"{quote_identifier(c)} = %s" for c in data)
    sql = (
        f"UPDATE {quote_identifier(table)} SET {assignments} "
        f"WHERE {quote_identifier(primary_key_column)} = %s LIMIT 1"
    )
    return execute_query(
        pool, sql, [*data.values(), primary_key_value], timeout_ms
    )


def delete_row(
    pool: PoolHandle,
    table: str,
    primary_key_column: str,
    primary_key_value: SqlParam,
    *,
    timeout_ms: int | None = None,
) -> QueryResult:
    sql = (
        f"DELETE FROM {quote_identifier(table)} "
        f"WHERE {quote_identifier(primary_key_column)} = %s LIMIT 1"
    )
    return execute_query(pool, sql, [primary_key_value], timeout_ms)


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_COUNT_TABLES_SQL = (
    "SELECT COUNT(*) AS count FROM information_schema.TABLES WHERE TABLE_SCHEMA = %s"
)
_TABLES_SQL = (
    "SELECT TABLE_NAME, TABLE_TYPE, TABLE_COMMENT FROM information_schema.TABLES "
    "WHERE TABLE_SCHEMA = %s ORDER BY TABLE_NAME LIMIT %s OFFSET %s"
)
_COLUMNS_SQL = (
    "SELECT TABLE_NAME, COLUMN_NAME, DATA_TYPE, IS_NULLABLE, COLUMN_KEY, EXTRA, "
    "COLUMN_DEFAULT, COLUMN_COMMENT FROM information_schema.COLUMNS "
    "WHERE TABLE_SCHEMA = %s AND TABLE_NAME IN ({names}) "
    "ORDER BY TABLE_NAME, ORDINAL_POSITION"
)
_KEYS_SQL = (
    "SELECT TABLE_NAME, CONSTRAINT_NAME, COLUMN_NAME, REFERENCED_TABLE_NAME, "
    "REFERENCED_COLUMN_NAME FROM information_schema.KEY_COLUMN_USAGE "
    "WHERE TABLE_SCHEMA = %s AND TABLE_NAME IN ({names}) "
    "ORDER BY TABLE_NAME, CONSTRAINT_NAME, ORDINAL_POSITION"
)
_INDEXES_SQL = (
    "SELECT TABLE_NAME, INDEX_NAME, COLUMN_NAME, NON_UNIQUE, INDEX_TYPE "
    "FROM information_schema.STATISTICS "
    "WHERE TABLE_SCHEMA = %s AND TABLE_NAME IN ({names}) "
    "ORDER BY TABLE_NAME, INDEX_NAME, SEQ_IN_INDEX"
)


def fetch_schema(
    pool: PoolHandle,
    database: str,
    *,
    page: int = 1,
    page_size: int = 50,
    timeout_ms: int | None = None,
) -> SchemaPage:
    """
    Describe one page of tables in *database*: columns, primary key,
    foreign keys and indexes.
    """
    page = max(page, 1)
    page_size = max(page_size, 1)
    count = execute_query(pool, _COUNT_TABLES_SQL, [database], timeout_ms)
    total = int(count.rows[0]["count"]) if count.rows else 0

    listed = execute_query(
        pool, _TABLES_SQL, [database, page_size, (page - 1) * page_size], timeout_ms
    )
    tables: dict[str, dict[str, Any]] = {}
    for t in listed.rows:
        tables[t["TABLE_NAME"]] = {
            "name": t["TABLE_NAME"],
            "type": t["TABLE_TYPE"],
            "comment": t["TABLE_COMMENT"],
            "columns": [],
            "primary_key": [],
            "foreign_keys": [],
            "indexes": [],
        }

    if tables:
        names = list(tables)
        params: list[SqlParam] = [database, *names]
        in_list = _placeholders(len(names))

        columns = execute_query(pool, _COLUMNS_SQL.format(names=in_list), params, timeout_ms)
        for c in columns.rows:
            tables[c["TABLE_NAME"]]["columns"].append(
                {
                    "name": c["COLUMN_NAME"],
                    "type": c["DATA_TYPE"],
                    "nullable": c["IS_NULLABLE"] == "YES",
                    "default_value": c["COLUMN_DEFAULT"],
                    "comment": c["COLUMN_COMMENT"],
                    "extra": c["EXTRA"],
                    "key": c["COLUMN_KEY"],
                }
            )

        keys = execute_query(pool, _KEYS_SQL.format(names=in_list), params, timeout_ms)
        for k in keys.rows:
            entry = tables[k["TABLE_NAME"]]
            if k["CONSTRAINT_NAME"] == "PRIMARY":
                entry["primary_key"].append(k["COLUMN_NAME"])
            elif k["REFERENCED_TABLE_NAME"]:
                entry["foreign_keys"].append(
                    {
                        "name": k["CONSTRAINT_NAME"],
                        "column": k["COLUMN_NAME"],
                        "reference_table": k["REFERENCED_TABLE_NAME"],
                        "reference_column": k["REFERENCED_COLUMN_NAME"],
                    }
                )

        indexes = execute_query(pool, _INDEXES_SQL.format(names=in_list), params, timeout_ms)
        grouped: dict[tuple[str, str], dict[str, Any]] = {}
        for ix in indexes.rows:
            key = (ix["TABLE_NAME"], ix["INDEX_NAME"])
            if key not in grouped:
                grouped[key] = {
                    "name": ix["INDEX_NAME"],
                    "columns": [],
                    "unique": int(ix["NON_UNIQUE"]) == 0,
                    "type": ix["INDEX_TYPE"],
                }
                tables[ix["TABLE_NAME"]]["indexes"].append(grouped[key])
            grouped[key]["columns"].append(ix["COLUMN_NAME"])

    return SchemaPage(
        tables=list(tables.values()),
        page=page,
        page_size=page_size,
        total_tables=total,
        total_pages=math.ceil(total / page_size),
    )
