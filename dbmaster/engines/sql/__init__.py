"""
SQL execution against external MySQL/MariaDB pools.

Exports: execute_query, execute_in_transaction and the data browser helpers.
"""

from dbmaster.engines.sql.browse import (
    FilterCondition,
    SchemaPage,
    TablePage,
    delete_row,
    fetch_schema,
    fetch_table_data,
    insert_row,
    quote_identifier,
    update_row,
)
from dbmaster.engines.sql.executor import (
    QueryResult,
    Statement,
    TransactionState,
    execute_in_transaction,
    execute_query,
)

__all__ = [
    "FilterCondition",
    "QueryResult",
    "SchemaPage",
    "Statement",
    "TablePage",
    "TransactionState",
    "delete_row",
    "execute_in_transaction",
    "execute_query",
    "fetch_schema",
    "fetch_table_data",
    "insert_row",
    "quote_identifier",
    "update_row",
]
