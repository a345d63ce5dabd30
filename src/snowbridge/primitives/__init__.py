"""Primitives for handles, row materialization, execution and pagination"""

from snowbridge.primitives.identifiers import IdentifierGenerator, generate_id
from snowbridge.primitives.guard import HandleGuard
from snowbridge.primitives.result import Page, Row, UnsupportedValue
from snowbridge.primitives.materialize import (
    ColumnDescriptor,
    ColumnKind,
    classify,
    describe_columns,
    materialize_row,
    materialize_value,
)
from snowbridge.primitives.statements import (
    FetchOutcome,
    FetchStatus,
    StatementKey,
    StatementRegistry,
)
from snowbridge.primitives.stream import RowStream
from snowbridge.primitives.execute import QueryExecutor, QueryOptions

__all__ = [
    # Handles
    "IdentifierGenerator",
    "generate_id",
    "HandleGuard",
    # Results
    "Page",
    "Row",
    "UnsupportedValue",
    # Materialization
    "ColumnDescriptor",
    "ColumnKind",
    "classify",
    "describe_columns",
    "materialize_row",
    "materialize_value",
    # Pagination
    "FetchOutcome",
    "FetchStatus",
    "StatementKey",
    "StatementRegistry",
    # Execution
    "RowStream",
    "QueryExecutor",
    "QueryOptions",
]
