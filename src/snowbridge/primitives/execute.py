"""Execute SQL on registered connections in buffered, streamed or detached mode"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from snowflake.connector.errors import Error as EngineError

from snowbridge.config.logging import TRACE
from snowbridge.errors import QueryFailed

from .materialize import describe_columns
from .result import Row
from .statements import StatementRegistry, close_cursor
from .stream import RowStream

if TYPE_CHECKING:
    from snowbridge.connection.registry import ConnectionRegistry

logger = logging.getLogger(__name__)

# Result encoding is a session attribute, so it is set by a statement of its own
RESULT_FORMAT_DIRECTIVE = "ALTER SESSION SET PYTHON_CONNECTOR_QUERY_RESULT_FORMAT = '{result_format}'"

ResultFormat = Literal["JSON", "ARROW"]


class QueryOptions(BaseModel):
    """Per-call options for query execution

    Attributes:
        result_format: Row encoding negotiated with the engine, JSON or ARROW
        row_handler: Called once per row instead of collecting rows
        timeout: Seconds to wait for the connection and for each engine call
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)

    result_format: ResultFormat = Field(default="JSON", alias="resultFormat")
    row_handler: Optional[Callable[[Row], Any]] = Field(default=None, alias="rowHandler")
    timeout: Optional[float] = Field(default=None, gt=0)

    @field_validator("result_format", mode="before")
    @classmethod
    def _upper(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value

    @classmethod
    def coerce(
        cls, options: Union["QueryOptions", dict[str, Any], None] = None, **kwargs: Any
    ) -> "QueryOptions":
        """Accept an options object, a dict, keyword arguments, or nothing"""
        if isinstance(options, QueryOptions):
            if not kwargs:
                return options
            return cls.model_validate({**options.model_dump(), **kwargs})
        data = dict(options or {})
        data.update(kwargs)
        return cls.model_validate(data)


class QueryExecutor:
    """
    Run statements on connections held by a ConnectionRegistry.

    Every mode runs the same prelude: take the connection, set the session
    result format, then execute the statement. Failures in either step raise
    QueryFailed and leave nothing registered.

    Args:
        connections: Registry the connection ids are resolved against
        statements: Registry receiving detached statements
    """

    def __init__(self, connections: ConnectionRegistry, statements: StatementRegistry) -> None:
        self._connections = connections
        self._statements = statements

    def _run(self, connection: Any, sql: str, options: QueryOptions) -> Any:
        """Set the result format and execute the statement on a fresh cursor"""
        cursor = connection.cursor()
        try:
            directive = RESULT_FORMAT_DIRECTIVE.format(result_format=options.result_format)
            cursor.execute(directive, timeout=options.timeout)
            logger.log(TRACE, f"Result format set to {options.result_format}")

            logger.log(TRACE, f"Query to run: {sql}")
            cursor.execute(sql, timeout=options.timeout)
        except EngineError as exc:
            logger.debug(f"Query failed: {exc}")
            close_cursor(cursor, "failed query")
            raise QueryFailed.from_engine(exc) from exc

        logger.debug(f"Query {getattr(cursor, 'sfqid', None)} executed")
        return cursor

    def stream(
        self,
        connection_id: str,
        sql: str,
        options: Union[QueryOptions, dict[str, Any], None] = None,
        **kwargs: Any,
    ) -> RowStream:
        """
        Execute ``sql`` and return a lazy stream of its rows.

        The connection stays reserved until the stream is exhausted or closed.

        Raises:
            NotFound: If the connection id is unknown
            QueryFailed: If the engine rejects the directive or the statement
            HandleBusy: If the connection stays busy past the timeout
        """
        opts = QueryOptions.coerce(options, **kwargs)
        lease = self._connections.lease(connection_id, opts.timeout)
        try:
            cursor = self._run(lease.connection, sql, opts)
            columns = describe_columns(cursor.description)
        except BaseException:
            lease.release()
            raise
        return RowStream(lease, cursor, columns, label=f"query {getattr(cursor, 'sfqid', None)} on {connection_id}")

    def execute(
        self,
        connection_id: str,
        sql: str,
        options: Union[QueryOptions, dict[str, Any], None] = None,
        **kwargs: Any,
    ) -> Optional[list[Row]]:
        """
        Execute ``sql`` and drain every row.

        Without a row handler all rows are returned as a list. With one, the
        handler is called once per row in order and None is returned.

        Raises:
            NotFound: If the connection id is unknown
            QueryFailed: If the engine rejects the directive or the statement
            FetchFailed: If the engine fails while rows are being read
        """
        opts = QueryOptions.coerce(options, **kwargs)
        with self.stream(connection_id, sql, opts) as rows:
            if opts.row_handler is None:
                return list(rows)
            for row in rows:
                opts.row_handler(row)
        return None

    def execute_detached(
        self,
        connection_id: str,
        sql: str,
        options: Union[QueryOptions, dict[str, Any], None] = None,
        **kwargs: Any,
    ) -> str:
        """
        Execute ``sql`` without fetching rows and register the statement.

        Returns:
            Statement id to pass to ``fetch_next`` along with the connection id

        Raises:
            ValueError: If a row handler is given
            NotFound: If the connection id is unknown
            QueryFailed: If the engine rejects the directive or the statement
        """
        opts = QueryOptions.coerce(options, **kwargs)
        if opts.row_handler is not None:
            raise ValueError("Detached execution does not take a row handler")

        with self._connections.acquire(connection_id, opts.timeout) as connection:
            cursor = self._run(connection, sql, opts)
            columns = describe_columns(cursor.description)
            return self._statements.register(connection_id, cursor, columns)
