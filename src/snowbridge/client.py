"""Client exposing the snowbridge operation surface"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Generator, Optional, Union

import snowflake.connector

from snowbridge.config import init as init_logging
from snowbridge.config import load_profile
from snowbridge.connection import ConnectionParams, ConnectionRegistry
from snowbridge.primitives import (
    IdentifierGenerator,
    Page,
    QueryExecutor,
    QueryOptions,
    Row,
    RowStream,
    StatementRegistry,
)

logger = logging.getLogger(__name__)

Options = Union[QueryOptions, dict[str, Any], None]


class Client:
    """Connections, queries and paginated results behind opaque string handles

    A Client owns its connection and statement registries; nothing is shared
    between two clients. All methods may be called from several threads.
    Operations on one handle never interleave: a second caller waits for
    the first, or raises HandleBusy once its ``timeout`` expires.

    Example:
        >>> client = Client()
        >>> cid = client.connect("user", "secret", "acme", "DB", "PUBLIC", "WH")
        >>> client.execute_query(cid, "SELECT 1")
        [[1]]
        >>> sid = client.execute_query_detached(cid, "SELECT * FROM big_table")
        >>> page = client.fetch_next_rows(cid, sid, 1000)
        >>> client.close_connection(cid)
    """

    def __init__(self, ids: Optional[IdentifierGenerator] = None) -> None:
        ids = ids or IdentifierGenerator()
        self.statements = StatementRegistry(ids=ids)
        self.connections = ConnectionRegistry(statements=self.statements, ids=ids)
        self.executor = QueryExecutor(self.connections, self.statements)

    @staticmethod
    def init(log_level: Optional[str] = None) -> int:
        """Set the log level (TRACE, DEBUG, INFO, WARN, ERROR, otherwise FATAL)"""
        return init_logging(log_level)

    @staticmethod
    def version() -> str:
        """snowbridge version"""
        from snowbridge import __version__
        return __version__

    @staticmethod
    def engine_version() -> str:
        """Version of the snowflake-connector-python driver in use"""
        return str(snowflake.connector.__version__)

    def connect(
        self,
        username: str,
        password: str,
        account: str,
        database: str,
        schema: str,
        warehouse: str,
        **extras: Any,
    ) -> str:
        """
        Open a connection with user/password authentication.

        Returns:
            20-character connection id

        Raises:
            ConnectionFailed: If the engine rejects the connection
            ValueError: If a parameter is missing or blank
        """
        params = ConnectionParams(
            username=username,
            password=password,
            account=account,
            database=database,
            schema=schema,
            warehouse=warehouse,
            **extras,
        )
        return self.connections.connect(params)

    def connect_params(self, params: ConnectionParams) -> str:
        """Open a connection from prepared parameters"""
        return self.connections.connect(params)

    def connect_profile(
        self, profile: str, path: Optional[Union[str, Path]] = None, **overrides: Any
    ) -> str:
        """Open a connection from a connections.toml profile, with parameter overrides"""
        params = ConnectionParams.from_profile(load_profile(profile, path=path), **overrides)
        return self.connections.connect(params)

    def execute_query(
        self, connection_id: str, sql: str, options: Options = None, **kwargs: Any
    ) -> Optional[list[Row]]:
        """Run ``sql`` and return all rows, or feed them to ``row_handler`` and return None"""
        return self.executor.execute(connection_id, sql, options, **kwargs)

    def stream_query(
        self, connection_id: str, sql: str, options: Options = None, **kwargs: Any
    ) -> RowStream:
        """Run ``sql`` and return a lazy stream of rows"""
        return self.executor.stream(connection_id, sql, options, **kwargs)

    def execute_query_detached(
        self, connection_id: str, sql: str, options: Options = None, **kwargs: Any
    ) -> str:
        """Run ``sql`` without fetching rows and return a statement id"""
        return self.executor.execute_detached(connection_id, sql, options, **kwargs)

    def fetch_next_rows(
        self,
        connection_id: str,
        statement_id: str,
        max_rows: int,
        timeout: Optional[float] = None,
    ) -> Page:
        """Fetch the next page of a detached statement"""
        return self.statements.fetch_next(connection_id, statement_id, max_rows, timeout=timeout)

    def iter_pages(
        self,
        connection_id: str,
        statement_id: str,
        page_size: int = 10000,
        timeout: Optional[float] = None,
    ) -> Generator[Page, None, None]:
        """Yield pages of a detached statement until it is exhausted"""
        return self.statements.iter_pages(connection_id, statement_id, page_size, timeout=timeout)

    def close_statement(
        self, connection_id: str, statement_id: str, timeout: Optional[float] = None
    ) -> None:
        """Release a detached statement before it is exhausted"""
        self.statements.discard(connection_id, statement_id, timeout=timeout)

    def close_connection(self, connection_id: str, timeout: Optional[float] = None) -> None:
        """Close a connection and every detached statement opened on it"""
        self.connections.close(connection_id, timeout=timeout)

    def close(self) -> None:
        """Close every connection owned by this client"""
        self.connections.close_all()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"Client(connections={len(self.connections)}, "
            f"statements={len(self.statements)})"
        )
