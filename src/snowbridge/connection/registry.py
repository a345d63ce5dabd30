"""Registry of live Snowflake connections keyed by opaque connection ids."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterator, Optional

import snowflake.connector
from snowflake.connector.errors import Error as EngineError

from snowbridge.config.logging import TRACE
from snowbridge.errors import ConnectionFailed, NotFound
from snowbridge.primitives.guard import HandleGuard
from snowbridge.primitives.identifiers import IdentifierGenerator

from .params import ConnectionParams

if TYPE_CHECKING:
    from snowflake.connector import SnowflakeConnection

    from snowbridge.primitives.statements import StatementRegistry

logger = logging.getLogger(__name__)


@dataclass
class ConnectionEntry:
    """A live connection owned by the registry"""

    connection_id: str
    connection: SnowflakeConnection
    summary: str
    guard: HandleGuard = field(init=False)

    def __post_init__(self) -> None:
        self.guard = HandleGuard(f"connection {self.connection_id}")


class ConnectionLease:
    """Exclusive use of one connection until ``release()`` is called"""

    def __init__(self, entry: ConnectionEntry) -> None:
        self._entry = entry
        self._released = False

    @property
    def entry(self) -> ConnectionEntry:
        return self._entry

    @property
    def connection_id(self) -> str:
        return self._entry.connection_id

    @property
    def connection(self) -> SnowflakeConnection:
        return self._entry.connection

    def release(self) -> None:
        if not self._released:
            self._released = True
            self._entry.guard.release()


class ConnectionRegistry:
    """
    Owns every connection opened through snowbridge.

    The id -> connection map is guarded by one lock, so insert, lookup and
    removal are atomic with respect to each other. Each connection also has
    its own HandleGuard: queries and close on the same connection never
    interleave. Close waits behind a running query (or gives up with
    HandleBusy once its timeout expires).

    Args:
        statements: Registry of detached statements. Statements belonging to
            a connection are released when the connection is closed.
        ids: Identifier generator used for new connection ids

    Example:
        >>> registry = ConnectionRegistry()
        >>> cid = registry.connect(ConnectionParams(username="u", password="p",
        ...     account="acme", database="DB", schema="PUBLIC", warehouse="WH"))
        >>> with registry.acquire(cid) as conn:
        ...     conn.cursor().execute("SELECT 1")
        >>> registry.close(cid)
    """

    def __init__(
        self,
        statements: Optional[StatementRegistry] = None,
        ids: Optional[IdentifierGenerator] = None,
    ) -> None:
        self._entries: dict[str, ConnectionEntry] = {}
        self._lock = threading.Lock()
        self._statements = statements
        self._ids = ids or IdentifierGenerator()

    def connect(self, params: ConnectionParams) -> str:
        """
        Open a connection and register it.

        Returns:
            The new connection id

        Raises:
            ConnectionFailed: If the engine rejects the connection
        """
        logger.log(TRACE, f"Connecting: {params.describe()}")
        try:
            connection = snowflake.connector.connect(**params.connect_kwargs())
        except EngineError as exc:
            logger.debug(f"Connect failed for account {params.account}: {exc}")
            raise ConnectionFailed.from_engine(exc) from exc

        with self._lock:
            connection_id = self._ids.new_id(self._entries)
            self._entries[connection_id] = ConnectionEntry(
                connection_id=connection_id,
                connection=connection,
                summary=params.describe(),
            )
        logger.debug(f"Connection {connection_id} opened ({params.describe()})")
        return connection_id

    def _lookup(self, connection_id: str) -> ConnectionEntry:
        with self._lock:
            entry = self._entries.get(connection_id)
        if entry is None:
            raise NotFound(f"Unknown connection id: {connection_id}", key=connection_id)
        return entry

    def lease(self, connection_id: str, timeout: Optional[float] = None) -> ConnectionLease:
        """
        Take exclusive use of a connection.

        Raises:
            NotFound: If no connection is registered under the id
            HandleBusy: If the connection stays busy past ``timeout`` seconds
        """
        entry = self._lookup(connection_id)
        entry.guard.acquire(timeout)
        if entry.guard.retired:
            entry.guard.release()
            raise NotFound(f"Connection {connection_id} was closed", key=connection_id)
        return ConnectionLease(entry)

    @contextmanager
    def acquire(
        self, connection_id: str, timeout: Optional[float] = None
    ) -> Iterator[SnowflakeConnection]:
        """Context manager yielding the connection while holding its guard"""
        lease = self.lease(connection_id, timeout)
        try:
            yield lease.connection
        finally:
            lease.release()

    def close(self, connection_id: str, timeout: Optional[float] = None) -> None:
        """
        Terminate a connection and forget its id.

        Detached statements opened on the connection are released first. The
        id is removed even when the engine reports an error while closing.

        Raises:
            NotFound: If no connection is registered under the id
            HandleBusy: If a running operation holds the connection past ``timeout``
            ConnectionFailed: If the engine fails to terminate the session
        """
        lease = self.lease(connection_id, timeout)
        entry = lease.entry
        try:
            with self._lock:
                self._entries.pop(connection_id, None)
                entry.guard.retired = True

            try:
                if self._statements is not None:
                    released = self._statements.release_connection(connection_id)
                    if released:
                        logger.debug(f"Released {released} detached statement(s) of {connection_id}")
            finally:
                try:
                    entry.connection.close()
                except EngineError as exc:
                    raise ConnectionFailed.from_engine(exc) from exc
            logger.debug(f"Connection {connection_id} closed")
        finally:
            lease.release()

    def close_all(self) -> None:
        """Close every registered connection"""
        for connection_id in self.ids():
            try:
                self.close(connection_id)
            except NotFound:
                continue

    def ids(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def __contains__(self, connection_id: Any) -> bool:
        with self._lock:
            return connection_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __repr__(self) -> str:
        return f"ConnectionRegistry(connections={len(self)})"
