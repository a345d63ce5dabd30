"""Detached statements and the pagination cursor that drains them.

A detached statement has been executed but none of its rows have been
fetched. It is registered under a (connection id, statement id) key and
drained page by page with ``fetch_next``. The key is removed exactly once,
when the statement reaches end-of-stream or fails, and never resolves
again afterwards.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generator, NamedTuple, Optional, Sequence

from snowflake.connector.errors import Error as EngineError

from snowbridge.config.logging import TRACE
from snowbridge.errors import FetchFailed, NotFound

from .guard import HandleGuard
from .identifiers import IdentifierGenerator
from .materialize import ColumnDescriptor, materialize_row
from .result import Page, Row

logger = logging.getLogger(__name__)


class StatementKey(NamedTuple):
    connection_id: str
    statement_id: str

    def __str__(self) -> str:
        return f"{self.connection_id}/{self.statement_id}"


class FetchStatus(Enum):
    ROW = "row"
    END_OF_STREAM = "end_of_stream"
    ERROR = "error"


@dataclass(frozen=True)
class FetchOutcome:
    """Result of asking the engine for one more row"""

    status: FetchStatus
    row: Optional[Row] = None
    code: Optional[int] = None
    message: Optional[str] = None
    exc: Optional[BaseException] = None

    def to_error(self, rows: Optional[list[Row]] = None) -> FetchFailed:
        assert self.status is FetchStatus.ERROR
        if self.exc is not None:
            error = FetchFailed.from_engine(self.exc, rows=rows)
            assert isinstance(error, FetchFailed)
            return error
        return FetchFailed(self.message or "fetch failed", rows=rows, code=self.code)


END_OF_STREAM = FetchOutcome(FetchStatus.END_OF_STREAM)


def next_outcome(cursor: Any, columns: Sequence[ColumnDescriptor]) -> FetchOutcome:
    """Fetch one row and classify the result as ROW, END_OF_STREAM or ERROR

    Any failure, from the engine or while materializing the row, is an
    ERROR outcome so the caller can release the statement and keep the
    rows it already has.
    """
    try:
        raw = cursor.fetchone()
        if raw is None:
            return END_OF_STREAM
        row = materialize_row(columns, raw)
    except EngineError as exc:
        error = FetchFailed.from_engine(exc)
        return FetchOutcome(
            FetchStatus.ERROR, code=error.code, message=error.message, exc=exc
        )
    except Exception as exc:
        logger.warning(f"Could not read row: {type(exc).__name__}: {exc}")
        return FetchOutcome(
            FetchStatus.ERROR, message=f"{type(exc).__name__}: {exc}", exc=exc
        )
    return FetchOutcome(FetchStatus.ROW, row=row)


def close_cursor(cursor: Any, label: str) -> None:
    """Release the engine-side statement, logging rather than masking the caller's outcome"""
    try:
        cursor.close()
    except EngineError as exc:
        logger.warning(f"Failed to release statement {label}: {exc}")


@dataclass
class StatementEntry:
    key: StatementKey
    cursor: Any
    columns: list[ColumnDescriptor]
    guard: HandleGuard = field(init=False)

    def __post_init__(self) -> None:
        self.guard = HandleGuard(f"statement {self.key}")

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]


class StatementRegistry:
    """
    Detached statements keyed by (connection id, statement id).

    Map operations are atomic under one lock. Every statement has its own
    HandleGuard, so concurrent ``fetch_next`` calls on the same key run one
    after the other; a call that waited behind the final page sees NotFound.

    Example:
        >>> sid = statements.register(cid, cursor, columns)
        >>> page = statements.fetch_next(cid, sid, 1000)
        >>> while not page.end:
        ...     handle(page.rows)
        ...     page = statements.fetch_next(cid, sid, 1000)
    """

    def __init__(self, ids: Optional[IdentifierGenerator] = None) -> None:
        self._entries: dict[StatementKey, StatementEntry] = {}
        self._statement_ids: set[str] = set()
        self._lock = threading.Lock()
        self._ids = ids or IdentifierGenerator()

    def register(
        self, connection_id: str, cursor: Any, columns: list[ColumnDescriptor]
    ) -> str:
        """Register an executed cursor and return its new statement id"""
        with self._lock:
            statement_id = self._ids.new_id(self._statement_ids)
            key = StatementKey(connection_id, statement_id)
            self._entries[key] = StatementEntry(key=key, cursor=cursor, columns=columns)
            self._statement_ids.add(statement_id)
        logger.debug(f"Registered detached statement {key}")
        return statement_id

    def _lookup(self, key: StatementKey) -> StatementEntry:
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            raise NotFound(f"Unknown statement: {key}", key=key)
        return entry

    def _remove(self, entry: StatementEntry) -> bool:
        with self._lock:
            if entry.guard.retired:
                return False
            self._entries.pop(entry.key, None)
            self._statement_ids.discard(entry.key.statement_id)
            entry.guard.retired = True
        return True

    def _retire(self, entry: StatementEntry) -> None:
        # caller holds entry.guard
        if self._remove(entry):
            close_cursor(entry.cursor, str(entry.key))
            logger.debug(f"Released statement {entry.key}")

    def fetch_next(
        self,
        connection_id: str,
        statement_id: str,
        max_rows: int,
        timeout: Optional[float] = None,
    ) -> Page:
        """
        Drain up to ``max_rows`` rows from a detached statement.

        Args:
            connection_id: Connection the statement was executed on
            statement_id: Id returned by the detached execution
            max_rows: Largest number of rows to return, at least 1
            timeout: Seconds to wait for another fetch on the same statement

        Returns:
            Page with the fetched rows; ``end`` is True once the statement is
            exhausted, at which point the statement id is no longer valid

        Raises:
            ValueError: If max_rows is not a positive integer
            NotFound: If the key is unknown or already exhausted
            FetchFailed: If the engine fails mid-page; the statement is
                released and ``rows`` on the error holds this call's rows
            HandleBusy: If another fetch holds the statement past ``timeout``
        """
        if isinstance(max_rows, bool) or not isinstance(max_rows, int) or max_rows < 1:
            raise ValueError(f"max_rows must be a positive integer, got {max_rows!r}")

        key = StatementKey(connection_id, statement_id)
        entry = self._lookup(key)
        with entry.guard.hold(timeout):
            if entry.guard.retired:
                raise NotFound(f"Statement {key} is already exhausted", key=key)

            logger.log(TRACE, f"Reading from statement {key}: {max_rows} rows")
            rows: list[Row] = []
            while len(rows) < max_rows:
                outcome = next_outcome(entry.cursor, entry.columns)
                if outcome.status is FetchStatus.ROW:
                    assert outcome.row is not None
                    rows.append(outcome.row)
                    continue

                self._retire(entry)
                if outcome.status is FetchStatus.END_OF_STREAM:
                    return Page(rows=rows, end=True, columns=entry.column_names)

                logger.debug(f"Fetch from {key} failed after {len(rows)} row(s): {outcome.message}")
                error = outcome.to_error(rows)
                raise error from outcome.exc

            return Page(rows=rows, end=False, columns=entry.column_names)

    def iter_pages(
        self,
        connection_id: str,
        statement_id: str,
        page_size: int = 10000,
        timeout: Optional[float] = None,
    ) -> Generator[Page, None, None]:
        """Yield pages until the statement is exhausted, the last one has ``end=True``"""
        while True:
            page = self.fetch_next(connection_id, statement_id, page_size, timeout=timeout)
            yield page
            if page.end:
                return

    def discard(
        self, connection_id: str, statement_id: str, timeout: Optional[float] = None
    ) -> None:
        """Release a detached statement without draining it

        Raises:
            NotFound: If the key is unknown or already exhausted
        """
        key = StatementKey(connection_id, statement_id)
        entry = self._lookup(key)
        with entry.guard.hold(timeout):
            if entry.guard.retired:
                raise NotFound(f"Statement {key} is already exhausted", key=key)
            self._retire(entry)

    def release_connection(self, connection_id: str) -> int:
        """Release every statement of a connection, returns how many were released"""
        with self._lock:
            entries = [e for k, e in self._entries.items() if k.connection_id == connection_id]

        released = 0
        for entry in entries:
            with entry.guard.hold():
                if not entry.guard.retired:
                    self._retire(entry)
                    released += 1
        return released

    def __contains__(self, key: Any) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __repr__(self) -> str:
        return f"StatementRegistry(statements={len(self)})"
