"""Lazy row streams over a running statement"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterator, Optional

from .materialize import ColumnDescriptor
from .result import Row
from .statements import FetchStatus, close_cursor, next_outcome

if TYPE_CHECKING:
    from snowbridge.connection.registry import ConnectionLease

logger = logging.getLogger(__name__)


class RowStream:
    """A finite, non-restartable iterator of materialized rows

    The stream holds its connection exclusively until it is exhausted or
    closed, so nothing else runs on that connection in between. Closing early
    releases the statement without reading the remaining rows. A fetch error
    closes the stream and raises FetchFailed; it never looks like the end.

    Example:
        >>> with client.stream_query(cid, "SELECT * FROM big_table") as rows:
        ...     for row in rows:
        ...         if done(row):
        ...             break
    """

    def __init__(
        self,
        lease: ConnectionLease,
        cursor: Any,
        columns: list[ColumnDescriptor],
        label: Optional[str] = None,
    ) -> None:
        self._lease = lease
        self._cursor = cursor
        self._columns = columns
        self._label = label or f"stream on {lease.connection_id}"
        self._closed = False
        self.rowcount = 0

    @property
    def columns(self) -> list[ColumnDescriptor]:
        return self._columns

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self._columns]

    @property
    def closed(self) -> bool:
        return self._closed

    def __iter__(self) -> Iterator[Row]:
        return self

    def __next__(self) -> Row:
        if self._closed:
            raise StopIteration

        outcome = next_outcome(self._cursor, self._columns)
        if outcome.status is FetchStatus.ROW:
            assert outcome.row is not None
            self.rowcount += 1
            return outcome.row

        self.close()
        if outcome.status is FetchStatus.END_OF_STREAM:
            logger.debug(f"{self._label} finished after {self.rowcount} row(s)")
            raise StopIteration

        logger.debug(f"{self._label} failed after {self.rowcount} row(s): {outcome.message}")
        raise outcome.to_error() from outcome.exc

    def close(self) -> None:
        """Release the statement and the connection, safe to call more than once"""
        if self._closed:
            return
        self._closed = True
        try:
            close_cursor(self._cursor, self._label)
        finally:
            self._lease.release()

    def __enter__(self) -> "RowStream":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"RowStream({self._label!r}, rows={self.rowcount}, {state})"
