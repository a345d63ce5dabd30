"""Pytest configuration and shared fixtures.

Unit tests replace snowflake.connector.connect with an in-memory fake engine
that serves scripted results, so no Snowflake account is needed.
"""

from collections import namedtuple
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
from unittest.mock import patch

import pytest
from snowflake.connector.constants import FIELD_ID_TO_NAME
from snowflake.connector.errors import DatabaseError, OperationalError, ProgrammingError

FIELD_NAME_TO_ID = {name: type_id for type_id, name in FIELD_ID_TO_NAME.items()}

# Same field layout as snowflake.connector.cursor.ResultMetadata
Meta = namedtuple(
    "Meta",
    ["name", "type_code", "display_size", "internal_size", "precision", "scale", "is_nullable"],
)


def col(name: str, type_name: str = "FIXED", scale: int = 0) -> Meta:
    """Column metadata as returned in cursor.description"""
    return Meta(name, FIELD_NAME_TO_ID[type_name], None, None, None, scale, True)


@dataclass
class ScriptedResult:
    """Rows the fake engine returns for one SQL text"""

    columns: List[Meta]
    rows: List[tuple]
    fail_after: Optional[int] = None


STATUS_RESULT = ScriptedResult([col("status", "TEXT")], [("Statement executed successfully.",)])


class FakeCursor:
    def __init__(self, engine: "FakeEngine", connection: "FakeConnection") -> None:
        self.engine = engine
        self.connection = connection
        self.description: Optional[List[Meta]] = None
        self.sfqid: Optional[str] = None
        self.closed = False
        self.timeouts: List[Optional[float]] = []
        self._result = ScriptedResult([], [])
        self._pos = 0

    def execute(self, sql: str, timeout: Optional[float] = None, **kwargs: Any) -> "FakeCursor":
        self.timeouts.append(timeout)
        self.engine.executed.append(sql)
        if sql in self.engine.failures:
            raise self.engine.failures[sql]

        if sql.upper().startswith("ALTER SESSION"):
            self.connection.result_format = sql.rsplit("=", 1)[1].strip(" '")
            result = STATUS_RESULT
        elif sql in self.engine.results:
            result = self.engine.results[sql]
        else:
            raise ProgrammingError(
                msg=f"SQL compilation error: unknown statement {sql!r}",
                errno=1003,
                sqlstate="42000",
            )

        self._result = result
        self._pos = 0
        self.description = list(result.columns)
        self.sfqid = f"query-{len(self.engine.executed)}"
        return self

    def fetchone(self) -> Optional[tuple]:
        self.engine.fetches += 1
        if self._result.fail_after is not None and self._pos >= self._result.fail_after:
            raise OperationalError(msg="Connection reset while downloading result chunk", errno=254003)
        if self._pos >= len(self._result.rows):
            return None
        row = self._result.rows[self._pos]
        self._pos += 1
        return row

    def close(self) -> bool:
        self.closed = True
        return True


class FakeConnection:
    def __init__(self, engine: "FakeEngine", kwargs: Dict[str, Any]) -> None:
        self.engine = engine
        self.kwargs = kwargs
        self.closed = False
        self.result_format: Optional[str] = None
        self.cursors: List[FakeCursor] = []

    def cursor(self) -> FakeCursor:
        cursor = FakeCursor(self.engine, self)
        self.cursors.append(cursor)
        return cursor

    def close(self) -> None:
        self.closed = True


@dataclass
class FakeEngine:
    results: Dict[str, ScriptedResult] = field(default_factory=dict)
    failures: Dict[str, Exception] = field(default_factory=dict)
    connections: List[FakeConnection] = field(default_factory=list)
    executed: List[str] = field(default_factory=list)
    fetches: int = 0
    reject_connect: Optional[Exception] = None

    def add_result(
        self,
        sql: str,
        columns: Sequence[Meta],
        rows: Sequence[tuple],
        fail_after: Optional[int] = None,
    ) -> None:
        self.results[sql] = ScriptedResult(list(columns), list(rows), fail_after)

    def fail(self, sql: str, error: Exception) -> None:
        self.failures[sql] = error

    def connect(self, **kwargs: Any) -> FakeConnection:
        if self.reject_connect is not None:
            raise self.reject_connect
        connection = FakeConnection(self, kwargs)
        self.connections.append(connection)
        return connection


def bad_credentials() -> DatabaseError:
    return DatabaseError(msg="Incorrect username or password was specified.", errno=250001, sqlstate="08001")


@pytest.fixture
def engine():
    """Fake engine installed in place of snowflake.connector.connect."""
    fake = FakeEngine()
    fake.add_result("SELECT 1", [col("1")], [(1,)])
    fake.add_result(
        "SELECT * FROM five_rows",
        [col("ID"), col("NAME", "TEXT")],
        [(i, f"row{i}") for i in range(5)],
    )
    fake.add_result(
        "SELECT * FROM three_rows",
        [col("ID"), col("SCORE", "REAL")],
        [(1, 0.5), (2, 1.5), (3, None)],
    )
    fake.add_result("SELECT * FROM empty_table", [col("ID")], [])
    with patch("snowflake.connector.connect", side_effect=fake.connect):
        yield fake


@pytest.fixture
def client(engine):
    """Client wired to the fake engine, closed after the test."""
    from snowbridge import Client

    instance = Client()
    yield instance
    instance.close()


@pytest.fixture
def connection_id(client):
    """An open connection on the fake engine."""
    return client.connect("TEST_USER", "secret", "test-account", "TEST_DB", "PUBLIC", "TEST_WH")
