"""Unit tests for error construction."""

from snowflake.connector.errors import OperationalError, ProgrammingError

from snowbridge.errors import FetchFailed, NotFound, QueryFailed, SnowbridgeError


class TestFromEngine:
    """Tests for building errors from connector exceptions."""

    def test_keeps_status_and_message(self):
        """Test that errno, sqlstate and message are preserved."""
        exc = ProgrammingError(msg="Object 'T' does not exist", errno=2003, sqlstate="42S02")

        error = QueryFailed.from_engine(exc)

        assert isinstance(error, QueryFailed)
        assert error.code == 2003
        assert error.sqlstate == "42S02"
        assert "Object 'T' does not exist" in error.message
        assert str(error).startswith("2003: ")

    def test_missing_errno(self):
        """Test that the connector's -1 placeholder becomes None."""
        error = QueryFailed.from_engine(ProgrammingError(msg="boom"))

        assert error.code is None
        assert error.sqlstate is None
        assert "boom" in str(error)

    def test_fetch_failed_carries_rows(self):
        """Test that FetchFailed keeps the partial page."""
        error = FetchFailed.from_engine(OperationalError(msg="reset", errno=254003), rows=[[1]])

        assert error.rows == [[1]]
        assert error.code == 254003

    def test_plain_exception(self):
        """Test that non-connector exceptions still convert."""
        error = SnowbridgeError.from_engine(RuntimeError("unexpected"))

        assert error.message == "unexpected"
        assert error.code is None


class TestNotFound:
    """Tests for NotFound."""

    def test_is_key_error(self):
        """Test that NotFound can be caught as KeyError and reads cleanly."""
        error = NotFound("Unknown connection id: abc", key="abc")

        assert isinstance(error, KeyError)
        assert str(error) == "Unknown connection id: abc"
        assert error.key == "abc"
