"""Structured errors raised by snowbridge operations"""

from __future__ import annotations

from typing import Any, Optional


class SnowbridgeError(Exception):
    """Base error carrying the engine status code and diagnostic message"""

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        sqlstate: Optional[str] = None,
        sfqid: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.sqlstate = sqlstate
        self.sfqid = sfqid

    @classmethod
    def from_engine(cls, exc: BaseException, **kwargs: Any) -> "SnowbridgeError":
        """Build an error from a snowflake.connector exception, keeping errno, msg and sqlstate"""
        message = getattr(exc, "msg", None) or str(exc)
        code = getattr(exc, "errno", None)
        if code is not None and code < 0:
            code = None
        sqlstate = getattr(exc, "sqlstate", None)
        if sqlstate == "n/a":
            sqlstate = None
        return cls(
            message,
            code=code,
            sqlstate=sqlstate,
            sfqid=getattr(exc, "sfqid", None),
            **kwargs,
        )

    def __str__(self) -> str:
        if self.code is not None:
            return f"{self.code}: {self.message}"
        return self.message


class ConnectionFailed(SnowbridgeError):
    """Opening a session against the engine failed (bad credentials, unreachable account, ...)"""


class QueryFailed(SnowbridgeError):
    """The session directive or the statement itself was rejected by the engine"""


class FetchFailed(SnowbridgeError):
    """The engine failed while rows were being fetched

    Distinct from end-of-stream. ``rows`` holds the rows that were
    materialized in the same call before the failure.
    """

    def __init__(self, message: str, rows: Optional[list[list[Any]]] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.rows: list[list[Any]] = rows if rows is not None else []


class NotFound(SnowbridgeError, KeyError):
    """No live connection or statement is registered under the given handle"""

    def __init__(self, message: str, key: Any = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.key = key

    def __str__(self) -> str:
        return self.message


class HandleBusy(SnowbridgeError):
    """Another operation held the handle past the caller's deadline"""


__all__ = [
    "SnowbridgeError",
    "ConnectionFailed",
    "QueryFailed",
    "FetchFailed",
    "NotFound",
    "HandleBusy",
]
