"""Per-handle guards enforcing a single in-flight operation per handle"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from snowbridge.errors import HandleBusy


class HandleGuard:
    """A lock around one connection or statement handle

    Operations on the same handle are serialized: a second caller waits
    until the first one is done, or until its own ``timeout`` expires, in
    which case HandleBusy is raised. A guard is retired once its handle is
    removed; a caller that acquires a retired guard treats the handle
    as gone.

    The guard is not reentrant. A thread that already holds it (for
    example from inside a row handler) gets HandleBusy at once instead
    of waiting on itself.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._lock = threading.Lock()
        self._owner: Optional[int] = None
        self.retired = False

    def acquire(self, timeout: Optional[float] = None) -> None:
        if self._owner == threading.get_ident():
            raise HandleBusy(
                f"Handle {self.name} is already in use by an operation of the calling thread"
            )
        if timeout is None:
            acquired = self._lock.acquire()
        else:
            acquired = self._lock.acquire(timeout=max(timeout, 0))
        if not acquired:
            raise HandleBusy(
                f"Handle {self.name} is busy with another operation (waited {timeout}s)"
            )
        self._owner = threading.get_ident()

    def release(self) -> None:
        self._owner = None
        self._lock.release()

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def hold(self, timeout: Optional[float] = None) -> Iterator[None]:
        self.acquire(timeout)
        try:
            yield
        finally:
            self.release()

    def __repr__(self) -> str:
        state = "retired" if self.retired else ("busy" if self.locked else "idle")
        return f"HandleGuard({self.name!r}, {state})"
