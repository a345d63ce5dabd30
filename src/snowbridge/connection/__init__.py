"""Connection module exports."""

from .params import ConnectionParams
from .registry import ConnectionRegistry, ConnectionLease

__all__ = [
    "ConnectionParams",
    "ConnectionRegistry",
    "ConnectionLease",
]
