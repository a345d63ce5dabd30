"""
snowbridge - handle-based query execution over Snowflake

Code is organized in layers
- config/ resolves connection profiles and log levels
- connection/ validates parameters and owns live connections
- primitives/ holds handles, row materialization, execution and pagination
- client.py exposes the operations behind opaque string handles
"""

# Layer 1: Configuration & connectivity
from snowbridge.config import init, load_profile, list_profiles
from snowbridge.connection import ConnectionParams, ConnectionRegistry

# Layer 2: Primitives
from snowbridge.primitives import (
    Page,
    UnsupportedValue,
    ColumnKind,
    QueryOptions,
    QueryExecutor,
    RowStream,
    StatementRegistry,
)

# Layer 3: Operation surface
from snowbridge.client import Client

from snowbridge.errors import (
    SnowbridgeError,
    ConnectionFailed,
    QueryFailed,
    FetchFailed,
    NotFound,
    HandleBusy,
)

__version__ = "0.1.0"
__all__ = [
    # Layer 1
    "init",
    "load_profile",
    "list_profiles",
    "ConnectionParams",
    "ConnectionRegistry",
    # Layer 2
    "Page",
    "UnsupportedValue",
    "ColumnKind",
    "QueryOptions",
    "QueryExecutor",
    "RowStream",
    "StatementRegistry",
    # Layer 3
    "Client",
    # Errors
    "SnowbridgeError",
    "ConnectionFailed",
    "QueryFailed",
    "FetchFailed",
    "NotFound",
    "HandleBusy",
]
