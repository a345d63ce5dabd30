"""Conversion of engine rows into plain Python values

Every column is classified once from the cursor description. Per row, a
NULL check always comes first; only non-null values are dispatched on the
column classification:

- FIXED with scale 0 -> ``int`` (signed 32-bit)
- FIXED with scale > 0, REAL -> ``float``
- TEXT, VARIANT, OBJECT, ARRAY -> ``str``
- anything else -> ``UnsupportedValue`` (logged, row still returned)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence

from snowflake.connector.constants import FIELD_ID_TO_NAME

from .result import Row, UnsupportedValue

logger = logging.getLogger(__name__)

INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1

TEXT_TYPES = frozenset({"TEXT", "VARIANT", "OBJECT", "ARRAY"})


class ColumnKind(Enum):
    INTEGER = "integer"
    FLOAT = "float"
    TEXT = "text"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class ColumnDescriptor:
    """Name and native type classification of one result column"""

    name: str
    type_code: Optional[int]
    type_name: str
    kind: ColumnKind
    scale: Optional[int] = None


def classify(type_name: str, scale: Optional[int]) -> ColumnKind:
    """Map an engine type name (and scale, for FIXED) to a ColumnKind"""
    if type_name == "FIXED":
        return ColumnKind.INTEGER if not scale else ColumnKind.FLOAT
    if type_name == "REAL":
        return ColumnKind.FLOAT
    if type_name in TEXT_TYPES:
        return ColumnKind.TEXT
    return ColumnKind.UNSUPPORTED


def _field(item: Any, attr: str, index: int) -> Any:
    # ResultMetadata is a named tuple, plain DB-API tuples only have positions
    value = getattr(item, attr, None)
    if value is None and isinstance(item, tuple) and len(item) > index:
        value = item[index]
    return value


def describe_columns(description: Optional[Sequence[Any]]) -> list[ColumnDescriptor]:
    """Build column descriptors from a cursor description"""
    columns: list[ColumnDescriptor] = []
    for item in description or ():
        name = _field(item, "name", 0)
        type_code = _field(item, "type_code", 1)
        scale = _field(item, "scale", 5)
        type_name = FIELD_ID_TO_NAME.get(type_code, f"UNKNOWN({type_code})")
        columns.append(
            ColumnDescriptor(
                name=str(name),
                type_code=type_code,
                type_name=type_name,
                kind=classify(type_name, scale),
                scale=scale,
            )
        )
    return columns


def _as_int32(column: ColumnDescriptor, value: Any) -> Any:
    number = int(value)
    if number != value or not INT32_MIN <= number <= INT32_MAX:
        logger.warning(
            f"Value of column {column.name} does not fit a 32-bit integer"
        )
        return UnsupportedValue(column.type_name, column.type_code, "out of 32-bit integer range")
    return number


def _as_text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8")
    return value if isinstance(value, str) else str(value)


def materialize_value(column: ColumnDescriptor, value: Any) -> Any:
    """Convert one raw column value"""
    if value is None:
        return None

    if column.kind is ColumnKind.INTEGER:
        return _as_int32(column, value)
    if column.kind is ColumnKind.FLOAT:
        return float(value)
    if column.kind is ColumnKind.TEXT:
        return _as_text(value)

    logger.warning(f"Unknown column type: {column.type_name} ({column.type_code}) in column {column.name}")
    return UnsupportedValue(column.type_name, column.type_code)


def materialize_row(columns: Sequence[ColumnDescriptor], raw_row: Sequence[Any]) -> Row:
    """Convert one engine row, in column order"""
    if len(raw_row) != len(columns):
        raise ValueError(
            f"Row has {len(raw_row)} values but the statement describes {len(columns)} columns"
        )
    return [materialize_value(column, value) for column, value in zip(columns, raw_row)]
