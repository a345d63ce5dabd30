"""Result values returned by query and pagination operations"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

import pandas as pd

Row = list[Any]


@dataclass(frozen=True)
class UnsupportedValue:
    """Placeholder for a column value whose engine type is not materialized

    Rows keep one of these in the column's position instead of a made-up
    default, so callers can tell "no value produced" apart from NULL, 0 or "".
    """

    type_name: str
    type_code: Optional[int] = None
    reason: str = "unsupported column type"

    def __repr__(self) -> str:
        return f"UnsupportedValue({self.type_name!r}, reason={self.reason!r})"


@dataclass
class Page:
    """One page drained from a detached statement

    ``end`` is True on the last page; the statement handle is gone once it
    has been returned.
    """

    rows: list[Row]
    end: bool
    columns: list[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)

    def to_dict(self) -> dict[str, Any]:
        """The {rows, end} shape of the page"""
        return {"rows": self.rows, "end": self.end}

    def to_df(self, lowercase_columns: bool = True) -> pd.DataFrame:
        """Render the page as a DataFrame with optional column casing"""
        columns = [c.lower() for c in self.columns] if lowercase_columns else list(self.columns)
        if not columns and self.rows:
            return pd.DataFrame(self.rows)
        return pd.DataFrame(self.rows, columns=columns)

    def __repr__(self) -> str:
        return f"Page(rows={len(self.rows)}, end={self.end})"
