"""
profiling.py
─────────────────────────────────────────────────────────────────────────────
Column type inference and per-column profiles.

A column's type is decided from ALL of its non-null cells:
  every cell a number   → Numeric
  every cell a date     → DateTime
  every cell a boolean  → Boolean
  anything else         → String
  no non-null cell      → Unknown
─────────────────────────────────────────────────────────────────────────────
"""

from typing import Any, Dict, List

import pandas as pd

from normaize.core.cells import as_boolean, as_date, as_number, display_value, is_null
from normaize.models import ColumnProfile, ColumnType

SAMPLE_SIZE = 5

Record = Dict[str, Any]


def column_values(records: List[Record], column: str) -> List[Any]:
    return [record.get(column) for record in records]


def infer_column_type(values: List[Any]) -> ColumnType:
    present = [v for v in values if not is_null(v)]
    if not present:
        return ColumnType.UNKNOWN
    if all(as_number(v) is not None for v in present):
        return ColumnType.NUMERIC
    if all(as_date(v) is not None for v in present):
        return ColumnType.DATETIME
    if all(as_boolean(v) is not None for v in present):
        return ColumnType.BOOLEAN
    return ColumnType.STRING


def numeric_columns(columns: List[str], records: List[Record]) -> List[str]:
    """Columns, in schema order, whose inferred type is Numeric."""
    return [
        col for col in columns
        if infer_column_type(column_values(records, col)) is ColumnType.NUMERIC
    ]


def profile_column(name: str, values: List[Any]) -> ColumnProfile:
    present = [v for v in values if not is_null(v)]
    displayed = [display_value(v) for v in present]
    return ColumnProfile(
        column_name=name,
        data_type=infer_column_type(values),
        non_null_count=len(present),
        null_count=len(values) - len(present),
        unique_count=len(set(displayed)),
        sample_values=displayed[:SAMPLE_SIZE],
    )


def to_frame(columns: List[str], records: List[Record]) -> pd.DataFrame:
    """Records as a DataFrame with object dtype; nulls normalized to None."""
    df = pd.DataFrame(records, columns=columns, dtype=object)
    return df.map(lambda v: None if is_null(v) else v)


def count_missing_values(df: pd.DataFrame) -> int:
    return int(df.isna().sum().sum())


def count_duplicate_rows(df: pd.DataFrame) -> int:
    """Rows minus distinct rows."""
    if df.empty:
        return 0
    return int(df.duplicated().sum())
