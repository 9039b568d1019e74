"""
cells.py
─────────────────────────────────────────────────────────────────────────────
Tagged cell values.

Parsers keep whatever scalar the source format produced (strings from CSV /
XML / text, native numbers and booleans from JSON, datetimes from
spreadsheets). Nothing downstream trusts those at face value: every cell is
reclassified here by a pure function.

  None / NaN / blank string            → NULL
  int, float, numeric string           → NUMBER
  datetime, date, string pandas parses  → DATE
  bool, "true" / "false"               → BOOLEAN
  anything else                        → TEXT
─────────────────────────────────────────────────────────────────────────────
"""

import math
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from functools import lru_cache
from typing import Any, Optional

import pandas as pd


class CellKind(str, Enum):
    NULL = "null"
    NUMBER = "number"
    TEXT = "text"
    BOOLEAN = "boolean"
    DATE = "date"


@dataclass(frozen=True)
class CellValue:
    kind: CellKind
    value: Any = None

    @property
    def is_null(self) -> bool:
        return self.kind is CellKind.NULL


NULL_CELL = CellValue(CellKind.NULL)

# ── primitive parsers ─────────────────────────────────────────────────────────
def is_null(raw: Any) -> bool:
    if raw is None:
        return True
    if isinstance(raw, float) and math.isnan(raw):
        return True
    return isinstance(raw, str) and not raw.strip()


def as_number(raw: Any) -> Optional[float]:
    """Return the float value of `raw`, or None when it is not numeric."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw)
    if isinstance(raw, str):
        text = raw.strip()
        if not text or "_" in text:
            return None
        try:
            return float(text)
        except ValueError:
            return None
    return None


def as_date(raw: Any) -> Optional[datetime]:
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, date):
        return datetime(raw.year, raw.month, raw.day)
    if not isinstance(raw, str):
        return None
    text = raw.strip()
    # A date string always carries digits; this also keeps bare month names out.
    if not any(ch.isdigit() for ch in text):
        return None
    return _parse_date_text(text)


@lru_cache(maxsize=4096)
def _parse_date_text(text: str) -> Optional[datetime]:
    parsed = pd.to_datetime(text, errors="coerce", dayfirst=True, format="mixed")
    if pd.isna(parsed):
        return None
    return parsed.to_pydatetime()


def as_boolean(raw: Any) -> Optional[bool]:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        lowered = raw.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    return None


# ── classification ────────────────────────────────────────────────────────────
def classify_cell(raw: Any) -> CellValue:
    """Map a raw scalar to its tagged cell value."""
    if is_null(raw):
        return NULL_CELL

    number = as_number(raw)
    if number is not None:
        return CellValue(CellKind.NUMBER, number)

    moment = as_date(raw)
    if moment is not None:
        return CellValue(CellKind.DATE, moment)

    flag = as_boolean(raw)
    if flag is not None:
        return CellValue(CellKind.BOOLEAN, flag)

    return CellValue(CellKind.TEXT, raw if isinstance(raw, str) else str(raw))


def display_value(raw: Any) -> str:
    """Render a raw scalar the way previews and samples show it."""
    if is_null(raw):
        return "null"
    if isinstance(raw, bool):
        return "true" if raw else "false"
    if isinstance(raw, float) and raw.is_integer():
        return str(int(raw))
    if isinstance(raw, (datetime, date)):
        return raw.isoformat()
    if isinstance(raw, str):
        return raw.strip()
    return str(raw)


def to_float(raw: Any, fallback: float = 0.0) -> float:
    """Numeric value for chart series; non-numeric cells become `fallback`."""
    cell = classify_cell(raw)
    if cell.kind is not CellKind.NUMBER or not math.isfinite(cell.value):
        return fallback
    return cell.value
