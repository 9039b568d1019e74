"""
parsers.py
─────────────────────────────────────────────────────────────────────────────
Format-specific readers and the extension dispatch table.

Every parser takes the raw bytes (and an optional row cap) and returns a
ParseResult: ordered column names plus a list of records (column → raw
scalar). Malformed content raises ParseError; an unknown extension raises
UnsupportedFormatError before any parsing work is done.

  .csv          → parse_csv    (pandas.read_csv, sniffed delimiter)
  .json         → parse_json   (array of objects, or a single object)
  .xlsx / .xls  → parse_excel  (pandas.read_excel, first worksheet)
  .xml          → parse_xml    (repeated children, or the root itself)
  .txt          → parse_text   (LineNumber / Content per non-blank line)
─────────────────────────────────────────────────────────────────────────────
"""

import csv
import io
import json
import math
import warnings
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import numpy as np
import pandas as pd

from normaize.models import FileType
from normaize.utils.exceptions import ParseError, UnsupportedFormatError
from normaize.utils.logger import get_logger

logger = get_logger(__name__)

Record = Dict[str, Any]

LINE_NUMBER_COLUMN = "LineNumber"
CONTENT_COLUMN = "Content"
DEFAULT_COLUMN_PREFIX = "Column"
SNIFF_DELIMITERS = ",;\t|"


@dataclass
class ParseResult:
    columns: List[str]
    records: List[Record] = field(default_factory=list)
    byte_size: int = 0


# ── helpers ───────────────────────────────────────────────────────────────────
def _decode(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ParseError(f"File is not valid UTF-8 text: {e}") from e


def _clean_value(value: Any) -> Any:
    """Normalize library scalars (numpy, pandas, NaN, blanks) to plain Python."""
    if value is None:
        return None
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.to_pydatetime()
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _unique_headers(names: List[str]) -> List[str]:
    """Suffix repeated header names with .1, .2, ... keeping the first as-is."""
    seen: Dict[str, int] = {}
    result = []
    for name in names:
        if name in seen:
            seen[name] += 1
            candidate = f"{name}.{seen[name]}"
            while candidate in seen:
                seen[name] += 1
                candidate = f"{name}.{seen[name]}"
            seen[candidate] = 0
            result.append(candidate)
        else:
            seen[name] = 0
            result.append(name)
    return result


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


# ── CSV ───────────────────────────────────────────────────────────────────────
def _sniff_delimiter(text: str) -> str:
    try:
        return csv.Sniffer().sniff(text[:1024], delimiters=SNIFF_DELIMITERS).delimiter
    except csv.Error:
        return ","


def parse_csv(content: bytes, max_rows: Optional[int] = None) -> ParseResult:
    text = _decode(content)
    delimiter = _sniff_delimiter(text)
    logger.info(f"Detected delimiter: '{delimiter}'")

    try:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always", pd.errors.ParserWarning)
            df = pd.read_csv(
                io.StringIO(text),
                sep=delimiter,
                dtype=str,
                keep_default_na=False,
                index_col=False,
                nrows=max_rows,
                on_bad_lines="warn",
            )
        for warning in caught:
            logger.warning(f"Skipped malformed CSV content: {warning.message}")
    except pd.errors.EmptyDataError:
        logger.warning("CSV file has no header record; proceeding with zero columns.")
        return ParseResult(columns=[], records=[], byte_size=len(content))
    except (pd.errors.ParserError, ValueError) as e:
        raise ParseError(f"CSV parsing error: {e}") from e

    columns = _unique_headers([str(c).strip() for c in df.columns])
    df.columns = columns
    records = [
        {col: _clean_value(val) for col, val in zip(columns, row)}
        for row in df.itertuples(index=False, name=None)
    ]
    return ParseResult(columns=columns, records=records, byte_size=len(content))


# ── JSON ──────────────────────────────────────────────────────────────────────
def _json_scalar(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return _clean_value(value)


def _json_record(item: Dict[str, Any], columns: Dict[str, None]) -> Record:
    record = {}
    for key, value in item.items():
        columns.setdefault(str(key), None)
        record[str(key)] = _json_scalar(value)
    return record


def parse_json(content: bytes, max_rows: Optional[int] = None) -> ParseResult:
    text = _decode(content)
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"JSON parsing error: {e}") from e
    except RecursionError as e:
        raise ParseError("JSON parsing error: document is nested too deeply.") from e

    # dict used as an insertion-ordered set of column names
    columns: Dict[str, None] = {}
    records: List[Record] = []

    if isinstance(document, list):
        items = [item for item in document if isinstance(item, dict)]
        skipped = len(document) - len(items)
        if skipped:
            logger.warning(f"Skipped {skipped} non-object item(s) in JSON array.")
        if max_rows is not None:
            items = items[:max_rows]
        records = [_json_record(item, columns) for item in items]
    elif isinstance(document, dict):
        records = [_json_record(document, columns)]
    else:
        raise ParseError(f"Unsupported JSON structure: top-level {type(document).__name__}.")

    return ParseResult(columns=list(columns), records=records, byte_size=len(content))


# ── Spreadsheet ───────────────────────────────────────────────────────────────
def parse_excel(content: bytes, max_rows: Optional[int] = None) -> ParseResult:
    nrows = None if max_rows is None else max_rows + 1
    try:
        with pd.ExcelFile(io.BytesIO(content)) as workbook:
            if not workbook.sheet_names:
                raise ParseError("Excel processing error: no worksheet found in workbook.")
            df = workbook.parse(workbook.sheet_names[0], header=None, dtype=object, nrows=nrows)
    except ParseError:
        raise
    except Exception as e:
        # openpyxl / xlrd surface corrupt workbooks through many exception types
        raise ParseError(f"Excel processing error: {e}") from e

    if df.empty:
        return ParseResult(columns=[], records=[], byte_size=len(content))

    header_row = df.iloc[0].tolist()
    headers = []
    for position, cell in enumerate(header_row, start=1):
        cell = _clean_value(cell)
        headers.append(f"{DEFAULT_COLUMN_PREFIX}{position}" if cell is None else str(cell).strip())
    columns = _unique_headers(headers)

    records = [
        {col: _clean_value(val) for col, val in zip(columns, row)}
        for row in df.iloc[1:].itertuples(index=False, name=None)
    ]
    return ParseResult(columns=columns, records=records, byte_size=len(content))


# ── XML ───────────────────────────────────────────────────────────────────────
def _element_text(element: ET.Element) -> Any:
    return _clean_value("".join(element.itertext()))


def parse_xml(content: bytes, max_rows: Optional[int] = None) -> ParseResult:
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise ParseError(f"XML parsing error: {e}") from e

    children = list(root)
    records: List[Record] = []

    if len(children) > 1:
        # First child is the template for the schema; siblings are rows
        columns = list(dict.fromkeys(_local_name(el.tag) for el in children[0]))
        rows = children if max_rows is None else children[:max_rows]
        for child in rows:
            record: Record = {}
            for element in child:
                name = _local_name(element.tag)
                if name in columns and name not in record:
                    record[name] = _element_text(element)
            records.append(record)
    else:
        record = {}
        for name, value in root.attrib.items():
            record[_local_name(name)] = _clean_value(value)
        for element in children:
            record.setdefault(_local_name(element.tag), _element_text(element))
        columns = list(record)
        records.append(record)

    return ParseResult(columns=columns, records=records, byte_size=len(content))


# ── Plain text ────────────────────────────────────────────────────────────────
def parse_text(content: bytes, max_rows: Optional[int] = None) -> ParseResult:
    text = _decode(content)
    lines = [line.rstrip("\r") for line in text.split("\n") if line.strip()]
    if max_rows is not None:
        lines = lines[:max_rows]
    records = [
        {LINE_NUMBER_COLUMN: number, CONTENT_COLUMN: line}
        for number, line in enumerate(lines, start=1)
    ]
    return ParseResult(
        columns=[LINE_NUMBER_COLUMN, CONTENT_COLUMN],
        records=records,
        byte_size=len(content),
    )


# ── dispatch ──────────────────────────────────────────────────────────────────
Parser = Callable[[bytes, Optional[int]], ParseResult]

PARSERS: Dict[str, Parser] = {
    ".csv": parse_csv,
    ".json": parse_json,
    ".xlsx": parse_excel,
    ".xls": parse_excel,
    ".xml": parse_xml,
    ".txt": parse_text,
}

FILE_TYPES: Dict[str, FileType] = {
    ".csv": FileType.CSV,
    ".json": FileType.JSON,
    ".xlsx": FileType.EXCEL,
    ".xls": FileType.EXCEL,
    ".xml": FileType.XML,
    ".txt": FileType.TXT,
}


def normalize_extension(extension: str) -> str:
    ext = (extension or "").strip().lower()
    if ext and not ext.startswith("."):
        ext = f".{ext}"
    return ext


def get_parser(extension: str) -> Parser:
    ext = normalize_extension(extension)
    parser = PARSERS.get(ext)
    if parser is None:
        raise UnsupportedFormatError(f"Unsupported file type: '{extension}'.")
    return parser


def file_type_for(extension: str) -> FileType:
    ext = normalize_extension(extension)
    if ext not in FILE_TYPES:
        raise UnsupportedFormatError(f"Unsupported file type: '{extension}'.")
    return FILE_TYPES[ext]


def parse(content: bytes, extension: str, max_rows: Optional[int] = None) -> ParseResult:
    """Dispatch to the parser registered for `extension`."""
    parser = get_parser(extension)
    return parser(content, max_rows)
