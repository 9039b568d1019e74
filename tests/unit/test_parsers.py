import io
from datetime import datetime

import pytest
from openpyxl import Workbook

from normaize.core.cells import CellKind, classify_cell, display_value, to_float
from normaize.core.parsers import (
    CONTENT_COLUMN,
    LINE_NUMBER_COLUMN,
    get_parser,
    parse,
    parse_csv,
    parse_excel,
    parse_json,
    parse_text,
    parse_xml,
)
from normaize.utils.exceptions import ParseError, UnsupportedFormatError, ValidationError

# --- Tests for Cell Classification ---

def test_classify_numbers():
    """Test that numeric strings and native numbers are Numbers."""
    assert classify_cell("3.5") == classify_cell(3.5)
    assert classify_cell("3.5").kind is CellKind.NUMBER
    assert classify_cell(" 42 ").value == 42.0
    assert classify_cell("1e3").value == 1000.0

def test_classify_other_kinds():
    """Test dates, booleans, text and nulls."""
    assert classify_cell("2024-01-05").kind is CellKind.DATE
    assert classify_cell("01/31/2024").kind is CellKind.DATE
    assert classify_cell(datetime(2024, 1, 5)).kind is CellKind.DATE
    assert classify_cell("TRUE").kind is CellKind.BOOLEAN
    assert classify_cell(False).value is False
    assert classify_cell("hello").kind is CellKind.TEXT
    assert classify_cell("1_000").kind is CellKind.TEXT
    assert classify_cell("").is_null
    assert classify_cell("   ").is_null
    assert classify_cell(None).is_null
    assert classify_cell(float("nan")).is_null

def test_classify_mixed_date_layouts():
    """Test that common written date layouts are Dates."""
    for text in ("Jan 5 2024", "2024.01.05", "5-Jan-2024", "March 3, 2024", "2024-01-05T10:00:00Z"):
        assert classify_cell(text).kind is CellKind.DATE, text
    assert classify_cell("5-Jan-2024").value == datetime(2024, 1, 5)
    assert classify_cell("May").kind is CellKind.TEXT

def test_display_and_float_conversion():
    """Test display strings and chart value coercion."""
    assert display_value(2.0) == "2"
    assert display_value(True) == "true"
    assert display_value(None) == "null"
    assert to_float("abc") == 0.0
    assert to_float("2.5") == 2.5

# --- Tests for CSV ---

def test_csv_semicolon_delimiter():
    """Test that the delimiter is sniffed."""
    result = parse_csv(b"a;b\n1;2\n3;4\n")
    assert result.columns == ["a", "b"]
    assert result.records == [{"a": "1", "b": "2"}, {"a": "3", "b": "4"}]

def test_csv_blank_cells_become_null():
    """Test that empty fields are normalized to None."""
    result = parse_csv(b"a,b\n1,\n")
    assert result.records == [{"a": "1", "b": None}]

def test_csv_header_only():
    """Test a CSV with a header and no data rows."""
    result = parse_csv(b"a,b\n")
    assert result.columns == ["a", "b"]
    assert result.records == []

def test_csv_without_header_has_zero_columns():
    """Test that blank content yields zero columns instead of failing."""
    result = parse_csv(b"\n\n")
    assert result.columns == []
    assert result.records == []

def test_csv_strips_headers_and_dedupes():
    """Test header normalization."""
    result = parse_csv(b" a , b ,a\n1,2,3\n")
    assert result.columns[:2] == ["a", "b"]
    assert len(set(result.columns)) == 3

def test_csv_row_cap():
    """Test that the parser stops reading at the row cap."""
    result = parse_csv(b"v\n1\n2\n3\n4\n", max_rows=2)
    assert [r["v"] for r in result.records] == ["1", "2"]

def test_csv_malformed_row_does_not_abort():
    """Test that a bad row is skipped or truncated, not fatal."""
    result = parse_csv(b"a,b\n1,2\n3,4,5\n6,7\n")
    assert result.records[0] == {"a": "1", "b": "2"}
    assert result.records[-1] == {"a": "6", "b": "7"}

def test_csv_unterminated_quote_is_parse_error():
    """Test that an unrecoverable CSV fails the whole parse."""
    with pytest.raises(ParseError):
        parse_csv(b'a,b\n"1,2\n')

def test_csv_invalid_utf8_is_parse_error():
    """Test that undecodable bytes are a parse error."""
    with pytest.raises(ParseError):
        parse_csv(b"a,b\n\xff\xfe,1\n")

# --- Tests for JSON ---

def test_json_array_unions_keys():
    """Test that keys are unioned in first-seen order."""
    result = parse_json(b'[{"a": 1, "b": "x"}, {"a": 2, "c": true}]')
    assert result.columns == ["a", "b", "c"]
    assert result.records[0] == {"a": 1, "b": "x"}
    assert result.records[1]["c"] is True
    assert result.records[1].get("b") is None

def test_json_single_object():
    """Test that a single object is one record."""
    result = parse_json(b'{"name": "w", "size": 3}')
    assert result.columns == ["name", "size"]
    assert len(result.records) == 1

def test_json_nested_values_are_compact_text():
    """Test nested structure handling."""
    result = parse_json(b'[{"a": {"x": 1}, "b": [1, 2]}]')
    assert result.records[0] == {"a": '{"x":1}', "b": "[1,2]"}

def test_json_skips_non_objects():
    """Test that scalars inside the array are ignored."""
    result = parse_json(b'[{"a": 1}, 5, "x", {"a": 2}]')
    assert [r["a"] for r in result.records] == [1, 2]

def test_json_invalid_structures():
    """Test invalid JSON documents."""
    with pytest.raises(ParseError):
        parse_json(b"42")
    with pytest.raises(ParseError):
        parse_json(b'{"a": ')

def test_json_deep_nesting_is_parse_error():
    """Test that a pathologically nested document fails as a parse error."""
    depth = 100_000
    with pytest.raises(ParseError):
        parse_json(b"[" * depth + b"]" * depth)

# --- Tests for Spreadsheets ---

def _workbook_bytes(rows):
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()

def test_excel_first_sheet_with_header():
    """Test header handling and data rows of a workbook."""
    content = _workbook_bytes([["name", "score", None], ["a", 1, 5], ["b", 2.5, None]])
    result = parse_excel(content)
    assert result.columns == ["name", "score", "Column3"]
    assert result.records[0]["name"] == "a"
    assert result.records[0]["score"] == 1
    assert result.records[1]["score"] == 2.5
    assert result.records[1]["Column3"] is None

def test_excel_corrupt_workbook():
    """Test that unreadable workbooks are parse errors."""
    with pytest.raises(ParseError):
        parse_excel(b"not a workbook")

# --- Tests for XML ---

def test_xml_repeated_children():
    """Test that siblings become records with the first child's schema."""
    content = b"<rows><row><a>1</a><b>x</b></row><row><a>2</a><b></b></row></rows>"
    result = parse_xml(content)
    assert result.columns == ["a", "b"]
    assert result.records == [{"a": "1", "b": "x"}, {"a": "2", "b": None}]

def test_xml_single_record():
    """Test that a root without repeated children is one record."""
    result = parse_xml(b'<item id="7"><name>w</name></item>')
    assert result.columns == ["id", "name"]
    assert result.records == [{"id": "7", "name": "w"}]

def test_xml_namespaces_are_stripped():
    """Test local element names."""
    content = b'<r xmlns="urn:x"><row><a>1</a></row><row><a>2</a></row></r>'
    assert parse_xml(content).columns == ["a"]

def test_xml_malformed():
    """Test that malformed XML is a parse error."""
    with pytest.raises(ParseError):
        parse_xml(b"<rows><row>")

# --- Tests for Plain Text ---

def test_text_lines():
    """Test that each non-blank line is a record."""
    result = parse_text(b"first\n\nsecond\n")
    assert result.columns == [LINE_NUMBER_COLUMN, CONTENT_COLUMN]
    assert result.records == [
        {LINE_NUMBER_COLUMN: 1, CONTENT_COLUMN: "first"},
        {LINE_NUMBER_COLUMN: 2, CONTENT_COLUMN: "second"},
    ]

# --- Tests for Dispatch ---

def test_dispatch_is_case_insensitive():
    """Test extension normalization."""
    assert get_parser(".CSV") is parse_csv
    assert get_parser("json") is parse_json
    assert get_parser(".xls") is parse_excel

def test_dispatch_unknown_extension():
    """Test that unknown extensions fail before parsing."""
    with pytest.raises(UnsupportedFormatError):
        parse(b"data", ".pdf")
    assert issubclass(UnsupportedFormatError, ValidationError)
