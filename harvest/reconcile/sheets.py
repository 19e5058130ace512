"""
Sheet helpers - grid reading, header detection, and cell coercion.

A "grid" is the spreadsheet codec's neutral shape: a list of rows, each a
list of raw cell values (str, int, float, datetime or None). Everything
downstream of read_grid works on grids only.
"""

import csv
import io
import re
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, Optional

from openpyxl import load_workbook

from .errors import SheetParseError

Grid = list[list[Any]]

# Master order sheet columns (0-indexed)
MASTER_ORDER_NO_COL = 2
MASTER_GROUP_COL = 10        # K
MASTER_PRODUCT_COL = 11
MASTER_QTY_COL = 22
MASTER_RECIPIENT_COL = 26
MASTER_PHONE_COL = 27
MASTER_ZIP_COL = 28
MASTER_ADDRESS_COL = 29
MASTER_MESSAGE_COL = 30

HEADER_SCAN_ROWS = 20
DATE_HEADERS = ["주문일시", "주문일", "결제일", "발주발송일", "접수일"]
WEEKDAYS = ["일", "월", "화", "수", "목", "금", "토"]   # Sunday first

# Excel serial day 0
EXCEL_EPOCH = datetime(1899, 12, 30)

_FAKE_ORDER_RE = re.compile(r"[A-Z0-9-]{5,}")
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")
_WHITESPACE_RE = re.compile(r"\s+")

_DATE_FORMATS = [
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d",
    "%Y.%m.%d %H:%M:%S",
    "%Y.%m.%d %H:%M",
    "%Y.%m.%d",
    "%Y-%m-%dT%H:%M:%S",
    "%Y%m%d",
]

# Numbers in this range are YYYYMMDD, not serial days
_YYYYMMDD_MIN = 19000101
_YYYYMMDD_MAX = 99991231


# =============================================================================
# Reading
# =============================================================================

def _trim_row(row: list[Any]) -> list[Any]:
    """Drop trailing empty cells so short rows keep their real length."""
    end = len(row)
    while end > 0 and (row[end - 1] is None or row[end - 1] == ""):
        end -= 1
    return list(row[:end])


def read_sheets(content: bytes, filename: str = "") -> dict[str, Grid]:
    """
    Read every sheet of a workbook into grids.

    Args:
        content: Raw file bytes (xlsx, or csv when filename ends with .csv)
        filename: Original filename, used only to pick the codec

    Returns:
        Mapping of sheet name -> grid, in workbook order

    Raises:
        SheetParseError: file is not a readable workbook
    """
    if Path(filename).suffix.lower() == ".csv":
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError:
            text = content.decode("cp949", errors="replace")
        try:
            return {"Sheet1": [_trim_row(r) for r in csv.reader(io.StringIO(text))]}
        except csv.Error as e:
            raise SheetParseError(f"Failed to parse CSV {filename}: {e}") from e

    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        raise SheetParseError(f"Invalid Excel file {filename or '<upload>'}: {e}") from e

    try:
        sheets: dict[str, Grid] = {}
        for sheet in workbook.worksheets:
            sheets[sheet.title] = [_trim_row(list(r)) for r in sheet.iter_rows(values_only=True)]
        return sheets
    finally:
        workbook.close()


def read_grid(content: bytes, filename: str = "") -> Grid:
    """Read the first sheet of a workbook into a grid."""
    sheets = read_sheets(content, filename)
    if not sheets:
        raise SheetParseError(f"No sheets found in {filename or '<upload>'}")
    return next(iter(sheets.values()))


def read_grid_file(path: str | Path) -> Grid:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"File not found: {p}")
    return read_grid(p.read_bytes(), p.name)


# =============================================================================
# Cells
# =============================================================================

def cell_value(row: Optional[list[Any]], idx: int) -> Any:
    if row is None or idx < 0 or idx >= len(row):
        return None
    return row[idx]


def cell_text(row: Optional[list[Any]], idx: int) -> str:
    """Cell as trimmed text; integral floats lose their ".0"."""
    value = cell_value(row, idx)
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def strip_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub("", text or "")


def parse_quantity(value: Any) -> Optional[int]:
    """
    Parse a quantity cell the lenient way ("2", "2개", 2.0 -> 2).

    Returns:
        Leading integer, or None when there is none
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    match = _LEADING_INT_RE.match(str(value))
    return int(match.group(1)) if match else None


# =============================================================================
# Headers and dates
# =============================================================================

def _joined(row: Optional[list[Any]], sep: str = " ") -> str:
    return sep.join("" if c is None else str(c) for c in (row or []))


def find_header_row(grid: Grid) -> int:
    """
    Locate the header row of a master order sheet.

    Scans the first rows for an order-number label, a recipient+phone
    pair, a product label, or a group label. Defaults to 0.
    """
    for i, row in enumerate(grid[:HEADER_SCAN_ROWS]):
        if not row:
            continue
        text = _joined(row).lower()
        if (
            "주문번호" in text
            or ("수취인" in text and "전화번호" in text)
            or "상품명" in text
            or "그룹" in text
        ):
            return i
    return 0


def find_row_containing(grid: Grid, keywords: list[str], limit: int) -> int:
    """First row (within limit) whose joined text contains any keyword; default 0."""
    for i, row in enumerate(grid[:limit]):
        text = _joined(row, "")
        if any(k in text for k in keywords):
            return i
    return 0


def find_column(header: Optional[list[Any]], keywords: list[str]) -> int:
    """
    Index of the first header cell containing any keyword.

    Comparison ignores whitespace and case. Returns -1 when absent.
    """
    for i, cell in enumerate(header or []):
        value = strip_whitespace("" if cell is None else str(cell)).lower()
        if any(k.lower() in value for k in keywords):
            return i
    return -1


def find_date_column(header: Optional[list[Any]]) -> int:
    for i, cell in enumerate(header or []):
        text = "" if cell is None else str(cell).strip()
        if any(dh in text for dh in DATE_HEADERS):
            return i
    return -1


def format_date_label(d: date) -> str:
    """Format as "M/D (요일)"."""
    weekday = WEEKDAYS[(d.weekday() + 1) % 7]
    return f"{d.month}/{d.day} ({weekday})"


def to_date(value: Any) -> Optional[date]:
    """Coerce an Excel serial number, datetime, or date string to a date."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        if float(value).is_integer() and _YYYYMMDD_MIN <= value <= _YYYYMMDD_MAX:
            return to_date(str(int(value)))
        try:
            return (EXCEL_EPOCH + timedelta(days=float(value))).date()
        except (OverflowError, ValueError):
            return None
    text = str(value).strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def parse_date_label(row: list[Any], date_col: int) -> Optional[str]:
    if date_col == -1:
        return None
    parsed = to_date(cell_value(row, date_col))
    return format_date_label(parsed) if parsed else None


# =============================================================================
# Free-text inputs
# =============================================================================

def parse_fake_order_numbers(text: str) -> set[str]:
    """
    Extract flagged order numbers from a pasted, line-delimited list.

    Tokens of five or more upper-case letters, digits or hyphens count.
    """
    numbers: set[str] = set()
    for line in (text or "").split("\n"):
        for match in _FAKE_ORDER_RE.findall(line):
            numbers.add(match.strip())
    return numbers
