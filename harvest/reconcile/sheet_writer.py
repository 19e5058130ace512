"""
XLSX Writer - the workbooks vendors and the back office receive.

Purchase orders and invoice sheets follow the vendor's legacy layout
exactly: one header row, data from row 2, nothing else on the sheet.
"""

from io import BytesIO
from typing import Any, Optional

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from .converter import ORDER_SHEET_TITLE, ConversionResult
from .invoices import MGMT_SHEET_TITLE, UPLOAD_SHEET_TITLE, MergeResult

ORDER_COLUMN_WIDTH = 15


def _save(wb: Workbook) -> BytesIO:
    buffer = BytesIO()
    wb.save(buffer)
    buffer.seek(0)
    return buffer


def _cell(value: Any) -> Any:
    """openpyxl only takes scalars; anything else is written as text."""
    if value is None or isinstance(value, (str, int, float)):
        return value
    if hasattr(value, "isoformat"):
        return value
    return str(value)


def _append_rows(ws, rows: list[list[Any]]) -> None:
    for row in rows:
        ws.append([_cell(v) for v in row])


def create_order_workbook(result: ConversionResult) -> BytesIO:
    """
    Purchase order for one vendor.

    Single sheet "발주서": bold header, every column 15 wide, autofilter
    over the header row.

    Args:
        result: Conversion output for the vendor

    Returns:
        BytesIO buffer containing the Excel file
    """
    wb = Workbook()
    ws = wb.active
    ws.title = ORDER_SHEET_TITLE

    ws.append(list(result.header))
    for cell in ws[1]:
        cell.font = Font(bold=True)

    _append_rows(ws, result.rows)

    width = max(len(result.header), 1)
    for col_idx in range(1, width + 1):
        ws.column_dimensions[get_column_letter(col_idx)].width = ORDER_COLUMN_WIDTH
    ws.auto_filter.ref = f"A1:{get_column_letter(width)}1"

    return _save(wb)


def create_invoice_workbook(result: MergeResult, projection: str = "mgmt") -> BytesIO:
    """
    One projection of an invoice merge.

    Args:
        result: Merge output
        projection: "mgmt" (one row per tracking number, sheet 기록용) or
            "upload" (one row per order, sheet 업로드용)

    Returns:
        BytesIO buffer containing the Excel file
    """
    if projection not in ("mgmt", "upload"):
        raise ValueError(f"Unknown projection: {projection}")

    wb = Workbook()
    ws = wb.active
    ws.title = MGMT_SHEET_TITLE if projection == "mgmt" else UPLOAD_SHEET_TITLE

    ws.append([_cell(v) for v in result.header])
    _append_rows(ws, result.rows if projection == "mgmt" else result.upload_rows)
    return _save(wb)


def create_sheets_workbook(sheets: dict[str, list[list[Any]]], bold_header: Optional[set[str]] = None) -> BytesIO:
    """
    Workbook with one sheet per entry, rows written as given.

    Used for the deposit list, the work log and the period report.

    Args:
        sheets: Sheet title -> rows, in workbook order
        bold_header: Titles of sheets whose first row is a header
    """
    wb = Workbook()
    wb.remove(wb.active)
    for title, rows in sheets.items():
        ws = wb.create_sheet(title=title)
        _append_rows(ws, rows)
        if bold_header and title in bold_header and rows:
            for cell in ws[1]:
                cell.font = Font(bold=True)
    if not wb.worksheets:
        wb.create_sheet(title="Sheet1")
    return _save(wb)
