"""
Invoice Merger - stamp carrier tracking numbers onto order rows.

Two steps:
1. build_invoice_map: carrier file -> {normalized order no: [tracking nos]}
2. merge_invoices: order file + map -> management rows (one per tracking
   number), upload rows (one per order), and failures (no tracking number)
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

from .errors import InvoiceMergeError
from .models import CompanyStat, MergeFailure
from .sheets import (
    HEADER_SCAN_ROWS,
    MASTER_GROUP_COL,
    MASTER_RECIPIENT_COL,
    Grid,
    cell_text,
    cell_value,
    find_column,
    find_row_containing,
    strip_whitespace,
)
from .vendors import carrier_for_company, get_vendor_profile, keywords_for_company

logger = logging.getLogger(__name__)

ORDER_HEADER_SCAN_ROWS = 30
MIN_TRACKING_LENGTH = 5
UNKNOWN_RECIPIENT = "알수없음"
UNMATCHED_REASON = "송장 미매칭"

# Order-file columns for vendors whose order file is the converter's own
# output (order no, courier, tracking no)
FIXED_ORDER_COL = 2
FIXED_COURIER_COL = 3
FIXED_TRACKING_COL = 4

MGMT_SHEET_TITLE = "기록용"
UPLOAD_SHEET_TITLE = "업로드용"

_NON_ALNUM_RE = re.compile(r"[^A-Za-z0-9]")

InvoiceMap = dict[str, list[str]]


def normalize_order_number(value: Any) -> str:
    """
    Canonical order-number key.

    Strips whitespace and a trailing ".0" left by numeric coercion, drops
    every non-alphanumeric character, and upper-cases. Idempotent:
    "A-100.0", "a100" and " A100 " all give "A100".
    """
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        text = str(int(value))
    else:
        text = str(value).strip()
    if text.endswith(".0"):
        text = text[:-2]
    return _NON_ALNUM_RE.sub("", text).upper()


def normalize_tracking_number(value: Any) -> str:
    """Normalized like an order number; callers reject results shorter than 5."""
    return normalize_order_number(value)


# =============================================================================
# Invoice map
# =============================================================================

def _invoice_columns(grid: Grid, company_name: str) -> tuple[int, int]:
    """(order no, tracking no) column indices in the carrier file."""
    profile = get_vendor_profile(company_name)
    if profile.invoice_columns is not None:
        return profile.invoice_columns

    header_idx = find_row_containing(grid, ["번호", "송장"], HEADER_SCAN_ROWS)
    header = grid[header_idx] if header_idx < len(grid) else []
    order_idx = find_column(header, ["주문번호", "관리번호", "ID"])
    tracking_idx = find_column(header, ["송장", "운송장", "등기"])
    if order_idx == -1:
        order_idx = 0
    return order_idx, tracking_idx


def build_invoice_map(grid: Grid, company_name: str) -> InvoiceMap:
    """
    Read a carrier file into an order-number -> tracking-numbers map.

    Args:
        grid: Carrier spreadsheet (first sheet)
        company_name: Vendor, selects fixed columns for known carriers

    Returns:
        Normalized order number -> tracking numbers, de-duplicated in
        first-seen order
    """
    invoice_map: InvoiceMap = {}
    if not grid:
        return invoice_map

    order_idx, tracking_idx = _invoice_columns(grid, company_name)
    if tracking_idx == -1:
        logger.warning(f"[{company_name}] no tracking-number column in carrier file")
        return invoice_map

    needed = max(order_idx, tracking_idx)
    for row in grid:
        if not row or len(row) <= needed:
            continue
        key = normalize_order_number(row[order_idx])
        tracking = normalize_tracking_number(row[tracking_idx])
        if not key or len(tracking) < MIN_TRACKING_LENGTH:
            continue
        numbers = invoice_map.setdefault(key, [])
        if tracking not in numbers:
            numbers.append(tracking)

    logger.info(f"[{company_name}] invoice map: {len(invoice_map)} orders")
    return invoice_map


# =============================================================================
# Merge
# =============================================================================

@dataclass
class MergeResult:
    """Both projections of one merge, plus per-vendor stats."""
    company: str
    header: list[Any]
    rows: list[list[Any]]                       # management projection
    upload_rows: list[list[Any]]                # upload projection
    company_stats: dict[str, CompanyStat] = field(default_factory=dict)
    mgmt_file_name: str = ""
    upload_file_name: str = ""

    @property
    def failures(self) -> list[MergeFailure]:
        return [f for stat in self.company_stats.values() for f in stat.failures]


def merge_file_names(company_name: str, today: date) -> tuple[str, str]:
    prefix = f"{today:%Y-%m-%d} [{company_name}]"
    return f"{prefix} 기록용_송장.xlsx", f"{prefix} 업로드용_송장.xlsx"


def _stamped(row: list[Any], updates: dict[int, Any]) -> list[Any]:
    """Copy of row with cells overwritten, padded as needed; -1 indices skipped."""
    new_row = list(row)
    for idx, value in updates.items():
        if idx < 0:
            continue
        if idx >= len(new_row):
            new_row.extend([""] * (idx + 1 - len(new_row)))
        new_row[idx] = value
    return new_row


def merge_invoices(
    order_grid: Grid,
    invoice_map: InvoiceMap,
    company_name: str,
    skip_group_check: bool = True,
    today: Optional[date] = None,
) -> MergeResult:
    """
    Join tracking numbers onto order rows.

    Args:
        order_grid: Order file (usually the converter's purchase order)
        invoice_map: Output of build_invoice_map
        company_name: Vendor
        skip_group_check: False re-filters rows by the vendor's group keywords
        today: Date used in the output file names

    Returns:
        MergeResult; rows exclude the header, which is kept separately

    Raises:
        InvoiceMergeError: the order file has no order-number column
    """
    today = today or date.today()
    header_idx = find_row_containing(order_grid, ["주문번호"], ORDER_HEADER_SCAN_ROWS)
    header = list(order_grid[header_idx] or []) if header_idx < len(order_grid) else []

    profile = get_vendor_profile(company_name)
    if profile.fixed_order_columns:
        order_idx, tracking_idx, courier_idx = FIXED_ORDER_COL, FIXED_TRACKING_COL, FIXED_COURIER_COL
    else:
        order_idx = find_column(header, ["주문번호"])
        tracking_idx = find_column(header, ["운송장", "송장번호"])
        courier_idx = find_column(header, ["택배사", "배송사"])
    qty_idx = find_column(header, ["수량"])

    if order_idx == -1:
        raise InvoiceMergeError("주문서에서 '주문번호' 열을 찾을 수 없습니다.")

    courier = carrier_for_company(company_name)
    keywords = [strip_whitespace(k) for k in keywords_for_company(company_name)]

    mgmt_rows: list[list[Any]] = []
    upload_rows: list[list[Any]] = []
    failures: list[MergeFailure] = []

    for row in order_grid[header_idx + 1:]:
        if not row:
            continue
        if not skip_group_check:
            group = strip_whitespace(cell_text(row, MASTER_GROUP_COL))
            if not any(k and k in group for k in keywords):
                continue

        order_num = normalize_order_number(cell_value(row, order_idx))
        tracking_numbers = invoice_map.get(order_num)
        if not tracking_numbers:
            failures.append(MergeFailure(
                order_num=order_num,
                recipient=cell_text(row, MASTER_RECIPIENT_COL) or UNKNOWN_RECIPIENT,
                reason=UNMATCHED_REASON,
            ))
            continue

        split = len(tracking_numbers) > 1
        for tracking in tracking_numbers:
            updates = {tracking_idx: tracking, courier_idx: courier}
            if split:
                updates[qty_idx] = 1
            mgmt_rows.append(_stamped(row, updates))
        upload_rows.append(_stamped(row, {tracking_idx: tracking_numbers[0], courier_idx: courier}))

    logger.info(
        f"[{company_name}] merged {len(upload_rows)} orders into {len(mgmt_rows)} parcels, "
        f"{len(failures)} failures"
    )
    mgmt_name, upload_name = merge_file_names(company_name, today)
    return MergeResult(
        company=company_name,
        header=header,
        rows=mgmt_rows,
        upload_rows=upload_rows,
        company_stats={company_name: CompanyStat(len(mgmt_rows), len(upload_rows), failures)},
        mgmt_file_name=mgmt_name,
        upload_file_name=upload_name,
    )
