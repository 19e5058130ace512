"""
Order Classifier & Converter - master sheet -> one vendor's purchase order.

Pipeline for one company:
1. Classify: keep the header plus rows whose group cell names the vendor
2. Extract: one OrderLine per row, dropping fake and zero-qty orders
3. Match: each line through the ProductMatcher
4. Emit: qty one-unit rows in the vendor's layout, plus running totals
5. Fold in manual orders the same way
6. Render the deposit summary texts
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Optional

from .matcher import ProductMatcher
from .models import (
    ExcludedOrder,
    ManualOrder,
    OrderLine,
    PricingConfig,
    ProductTotal,
    UnmatchedLine,
)
from .report import SalesStats, daily_summaries, deposit_summary_text, excel_summary_text
from .sheets import (
    MASTER_ADDRESS_COL,
    MASTER_GROUP_COL,
    MASTER_MESSAGE_COL,
    MASTER_ORDER_NO_COL,
    MASTER_PHONE_COL,
    MASTER_PRODUCT_COL,
    MASTER_QTY_COL,
    MASTER_RECIPIENT_COL,
    MASTER_ZIP_COL,
    Grid,
    cell_text,
    cell_value,
    find_date_column,
    find_header_row,
    format_date_label,
    parse_date_label,
    parse_quantity,
    strip_whitespace,
)
from .vendors import MANUAL_MARKER, keywords_for_company, manual_row_builder, resolve_layout

logger = logging.getLogger(__name__)

ORDER_SHEET_TITLE = "발주서"


@dataclass
class ConversionResult:
    """Everything one company's conversion produces."""
    company: str
    header: list[str]
    rows: list[list[Any]]
    summary: dict[str, ProductTotal]            # product key -> totals
    deposit_summary: str
    deposit_summary_excel: str
    daily_summaries: list[dict[str, str]]
    file_name: str
    excluded: list[ExcludedOrder] = field(default_factory=list)
    unmatched: list[UnmatchedLine] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.rows and not self.summary

    @property
    def order_total(self) -> int:
        return sum(t.total_price for t in self.summary.values())

    @property
    def order_count(self) -> int:
        return sum(t.count for t in self.summary.values())

    def summary_dict(self) -> dict[str, dict]:
        return {key: total.to_dict() for key, total in self.summary.items()}


def classify_rows(grid: Grid, company_name: str) -> Grid:
    """
    Keep the header row and the rows that belong to one vendor.

    A row belongs to the vendor when its group cell, with all whitespace
    removed, contains any of the vendor's keywords (whitespace removed too).

    Returns:
        [header, *rows]; empty when the grid is empty
    """
    if not grid:
        return []

    header_idx = find_header_row(grid)
    keywords = [strip_whitespace(k) for k in keywords_for_company(company_name)]
    keywords = [k for k in keywords if k]

    classified: Grid = [list(grid[header_idx] or [])]
    for row in grid[header_idx + 1:]:
        if not row:
            continue
        group = strip_whitespace(cell_text(row, MASTER_GROUP_COL))
        if any(k in group for k in keywords):
            classified.append(row)

    logger.info(
        f"[{company_name}] header row {header_idx}, "
        f"{len(classified) - 1} of {len(grid) - header_idx - 1} rows classified"
    )
    return classified


def extract_line(row: list[Any], company_name: str, date_col: int) -> OrderLine:
    """Read one master-sheet row into an OrderLine (qty may be 0 when unparseable)."""
    qty = parse_quantity(cell_value(row, MASTER_QTY_COL))
    return OrderLine(
        company=company_name,
        order_number=cell_text(row, MASTER_ORDER_NO_COL),
        group_text=cell_text(row, MASTER_GROUP_COL),
        product_text=cell_text(row, MASTER_PRODUCT_COL),
        qty=qty if qty is not None else 0,
        recipient=cell_text(row, MASTER_RECIPIENT_COL),
        phone=cell_text(row, MASTER_PHONE_COL),
        zip_code=cell_text(row, MASTER_ZIP_COL),
        address=cell_text(row, MASTER_ADDRESS_COL),
        message=cell_text(row, MASTER_MESSAGE_COL),
        date_label=parse_date_label(row, date_col),
    )


def manual_line(order: ManualOrder, date_label: str) -> OrderLine:
    return OrderLine(
        company=order.company_name,
        order_number=MANUAL_MARKER,
        group_text="",
        product_text=order.product_name,
        qty=order.qty,
        recipient=order.recipient_name,
        phone=order.phone,
        address=order.address,
        date_label=date_label,
        manual=True,
    )


def order_file_name(company_name: str, today: date) -> str:
    return f"{today:%Y-%m-%d} {company_name} 발주서.xlsx"


def convert_company(
    config: PricingConfig,
    grid: Optional[Grid],
    company_name: str,
    fake_orders: Optional[set[str]] = None,
    manual_orders: Optional[Iterable[ManualOrder]] = None,
    matcher: Optional[ProductMatcher] = None,
    today: Optional[date] = None,
) -> Optional[ConversionResult]:
    """
    Convert the master sheet into one vendor's purchase order.

    Args:
        config: Catalog snapshot
        grid: Master order sheet (None or empty for manual-only runs)
        company_name: Target vendor
        fake_orders: Order numbers to exclude
        manual_orders: Hand-entered orders appended after the sheet rows
        matcher: Matcher for this run; a cache-only matcher with no oracle by default
        today: Date used for titles, file name and manual orders

    Returns:
        ConversionResult (is_empty when nothing was produced, excluded
        orders still listed), or None when the vendor is unknown
    """
    company = config.get(company_name)
    if company is None:
        logger.warning(f"Unknown company: {company_name}")
        return None

    fake_orders = fake_orders or set()
    matcher = matcher or ProductMatcher(config)
    today = today or date.today()
    today_label = format_date_label(today)

    layout = resolve_layout(company_name, company)
    manual_build = manual_row_builder(company_name, layout)

    stats = SalesStats()
    summary: dict[str, ProductTotal] = {}
    rows: list[list[Any]] = []
    excluded: list[ExcludedOrder] = []
    unmatched: list[UnmatchedLine] = []

    def emit(line: OrderLine, build) -> None:
        match = matcher.match(company_name, line.match_text)
        if match is None:
            logger.debug(f"[{company_name}] no catalog entry for '{line.match_text}'")
            unmatched.append(UnmatchedLine(company_name, line.order_number, line.match_text, line.qty))
            return
        summary.setdefault(match.product_key, ProductTotal()).add(line.qty, match.supply_price)
        stats.add(match.display_name, line.qty, match.supply_price, line.date_label)
        for _ in range(line.qty):
            rows.append(build(line, match.display_name))

    classified = classify_rows(grid or [], company_name)
    if classified:
        date_col = find_date_column(classified[0])
        for row in classified[1:]:
            line = extract_line(row, company_name, date_col)
            if line.order_number in fake_orders:
                excluded.append(ExcludedOrder(
                    company_name=company_name,
                    recipient_name=line.recipient,
                    product_name=line.product_text,
                    phone=line.phone,
                    order_number=f"{line.order_number} (제외)",
                ))
                continue
            if line.qty < 1:
                continue
            emit(line, layout.build)

    for order in manual_orders or []:
        if order.qty < 1:
            continue
        emit(manual_line(order, today_label), manual_build)

    if not rows and not summary:
        logger.info(f"[{company_name}] nothing to convert ({len(excluded)} excluded)")
    else:
        logger.info(
            f"[{company_name}] {len(rows)} rows, {len(summary)} products, "
            f"{len(excluded)} excluded, {len(unmatched)} unmatched"
        )
    return ConversionResult(
        company=company_name,
        header=list(layout.header),
        rows=rows,
        summary=summary,
        deposit_summary=deposit_summary_text(stats.total, f"{today_label} ({company_name})"),
        deposit_summary_excel=excel_summary_text(stats.total, today_label),
        daily_summaries=daily_summaries(stats),
        file_name=order_file_name(company_name, today),
        excluded=excluded,
        unmatched=unmatched,
    )
