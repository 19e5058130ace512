"""
Report Generator - settlement texts for human consumption.

Produces the deposit summary (pasted into chat with the vendor), the
spreadsheet-paste variant of the same figures, per-date breakdowns, and
console output for the CLI.
"""

import re
from collections.abc import Iterable
from typing import TYPE_CHECKING, Optional

from .models import ProductTotal, SessionAdjustment

if TYPE_CHECKING:
    from .converter import ConversionResult
    from .invoices import MergeResult

PAYER_FOOTER = "(입금자 안군농원)"
GRAND_TOTAL_LABEL = "총 합계"
ADJUSTMENT_HEADER = "[추가/차감 내역]"

_DIGITS_RE = re.compile(r"(\d+)")
_GRAND_TOTAL_RE = re.compile(r"(총 합계\s+)(-?[\d,]+)(원)")


def natural_key(text: str) -> list:
    """Sort key that orders embedded numbers numerically ("3kg" < "10kg")."""
    return [int(part) if part.isdigit() else part for part in _DIGITS_RE.split(text)]


def _sorted_entries(data: dict[str, ProductTotal]) -> list[tuple[str, ProductTotal]]:
    return sorted(data.items(), key=lambda item: natural_key(item[0]))


class SalesStats:
    """Running per-display-name totals, overall and per source date."""

    def __init__(self):
        self.total: dict[str, ProductTotal] = {}
        self.daily: dict[str, dict[str, ProductTotal]] = {}

    def add(self, display_name: str, count: int, unit_price: int, date_label: Optional[str]) -> None:
        self.total.setdefault(display_name, ProductTotal()).add(count, unit_price)
        if date_label:
            day = self.daily.setdefault(date_label, {})
            day.setdefault(display_name, ProductTotal()).add(count, unit_price)


def deposit_summary_text(data: dict[str, ProductTotal], title: str) -> str:
    """
    Tab-separated deposit summary.

    Layout:
        title
        총주문수<TAB>N개
        (blank)
        name<TAB>count개<TAB>total원    (natural order by name)
        (blank)
        총 합계<TAB><TAB>grand원
        (입금자 안군농원)
    """
    entries = _sorted_entries(data)
    total_count = sum(stat.count for _, stat in entries)
    lines = [title, f"총주문수\t{total_count}개", ""]
    grand_total = 0
    for name, stat in entries:
        lines.append(f"{name}\t{stat.count}개\t{stat.total_price:,}원")
        grand_total += stat.total_price
    lines.extend(["", f"{GRAND_TOTAL_LABEL}\t\t{grand_total:,}원", PAYER_FOOTER])
    return "\n".join(lines)


def excel_summary_text(data: dict[str, ProductTotal], title: str) -> str:
    """
    Spreadsheet-paste variant: one row per product.

    First column carries the title on row 1 and the unit count on row 2;
    the last row gets the grand total appended.
    """
    entries = _sorted_entries(data)
    total_count = sum(stat.count for _, stat in entries)
    grand_total = sum(stat.total_price for _, stat in entries)
    lines = []
    for idx, (name, stat) in enumerate(entries):
        if idx == 0:
            first = title
        elif idx == 1:
            first = f"총 {total_count}개"
        else:
            first = ""
        line = f"{first}\t{name}\t{stat.count}개\t{stat.total_price:,}"
        if idx == len(entries) - 1:
            line += f"\t{grand_total:,}"
        lines.append(line)
    return "\n".join(lines)


def daily_summaries(stats: SalesStats) -> list[dict[str, str]]:
    return [
        {"date": date_label, "content": deposit_summary_text(stats.daily[date_label], date_label)}
        for date_label in sorted(stats.daily)
    ]


def apply_adjustments_to_summary(
    text: str,
    order_total: int,
    adjustments: Iterable[SessionAdjustment],
) -> str:
    """
    Fold session adjustments into a deposit summary.

    Inserts an adjustment block before the grand-total line and rewrites
    the grand total to order_total plus the adjustments.
    """
    adjustments = list(adjustments)
    if not adjustments:
        return text
    block = "\n".join(f"{a.label}\t{a.amount:,}원" for a in adjustments)
    adjusted_total = order_total + sum(a.amount for a in adjustments)
    text = text.replace(GRAND_TOTAL_LABEL, f"{ADJUSTMENT_HEADER}\n{block}\n\n{GRAND_TOTAL_LABEL}", 1)
    return _GRAND_TOTAL_RE.sub(lambda m: f"{m.group(1)}{adjusted_total:,}{m.group(3)}", text, count=1)


# =============================================================================
# Console output (CLI)
# =============================================================================

def format_conversion(result: Optional["ConversionResult"], company_name: str) -> str:
    """Console report for one company's conversion run."""
    if result is None:
        return f"[{company_name}] Unknown company.\n"

    lines = [f"\nCOMPANY: {company_name}", "=" * 70]
    lines.append(f"Rows: {len(result.rows)}   Excluded: {len(result.excluded)}   Unmatched: {len(result.unmatched)}")
    lines.append("")
    if result.is_empty:
        lines.append("No matching orders.")
    else:
        lines.append(result.deposit_summary)

    if result.excluded:
        lines.append(f"\nEXCLUDED ({len(result.excluded)})")
        lines.append("-" * 70)
        for ex in result.excluded:
            lines.append(f"{ex.order_number:<25} {ex.recipient_name:<10} {ex.product_name[:30]}")

    if result.unmatched:
        lines.append(f"\nUNMATCHED ({len(result.unmatched)}) - Needs a catalog entry")
        lines.append("-" * 70)
        for un in result.unmatched:
            lines.append(f"{un.order_number:<25} x{un.qty:<4} {un.product_text[:40]}")

    return "\n".join(lines) + "\n"


def format_merge(result: "MergeResult") -> str:
    """Console report for one invoice merge."""
    lines = []
    for company, stat in result.company_stats.items():
        lines.append(f"\nINVOICES: {company}")
        lines.append("=" * 70)
        lines.append(f"Management rows: {stat.mgmt}   Upload rows: {stat.upload}   Failures: {len(stat.failures)}")
        for failure in stat.failures:
            lines.append(f"  {failure.order_num:<25} {failure.recipient:<10} {failure.reason}")
    return "\n".join(lines) + "\n"
