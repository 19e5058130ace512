"""
Settlement Aggregator - end-of-day totals, deposit lists and the work log.

Works on SessionSnapshot records (one per vendor round) so that callers
can feed it from live workstations or from stored documents alike.
Sheets are built as plain row lists; sheet_writer turns them into files.
"""

import logging
import re
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from functools import cmp_to_key
from typing import Any, Optional

from .catalog import find_product_by_display_name
from .errors import SettlementError
from .models import (
    DailySales,
    DepositRecord,
    ManualTransfer,
    PricingConfig,
    ProductTotal,
    SalesRecord,
    SessionAdjustment,
    to_int,
)

logger = logging.getLogger(__name__)

PREFERRED_ORDER = [
    "연두", "웰그린", "고랭지김치", "답도", "제이제이", "신선마켓",
    "귤_제주", "귤_초록", "홍게", "꽃게", "황금향", "귤",
]
NO_DEADLINE_SCORE = 9999

DEFAULT_BANK = "은행"
DEFAULT_ACCOUNT = "계좌"
UNSET_BANK = "은행미지정"
UNSET_ACCOUNT = "계좌미지정"
TOTAL_LABEL = "합계"

DEPOSIT_SHEET_TITLE = "입금내역"
SUMMARY_SHEET_TITLE = "요약시트"
ORDER_SHEET_TITLE = "발주시트"
INVOICE_SHEET_TITLE = "송장시트"
MARGIN_SHEET_TITLE = "마진시트"
MERGED_UPLOAD_SHEET_TITLE = "병합송장"

MARGIN_HEADER = ["업체명", "품목명", "수량", "판매가", "공급가", "마진(개당)", "총마진"]

_COMPANY_HEADER_RE = re.compile(r"^\[(.+?)\s*정산내역\]$")
_COUNT_RE = re.compile(r"(\d+)개")
_FILENAME_DATE_RE = re.compile(r"(\d{4}-\d{2}-\d{2})")
_MONEY_NOISE_RE = re.compile(r"[,원\s]")


@dataclass
class SessionSnapshot:
    """What the aggregator needs from one vendor round."""
    id: str
    company: str
    round: int = 1
    total: int = 0                                # order total + adjustments
    summary_excel: str = ""
    order_rows: list[list[Any]] = field(default_factory=list)
    invoice_rows: list[list[Any]] = field(default_factory=list)
    upload_rows: list[list[Any]] = field(default_factory=list)
    invoice_header: Optional[list[Any]] = None


# =============================================================================
# Ordering and totals
# =============================================================================

def time_score(deadline: Optional[str]) -> int:
    """Minutes since midnight for "HH:MM"; no deadline sorts last."""
    if not deadline:
        return NO_DEADLINE_SCORE
    hours, _, minutes = deadline.partition(":")
    return to_int(hours) * 60 + to_int(minutes)


def sort_companies(config: PricingConfig) -> list[str]:
    """
    Vendor display order.

    If either vendor of a pair has a deadline, the earlier deadline wins.
    Otherwise the preferred list decides, listed vendors first and the
    rest alphabetically.
    """
    def compare(a: str, b: str) -> int:
        deadline_a = config[a].deadline
        deadline_b = config[b].deadline
        if deadline_a or deadline_b:
            return time_score(deadline_a) - time_score(deadline_b)
        in_a = a in PREFERRED_ORDER
        in_b = b in PREFERRED_ORDER
        if in_a and in_b:
            return PREFERRED_ORDER.index(a) - PREFERRED_ORDER.index(b)
        if in_a:
            return -1
        if in_b:
            return 1
        return (a > b) - (a < b)

    return sorted(config, key=cmp_to_key(compare))


def ordered_sessions(config: PricingConfig, sessions: Iterable[SessionSnapshot]) -> list[SessionSnapshot]:
    """Sessions in vendor display order, rounds in their given order; unknown vendors dropped."""
    by_company: dict[str, list[SessionSnapshot]] = {}
    for session in sessions:
        by_company.setdefault(session.company, []).append(session)
    return [s for name in sort_companies(config) for s in by_company.get(name, [])]


def session_total(summary: dict[str, ProductTotal], adjustments: Iterable[SessionAdjustment] = ()) -> int:
    return sum(t.total_price for t in summary.values()) + sum(a.amount for a in adjustments)


def grand_total(sessions: Iterable[SessionSnapshot], transfers: Iterable[ManualTransfer] = ()) -> int:
    return sum(s.total for s in sessions) + sum(t.amount for t in transfers)


# =============================================================================
# Adjustments and transfers
# =============================================================================

def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def make_adjustment(amount: int, label: Optional[str] = None) -> SessionAdjustment:
    """Signed session adjustment; the label defaults by sign."""
    if not label:
        label = "반품/차감" if amount < 0 else "수동 추가"
    return SessionAdjustment(id=_new_id("adj"), label=label, amount=amount)


def make_transfer(
    label: str,
    amount: int,
    bank_name: Optional[str] = None,
    account_number: Optional[str] = None,
) -> ManualTransfer:
    if not label or not amount:
        raise SettlementError("Transfer needs a label and a non-zero amount")
    return ManualTransfer(
        id=_new_id("manual"),
        label=label,
        bank_name=bank_name or DEFAULT_BANK,
        account_number=account_number or DEFAULT_ACCOUNT,
        amount=amount,
    )


def company_adjustment_transfer(
    config: PricingConfig,
    company_name: str,
    amount: int,
) -> Optional[ManualTransfer]:
    """
    Extra payment to a vendor, outside any round.

    Returns:
        ManualTransfer paid to the vendor's account, or None for a
        non-positive amount
    """
    if amount <= 0:
        return None
    company = config.get(company_name)
    return ManualTransfer(
        id=_new_id(f"adj-{company_name}"),
        label=f"{company_name}(수동)",
        bank_name=(company.bank_name if company else None) or DEFAULT_BANK,
        account_number=(company.account_number if company else None) or DEFAULT_ACCOUNT,
        amount=amount,
        is_adjustment=True,
        company_name=company_name,
    )


def parse_bulk_transfers(text: str) -> list[ManualTransfer]:
    """
    Parse pasted transfer lines ("31000 홍길동 국민 1234").

    The first token made only of digits (after dropping "," and "원") with
    a value of at least 100 is the amount; every other token goes into the
    label. Lines without an amount are skipped.
    """
    transfers = []
    for line in (text or "").split("\n"):
        if not line.strip():
            continue
        amount = 0
        label_parts = []
        for part in line.split():
            digits = part.replace(",", "").replace("원", "")
            if amount == 0 and digits.isdigit() and int(digits) >= 100:
                amount = int(digits)
            else:
                label_parts.append(part)
        if amount > 0:
            transfers.append(ManualTransfer(
                id=_new_id("bulk"),
                label=" ".join(label_parts) or "수동 지출",
                bank_name=DEFAULT_BANK,
                account_number=DEFAULT_ACCOUNT,
                amount=amount,
            ))
    return transfers


# =============================================================================
# Deposit list
# =============================================================================

def build_deposit_rows(
    config: PricingConfig,
    sessions: Iterable[SessionSnapshot],
    selected: Optional[set[str]],
    transfers: Iterable[ManualTransfer] = (),
) -> list[list[Any]]:
    """
    Rows of the deposit list sheet.

    Args:
        config: Catalog (bank details, display order)
        sessions: Settled rounds
        selected: Session ids to pay; None selects all
        transfers: Manual transfers, always included

    Raises:
        SettlementError: nothing to pay
    """
    rows: list[list[Any]] = []
    total = 0
    for session in ordered_sessions(config, sessions):
        if selected is not None and session.id not in selected:
            continue
        if session.total <= 0:
            continue
        company = config[session.company]
        rows.append([
            company.bank_name or UNSET_BANK,
            company.account_number or UNSET_ACCOUNT,
            session.total,
            f"{session.company}({session.round}차)",
        ])
        total += session.total

    for transfer in transfers:
        rows.append([transfer.bank_name, transfer.account_number, transfer.amount, transfer.label])
        total += transfer.amount

    if not rows:
        raise SettlementError("선택된 업체 중 입금할 내역이 없습니다.")

    rows.extend([[], ["", TOTAL_LABEL, total]])
    return rows


def deposit_file_name(today: date) -> str:
    return f"{today:%Y-%m-%d}_입금목록.xlsx"


def merged_upload_rows(
    sessions: Iterable[SessionSnapshot],
    selected: Optional[set[str]] = None,
) -> tuple[list[list[Any]], list[str]]:
    """
    Upload-projection rows of several rounds in one sheet.

    Returns:
        (rows with the first available header on top, companies included)
    """
    header: Optional[list[Any]] = None
    rows: list[list[Any]] = []
    companies: list[str] = []
    for session in sessions:
        if selected is not None and session.id not in selected:
            continue
        if not session.upload_rows:
            continue
        if header is None and session.invoice_header:
            header = list(session.invoice_header)
        rows.extend(session.upload_rows)
        if session.company not in companies:
            companies.append(session.company)
    if not rows:
        raise SettlementError("선택된 업체 중 매칭된 송장 데이터가 없습니다.")
    return ([header] + rows if header else rows), companies


def merged_upload_file_name(companies: list[str], today: date) -> str:
    if len(companies) > 3:
        label = f"{', '.join(companies[:3])} 외 {len(companies) - 3}곳"
    else:
        label = ", ".join(companies)
    return f"{today:%Y-%m-%d} [{label}] 업로드용_송장_병합.xlsx"


# =============================================================================
# Work log
# =============================================================================

def summary_sheet_rows(config: PricingConfig, sessions: Iterable[SessionSnapshot]) -> list[list[Any]]:
    """One "[name 정산내역]" block per vendor; every round's excel text split on tabs."""
    rows: list[list[Any]] = []
    header_added: set[str] = set()
    for session in ordered_sessions(config, sessions):
        text = session.summary_excel
        if not text or not text.strip():
            continue
        if session.company not in header_added:
            rows.append([f"[{session.company} 정산내역]"])
            header_added.add(session.company)
        rows.extend(line.split("\t") for line in text.split("\n"))
        rows.append([])
    return rows


def margin_sheet_rows(config: PricingConfig, summary_rows: list[list[Any]]) -> list[list[Any]]:
    """
    Per-product margin lines derived from the summary sheet.

    Returns:
        Header plus one row per product line, then a blank row and the
        total; just the header when nothing was found
    """
    rows: list[list[Any]] = [list(MARGIN_HEADER)]
    current = ""
    for row in summary_rows:
        first = str(row[0] if row else "").strip()
        header_match = _COMPANY_HEADER_RE.match(first)
        if header_match:
            current = header_match.group(1)
            continue
        if not current or len(row) < 3:
            continue
        product_name = str(row[1] or "").strip()
        count_match = _COUNT_RE.search(str(row[2] or "").strip())
        if not product_name or not count_match or current not in config:
            continue
        count = int(count_match.group(1))
        product = find_product_by_display_name(config, current, product_name)
        selling = (product.selling_price or 0) if product else 0
        supply = (product.supply_price or 0) if product else 0
        margin = (product.margin or 0) if product else 0
        rows.append([current, product_name, count, selling, supply, margin, margin * count])

    if len(rows) > 1:
        total_margin = sum(r[6] for r in rows[1:])
        rows.extend([[], ["", "", "", "", "", "총 마진", total_margin]])
    return rows


@dataclass
class WorkLog:
    """Sheets of the end-of-day work log, in workbook order."""
    sheets: dict[str, list[list[Any]]]
    order_rows: list[list[Any]]
    invoice_rows: list[list[Any]]
    deposit_records: list[DepositRecord]
    deposit_total: int
    file_name: str


def build_work_log(
    config: PricingConfig,
    sessions: Iterable[SessionSnapshot],
    transfers: Iterable[ManualTransfer] = (),
    today: Optional[date] = None,
) -> WorkLog:
    """
    Assemble the work log: summary, deposits, orders, invoices, margins.

    Summary, order, invoice and margin sheets are left out when empty;
    the deposit sheet is always present.
    """
    today = today or date.today()
    sessions = ordered_sessions(config, sessions)
    transfers = list(transfers)

    summary_rows = summary_sheet_rows(config, sessions)

    deposit_rows: list[list[Any]] = []
    deposit_records: list[DepositRecord] = []
    deposit_total = 0
    for session in sessions:
        if session.total <= 0:
            continue
        company = config[session.company]
        deposit_rows.append([company.bank_name or "", company.account_number or "", session.total])
        deposit_records.append(DepositRecord(company.bank_name or "", company.account_number or "", session.total))
        deposit_total += session.total
    for transfer in transfers:
        deposit_rows.append([transfer.bank_name, transfer.account_number, transfer.amount])
        deposit_records.append(DepositRecord(transfer.bank_name, transfer.account_number, transfer.amount))
        deposit_total += transfer.amount
    if deposit_rows:
        deposit_rows.extend([[], ["", TOTAL_LABEL, deposit_total]])

    order_rows = [row for s in sessions for row in s.order_rows]
    invoice_rows = [row for s in sessions for row in s.invoice_rows]
    margin_rows = margin_sheet_rows(config, summary_rows)

    sheets: dict[str, list[list[Any]]] = {}
    if summary_rows:
        sheets[SUMMARY_SHEET_TITLE] = summary_rows
    sheets[DEPOSIT_SHEET_TITLE] = deposit_rows
    if order_rows:
        sheets[ORDER_SHEET_TITLE] = order_rows
    if invoice_rows:
        sheets[INVOICE_SHEET_TITLE] = invoice_rows
    if len(margin_rows) > 1:
        sheets[MARGIN_SHEET_TITLE] = margin_rows

    return WorkLog(
        sheets=sheets,
        order_rows=order_rows,
        invoice_rows=invoice_rows,
        deposit_records=[r for r in deposit_records if r.bank_name],
        deposit_total=deposit_total,
        file_name=f"{today:%Y-%m-%d}_업무일지.xlsx",
    )


# =============================================================================
# Sales history
# =============================================================================

def _parse_money(value: Any) -> int:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    return to_int(_MONEY_NOISE_RE.sub("", str(value or "")))


def _now_iso() -> str:
    return datetime.now().isoformat()


def build_daily_sales(
    day: str,
    config: PricingConfig,
    sessions: Iterable[SessionSnapshot],
    work_log: Optional[WorkLog] = None,
) -> DailySales:
    """
    Turn the rounds' excel-paste summaries into a DailySales document.

    A summary line counts when it has at least three tab-separated parts,
    a product name in the second and "<n>개" in the third. Supply price is
    the rounded average; margin comes from the catalog by display name.
    """
    records: list[SalesRecord] = []
    for session in sessions:
        if session.company not in config:
            continue
        text = session.summary_excel
        if not text or not text.strip():
            continue
        for line in text.split("\n"):
            parts = line.split("\t")
            if len(parts) < 3:
                continue
            product_name = parts[1].strip()
            count_match = _COUNT_RE.search(parts[2])
            if not product_name or not count_match:
                continue
            count = int(count_match.group(1))
            total_price = _parse_money(parts[3]) if len(parts) > 3 else 0
            product = find_product_by_display_name(config, session.company, product_name)
            records.append(SalesRecord(
                date=day,
                company=session.company,
                product=product_name,
                count=count,
                supply_price=round(total_price / count) if count > 0 else 0,
                total_price=total_price,
                margin=(product.margin or 0) if product else 0,
            ))

    return DailySales(
        date=day,
        records=records,
        total_amount=sum(r.total_price for r in records),
        saved_at=_now_iso(),
        order_rows=(work_log.order_rows or None) if work_log else None,
        invoice_rows=(work_log.invoice_rows or None) if work_log else None,
        deposit_records=work_log.deposit_records if work_log else None,
        deposit_total=(work_log.deposit_total or None) if work_log else None,
    )


def _find_sheet(names: list[str], *keywords: str) -> Optional[str]:
    return next((n for n in names if any(k in n for k in keywords)), None)


def parse_work_log(sheets: dict[str, list[list[Any]]], filename: str = "") -> Optional[DailySales]:
    """
    Re-import a work-log workbook as a DailySales document.

    The date comes from the file name (YYYY-MM-DD), else today. Sheets are
    found by name keyword; the summary falls back to the first sheet.

    Returns:
        DailySales, or None when the workbook holds nothing importable
    """
    date_match = _FILENAME_DATE_RE.search(filename or "")
    day = date_match.group(1) if date_match else date.today().isoformat()
    names = list(sheets)
    if not names:
        return None

    summary_name = _find_sheet(names, "요약", "Summary") or names[0]
    records: list[SalesRecord] = []
    current = ""
    for row in sheets.get(summary_name, []):
        if not row:
            continue
        first = str(row[0] if row[0] is not None else "").strip()
        header_match = _COMPANY_HEADER_RE.match(first)
        if header_match:
            current = header_match.group(1)
            continue
        if not current or len(row) < 3:
            continue
        product_name = str(row[1] if row[1] is not None else "").strip()
        count_match = _COUNT_RE.search(str(row[2] if row[2] is not None else "").strip())
        if not product_name or not count_match:
            continue
        count = int(count_match.group(1))
        total_price = _parse_money(row[3]) if len(row) > 3 else 0
        records.append(SalesRecord(
            date=day,
            company=current,
            product=product_name,
            count=count,
            supply_price=round(total_price / count) if count > 0 else 0,
            total_price=total_price,
        ))

    order_name = _find_sheet(names, "발주")
    order_rows = sheets.get(order_name, []) if order_name else []
    invoice_name = _find_sheet(names, "송장")
    invoice_rows = sheets.get(invoice_name, []) if invoice_name else []

    deposit_name = _find_sheet(names, "입금")
    deposit_records: list[DepositRecord] = []
    deposit_total = 0
    for row in sheets.get(deposit_name, []) if deposit_name else []:
        if not row or len(row) < 3:
            continue
        bank_name = str(row[0] if row[0] is not None else "").strip()
        account_number = str(row[1] if row[1] is not None else "").strip()
        amount = _parse_money(row[2])
        if bank_name == "" and account_number == TOTAL_LABEL:
            deposit_total = amount
            continue
        if amount > 0:
            label = str(row[3] if len(row) > 3 and row[3] is not None else "").strip()
            deposit_records.append(DepositRecord(bank_name, account_number, amount, label))
    if deposit_total == 0:
        deposit_total = sum(r.amount for r in deposit_records)

    if not (records or order_rows or invoice_rows or deposit_records):
        logger.info(f"Work log {filename or '<upload>'}: nothing to import")
        return None

    logger.info(
        f"Work log {filename or '<upload>'} -> {day}: {len(records)} sales, "
        f"{len(order_rows)} order rows, {len(invoice_rows)} invoice rows, {len(deposit_records)} deposits"
    )
    return DailySales(
        date=day,
        records=records,
        total_amount=sum(r.total_price for r in records),
        saved_at=_now_iso(),
        order_rows=order_rows or None,
        invoice_rows=invoice_rows or None,
        deposit_records=deposit_records or None,
        deposit_total=deposit_total or None,
    )


# =============================================================================
# Period summary
# =============================================================================

@dataclass
class SummaryLine:
    count: int = 0
    total_price: int = 0
    margin: int = 0

    def to_dict(self) -> dict:
        return {"count": self.count, "totalPrice": self.total_price, "margin": self.margin}


@dataclass
class PeriodSummary:
    days: list[DailySales]
    by_product: list[tuple[str, SummaryLine]]
    by_company: list[tuple[str, SummaryLine]]
    total_amount: int
    total_count: int
    total_margin: int
    deposit_records: list[tuple[str, DepositRecord]]
    deposit_total: int


def summarize_period(history: Iterable[DailySales], start: str, end: str) -> PeriodSummary:
    """
    Aggregate stored days between start and end (inclusive, YYYY-MM-DD).

    Product and company lines are sorted by total amount, largest first.
    Margin is the per-unit margin times count.
    """
    days = sorted((d for d in history if start <= d.date <= end), key=lambda d: d.date)
    by_product: dict[str, SummaryLine] = {}
    by_company: dict[str, SummaryLine] = {}
    for day in days:
        for record in day.records:
            for key, bucket in ((record.product, by_product), (record.company, by_company)):
                line = bucket.setdefault(key, SummaryLine())
                line.count += record.count
                line.total_price += record.total_price
                line.margin += (record.margin or 0) * record.count

    deposits = [(d.date, r) for d in days for r in d.deposit_records or []]
    deposit_total = sum(d.deposit_total or 0 for d in days) or sum(r.amount for _, r in deposits)

    records = [r for d in days for r in d.records]
    return PeriodSummary(
        days=days,
        by_product=sorted(by_product.items(), key=lambda kv: kv[1].total_price, reverse=True),
        by_company=sorted(by_company.items(), key=lambda kv: kv[1].total_price, reverse=True),
        total_amount=sum(d.total_amount for d in days),
        total_count=sum(r.count for r in records),
        total_margin=sum((r.margin or 0) * r.count for r in records),
        deposit_records=deposits,
        deposit_total=deposit_total,
    )


def period_report_sheets(summary: PeriodSummary) -> dict[str, list[list[Any]]]:
    """Sheets of the period export: by date, product, company, raw rows, deposits, margins."""
    sheets: dict[str, list[list[Any]]] = {}
    date_rows: list[list[Any]] = [["날짜", "업체", "품목", "수량", "공급가", "합계", "마진"]]
    for day in summary.days:
        for r in day.records:
            date_rows.append([day.date, r.company, r.product, r.count, r.supply_price, r.total_price,
                              (r.margin or 0) * r.count])
    sheets["날짜별"] = date_rows
    sheets["품목별"] = [["품목", "총수량", "총합계"]] + [
        [name, line.count, line.total_price] for name, line in summary.by_product
    ]
    sheets["업체별"] = [["업체", "총수량", "총합계"]] + [
        [name, line.count, line.total_price] for name, line in summary.by_company
    ]

    order_rows = [row for d in summary.days for row in d.order_rows or []]
    if order_rows:
        sheets["발주"] = order_rows
    invoice_rows = [row for d in summary.days for row in d.invoice_rows or []]
    if invoice_rows:
        sheets["송장"] = invoice_rows
    if summary.deposit_records:
        deposit_rows: list[list[Any]] = [["은행", "계좌번호", "금액", "비고", "날짜"]]
        for day, r in summary.deposit_records:
            deposit_rows.append([r.bank_name, r.account_number, r.amount, r.label, day])
        deposit_rows.append(["", TOTAL_LABEL, summary.deposit_total, "", ""])
        sheets["입금"] = deposit_rows

    sheets["마진"] = [["품목", "총수량", "총합계", "총마진"]] + [
        [name, line.count, line.total_price, line.margin] for name, line in summary.by_product
    ]
    return sheets
