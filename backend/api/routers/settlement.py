"""
Settlement API router - deposit lists, work log, transfers, merged invoices.

The console sends the day's rounds as session snapshots (as returned by
/api/orders/convert, with invoice_rows and upload_rows filled from
/api/invoices/merge); nothing here keeps state between requests except
the sales history saved with the work log.
"""
import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, HTTPException

from backend.api.models import BulkTransferRequest, CompanyAdjustmentRequest, SettlementRequest
from backend.api.responses import xlsx_response
from backend.core.db import load_pricing_config, save_daily_sales
from harvest.reconcile.errors import SettlementError
from harvest.reconcile.settlement import (
    DEPOSIT_SHEET_TITLE,
    MARGIN_SHEET_TITLE,
    MERGED_UPLOAD_SHEET_TITLE,
    build_daily_sales,
    build_deposit_rows,
    build_work_log,
    company_adjustment_transfer,
    deposit_file_name,
    grand_total,
    merged_upload_file_name,
    merged_upload_rows,
    parse_bulk_transfers,
    sort_companies,
)
from harvest.reconcile.sheet_writer import create_sheets_workbook

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/settlement", tags=["Settlement"])


def _settlement_date(value: Optional[str]) -> date:
    if not value:
        return date.today()
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid date: {value}")


def _selected(request: SettlementRequest) -> Optional[set]:
    return set(request.selected) if request.selected is not None else None


@router.get("/companies")
def company_order():
    """Vendor display order (deadline, then preferred list, then name)."""
    return {"companies": sort_companies(load_pricing_config())}


@router.post("/deposits")
def deposit_list(request: SettlementRequest):
    """Deposit list rows and the grand total of every round plus transfers."""
    config = load_pricing_config()
    day = _settlement_date(request.date)
    try:
        rows = build_deposit_rows(config, request.snapshots(), _selected(request), request.manual_transfers())
    except SettlementError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {
        "rows": rows,
        "grandTotal": grand_total(request.snapshots(), request.manual_transfers()),
        "fileName": deposit_file_name(day),
    }


@router.post("/deposits/xlsx")
def deposit_list_xlsx(request: SettlementRequest):
    config = load_pricing_config()
    day = _settlement_date(request.date)
    try:
        rows = build_deposit_rows(config, request.snapshots(), _selected(request), request.manual_transfers())
    except SettlementError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return xlsx_response(create_sheets_workbook({DEPOSIT_SHEET_TITLE: rows}), deposit_file_name(day))


@router.post("/work-log/xlsx")
def work_log_xlsx(request: SettlementRequest):
    """
    Download the day's work log and save the day's sales history.

    The saved document replaces any earlier save for the same date.
    """
    config = load_pricing_config()
    day = _settlement_date(request.date)
    sessions = request.snapshots()
    work_log = build_work_log(config, sessions, request.manual_transfers(), today=day)
    sales = build_daily_sales(day.isoformat(), config, sessions, work_log)
    save_daily_sales(sales)
    logger.info(f"Work log {work_log.file_name}: {len(work_log.sheets)} sheets, {len(sales.records)} sales records")
    return xlsx_response(
        create_sheets_workbook(work_log.sheets, bold_header={MARGIN_SHEET_TITLE}),
        work_log.file_name,
    )


@router.post("/upload/xlsx")
def merged_upload_xlsx(request: SettlementRequest):
    """Upload-projection rows of the selected rounds in one workbook."""
    day = _settlement_date(request.date)
    try:
        rows, companies = merged_upload_rows(request.snapshots(), _selected(request))
    except SettlementError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return xlsx_response(
        create_sheets_workbook({MERGED_UPLOAD_SHEET_TITLE: rows}, bold_header={MERGED_UPLOAD_SHEET_TITLE}),
        merged_upload_file_name(companies, day),
    )


@router.post("/transfers/parse")
def parse_transfers(request: BulkTransferRequest):
    """Turn pasted transfer lines into manual transfers."""
    return {"transfers": [t.to_dict() for t in parse_bulk_transfers(request.text)]}


@router.post("/transfers/company")
def company_transfer(request: CompanyAdjustmentRequest):
    """Extra payment to a vendor's account, outside any round."""
    config = load_pricing_config()
    if request.company not in config:
        raise HTTPException(status_code=404, detail=f"Unknown company: {request.company}")
    transfer = company_adjustment_transfer(config, request.company, request.amount)
    if transfer is None:
        raise HTTPException(status_code=400, detail="Amount must be positive")
    return transfer.to_dict()
