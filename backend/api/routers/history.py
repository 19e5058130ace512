"""
Sales history API router.
"""
import logging
from typing import Optional

from fastapi import APIRouter, File, HTTPException, Query, UploadFile

from backend.api.responses import read_upload_sheets, xlsx_response
from backend.core.db import delete_daily_sales, get_daily_sales, list_sales_history, save_daily_sales
from harvest.reconcile.settlement import parse_work_log, period_report_sheets, summarize_period
from harvest.reconcile.sheet_writer import create_sheets_workbook

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/history", tags=["History"])

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


@router.get("")
def get_history(limit: Optional[int] = Query(None, ge=1, le=366)):
    """Stored days, newest first."""
    return {"days": [d.to_dict() for d in list_sales_history(limit=limit)]}


@router.get("/summary")
def get_period_summary(
    start: str = Query(..., pattern=DATE_PATTERN),
    end: str = Query(..., pattern=DATE_PATTERN),
):
    """Totals by product and by company between start and end (inclusive)."""
    summary = summarize_period(list_sales_history(), start, end)
    return {
        "start": start,
        "end": end,
        "days": [d.date for d in summary.days],
        "totalAmount": summary.total_amount,
        "totalCount": summary.total_count,
        "totalMargin": summary.total_margin,
        "depositTotal": summary.deposit_total,
        "byProduct": [{"name": name, **line.to_dict()} for name, line in summary.by_product],
        "byCompany": [{"name": name, **line.to_dict()} for name, line in summary.by_company],
        "deposits": [{"date": day, **r.to_dict()} for day, r in summary.deposit_records],
    }


@router.get("/summary/xlsx")
def get_period_summary_xlsx(
    start: str = Query(..., pattern=DATE_PATTERN),
    end: str = Query(..., pattern=DATE_PATTERN),
):
    """Download the period report workbook."""
    summary = summarize_period(list_sales_history(), start, end)
    if not summary.days:
        raise HTTPException(status_code=404, detail="No sales history in range")
    sheets = period_report_sheets(summary)
    return xlsx_response(
        create_sheets_workbook(sheets, bold_header={"날짜별", "품목별", "업체별", "마진"}),
        f"{start}_{end}_매출요약.xlsx",
    )


@router.post("/import")
async def import_work_log(file: UploadFile = File(...)):
    """Re-import a work-log workbook; the date comes from the file name."""
    sheets = await read_upload_sheets(file)
    sales = parse_work_log(sheets, file.filename or "")
    if sales is None:
        raise HTTPException(status_code=400, detail="Nothing to import from this work log")
    save_daily_sales(sales)
    return sales.to_dict()


@router.get("/{date}")
def get_history_day(date: str):
    sales = get_daily_sales(date)
    if sales is None:
        raise HTTPException(status_code=404, detail=f"No sales history for {date}")
    return sales.to_dict()


@router.delete("/{date}")
def delete_history_day(date: str):
    if not delete_daily_sales(date):
        raise HTTPException(status_code=404, detail=f"No sales history for {date}")
    logger.info(f"Deleted sales history {date}")
    return {"deleted": date}
