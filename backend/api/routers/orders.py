"""
Order conversion API router.

Master sheet in, one vendor's purchase order out.
"""
import json
import logging
from dataclasses import asdict
from typing import List, Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError

from backend.api.models import ManualOrderRequest
from backend.api.responses import read_upload_grid, xlsx_response
from backend.core.db import load_pricing_config
from backend.core.llm import get_oracle
from harvest.reconcile.errors import ProcessingInProgress
from harvest.reconcile.matcher import ProductMatcher
from harvest.reconcile.models import ManualOrder
from harvest.reconcile.session import Workstation
from harvest.reconcile.sheet_writer import create_order_workbook
from harvest.reconcile.sheets import parse_fake_order_numbers

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["Orders"])


def _parse_manual_orders(text: str, company: str) -> List[ManualOrder]:
    """Manual orders JSON (a list); only the target company's orders are kept."""
    if not text or not text.strip():
        return []
    try:
        items = json.loads(text)
        if not isinstance(items, list):
            raise ValueError("manual_orders must be a JSON list")
        orders = [ManualOrderRequest.model_validate(item).to_order() for item in items]
    except (ValueError, ValidationError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid manual orders: {e}")
    return [o for o in orders if o.company_name == company]


async def _run_workstation(
    file: Optional[UploadFile],
    company: str,
    fake_orders: str,
    manual_orders: str,
    round_no: int,
    use_oracle: bool,
) -> Workstation:
    config = load_pricing_config()
    if company not in config:
        raise HTTPException(status_code=404, detail=f"Unknown company: {company}")

    grid = await read_upload_grid(file) if file is not None else None
    manual = _parse_manual_orders(manual_orders, company)
    if grid is None and not manual:
        raise HTTPException(status_code=400, detail="Upload a master sheet or add manual orders")

    workstation = Workstation(config, company, round_no)
    matcher = ProductMatcher(config, oracle=get_oracle() if use_oracle else None)
    # Oracle requests block, so matching runs in the threadpool
    try:
        await run_in_threadpool(
            workstation.run,
            grid,
            fake_orders=parse_fake_order_numbers(fake_orders),
            manual_orders=manual,
            matcher=matcher,
        )
    except ProcessingInProgress as e:
        raise HTTPException(status_code=409, detail=str(e))
    logger.info(f"[{company}] conversion: {matcher.oracle_calls} oracle calls, {matcher.cache.hits} cache hits")
    return workstation


@router.post("/convert")
async def convert_orders(
    company: str = Form(...),
    file: Optional[UploadFile] = File(None),
    fake_orders: str = Form(""),
    manual_orders: str = Form(""),
    round_no: int = Form(1, ge=1, alias="round"),
    use_oracle: bool = Form(True),
):
    """
    Convert the master sheet for one vendor.

    Returns the summary, deposit texts, purchase-order rows, excluded and
    unmatched lines, and the round as a session snapshot for settlement.
    """
    workstation = await _run_workstation(file, company, fake_orders, manual_orders, round_no, use_oracle)
    result = workstation.result
    return {
        "company": company,
        "fileName": result.file_name,
        "isEmpty": result.is_empty,
        "header": result.header,
        "rows": result.rows,
        "summary": result.summary_dict(),
        "orderTotal": result.order_total,
        "orderCount": result.order_count,
        "depositSummary": result.deposit_summary if not result.is_empty else "",
        "depositSummaryExcel": result.deposit_summary_excel,
        "dailySummaries": result.daily_summaries,
        "excluded": [asdict(e) for e in result.excluded],
        "unmatched": [asdict(u) for u in result.unmatched],
        "session": asdict(workstation.snapshot()),
    }


@router.post("/convert/xlsx")
async def convert_orders_xlsx(
    company: str = Form(...),
    file: Optional[UploadFile] = File(None),
    fake_orders: str = Form(""),
    manual_orders: str = Form(""),
    round_no: int = Form(1, ge=1, alias="round"),
    use_oracle: bool = Form(True),
):
    """Download the vendor's purchase order workbook."""
    workstation = await _run_workstation(file, company, fake_orders, manual_orders, round_no, use_oracle)
    result = workstation.result
    if result.is_empty:
        raise HTTPException(status_code=404, detail="No matching orders")
    return xlsx_response(create_order_workbook(result), result.file_name)
