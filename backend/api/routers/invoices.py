"""
Invoice merge API router.

Order file + carrier file in, tracking-stamped sheets out.
"""
from dataclasses import asdict
from enum import Enum

from fastapi import APIRouter, File, Form, HTTPException, Query, UploadFile

from backend.api.responses import read_upload_grid, xlsx_response
from harvest.reconcile.errors import InvoiceMergeError
from harvest.reconcile.invoices import MergeResult, build_invoice_map, merge_invoices
from harvest.reconcile.sheet_writer import create_invoice_workbook

router = APIRouter(prefix="/api/invoices", tags=["Invoices"])


class Projection(str, Enum):
    """Which merge output to download."""
    MGMT = "mgmt"
    UPLOAD = "upload"


async def _merge(order_file: UploadFile, invoice_file: UploadFile, company: str, group_check: bool) -> MergeResult:
    order_grid = await read_upload_grid(order_file)
    invoice_grid = await read_upload_grid(invoice_file)
    invoice_map = build_invoice_map(invoice_grid, company)
    try:
        return merge_invoices(order_grid, invoice_map, company, skip_group_check=not group_check)
    except InvoiceMergeError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/merge")
async def merge_invoice_files(
    company: str = Form(...),
    order_file: UploadFile = File(...),
    invoice_file: UploadFile = File(...),
    group_check: bool = Form(False),
):
    """Merge tracking numbers into the order file and report per-vendor stats."""
    result = await _merge(order_file, invoice_file, company, group_check)
    return {
        "company": company,
        "mgmtFileName": result.mgmt_file_name,
        "uploadFileName": result.upload_file_name,
        "header": result.header,
        "rows": result.rows,
        "uploadRows": result.upload_rows,
        "companyStats": {
            name: {"mgmt": stat.mgmt, "upload": stat.upload, "failures": [asdict(f) for f in stat.failures]}
            for name, stat in result.company_stats.items()
        },
    }


@router.post("/merge/xlsx")
async def merge_invoice_files_xlsx(
    company: str = Form(...),
    order_file: UploadFile = File(...),
    invoice_file: UploadFile = File(...),
    group_check: bool = Form(False),
    projection: Projection = Query(Projection.MGMT, description="mgmt: one row per parcel, upload: one row per order"),
):
    """Download one projection of the merge."""
    result = await _merge(order_file, invoice_file, company, group_check)
    filename = result.mgmt_file_name if projection == Projection.MGMT else result.upload_file_name
    return xlsx_response(create_invoice_workbook(result, projection.value), filename)
