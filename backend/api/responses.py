"""
Shared helpers for the API routers: uploads in, workbooks out.
"""
import re
from io import BytesIO
from urllib.parse import quote

from fastapi import HTTPException, UploadFile
from fastapi.responses import StreamingResponse

from harvest.reconcile.errors import SheetParseError
from harvest.reconcile.sheets import Grid, read_grid, read_sheets

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for safe use in Content-Disposition header."""
    safe = re.sub(r'[^\w\s\-\.]', '_', filename)
    return quote(safe, safe='')


def xlsx_response(buffer: BytesIO, filename: str) -> StreamingResponse:
    """Stream a workbook buffer as an attachment."""
    safe_filename = sanitize_filename(filename)

    def iterfile():
        yield buffer.getvalue()

    return StreamingResponse(
        iterfile(),
        media_type=XLSX_MEDIA_TYPE,
        headers={
            "Content-Disposition": f"attachment; filename=\"{safe_filename}\"; filename*=UTF-8''{safe_filename}"
        }
    )


async def read_upload_grid(file: UploadFile) -> Grid:
    """First sheet of an uploaded workbook; unreadable files are a 400."""
    content = await file.read()
    try:
        return read_grid(content, file.filename or "")
    except SheetParseError as e:
        raise HTTPException(status_code=400, detail=str(e))


async def read_upload_sheets(file: UploadFile) -> dict:
    """Every sheet of an uploaded workbook; unreadable files are a 400."""
    content = await file.read()
    try:
        return read_sheets(content, file.filename or "")
    except SheetParseError as e:
        raise HTTPException(status_code=400, detail=str(e))
