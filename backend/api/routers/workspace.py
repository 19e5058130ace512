"""
Daily workspace API router - autosave for the console's in-progress inputs.
"""
from fastapi import APIRouter, Path

from backend.api.models import WorkspaceUpdateRequest
from backend.core.db import get_workspace, update_workspace

router = APIRouter(prefix="/api/workspace", tags=["Workspace"])

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


@router.get("/{date}")
def get_daily_workspace(date: str = Path(..., pattern=DATE_PATTERN)):
    return {"date": date, "workspace": get_workspace(date)}


@router.patch("/{date}")
def patch_daily_workspace(request: WorkspaceUpdateRequest, date: str = Path(..., pattern=DATE_PATTERN)):
    """Merge the given fields; fields not sent are left as stored."""
    return {"date": date, "workspace": update_workspace(date, request.fields)}
