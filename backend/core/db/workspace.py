"""
Daily workspace persistence - the dailyWorkspace/{date} document.

The console autosaves its in-progress inputs (fake-order text, manual
transfers, per-round workflow state and adjustments) as partial merges,
so two fields saved separately never clobber each other.
"""
import logging
from typing import Any, Dict

from .base import ALLOWED_WORKSPACE_FIELDS, Collection
from .documents import get_document, set_document

logger = logging.getLogger(__name__)

_COLLECTION = Collection.DAILY_WORKSPACE.value


def get_workspace(date: str) -> Dict[str, Any]:
    """The day's workspace; empty when nothing was saved yet."""
    return get_document(_COLLECTION, date) or {}


def update_workspace(date: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge fields into the day's workspace.

    Args:
        date: YYYY-MM-DD
        fields: Top-level workspace fields; unknown names are dropped

    Returns:
        The stored workspace
    """
    allowed = {k: v for k, v in fields.items() if k in ALLOWED_WORKSPACE_FIELDS}
    dropped = set(fields) - set(allowed)
    if dropped:
        logger.warning(f"Ignoring unknown workspace fields: {sorted(dropped)}")
    if not allowed:
        return get_workspace(date)
    return set_document(_COLLECTION, date, allowed, merge=True)
