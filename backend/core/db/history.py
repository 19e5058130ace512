"""
Sales history persistence - one salesHistory/{date} document per day.

Saving a day replaces its document wholesale.
"""
import logging
from typing import List, Optional

from harvest.reconcile.models import DailySales

from .base import Collection
from .documents import delete_document, get_document, list_documents, set_document

logger = logging.getLogger(__name__)

_COLLECTION = Collection.SALES_HISTORY.value


def save_daily_sales(sales: DailySales) -> DailySales:
    set_document(_COLLECTION, sales.date, sales.to_dict())
    logger.info(f"Saved sales history {sales.date}: {len(sales.records)} records, {sales.total_amount:,}원")
    return sales


def get_daily_sales(date: str) -> Optional[DailySales]:
    data = get_document(_COLLECTION, date)
    return DailySales.from_dict(data) if data else None


def list_sales_history(limit: Optional[int] = None) -> List[DailySales]:
    """All stored days, newest first."""
    return [DailySales.from_dict(doc["data"]) for doc in list_documents(_COLLECTION, descending=True, limit=limit)]


def delete_daily_sales(date: str) -> bool:
    return delete_document(_COLLECTION, date)
