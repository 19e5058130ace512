"""
API Routers package.

Each module contains a FastAPI router for a specific domain.
"""

from .catalog import router as catalog_router
from .orders import router as orders_router
from .invoices import router as invoices_router
from .settlement import router as settlement_router
from .history import router as history_router
from .workspace import router as workspace_router

__all__ = [
    "catalog_router",
    "orders_router",
    "invoices_router",
    "settlement_router",
    "history_router",
    "workspace_router",
]
