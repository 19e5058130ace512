"""
Database package for Harvest Desk.

A sqlite-backed document store plus the collection helpers built on it:

    from backend.core.db import load_pricing_config, save_daily_sales
"""

# Base - connection, initialization, collections
from .base import (
    DB_PATH,
    Collection,
    PRICING_CONFIG_DOC,
    ALLOWED_WORKSPACE_FIELDS,
    get_db,
    init_db,
)

# Documents
from .documents import (
    get_document,
    set_document,
    delete_document,
    list_documents,
    subscribe,
)

# Pricing catalog
from .catalog import (
    load_pricing_config,
    save_pricing_config,
    reset_pricing_config,
)

# Sales history
from .history import (
    save_daily_sales,
    get_daily_sales,
    list_sales_history,
    delete_daily_sales,
)

# Daily workspace
from .workspace import (
    get_workspace,
    update_workspace,
)

__all__ = [
    # Base
    "DB_PATH",
    "Collection",
    "PRICING_CONFIG_DOC",
    "ALLOWED_WORKSPACE_FIELDS",
    "get_db",
    "init_db",
    # Documents
    "get_document",
    "set_document",
    "delete_document",
    "list_documents",
    "subscribe",
    # Pricing catalog
    "load_pricing_config",
    "save_pricing_config",
    "reset_pricing_config",
    # Sales history
    "save_daily_sales",
    "get_daily_sales",
    "list_sales_history",
    "delete_daily_sales",
    # Daily workspace
    "get_workspace",
    "update_workspace",
]
