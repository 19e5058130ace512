"""
Database base module - connection management, initialization, and collections.
"""
import sqlite3
from pathlib import Path
from contextlib import contextmanager
from enum import Enum

from ..config import settings

# Relative paths resolve against the repository root
_configured = Path(settings.DB_PATH)
DB_PATH = _configured if _configured.is_absolute() else Path(__file__).resolve().parents[3] / _configured


class Collection(str, Enum):
    CONFIG = "config"
    SALES_HISTORY = "salesHistory"
    DAILY_WORKSPACE = "dailyWorkspace"


# The one document in the config collection
PRICING_CONFIG_DOC = "pricingConfig"

# Fields of a daily workspace document that may be merged (SQL-free whitelist)
ALLOWED_WORKSPACE_FIELDS = {
    'fakeOrderInput', 'manualTransfers', 'sessionWorkflows', 'sessionAdjustments'
}

SCHEMA = """
    -- Documents table: one JSON payload per (collection, doc_id)
    CREATE TABLE IF NOT EXISTS documents (
        collection TEXT NOT NULL,
        doc_id TEXT NOT NULL,
        data TEXT NOT NULL,
        updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (collection, doc_id)
    );

    CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(collection, doc_id);
"""


@contextmanager
def get_db():
    """Context manager for database connections."""
    conn = sqlite3.connect(str(DB_PATH))
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db():
    """Initialize database tables."""
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)

    with get_db() as conn:
        # Enable WAL mode for better concurrency (allows concurrent reads during writes)
        conn.execute("PRAGMA journal_mode=WAL")
        # Set busy timeout to 5 seconds to handle lock contention
        conn.execute("PRAGMA busy_timeout=5000")

        conn.executescript(SCHEMA)
