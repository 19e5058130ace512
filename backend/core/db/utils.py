"""
Shared database utilities.

Common functions used across database modules for:
- Timestamp handling
- JSON field parsing
"""
from datetime import date, datetime, timezone
from typing import Any, Optional
import json


def now() -> str:
    """
    Get current UTC timestamp as ISO string.

    Returns:
        ISO formatted timestamp string
    """
    return datetime.now(timezone.utc).isoformat()


def parse_json_field(value: Optional[str], default: Any = None) -> Any:
    """
    Safely parse a JSON field from the database.

    Args:
        value: JSON string from database, may be None
        default: Default value if parsing fails or value is None

    Returns:
        Parsed JSON value or default
    """
    if not value:
        return default
    try:
        return json.loads(value)
    except (json.JSONDecodeError, TypeError):
        return default


def _json_default(value: Any) -> str:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def to_json(value: Any) -> str:
    """
    Convert a value to JSON string for database storage.

    Non-ASCII text (Korean product names) is stored as-is. Spreadsheet
    dates and datetimes are stored as ISO strings.
    """
    return json.dumps(value, ensure_ascii=False, default=_json_default)
