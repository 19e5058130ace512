"""
Document store operations - JSON documents keyed by (collection, doc_id).

Last write wins. set_document(merge=True) updates only the top-level
fields it is given; without merge the document is replaced wholesale.
Listeners registered with subscribe() are called in-process after each
write to their document.
"""
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from .base import get_db
from .utils import now, parse_json_field, to_json

logger = logging.getLogger(__name__)

Listener = Callable[[Optional[Dict[str, Any]]], None]

_listeners: Dict[tuple, List[Listener]] = {}
_listeners_lock = threading.Lock()


def get_document(collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
    """Get one document, or None if it does not exist."""
    with get_db() as conn:
        row = conn.execute(
            "SELECT data FROM documents WHERE collection = ? AND doc_id = ?",
            (collection, doc_id)
        ).fetchone()
    if row is None:
        return None
    return parse_json_field(row["data"], {})


def set_document(
    collection: str,
    doc_id: str,
    data: Dict[str, Any],
    merge: bool = False
) -> Dict[str, Any]:
    """
    Write a document.

    Args:
        collection: Collection name
        doc_id: Document id within the collection
        data: Document body (top-level fields when merging)
        merge: Update only the given fields of an existing document

    Returns:
        The stored document
    """
    with get_db() as conn:
        if merge:
            row = conn.execute(
                "SELECT data FROM documents WHERE collection = ? AND doc_id = ?",
                (collection, doc_id)
            ).fetchone()
            stored = parse_json_field(row["data"], {}) if row else {}
            stored.update(data)
        else:
            stored = dict(data)

        conn.execute("""
            INSERT INTO documents (collection, doc_id, data, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(collection, doc_id) DO UPDATE SET
                data = excluded.data,
                updated_at = excluded.updated_at
        """, (collection, doc_id, to_json(stored), now()))

    logger.debug(f"Saved {collection}/{doc_id} ({'merge' if merge else 'replace'})")
    _notify(collection, doc_id, stored)
    return stored


def delete_document(collection: str, doc_id: str) -> bool:
    """Delete a document. Returns True if it existed."""
    with get_db() as conn:
        cursor = conn.execute(
            "DELETE FROM documents WHERE collection = ? AND doc_id = ?",
            (collection, doc_id)
        )
        deleted = cursor.rowcount > 0
    if deleted:
        _notify(collection, doc_id, None)
    return deleted


def list_documents(
    collection: str,
    descending: bool = True,
    limit: Optional[int] = None
) -> List[Dict[str, Any]]:
    """
    List the documents of a collection ordered by doc_id.

    Returns:
        List of {"id": doc_id, "data": document}
    """
    query = "SELECT doc_id, data FROM documents WHERE collection = ?"
    query += " ORDER BY doc_id DESC" if descending else " ORDER BY doc_id ASC"
    params: List[Any] = [collection]
    if limit is not None:
        query += " LIMIT ?"
        params.append(limit)

    with get_db() as conn:
        rows = conn.execute(query, params).fetchall()
    return [{"id": row["doc_id"], "data": parse_json_field(row["data"], {})} for row in rows]


# =============================================================================
# Change listeners
# =============================================================================

def subscribe(collection: str, doc_id: str, callback: Listener) -> Callable[[], None]:
    """
    Call callback with the new document (None when deleted) after each write.

    Returns:
        Function that removes the listener
    """
    key = (collection, doc_id)
    with _listeners_lock:
        _listeners.setdefault(key, []).append(callback)

    def unsubscribe() -> None:
        with _listeners_lock:
            callbacks = _listeners.get(key, [])
            if callback in callbacks:
                callbacks.remove(callback)

    return unsubscribe


def _notify(collection: str, doc_id: str, data: Optional[Dict[str, Any]]) -> None:
    with _listeners_lock:
        callbacks = list(_listeners.get((collection, doc_id), []))
    for callback in callbacks:
        try:
            callback(data)
        except Exception as e:
            logger.error(f"Listener for {collection}/{doc_id} failed: {e}")
