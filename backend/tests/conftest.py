"""
Test configuration and fixtures for the Harvest Desk backend test suite.

Provides:
- In-memory SQLite test database (isolated per test)
- FastAPI TestClient fixture
- Builders for uploaded workbooks
"""
import sqlite3
from contextlib import contextmanager
from io import BytesIO
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from openpyxl import Workbook

from backend.core.db.base import SCHEMA


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

def _create_test_db() -> sqlite3.Connection:
    """Create an in-memory SQLite database with the documents schema."""
    conn = sqlite3.connect(":memory:", check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.executescript(SCHEMA)
    return conn


@contextmanager
def _test_get_db(conn: sqlite3.Connection):
    """Replacement for get_db() that uses the shared test connection."""
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise


@pytest.fixture()
def test_db():
    """Provide a fresh in-memory SQLite database for each test."""
    conn = _create_test_db()
    yield conn
    conn.close()


@pytest.fixture()
def patch_db(test_db):
    """
    Patch the get_db context manager so that every document read and
    write uses the in-memory test database.
    """
    cm = lambda: _test_get_db(test_db)  # noqa: E731

    with (
        patch("backend.core.db.base.get_db", cm),
        patch("backend.core.db.documents.get_db", cm),
    ):
        yield test_db


@pytest.fixture()
def client(patch_db):
    """
    Provide a FastAPI TestClient with the database patched.

    Skips init_db in the lifespan so no database file is created.
    """
    from backend.api.main import app

    with patch("backend.api.main.init_db"):
        with TestClient(app) as c:
            yield c


# ---------------------------------------------------------------------------
# Workbook builders
# ---------------------------------------------------------------------------

MASTER_WIDTH = 31


def _master_header() -> list:
    header = [""] * MASTER_WIDTH
    header[0] = "주문일시"
    header[2] = "주문번호"
    header[3] = "택배사"
    header[4] = "송장번호"
    header[10] = "그룹"
    header[11] = "상품명"
    header[22] = "수량"
    header[26] = "수취인"
    header[27] = "수취인 전화번호"
    header[28] = "우편번호"
    header[29] = "주소"
    header[30] = "배송메세지"
    return header


def _workbook_bytes(rows: list) -> bytes:
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def master_xlsx():
    """Factory: (order_no, group, product, qty) tuples -> master workbook bytes."""
    def _build(*orders):
        rows = [_master_header()]
        for order_no, group, product, qty in orders:
            row = [""] * MASTER_WIDTH
            row[2] = order_no
            row[10] = group
            row[11] = product
            row[22] = qty
            row[26] = "홍길동"
            row[27] = "01012345678"
            row[28] = "63000"
            row[29] = "제주시 연동 1"
            rows.append(row)
        return _workbook_bytes(rows)
    return _build


@pytest.fixture
def xlsx_bytes():
    """Factory: rows -> single-sheet workbook bytes."""
    return _workbook_bytes
