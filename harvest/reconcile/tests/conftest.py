"""
Shared fixtures for the reconciliation engine tests.

Master sheets are built in memory: a 31-column header with the columns
the converter reads, and rows filled through make_row.
"""

from datetime import date

import pytest

from harvest.reconcile.catalog import load_default_pricing
from harvest.reconcile.models import CompanyConfig, ProductPricing

TODAY = date(2026, 10, 19)   # a Monday

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


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def make_row():
    """Factory for one master-sheet row."""
    def _make(
        order_no,
        group,
        product,
        qty,
        recipient="홍길동",
        phone="01012345678",
        address="제주시 연동 1",
        ordered_at=None,
        message="",
    ):
        row = [""] * MASTER_WIDTH
        row[0] = ordered_at if ordered_at is not None else ""
        row[2] = order_no
        row[10] = group
        row[11] = product
        row[22] = qty
        row[26] = recipient
        row[27] = phone
        row[28] = "63000"
        row[29] = address
        row[30] = message
        return row
    return _make


@pytest.fixture
def master_grid():
    """Factory: rows -> [header, *rows]."""
    def _grid(*rows, preamble=0):
        return [["다운로드 일시: 2026-10-19"]] * preamble + [_master_header()] + [list(r) for r in rows]
    return _grid


@pytest.fixture
def default_catalog():
    return load_default_pricing()


@pytest.fixture
def fruit_catalog():
    """Small catalog with one multi-product and one single-product vendor."""
    return {
        "테스트농장": CompanyConfig(
            products={
                "사과": ProductPricing(display_name="사과", supply_price=10000, margin=1000),
                "사과 2kg": ProductPricing(display_name="사과 2kg", supply_price=15000, margin=2000,
                                         selling_price=19900),
                "배 5kg": ProductPricing(display_name="배 5kg", supply_price=25000,
                                        aliases=["신고배"]),
            },
            bank_name="국민은행",
            account_number="123-45-6789",
        ),
        "단일농장": CompanyConfig(
            products={"감귤 10kg": ProductPricing(display_name="감귤 10kg", supply_price=20000)},
        ),
    }
