"""
Smoke tests for the console API.

These verify that the endpoints respond correctly with basic happy-path
and error-path scenarios using an in-memory test database.
"""
import json
from datetime import datetime
from io import BytesIO
from unittest.mock import MagicMock

from openpyxl import Workbook, load_workbook

from harvest.reconcile.settlement import DEPOSIT_SHEET_TITLE, MARGIN_SHEET_TITLE

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _convert(client, content, company="연두", **form):
    data = {"company": company, "use_oracle": "false", **form}
    files = {"file": ("master.xlsx", content, XLSX)} if content is not None else None
    return client.post("/api/orders/convert", data=data, files=files)


# ============================================================================
# /api/health
# ============================================================================

class TestHealth:

    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


# ============================================================================
# /api/catalog
# ============================================================================

class TestCatalog:
    """Catalog reads fall back to the bundled defaults until first save."""

    def test_default_catalog(self, client):
        resp = client.get("/api/catalog")
        assert resp.status_code == 200
        data = resp.json()
        assert data["연두"]["bankName"] == "우리은행"
        assert data["연두"]["products"]["포기김치 3kg"]["supplyPrice"] == 16300

    def test_add_company_and_product(self, client):
        resp = client.post("/api/catalog/companies", json={"name": "테스트농장"})
        assert resp.status_code == 200
        assert "테스트농장" in resp.json()

        resp = client.post(
            "/api/catalog/companies/테스트농장/products",
            json={"display_name": "사과 2kg", "supply_price": 15000, "margin": 2000},
        )
        assert resp.status_code == 200
        assert resp.json()["테스트농장"]["products"]["사과 2kg"]["supplyPrice"] == 15000

        # persisted
        assert "사과 2kg" in client.get("/api/catalog").json()["테스트농장"]["products"]

    def test_duplicate_company(self, client):
        resp = client.post("/api/catalog/companies", json={"name": "연두"})
        assert resp.status_code == 409

    def test_unknown_company(self, client):
        resp = client.delete("/api/catalog/companies/없는업체")
        assert resp.status_code == 404

    def test_patch_and_rename(self, client):
        resp = client.patch(
            "/api/catalog/companies/연두",
            json={"bank_name": "국민은행", "new_name": "연두농원"},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert "연두" not in data
        assert data["연두농원"]["bankName"] == "국민은행"

    def test_reset(self, client):
        client.delete("/api/catalog/companies/연두")
        assert "연두" not in client.get("/api/catalog").json()
        resp = client.post("/api/catalog/reset")
        assert resp.status_code == 200
        assert "연두" in resp.json()

    def test_export_import(self, client):
        exported = client.get("/api/catalog/export")
        assert exported.status_code == 200
        assert "attachment" in exported.headers["content-disposition"]

        client.delete("/api/catalog/companies/연두")
        resp = client.post(
            "/api/catalog/import",
            files={"file": ("backup.json", exported.content, "application/json")},
        )
        assert resp.status_code == 200
        assert "연두" in resp.json()

    def test_import_rejects_garbage(self, client):
        resp = client.post(
            "/api/catalog/import",
            files={"file": ("backup.json", b"not json", "application/json")},
        )
        assert resp.status_code == 400

    def test_lookup(self, client):
        resp = client.post("/api/catalog/lookup", json={"company": "연두", "text": "포기김치 3kg"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["matched"] is True
        assert data["productKey"] == "포기김치 3kg"
        assert data["supplyPrice"] == 16300

    def test_lookup_no_match(self, client):
        resp = client.post("/api/catalog/lookup", json={"company": "연두", "text": "한라봉"})
        assert resp.status_code == 200
        assert resp.json()["matched"] is False


# ============================================================================
# /api/orders
# ============================================================================

class TestOrders:

    def test_convert(self, client, master_xlsx):
        content = master_xlsx(
            ("W1", "연두", "포기김치 3kg", 2),
            ("X9", "웰그린", "당근", 1),
        )
        resp = _convert(client, content)
        assert resp.status_code == 200
        data = resp.json()

        assert data["isEmpty"] is False
        assert data["summary"]["포기김치 3kg"] == {"count": 2, "totalPrice": 32600}
        assert data["orderTotal"] == 32600
        assert data["session"]["company"] == "연두"
        assert data["session"]["total"] == 32600
        assert data["session"]["round"] == 1

    def test_round_and_fake_orders(self, client, master_xlsx):
        content = master_xlsx(("W1001", "연두", "포기김치 3kg", 2), ("W1002", "연두", "포기김치 3kg", 1))
        resp = _convert(client, content, fake_orders="W1001", round="2")
        data = resp.json()
        assert data["orderTotal"] == 16300
        assert data["session"]["round"] == 2
        assert len(data["excluded"]) == 1

    def test_manual_orders_only(self, client):
        manual = [
            {"company_name": "연두", "recipient_name": "김철수", "product_name": "포기김치 5kg", "qty": 1},
            {"company_name": "웰그린", "recipient_name": "이영희", "product_name": "당근", "qty": 1},
        ]
        resp = _convert(client, None, manual_orders=json.dumps(manual))
        assert resp.status_code == 200
        assert resp.json()["orderTotal"] == 21300

    def test_oracle_matching_runs_in_threadpool(self, client, master_xlsx, monkeypatch):
        from fastapi.concurrency import run_in_threadpool

        from backend.api.routers import orders
        from backend.core import llm

        offloaded = []

        async def recording_threadpool(func, *args, **kwargs):
            offloaded.append(func.__name__)
            return await run_in_threadpool(func, *args, **kwargs)

        answer = MagicMock()
        answer.json.return_value = {"content": [{"type": "text", "text": "포기김치 5kg"}]}
        post = MagicMock(return_value=answer)
        monkeypatch.setattr(llm.settings, "CLAUDE_API_KEY", "test-key")
        monkeypatch.setattr(llm.requests, "post", post)
        monkeypatch.setattr(orders, "run_in_threadpool", recording_threadpool)

        resp = _convert(client, master_xlsx(("W1", "연두", "김장 포기 큰거", 1)), use_oracle="true")

        assert resp.status_code == 200
        assert resp.json()["unmatched"] == []
        assert resp.json()["orderCount"] == 1
        assert offloaded == ["run"]
        post.assert_called_once()

    def test_nothing_to_convert(self, client):
        assert _convert(client, None).status_code == 400

    def test_unknown_company(self, client, master_xlsx):
        resp = _convert(client, master_xlsx(), company="없는업체")
        assert resp.status_code == 404

    def test_bad_manual_orders(self, client):
        assert _convert(client, None, manual_orders="{oops").status_code == 400

    def test_unreadable_upload(self, client):
        assert _convert(client, b"not a workbook").status_code == 400

    def test_convert_xlsx(self, client, master_xlsx):
        content = master_xlsx(("W1", "연두", "포기김치 3kg", 2))
        resp = client.post(
            "/api/orders/convert/xlsx",
            data={"company": "연두", "use_oracle": "false"},
            files={"file": ("master.xlsx", content, XLSX)},
        )
        assert resp.status_code == 200
        assert resp.headers["content-type"] == XLSX
        wb = load_workbook(BytesIO(resp.content))
        assert wb.active.max_row >= 2

    def test_convert_xlsx_empty(self, client, master_xlsx):
        resp = client.post(
            "/api/orders/convert/xlsx",
            data={"company": "연두", "use_oracle": "false"},
            files={"file": ("master.xlsx", master_xlsx(("X9", "웰그린", "당근", 1)), XLSX)},
        )
        assert resp.status_code == 404


# ============================================================================
# /api/invoices
# ============================================================================

class TestInvoices:

    def test_merge(self, client, xlsx_bytes):
        orders = xlsx_bytes([
            ["받는사람", "주문번호", "수량", "택배사", "운송장번호"],
            ["홍길동", "T-1", 3, None, None],
            ["김철수", "T-2", 1, None, None],
        ])
        carrier = xlsx_bytes([
            ["주문번호", "송장번호"],
            ["T1", "555550000001"],
            ["T1", "555550000002"],
        ])
        resp = client.post(
            "/api/invoices/merge",
            data={"company": "테스트농장"},
            files={
                "order_file": ("orders.xlsx", orders, XLSX),
                "invoice_file": ("carrier.xlsx", carrier, XLSX),
            },
        )
        assert resp.status_code == 200
        data = resp.json()
        assert len(data["rows"]) == 2
        assert len(data["uploadRows"]) == 1
        stat = data["companyStats"]["테스트농장"]
        assert (stat["mgmt"], stat["upload"]) == (2, 1)
        assert stat["failures"][0]["order_num"] == "T2"

    def test_missing_order_column(self, client, xlsx_bytes):
        resp = client.post(
            "/api/invoices/merge",
            data={"company": "테스트농장"},
            files={
                "order_file": ("orders.xlsx", xlsx_bytes([["받는사람"], ["홍길동"]]), XLSX),
                "invoice_file": ("carrier.xlsx", xlsx_bytes([["주문번호", "송장번호"]]), XLSX),
            },
        )
        assert resp.status_code == 400

    def test_upload_projection_download(self, client, xlsx_bytes):
        orders = xlsx_bytes([["주문번호", "운송장번호"], ["T1", None]])
        carrier = xlsx_bytes([["주문번호", "송장번호"], ["T1", "555550000001"]])
        resp = client.post(
            "/api/invoices/merge/xlsx?projection=upload",
            data={"company": "테스트농장"},
            files={
                "order_file": ("orders.xlsx", orders, XLSX),
                "invoice_file": ("carrier.xlsx", carrier, XLSX),
            },
        )
        assert resp.status_code == 200
        assert load_workbook(BytesIO(resp.content)).sheetnames == ["업로드용"]


# ============================================================================
# /api/settlement and /api/history
# ============================================================================

class TestSettlement:

    def _session(self, client, master_xlsx):
        resp = _convert(client, master_xlsx(("W1", "연두", "포기김치 3kg", 2)))
        return resp.json()["session"]

    def test_deposits(self, client, master_xlsx):
        session = self._session(client, master_xlsx)
        transfer = {"label": "포장재", "bankName": "농협", "accountNumber": "111", "amount": 5000}
        resp = client.post(
            "/api/settlement/deposits",
            json={"sessions": [session], "transfers": [transfer], "date": "2026-10-19"},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["rows"][0] == ["우리은행", "1005103634084", 32600, "연두(1차)"]
        assert data["rows"][1] == ["농협", "111", 5000, "포장재"]
        assert data["grandTotal"] == 37600

    def test_deposits_nothing_selected(self, client, master_xlsx):
        session = self._session(client, master_xlsx)
        resp = client.post("/api/settlement/deposits", json={"sessions": [session], "selected": []})
        assert resp.status_code == 400

    def test_deposits_xlsx(self, client, master_xlsx):
        session = self._session(client, master_xlsx)
        resp = client.post("/api/settlement/deposits/xlsx", json={"sessions": [session]})
        assert resp.status_code == 200
        assert load_workbook(BytesIO(resp.content)).sheetnames == [DEPOSIT_SHEET_TITLE]

    def test_bulk_transfers(self, client):
        resp = client.post("/api/settlement/transfers/parse", json={"text": "31,000원 홍길동 환불\n메모만\n"})
        assert resp.status_code == 200
        transfers = resp.json()["transfers"]
        assert len(transfers) == 1
        assert transfers[0]["amount"] == 31000
        assert transfers[0]["label"] == "홍길동 환불"

    def test_company_transfer(self, client):
        resp = client.post("/api/settlement/transfers/company", json={"company": "연두", "amount": 3000})
        assert resp.status_code == 200
        assert resp.json()["accountNumber"] == "1005103634084"

        assert client.post(
            "/api/settlement/transfers/company", json={"company": "연두", "amount": 0}
        ).status_code == 400
        assert client.post(
            "/api/settlement/transfers/company", json={"company": "없는업체", "amount": 1000}
        ).status_code == 404

    def test_work_log_saves_history(self, client, master_xlsx):
        session = self._session(client, master_xlsx)
        resp = client.post(
            "/api/settlement/work-log/xlsx",
            json={"sessions": [session], "date": "2026-10-19"},
        )
        assert resp.status_code == 200
        assert MARGIN_SHEET_TITLE in load_workbook(BytesIO(resp.content)).sheetnames

        day = client.get("/api/history/2026-10-19")
        assert day.status_code == 200
        data = day.json()
        assert data["totalAmount"] == 32600
        assert data["records"][0]["product"] == "포기김치 3kg"
        assert data["records"][0]["count"] == 2

        listing = client.get("/api/history").json()["days"]
        assert [d["date"] for d in listing] == ["2026-10-19"]

        # the downloaded work log re-imports to the same day
        client.delete("/api/history/2026-10-19")
        imported = client.post(
            "/api/history/import",
            files={"file": ("2026-10-19_업무일지.xlsx", resp.content, XLSX)},
        )
        assert imported.status_code == 200
        assert imported.json()["totalAmount"] == 32600

        summary = client.get("/api/history/summary", params={"start": "2026-10-01", "end": "2026-10-31"})
        assert summary.status_code == 200
        assert summary.json()["totalAmount"] == 32600
        assert summary.json()["byCompany"][0]["name"] == "연두"


class TestHistory:

    def test_missing_day(self, client):
        assert client.get("/api/history/2026-01-01").status_code == 404
        assert client.delete("/api/history/2026-01-01").status_code == 404

    def test_empty_summary_xlsx(self, client):
        resp = client.get("/api/history/summary/xlsx", params={"start": "2026-10-01", "end": "2026-10-31"})
        assert resp.status_code == 404

    def test_bad_summary_dates(self, client):
        resp = client.get("/api/history/summary", params={"start": "yesterday", "end": "2026-10-31"})
        assert resp.status_code == 422

    def test_import_empty_workbook(self, client, xlsx_bytes):
        resp = client.post(
            "/api/history/import",
            files={"file": ("2026-10-19_업무일지.xlsx", xlsx_bytes([["메모"]]), XLSX)},
        )
        assert resp.status_code == 400

    def test_import_keeps_datetime_cells(self, client):
        wb = Workbook()
        summary = wb.active
        summary.title = "요약시트"
        summary.append(["[연두 정산내역]"])
        summary.append(["", "포기김치 3kg", "2개", "40,000원"])
        orders = wb.create_sheet("발주시트")
        orders.append(["주문일시", "주문번호"])
        orders.append([datetime(2026, 10, 19, 9, 30), "W1001"])
        buffer = BytesIO()
        wb.save(buffer)

        resp = client.post(
            "/api/history/import",
            files={"file": ("2026-10-19_업무일지.xlsx", buffer.getvalue(), XLSX)},
        )
        assert resp.status_code == 200

        stored = client.get("/api/history/2026-10-19").json()
        assert stored["orderRows"][1] == ["2026-10-19T09:30:00", "W1001"]
        assert stored["totalAmount"] == 40000


# ============================================================================
# /api/workspace
# ============================================================================

class TestWorkspace:

    def test_merge_fields(self, client):
        assert client.get("/api/workspace/2026-10-19").json()["workspace"] == {}

        client.patch("/api/workspace/2026-10-19", json={"fields": {"fakeOrderInput": "W1"}})
        resp = client.patch(
            "/api/workspace/2026-10-19",
            json={"fields": {"manualTransfers": [], "unknownField": 1}},
        )
        assert resp.status_code == 200
        workspace = client.get("/api/workspace/2026-10-19").json()["workspace"]
        assert workspace == {"fakeOrderInput": "W1", "manualTransfers": []}

    def test_bad_date(self, client):
        assert client.get("/api/workspace/today").status_code == 422
