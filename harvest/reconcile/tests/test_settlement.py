"""
Tests for the settlement aggregator: ordering, deposits, work log, history.

Run with: pytest harvest/reconcile/tests/test_settlement.py -v
"""

import pytest

from harvest.reconcile.errors import SettlementError
from harvest.reconcile.models import (
    CompanyConfig,
    DailySales,
    DepositRecord,
    ProductTotal,
    SalesRecord,
)
from harvest.reconcile.report import excel_summary_text
from harvest.reconcile.settlement import (
    SessionSnapshot,
    build_daily_sales,
    build_deposit_rows,
    build_work_log,
    company_adjustment_transfer,
    grand_total,
    make_adjustment,
    make_transfer,
    margin_sheet_rows,
    merged_upload_file_name,
    merged_upload_rows,
    ordered_sessions,
    parse_bulk_transfers,
    parse_work_log,
    period_report_sheets,
    session_total,
    sort_companies,
    summarize_period,
    summary_sheet_rows,
    time_score,
)
from harvest.reconcile.sheet_writer import create_sheets_workbook
from harvest.reconcile.sheets import read_sheets


@pytest.fixture
def sessions():
    apple_text = excel_summary_text({"사과 2kg": ProductTotal(count=2, total_price=30000)}, "10/19 (월)")
    return [
        SessionSnapshot(
            id="s1", company="테스트농장", round=1, total=30000,
            summary_excel=apple_text,
            order_rows=[["A1", "사과 2kg", 1], ["A1", "사과 2kg", 1]],
            invoice_rows=[["A1", "111110000001"]],
            upload_rows=[["A1", "111110000001"]],
            invoice_header=["주문번호", "송장번호"],
        ),
        SessionSnapshot(id="s2", company="단일농장", round=2, total=20000),
        SessionSnapshot(id="s3", company="테스트농장", round=2, total=0),
    ]


class TestOrdering:

    def test_time_score(self):
        assert time_score("09:30") == 570
        assert time_score(None) == 9999
        assert time_score("") == 9999

    def test_deadline_then_preferred_then_alphabetical(self):
        config = {
            "가나농장": CompanyConfig(),
            "웰그린": CompanyConfig(),
            "연두": CompanyConfig(),
            "마감농장": CompanyConfig(deadline="09:00"),
        }
        assert sort_companies(config) == ["마감농장", "연두", "웰그린", "가나농장"]

    def test_earlier_deadline_first(self):
        config = {"늦은": CompanyConfig(deadline="14:00"), "이른": CompanyConfig(deadline="08:30")}
        assert sort_companies(config) == ["이른", "늦은"]

    def test_ordered_sessions_drops_unknown_vendors(self, fruit_catalog, sessions):
        stray = SessionSnapshot(id="x", company="없는업체", total=1000)
        ordered = ordered_sessions(fruit_catalog, sessions + [stray])
        assert [s.id for s in ordered] == ["s2", "s1", "s3"]


class TestTotals:

    def test_session_total_includes_adjustments(self):
        summary = {"사과": ProductTotal(count=2, total_price=20000)}
        assert session_total(summary, [make_adjustment(-5000)]) == 15000
        assert session_total({}) == 0

    def test_grand_total(self, sessions):
        transfer = make_transfer("택배비", 5000)
        assert grand_total(sessions, [transfer]) == 55000


class TestAdjustmentsAndTransfers:

    def test_adjustment_label_by_sign(self):
        assert make_adjustment(-3000).label == "반품/차감"
        assert make_adjustment(1000).label == "수동 추가"
        assert make_adjustment(1000, "박스 추가").label == "박스 추가"
        assert make_adjustment(1).id.startswith("adj-")

    def test_transfer_defaults(self):
        transfer = make_transfer("택배비", 5000)
        assert (transfer.bank_name, transfer.account_number) == ("은행", "계좌")

    def test_transfer_requires_label_and_amount(self):
        with pytest.raises(SettlementError):
            make_transfer("", 5000)
        with pytest.raises(SettlementError):
            make_transfer("택배비", 0)

    def test_company_adjustment_uses_vendor_account(self, fruit_catalog):
        transfer = company_adjustment_transfer(fruit_catalog, "테스트농장", 20000)
        assert transfer.label == "테스트농장(수동)"
        assert transfer.bank_name == "국민은행"
        assert transfer.is_adjustment
        assert transfer.company_name == "테스트농장"
        assert company_adjustment_transfer(fruit_catalog, "테스트농장", 0) is None

    def test_bulk_transfers(self):
        transfers = parse_bulk_transfers("31,000원 홍길동 국민 1234\n메모만\n\n50 500 택배")
        assert [(t.amount, t.label) for t in transfers] == [(31000, "홍길동 국민 1234"), (500, "50 택배")]


class TestDepositRows:

    def test_all_sessions(self, fruit_catalog, sessions):
        rows = build_deposit_rows(fruit_catalog, sessions, None)
        assert rows == [
            ["은행미지정", "계좌미지정", 20000, "단일농장(2차)"],
            ["국민은행", "123-45-6789", 30000, "테스트농장(1차)"],
            [],
            ["", "합계", 50000],
        ]

    def test_selection_and_transfers(self, fruit_catalog, sessions):
        rows = build_deposit_rows(fruit_catalog, sessions, {"s1"}, [make_transfer("택배비", 5000)])
        assert rows[0][3] == "테스트농장(1차)"
        assert rows[1] == ["은행", "계좌", 5000, "택배비"]
        assert rows[-1] == ["", "합계", 35000]

    def test_nothing_to_pay(self, fruit_catalog, sessions):
        with pytest.raises(SettlementError):
            build_deposit_rows(fruit_catalog, sessions, {"s3"})


class TestMergedUpload:

    def test_rows_with_header(self, sessions):
        rows, companies = merged_upload_rows(sessions)
        assert rows == [["주문번호", "송장번호"], ["A1", "111110000001"]]
        assert companies == ["테스트농장"]

    def test_no_rows(self, sessions):
        with pytest.raises(SettlementError):
            merged_upload_rows(sessions, {"s2"})

    def test_file_name(self, today):
        assert merged_upload_file_name(["가", "나"], today) == "2026-10-19 [가, 나] 업로드용_송장_병합.xlsx"
        assert merged_upload_file_name(["가", "나", "다", "라"], today) == \
            "2026-10-19 [가, 나, 다 외 1곳] 업로드용_송장_병합.xlsx"


class TestWorkLog:

    def test_summary_and_margin_sheets(self, fruit_catalog, sessions):
        summary = summary_sheet_rows(fruit_catalog, sessions)
        assert summary[0] == ["[테스트농장 정산내역]"]
        assert summary[1] == ["10/19 (월)", "사과 2kg", "2개", "30,000", "30,000"]

        margin = margin_sheet_rows(fruit_catalog, summary)
        assert margin[1] == ["테스트농장", "사과 2kg", 2, 19900, 15000, 2000, 4000]
        assert margin[-1][-1] == 4000

    def test_margin_sheet_empty(self, fruit_catalog):
        assert margin_sheet_rows(fruit_catalog, []) == [
            ["업체명", "품목명", "수량", "판매가", "공급가", "마진(개당)", "총마진"],
        ]

    def test_sheets(self, fruit_catalog, sessions, today):
        log = build_work_log(fruit_catalog, sessions, [make_transfer("택배비", 5000)], today=today)
        assert list(log.sheets) == ["요약시트", "입금내역", "발주시트", "송장시트", "마진시트"]
        assert log.deposit_total == 55000
        assert log.sheets["입금내역"][-1] == ["", "합계", 55000]
        assert log.file_name == "2026-10-19_업무일지.xlsx"
        assert len(log.order_rows) == 2

    def test_deposit_sheet_always_present(self, fruit_catalog, today):
        log = build_work_log(fruit_catalog, [], today=today)
        assert list(log.sheets) == ["입금내역"]
        assert log.sheets["입금내역"] == []


class TestSalesHistory:

    def test_daily_sales_from_sessions(self, fruit_catalog, sessions, today):
        log = build_work_log(fruit_catalog, sessions, today=today)
        sales = build_daily_sales("2026-10-19", fruit_catalog, sessions, log)

        assert len(sales.records) == 1
        record = sales.records[0]
        assert (record.company, record.product, record.count) == ("테스트농장", "사과 2kg", 2)
        assert record.supply_price == 15000
        assert record.total_price == 30000
        assert record.margin == 2000
        assert sales.total_amount == 30000
        assert sales.deposit_total == 50000
        assert len(sales.order_rows) == 2

    def test_work_log_round_trip(self, fruit_catalog, sessions, today):
        log = build_work_log(fruit_catalog, sessions, today=today)
        content = create_sheets_workbook(log.sheets).getvalue()
        sales = parse_work_log(read_sheets(content, log.file_name), log.file_name)

        assert sales.date == "2026-10-19"
        assert [(r.company, r.product, r.count, r.total_price) for r in sales.records] == [
            ("테스트농장", "사과 2kg", 2, 30000),
        ]
        assert sales.deposit_total == 50000
        assert [d.amount for d in sales.deposit_records] == [20000, 30000]
        assert len(sales.order_rows) == 2

    def test_empty_work_log(self):
        assert parse_work_log({}, "2026-10-19_업무일지.xlsx") is None
        assert parse_work_log({"Sheet1": [["메모"]]}, "x.xlsx") is None


@pytest.fixture
def history():
    return [
        DailySales(
            date="2026-10-18",
            records=[SalesRecord("2026-10-18", "테스트농장", "사과 2kg", 2, 15000, 30000, 2000)],
            total_amount=30000,
            saved_at="2026-10-18T20:00:00",
            deposit_records=[DepositRecord("국민은행", "123-45-6789", 30000)],
            deposit_total=30000,
        ),
        DailySales(
            date="2026-10-19",
            records=[
                SalesRecord("2026-10-19", "단일농장", "감귤 10kg", 1, 20000, 20000),
                SalesRecord("2026-10-19", "테스트농장", "사과 2kg", 1, 15000, 15000, 2000),
            ],
            total_amount=35000,
            saved_at="2026-10-19T20:00:00",
        ),
        DailySales(date="2026-10-25", records=[], total_amount=99000, saved_at=""),
    ]


class TestPeriodSummary:

    def test_aggregation(self, history):
        summary = summarize_period(history, "2026-10-18", "2026-10-19")
        assert [d.date for d in summary.days] == ["2026-10-18", "2026-10-19"]
        assert summary.total_amount == 65000
        assert summary.total_count == 4
        assert summary.total_margin == 6000
        assert summary.deposit_total == 30000

        name, line = summary.by_product[0]
        assert name == "사과 2kg"
        assert (line.count, line.total_price, line.margin) == (3, 45000, 6000)
        assert [name for name, _ in summary.by_company] == ["테스트농장", "단일농장"]

    def test_report_sheets(self, history):
        sheets = period_report_sheets(summarize_period(history, "2026-10-18", "2026-10-19"))
        assert list(sheets) == ["날짜별", "품목별", "업체별", "입금", "마진"]
        assert len(sheets["날짜별"]) == 4
        assert sheets["입금"][-1] == ["", "합계", 30000, "", ""]
        assert sheets["마진"][1] == ["사과 2kg", 3, 45000, 6000]
