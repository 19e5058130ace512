"""
Vendor profiles - the per-vendor legacy contracts in one lookup table.

Every vendor has a fixed spreadsheet contract: which group keywords mark
its rows, which columns its purchase-order form has, which courier ships
for it, and where its carrier file keeps order and tracking numbers.
Profiles are resolved once per run; the pipeline never branches on
vendor names itself.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional

from .models import CompanyConfig, OrderLine, ProductPricing

SENDER_NAME = "안군농원"
SENDER_PHONE = "01042626343"
SENDER_REGION = "제주도"
MANUAL_MARKER = "수동"

DEFAULT_CARRIER = "우체국"

RowBuilder = Callable[[OrderLine, str], list[Any]]
CandidateFilter = Callable[[str, list[tuple[str, ProductPricing]]], list[tuple[str, ProductPricing]]]


@dataclass(frozen=True)
class RowLayout:
    """Purchase-order form: header row plus a one-unit row builder."""
    header: tuple[str, ...]
    build: RowBuilder


@dataclass(frozen=True)
class VendorProfile:
    """
    Everything vendor-specific the pipeline needs.

    layout None means "use the company's custom orderFormHeaders, else
    the generic 7-column form".
    """
    names: tuple[str, ...]
    keywords: Optional[tuple[str, ...]] = None
    layout: Optional[RowLayout] = None
    manual_row: Optional[RowBuilder] = None
    carrier: str = DEFAULT_CARRIER
    invoice_columns: Optional[tuple[int, int]] = None   # (order no, tracking no) in carrier file
    fixed_order_columns: bool = False                   # order file uses master columns 2/3/4
    candidate_filter: Optional[CandidateFilter] = None


# =============================================================================
# Row builders (one physical parcel per row, qty always 1)
# =============================================================================

def _blank(width: int) -> list[Any]:
    return [""] * width


def _farmflow_row(line: OrderLine, display_name: str) -> list[Any]:
    row = _blank(13)
    row[0] = line.order_number
    row[1] = line.recipient
    row[2] = line.phone
    row[3] = line.address
    row[4] = line.message
    row[5] = display_name
    row[6] = 1
    row[7] = SENDER_NAME
    row[8] = SENDER_PHONE
    row[9] = SENDER_REGION
    return row


def _wellgreen_row(line: OrderLine, display_name: str) -> list[Any]:
    row = _blank(19)
    row[1] = line.order_number
    row[2] = SENDER_NAME
    row[3] = "" if line.manual else line.product_text
    row[4] = display_name
    row[5] = 1
    row[6] = line.message
    row[9] = line.recipient
    row[10] = line.recipient
    row[11] = line.phone
    row[12] = line.phone
    row[14] = line.zip_code
    row[15] = line.address
    row[17] = SENDER_PHONE
    return row


def _dapdo_row(line: OrderLine, display_name: str) -> list[Any]:
    row = _blank(11)
    row[0] = line.order_number
    row[2] = SENDER_NAME
    row[3] = SENDER_PHONE
    row[4] = line.recipient
    row[5] = line.phone
    row[6] = line.address
    row[7] = display_name
    row[8] = 1
    row[9] = line.message
    return row


def _sinsun_row(line: OrderLine, display_name: str) -> list[Any]:
    row = _blank(10)
    row[0] = line.order_number
    row[1] = display_name
    row[2] = 1
    row[3] = line.recipient
    row[4] = line.phone
    row[7] = line.zip_code
    row[8] = line.address
    row[9] = line.message
    return row


def _kimchi_row(line: OrderLine, display_name: str) -> list[Any]:
    row = _blank(15)
    row[0] = line.order_number
    row[1] = SENDER_NAME          # 고객주문처명
    row[2] = line.recipient
    row[3] = line.zip_code
    row[4] = line.address
    row[5] = line.phone
    row[6] = line.phone           # 이동통신
    row[7] = display_name
    row[8] = display_name         # 상품모델
    row[9] = line.message
    row[11] = 1                   # 수량
    row[12] = 1                   # 신청건수
    return row


GORAENGJI_SENDER = ("미래찬", "070-5222-6543", "25346", "강원 평창군 방림면 평창대로84-15")


def _goraengji_row(line: OrderLine, display_name: str) -> list[Any]:
    sender, sender_phone, sender_zip, sender_address = GORAENGJI_SENDER
    row = _blank(18)
    row[0] = line.order_number
    row[1] = sender
    row[2] = sender_phone
    row[3] = sender_phone
    row[4] = sender_zip
    row[5] = sender_address
    row[6] = line.recipient
    row[7] = line.phone
    row[8] = line.phone
    row[9] = line.zip_code
    row[10] = line.address
    row[11] = display_name
    row[12] = display_name
    # B type boxes for the large sizes, A type otherwise
    name = display_name.lower()
    if "7kg" in name or "10kg" in name:
        row[14] = 1
    else:
        row[13] = 1
    row[15] = line.message
    return row


def _jj_manual_row(line: OrderLine, display_name: str) -> list[Any]:
    row = _blank(9)
    row[0] = SENDER_NAME
    row[3] = display_name
    row[4] = line.recipient
    row[5] = line.address
    row[6] = line.phone
    row[8] = MANUAL_MARKER
    return row


GENERIC_HEADER = ("받는사람", "전화번호", "주소", "품목명", "수량", "배송메세지", "주문번호")


def _generic_row(line: OrderLine, display_name: str) -> list[Any]:
    return [line.recipient, line.phone, line.address, display_name, 1, line.message, line.order_number]


GENERIC_LAYOUT = RowLayout(header=GENERIC_HEADER, build=_generic_row)


def _custom_cell(header: str, line: OrderLine, display_name: str) -> Any:
    """Fill one custom-form cell by header keyword; first rule that fits wins."""
    if "받는분성명" in header or "받는사람" in header:
        return line.recipient
    if "받는분연락처" in header or "전화번호" in header:
        return line.phone
    if "받는분주소" in header or "주소" in header:
        return line.address
    if "품목" in header or "상품명" in header:
        return display_name
    if "수량" in header:
        return 1
    if "주문번호" in header:
        return line.order_number
    if "배송메세지" in header:
        return line.message
    if "송하인" in header:
        return SENDER_NAME
    return ""


def custom_layout(headers: list[str]) -> RowLayout:
    """Layout for a company that brings its own orderFormHeaders."""
    header = tuple(headers)

    def build(line: OrderLine, display_name: str) -> list[Any]:
        return [_custom_cell(h, line, display_name) for h in header]

    return RowLayout(header=header, build=build)


# =============================================================================
# Candidate filters
# =============================================================================

A_GRADE_TOKEN = "A급"
A_GRADE_MARKER = "★A급"


def _split_by_a_grade(raw_text: str, entries: list[tuple[str, ProductPricing]]) -> list[tuple[str, ProductPricing]]:
    """A-grade orders only see ★A급 products; everything else never does."""
    if A_GRADE_TOKEN in raw_text:
        return [(k, p) for k, p in entries if A_GRADE_MARKER in p.display_name]
    return [(k, p) for k, p in entries if A_GRADE_MARKER not in p.display_name]


# =============================================================================
# Profile table
# =============================================================================

LOTTE = "롯데택배"
CJ = "CJ 대한통운"
HANJIN = "한진택배"

_KIMCHI_LAYOUT = RowLayout(
    header=("주문번호", "고객주문처명", "수취인명", "수취인 우편번호", "수취인 주소", "수취인 전화번호",
            "수취인 이동통신", "상품명", "상품모델", "배송메세지", "비고", "수량", "신청건수", "포장재", "부피단위"),
    build=_kimchi_row,
)

VENDOR_PROFILES: tuple[VendorProfile, ...] = (
    VendorProfile(
        names=("제이제이", "귤_제이"),
        keywords=("귤_제이", "은갈치", "순살 갈치", "한라봉_J"),
        manual_row=_jj_manual_row,
        carrier=HANJIN,
        invoice_columns=(8, 10),
        fixed_order_columns=True,
    ),
    VendorProfile(
        names=("연두",),
        keywords=("총각김치", "포기김치", "배추김치"),
        layout=_KIMCHI_LAYOUT,
        invoice_columns=(9, 4),
        fixed_order_columns=True,
    ),
    VendorProfile(
        names=("총각김치", "포기김치", "배추김치"),
        layout=_KIMCHI_LAYOUT,
        invoice_columns=(9, 4),
        fixed_order_columns=True,
    ),
    VendorProfile(
        names=("총각김치,포기김치",),
        invoice_columns=(9, 4),
        fixed_order_columns=True,
    ),
    VendorProfile(
        names=("답도", "한라봉_답도"),
        keywords=("한라봉", "답도", "한라봉_답도"),
        layout=RowLayout(
            header=("주문번호", "기재안해도됨", "송하인", "송하인 연락처", "수취인", "수취인 연락처",
                    "주소", "상품명", "수량", "배송 메세지", "송장번호"),
            build=_dapdo_row,
        ),
        carrier=CJ,
        invoice_columns=(0, 10),
        fixed_order_columns=True,
    ),
    VendorProfile(
        names=("웰그린",),
        keywords=("구좌 당근", "과일선물세트", "부사 사과", "부사사과"),
        layout=RowLayout(
            header=("", "쇼핑몰주문번호", "쇼핑몰", "상품명", "옵션(품목명)", "수량", "배송메세지", "", "",
                    "받는분성명", "주문자", "받는분연락처", "주문자연락처", "", "우편번호",
                    "받는분주소(전체, 분할)", "", "판매처연락처", "판매처주소"),
            build=_wellgreen_row,
        ),
        carrier=LOTTE,
        fixed_order_columns=True,
        candidate_filter=_split_by_a_grade,
    ),
    VendorProfile(
        names=("팜플로우",),
        keywords=("과일선물세트",),
        layout=RowLayout(
            header=("출고번호", "받으시는 분 이름", "받으시는 분 전화", "받는분 주소", "배송메세지", "품목명",
                    "수량", "보내시는 분", "보내시는 분 전화", "보내시는분 주소", "메모1", "택배사", "송장번호"),
            build=_farmflow_row,
        ),
        carrier=LOTTE,
        fixed_order_columns=True,
    ),
    VendorProfile(
        names=("고랭지김치",),
        layout=RowLayout(
            header=("주문번호", "보내는사람", "전화번호1", "전화번호2", "우편번호", "주소", "받는사람",
                    "전화번호1", "전화번호2", "우편번호", "주소", "상품명1", "상품상세1", "수량(A타입)",
                    "수량(B타입)", "배송메시지", "운임구분", "운임"),
            build=_goraengji_row,
        ),
        carrier=LOTTE,
        invoice_columns=(9, 6),
        fixed_order_columns=True,
    ),
    VendorProfile(
        names=("신선마켓", "귤_신선"),
        layout=RowLayout(
            header=("주문번호", "품목명", "수량", "받는사람", "전화번호", "", "", "우편번호", "주소", "배송메세지"),
            build=_sinsun_row,
        ),
        carrier=LOTTE,
        invoice_columns=(3, 17),
        fixed_order_columns=True,
    ),
    VendorProfile(
        names=("귤_초록",),
        carrier=CJ,
        invoice_columns=(15, 6),
        fixed_order_columns=True,
    ),
    VendorProfile(names=("홍게", "홍게2", "꽃게"), carrier=CJ),
)

DEFAULT_PROFILE = VendorProfile(names=())

_PROFILE_BY_NAME: dict[str, VendorProfile] = {
    name: profile for profile in VENDOR_PROFILES for name in profile.names
}


def get_vendor_profile(company_name: str) -> VendorProfile:
    return _PROFILE_BY_NAME.get(company_name, DEFAULT_PROFILE)


def keywords_for_company(company_name: str) -> list[str]:
    """
    Group-cell keywords that mark a master-sheet row as this company's.

    Known vendors carry fixed keyword sets; others use their name split on
    commas. The company name itself always counts as well.
    """
    profile = get_vendor_profile(company_name)
    if profile.keywords is not None:
        keywords = list(profile.keywords)
    else:
        keywords = [part.strip() for part in company_name.split(",")]
    name = company_name.strip()
    if name and name not in keywords:
        keywords.append(name)
    return [k for k in keywords if k]


def carrier_for_company(company_name: str) -> str:
    return get_vendor_profile(company_name).carrier


def resolve_layout(company_name: str, company: Optional[CompanyConfig]) -> RowLayout:
    """Purchase-order layout: vendor contract, else custom headers, else generic."""
    profile = get_vendor_profile(company_name)
    if profile.layout is not None:
        return profile.layout
    if company is not None and company.order_form_headers:
        return custom_layout(company.order_form_headers)
    return GENERIC_LAYOUT


def manual_row_builder(company_name: str, layout: RowLayout) -> RowBuilder:
    return get_vendor_profile(company_name).manual_row or layout.build
