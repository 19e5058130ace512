"""
Data models for order reconciliation.

All structured data uses dataclasses for type hints, __eq__, and __repr__.
Money values are integer won.

Persisted shapes (catalog backups, sales history documents) keep the
camelCase keys the store has always used, so every record that crosses
the store boundary has a to_dict/from_dict pair.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


def to_int(value: Any, default: int = 0) -> int:
    """Coerce a loosely typed number (str, float, None) to int won."""
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return int(value)
    try:
        return int(float(str(value).replace(",", "").strip()))
    except ValueError:
        return default


class MatchMethod(Enum):
    """Which layer of the matching cascade produced a catalog hit."""
    SITE_NAME = "SITE_NAME"            # siteProductName substring
    ALIAS = "ALIAS"                    # legacy alias keyword
    DISPLAY_NAME = "DISPLAY_NAME"      # display name substring
    NORMALIZED = "NORMALIZED"          # punctuation/whitespace-insensitive
    PRODUCT_KEY = "PRODUCT_KEY"        # bare catalog key
    SINGLE_PRODUCT = "SINGLE_PRODUCT"  # company (or filtered subset) has one product
    ORACLE = "ORACLE"                  # external similarity service


@dataclass
class ProductPricing:
    """
    One catalog entry.

    display_name is both the label on vendor order forms and the primary
    matching keyword. aliases is the legacy keyword list, kept only as an
    input path into the same cascade as site_product_name.
    """
    display_name: str
    supply_price: int = 0                 # cost basis per unit
    selling_price: Optional[int] = None
    margin: Optional[int] = None          # flat per-unit amount
    aliases: Optional[list[str]] = None
    site_product_name: Optional[str] = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "supplyPrice": self.supply_price,
            "displayName": self.display_name,
        }
        if self.site_product_name:
            data["siteProductName"] = self.site_product_name
        if self.selling_price is not None:
            data["sellingPrice"] = self.selling_price
        if self.margin is not None:
            data["margin"] = self.margin
        if self.aliases:
            data["aliases"] = list(self.aliases)
        return data

    @classmethod
    def from_dict(cls, data: dict, key: str = "") -> "ProductPricing":
        aliases = data.get("aliases")
        return cls(
            display_name=str(data.get("displayName") or key),
            supply_price=to_int(data.get("supplyPrice")),
            selling_price=to_int(data["sellingPrice"]) if data.get("sellingPrice") not in (None, "") else None,
            margin=to_int(data["margin"]) if data.get("margin") not in (None, "") else None,
            aliases=[str(a) for a in aliases] if isinstance(aliases, list) else None,
            site_product_name=data.get("siteProductName") or None,
        )


@dataclass
class CompanyConfig:
    """Settlement and output-form settings for one vendor."""
    products: dict[str, ProductPricing] = field(default_factory=dict)
    phone: Optional[str] = None
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    order_form_headers: Optional[list[str]] = None
    order_form_filename: Optional[str] = None
    deadline: Optional[str] = None        # "HH:MM", display ordering only

    def to_dict(self) -> dict:
        data: dict[str, Any] = {}
        if self.deadline:
            data["deadline"] = self.deadline
        if self.phone is not None:
            data["phone"] = self.phone
        if self.bank_name is not None:
            data["bankName"] = self.bank_name
        if self.account_number is not None:
            data["accountNumber"] = self.account_number
        if self.order_form_headers:
            data["orderFormHeaders"] = list(self.order_form_headers)
        if self.order_form_filename:
            data["orderFormFilename"] = self.order_form_filename
        data["products"] = {key: p.to_dict() for key, p in self.products.items()}
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "CompanyConfig":
        products = data.get("products") or {}
        headers = data.get("orderFormHeaders")
        return cls(
            products={
                str(key): ProductPricing.from_dict(p or {}, str(key))
                for key, p in products.items()
            } if isinstance(products, dict) else {},
            phone=data.get("phone"),
            bank_name=data.get("bankName"),
            account_number=data.get("accountNumber"),
            order_form_headers=[str(h) for h in headers] if isinstance(headers, list) else None,
            order_form_filename=data.get("orderFormFilename"),
            deadline=data.get("deadline") or None,
        )


# company name -> config, insertion order is display order
PricingConfig = dict[str, CompanyConfig]


@dataclass
class CatalogMatch:
    """A resolved catalog entry for one order line."""
    product_key: str
    product: ProductPricing
    method: MatchMethod

    @property
    def display_name(self) -> str:
        return self.product.display_name

    @property
    def supply_price(self) -> int:
        return self.product.supply_price


@dataclass
class OrderLine:
    """
    One master-sheet row after extraction.

    Materialized per row during classification and never persisted.
    """
    company: str
    order_number: str
    group_text: str
    product_text: str
    qty: int
    recipient: str = ""
    phone: str = ""
    zip_code: str = ""
    address: str = ""
    message: str = ""
    date_label: Optional[str] = None
    manual: bool = False

    @property
    def match_text(self) -> str:
        return f"{self.group_text} {self.product_text}".strip()


@dataclass
class ProductTotal:
    """Running count and amount for one product."""
    count: int = 0
    total_price: int = 0

    def add(self, count: int, unit_price: int) -> None:
        self.count += count
        self.total_price += count * unit_price

    def to_dict(self) -> dict:
        return {"count": self.count, "totalPrice": self.total_price}


@dataclass
class ExcludedOrder:
    """An order dropped because its number was flagged as fake."""
    company_name: str
    recipient_name: str
    product_name: str
    phone: str
    order_number: str         # tagged "<num> (제외)"


@dataclass
class ManualOrder:
    """A hand-entered order folded in after the spreadsheet rows."""
    id: str
    company_name: str
    recipient_name: str
    phone: str
    address: str
    product_name: str
    qty: int = 1


@dataclass
class UnmatchedLine:
    """An order line no catalog entry resolved."""
    company: str
    order_number: str
    product_text: str
    qty: int


@dataclass
class MergeFailure:
    """An order row with no tracking number in the carrier file."""
    order_num: str
    recipient: str
    reason: str


@dataclass
class CompanyStat:
    """Per-vendor invoice merge counts."""
    mgmt: int = 0
    upload: int = 0
    failures: list[MergeFailure] = field(default_factory=list)


@dataclass
class SessionAdjustment:
    """Signed amount added to one workstation round's total (returns, corrections)."""
    id: str
    label: str
    amount: int


@dataclass
class ManualTransfer:
    """A deposit line that does not come from any order."""
    id: str
    label: str
    bank_name: str
    account_number: str
    amount: int
    is_adjustment: bool = False
    company_name: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "label": self.label,
            "bankName": self.bank_name,
            "accountNumber": self.account_number,
            "amount": self.amount,
        }
        if self.is_adjustment:
            data["isAdjustment"] = True
        if self.company_name:
            data["companyName"] = self.company_name
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ManualTransfer":
        return cls(
            id=str(data.get("id", "")),
            label=str(data.get("label", "")),
            bank_name=str(data.get("bankName") or "은행"),
            account_number=str(data.get("accountNumber") or "계좌"),
            amount=to_int(data.get("amount")),
            is_adjustment=bool(data.get("isAdjustment", False)),
            company_name=data.get("companyName"),
        )


@dataclass
class DepositRecord:
    bank_name: str
    account_number: str
    amount: int
    label: str = ""

    def to_dict(self) -> dict:
        return {
            "bankName": self.bank_name,
            "accountNumber": self.account_number,
            "amount": self.amount,
            "label": self.label,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DepositRecord":
        return cls(
            bank_name=str(data.get("bankName", "")),
            account_number=str(data.get("accountNumber", "")),
            amount=to_int(data.get("amount")),
            label=str(data.get("label") or ""),
        )


@dataclass
class SalesRecord:
    """One product line of a day's settled sales."""
    date: str                 # YYYY-MM-DD
    company: str
    product: str
    count: int
    supply_price: int
    total_price: int
    margin: int = 0           # per unit

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "company": self.company,
            "product": self.product,
            "count": self.count,
            "supplyPrice": self.supply_price,
            "totalPrice": self.total_price,
            "margin": self.margin,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SalesRecord":
        return cls(
            date=str(data.get("date", "")),
            company=str(data.get("company", "")),
            product=str(data.get("product", "")),
            count=to_int(data.get("count")),
            supply_price=to_int(data.get("supplyPrice")),
            total_price=to_int(data.get("totalPrice")),
            margin=to_int(data.get("margin")),
        )


@dataclass
class DailySales:
    """
    Persisted end-of-day sales document.

    One per calendar date; saving replaces the whole document.
    """
    date: str
    records: list[SalesRecord]
    total_amount: int
    saved_at: str
    order_rows: Optional[list[list[Any]]] = None
    order_headers: Optional[list[str]] = None
    invoice_rows: Optional[list[list[Any]]] = None
    invoice_headers: Optional[list[str]] = None
    deposit_records: Optional[list[DepositRecord]] = None
    deposit_total: Optional[int] = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "date": self.date,
            "records": [r.to_dict() for r in self.records],
            "totalAmount": self.total_amount,
            "savedAt": self.saved_at,
        }
        if self.order_rows is not None:
            data["orderRows"] = self.order_rows
        if self.order_headers is not None:
            data["orderHeaders"] = self.order_headers
        if self.invoice_rows is not None:
            data["invoiceRows"] = self.invoice_rows
        if self.invoice_headers is not None:
            data["invoiceHeaders"] = self.invoice_headers
        if self.deposit_records is not None:
            data["depositRecords"] = [d.to_dict() for d in self.deposit_records]
        if self.deposit_total is not None:
            data["depositTotal"] = self.deposit_total
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "DailySales":
        deposits = data.get("depositRecords")
        return cls(
            date=str(data.get("date", "")),
            records=[SalesRecord.from_dict(r) for r in data.get("records") or []],
            total_amount=to_int(data.get("totalAmount")),
            saved_at=str(data.get("savedAt", "")),
            order_rows=data.get("orderRows"),
            order_headers=data.get("orderHeaders"),
            invoice_rows=data.get("invoiceRows"),
            invoice_headers=data.get("invoiceHeaders"),
            deposit_records=[DepositRecord.from_dict(d) for d in deposits] if deposits is not None else None,
            deposit_total=to_int(data["depositTotal"]) if data.get("depositTotal") is not None else None,
        )
