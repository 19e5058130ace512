"""
Pydantic request/response models for the API.

Field names are snake_case on the Python side; the catalog endpoints
accept and return the stored camelCase JSON unchanged.
"""
from pydantic import AliasChoices, BaseModel, Field
from typing import Any, Dict, List, Optional

from harvest.reconcile.models import ManualOrder, ManualTransfer, ProductPricing
from harvest.reconcile.settlement import SessionSnapshot


# ============== Catalog ==============

class CompanyCreateRequest(BaseModel):
    name: str


class CompanyUpdateRequest(BaseModel):
    """Partial company update; only the fields that are set change."""
    new_name: Optional[str] = None
    phone: Optional[str] = None
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    order_form_headers: Optional[List[str]] = None
    order_form_filename: Optional[str] = None
    deadline: Optional[str] = None


class ProductRequest(BaseModel):
    display_name: str
    supply_price: int = Field(0, ge=0)
    selling_price: Optional[int] = None
    margin: Optional[int] = None
    aliases: Optional[List[str]] = None
    site_product_name: Optional[str] = None

    def to_pricing(self) -> ProductPricing:
        return ProductPricing(
            display_name=self.display_name.strip(),
            supply_price=self.supply_price,
            selling_price=self.selling_price,
            margin=self.margin,
            aliases=self.aliases,
            site_product_name=self.site_product_name,
        )


class LookupRequest(BaseModel):
    company: str
    text: str
    use_oracle: bool = False


# ============== Orders ==============

class ManualOrderRequest(BaseModel):
    id: str = ""
    company_name: str
    recipient_name: str
    phone: str = ""
    address: str = ""
    product_name: str
    qty: int = 1

    def to_order(self) -> ManualOrder:
        return ManualOrder(**self.model_dump())


# ============== Settlement ==============

class SessionPayload(BaseModel):
    """One vendor round as the console holds it."""
    id: str
    company: str
    round: int = 1
    total: int = 0
    summary_excel: str = ""
    order_rows: List[List[Any]] = []
    invoice_rows: List[List[Any]] = []
    upload_rows: List[List[Any]] = []
    invoice_header: Optional[List[Any]] = None

    def to_snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(**self.model_dump())


class TransferPayload(BaseModel):
    """Accepts the camelCase shape /transfers/parse returns as well."""
    id: str = ""
    label: str
    bank_name: str = Field("은행", validation_alias=AliasChoices("bank_name", "bankName"))
    account_number: str = Field("계좌", validation_alias=AliasChoices("account_number", "accountNumber"))
    amount: int
    is_adjustment: bool = Field(False, validation_alias=AliasChoices("is_adjustment", "isAdjustment"))
    company_name: Optional[str] = Field(None, validation_alias=AliasChoices("company_name", "companyName"))

    def to_transfer(self) -> ManualTransfer:
        return ManualTransfer(**self.model_dump())


class SettlementRequest(BaseModel):
    sessions: List[SessionPayload] = []
    transfers: List[TransferPayload] = []
    selected: Optional[List[str]] = None   # session ids; None selects all
    date: Optional[str] = None             # YYYY-MM-DD, defaults to today

    def snapshots(self) -> List[SessionSnapshot]:
        return [s.to_snapshot() for s in self.sessions]

    def manual_transfers(self) -> List[ManualTransfer]:
        return [t.to_transfer() for t in self.transfers]


class BulkTransferRequest(BaseModel):
    text: str


class CompanyAdjustmentRequest(BaseModel):
    company: str
    amount: int


# ============== Workspace ==============

class WorkspaceUpdateRequest(BaseModel):
    fields: Dict[str, Any]
