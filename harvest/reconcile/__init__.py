# Order reconciliation engine
# Siloed module - no imports from backend

from .models import (
    MatchMethod,
    ProductPricing,
    CompanyConfig,
    PricingConfig,
    CatalogMatch,
    OrderLine,
    ProductTotal,
    ExcludedOrder,
    ManualOrder,
    UnmatchedLine,
    MergeFailure,
    CompanyStat,
    SessionAdjustment,
    ManualTransfer,
    DepositRecord,
    SalesRecord,
    DailySales,
)
from .errors import (
    ReconcileError,
    SheetParseError,
    DuplicateNameError,
    CatalogImportError,
    InvoiceMergeError,
    SettlementError,
    ProcessingInProgress,
)
from .catalog import (
    find_product_config,
    find_product_by_display_name,
    load_default_pricing,
    load_pricing_file,
    parse_pricing_json,
    dump_pricing_json,
)
from .oracle import SimilarityOracle, StaticOracle
from .matcher import MatchCache, ProductMatcher
from .converter import ConversionResult, classify_rows, convert_company
from .invoices import MergeResult, build_invoice_map, merge_invoices, normalize_order_number
from .settlement import SessionSnapshot, build_deposit_rows, build_work_log, summarize_period
from .session import Workstation

__version__ = "1.0.0"

__all__ = [
    # Models
    "MatchMethod",
    "ProductPricing",
    "CompanyConfig",
    "PricingConfig",
    "CatalogMatch",
    "OrderLine",
    "ProductTotal",
    "ExcludedOrder",
    "ManualOrder",
    "UnmatchedLine",
    "MergeFailure",
    "CompanyStat",
    "SessionAdjustment",
    "ManualTransfer",
    "DepositRecord",
    "SalesRecord",
    "DailySales",
    # Errors
    "ReconcileError",
    "SheetParseError",
    "DuplicateNameError",
    "CatalogImportError",
    "InvoiceMergeError",
    "SettlementError",
    "ProcessingInProgress",
    # Catalog
    "find_product_config",
    "find_product_by_display_name",
    "load_default_pricing",
    "load_pricing_file",
    "parse_pricing_json",
    "dump_pricing_json",
    # Matching
    "SimilarityOracle",
    "StaticOracle",
    "MatchCache",
    "ProductMatcher",
    # Converter
    "ConversionResult",
    "classify_rows",
    "convert_company",
    # Invoices
    "MergeResult",
    "build_invoice_map",
    "merge_invoices",
    "normalize_order_number",
    # Settlement
    "SessionSnapshot",
    "build_deposit_rows",
    "build_work_log",
    "summarize_period",
    "Workstation",
]
