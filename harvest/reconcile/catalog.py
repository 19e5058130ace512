"""
Pricing catalog - company -> product -> pricing and matching metadata.

The catalog is declarative JSON (same shape as the store document and
the backup export). Lookups are pure functions over a snapshot; edits
return a new PricingConfig and never mutate their input.
"""

import copy
import json
import logging
import re
from dataclasses import replace
from pathlib import Path
from typing import Optional

from .errors import CatalogImportError, DuplicateNameError
from .models import CatalogMatch, CompanyConfig, MatchMethod, PricingConfig, ProductPricing

logger = logging.getLogger(__name__)

DEFAULT_PRICING_PATH = Path(__file__).parent / "default_pricing.json"

_NOISE_RE = re.compile(r"[,.\s]")


def normalize_product_text(text: str) -> str:
    """Lower-case and drop commas, periods and whitespace ("2 kg" -> "2kg")."""
    return _NOISE_RE.sub("", (text or "").lower())


# =============================================================================
# Loading / serialization
# =============================================================================

def config_from_dict(data: dict) -> PricingConfig:
    """Build a PricingConfig from the stored/exported JSON object."""
    config: PricingConfig = {}
    for name, company in data.items():
        config[str(name)] = CompanyConfig.from_dict(company if isinstance(company, dict) else {})
    return config


def config_to_dict(config: PricingConfig) -> dict:
    return {name: company.to_dict() for name, company in config.items()}


def load_pricing_file(path: str | Path) -> PricingConfig:
    """
    Load a catalog from a JSON file.

    Args:
        path: JSON file in the backup/export format

    Returns:
        PricingConfig keyed by company name
    """
    with open(Path(path), "r", encoding="utf-8") as f:
        return parse_pricing_json(f.read())


def load_default_pricing() -> PricingConfig:
    """Load the catalog bundled with the package."""
    return load_pricing_file(DEFAULT_PRICING_PATH)


def parse_pricing_json(text: str) -> PricingConfig:
    """
    Parse a JSON catalog backup.

    There is no schema versioning: any JSON object is accepted and the
    caller replaces its catalog wholesale with the result.

    Raises:
        CatalogImportError: text is not JSON or not a JSON object
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise CatalogImportError(f"Catalog backup is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise CatalogImportError("Catalog backup must be a JSON object")
    return config_from_dict(data)


def dump_pricing_json(config: PricingConfig, indent: int = 2) -> str:
    return json.dumps(config_to_dict(config), ensure_ascii=False, indent=indent)


# =============================================================================
# Lookup
# =============================================================================

def sorted_product_keys(products: dict[str, ProductPricing]) -> list[str]:
    """Product keys ordered by display-name length, longest first (stable)."""
    return sorted(
        products.keys(),
        key=lambda k: len(products[k].display_name or k),
        reverse=True,
    )


def resolve_match(key: str, product: ProductPricing, method: MatchMethod) -> CatalogMatch:
    sanitized = replace(
        product,
        display_name=product.display_name or key,
        supply_price=product.supply_price or 0,
        margin=product.margin or 0,
    )
    return CatalogMatch(product_key=key, product=sanitized, method=method)


def find_product_config(
    config: PricingConfig,
    company_name: str,
    product_name: str,
) -> Optional[CatalogMatch]:
    """
    Resolve free product text to a single catalog entry.

    Cascade, first hit wins:
    1. Alias substring (longest alias)
    2. Display-name substring (longest display name)
    3. Normalized display-name substring (longest)
    4. Product-key substring
    5. Company has exactly one product -> that product
    6. None

    Args:
        config: Catalog snapshot
        company_name: Company to search
        product_name: Raw text from the order line

    Returns:
        CatalogMatch, or None for unknown company / empty text / no hit
    """
    company = config.get(company_name)
    if company is None or not product_name:
        return None

    products = company.products
    lower_text = product_name.lower()
    keys = sorted_product_keys(products)

    best_alias: Optional[tuple[str, int]] = None
    for key in keys:
        for alias in products[key].aliases or []:
            if alias and alias.lower() in lower_text:
                if best_alias is None or len(alias) > best_alias[1]:
                    best_alias = (key, len(alias))
    if best_alias:
        return resolve_match(best_alias[0], products[best_alias[0]], MatchMethod.ALIAS)

    for key in keys:
        keyword = products[key].display_name
        if keyword and keyword.lower() in lower_text:
            return resolve_match(key, products[key], MatchMethod.DISPLAY_NAME)

    normalized_text = normalize_product_text(product_name)
    best_norm: Optional[tuple[str, int]] = None
    for key in keys:
        norm_display = normalize_product_text(products[key].display_name)
        if norm_display and norm_display in normalized_text:
            if best_norm is None or len(norm_display) > best_norm[1]:
                best_norm = (key, len(norm_display))
    if best_norm:
        return resolve_match(best_norm[0], products[best_norm[0]], MatchMethod.NORMALIZED)

    for key in keys:
        if key.lower() in lower_text:
            return resolve_match(key, products[key], MatchMethod.PRODUCT_KEY)

    if len(products) == 1:
        only_key = next(iter(products))
        return resolve_match(only_key, products[only_key], MatchMethod.SINGLE_PRODUCT)

    return None


def find_product_by_display_name(
    config: PricingConfig,
    company_name: str,
    display_name: str,
) -> Optional[ProductPricing]:
    """Exact display-name lookup, used for margin reporting."""
    company = config.get(company_name)
    if company is None:
        return None
    for product in company.products.values():
        if product.display_name == display_name:
            return product
    return None


# =============================================================================
# Edits
# =============================================================================

def _require_company(config: PricingConfig, name: str) -> CompanyConfig:
    if name not in config:
        raise KeyError(f"Unknown company: {name}")
    return config[name]


def add_company(
    config: PricingConfig,
    name: str,
    company: Optional[CompanyConfig] = None,
) -> PricingConfig:
    name = name.strip()
    if not name:
        raise ValueError("Company name is required")
    if name in config:
        raise DuplicateNameError(f"Company already exists: {name}")
    updated = copy.deepcopy(config)
    updated[name] = copy.deepcopy(company) if company else CompanyConfig()
    logger.info(f"Catalog: added company {name}")
    return updated


def rename_company(config: PricingConfig, old_name: str, new_name: str) -> PricingConfig:
    """Rename a company in place, keeping its display position."""
    _require_company(config, old_name)
    new_name = new_name.strip()
    if not new_name:
        raise ValueError("Company name is required")
    if new_name == old_name:
        return copy.deepcopy(config)
    if new_name in config:
        raise DuplicateNameError(f"Company already exists: {new_name}")
    updated: PricingConfig = {}
    for name, company in config.items():
        updated[new_name if name == old_name else name] = copy.deepcopy(company)
    logger.info(f"Catalog: renamed company {old_name} -> {new_name}")
    return updated


def remove_company(config: PricingConfig, name: str) -> PricingConfig:
    _require_company(config, name)
    updated = copy.deepcopy(config)
    del updated[name]
    return updated


def update_company(config: PricingConfig, name: str, **fields) -> PricingConfig:
    """Replace company-level settings (bank, account, deadline, headers...)."""
    company = _require_company(config, name)
    updated = copy.deepcopy(config)
    updated[name] = replace(copy.deepcopy(company), **fields)
    return updated


def add_product(config: PricingConfig, company_name: str, product: ProductPricing) -> PricingConfig:
    """Add a product keyed by its display name."""
    company = _require_company(config, company_name)
    key = product.display_name.strip()
    if not key:
        raise ValueError("Product display name is required")
    if key in company.products or any(p.display_name == key for p in company.products.values()):
        raise DuplicateNameError(f"Product already exists in {company_name}: {key}")
    updated = copy.deepcopy(config)
    updated[company_name].products[key] = replace(product, display_name=key)
    return updated


def update_product(
    config: PricingConfig,
    company_name: str,
    product_key: str,
    product: ProductPricing,
) -> PricingConfig:
    """
    Replace a product; a changed display name re-keys it in place.

    Raises:
        DuplicateNameError: new display name collides with another product
    """
    company = _require_company(config, company_name)
    if product_key not in company.products:
        raise KeyError(f"Unknown product in {company_name}: {product_key}")
    new_key = product.display_name.strip() or product_key
    if new_key != product_key:
        clash = new_key in company.products or any(
            p.display_name == new_key for k, p in company.products.items() if k != product_key
        )
        if clash:
            raise DuplicateNameError(f"Product already exists in {company_name}: {new_key}")

    updated = copy.deepcopy(config)
    products: dict[str, ProductPricing] = {}
    for key, existing in updated[company_name].products.items():
        if key == product_key:
            products[new_key] = replace(product, display_name=new_key)
        else:
            products[key] = existing
    updated[company_name].products = products
    return updated


def remove_product(config: PricingConfig, company_name: str, product_key: str) -> PricingConfig:
    company = _require_company(config, company_name)
    if product_key not in company.products:
        raise KeyError(f"Unknown product in {company_name}: {product_key}")
    updated = copy.deepcopy(config)
    del updated[company_name].products[product_key]
    return updated
