"""
Pricing catalog API router.
"""
import logging
from datetime import date
from typing import Any, Dict

from fastapi import APIRouter, File, HTTPException, UploadFile
from fastapi.responses import Response

from backend.api.models import CompanyCreateRequest, CompanyUpdateRequest, LookupRequest, ProductRequest
from backend.api.responses import sanitize_filename
from backend.core.db import load_pricing_config, reset_pricing_config, save_pricing_config
from backend.core.llm import get_oracle
from harvest.reconcile.catalog import (
    add_company,
    add_product,
    config_from_dict,
    config_to_dict,
    dump_pricing_json,
    parse_pricing_json,
    remove_company,
    remove_product,
    rename_company,
    update_company,
    update_product,
)
from harvest.reconcile.errors import CatalogImportError, DuplicateNameError
from harvest.reconcile.matcher import ProductMatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/catalog", tags=["Catalog"])


def _apply(edit, *args, **kwargs) -> Dict[str, Any]:
    """Run a catalog edit against the stored catalog and save the result."""
    try:
        updated = edit(load_pricing_config(), *args, **kwargs)
    except DuplicateNameError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e.args[0]) if e.args else "Not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return config_to_dict(save_pricing_config(updated))


@router.get("")
def get_catalog():
    """Current catalog in its stored JSON shape."""
    return config_to_dict(load_pricing_config())


@router.put("")
def replace_catalog(data: Dict[str, Any]):
    """Replace the catalog wholesale."""
    return config_to_dict(save_pricing_config(config_from_dict(data)))


@router.post("/companies")
def create_company(request: CompanyCreateRequest):
    return _apply(add_company, request.name)


@router.patch("/companies/{name}")
def patch_company(name: str, request: CompanyUpdateRequest):
    """Update company settings; new_name renames in place."""
    fields = request.model_dump(exclude_unset=True)
    new_name = fields.pop("new_name", None)
    result = None
    if fields:
        result = _apply(update_company, name, **fields)
    if new_name:
        result = _apply(rename_company, name, new_name)
    return result if result is not None else get_catalog()


@router.delete("/companies/{name}")
def delete_company(name: str):
    return _apply(remove_company, name)


@router.post("/companies/{name}/products")
def create_product(name: str, request: ProductRequest):
    return _apply(add_product, name, request.to_pricing())


@router.put("/companies/{name}/products/{product_key}")
def replace_product(name: str, product_key: str, request: ProductRequest):
    """Replace a product; a changed display name re-keys it in place."""
    return _apply(update_product, name, product_key, request.to_pricing())


@router.delete("/companies/{name}/products/{product_key}")
def delete_product(name: str, product_key: str):
    return _apply(remove_product, name, product_key)


@router.get("/export")
def export_catalog():
    """Download the catalog as a JSON backup."""
    content = dump_pricing_json(load_pricing_config())
    safe_filename = sanitize_filename(f"pricing_config_{date.today():%Y-%m-%d}.json")
    return Response(
        content=content.encode("utf-8"),
        media_type="application/json",
        headers={
            "Content-Disposition": f"attachment; filename=\"{safe_filename}\"; filename*=UTF-8''{safe_filename}"
        }
    )


@router.post("/import")
async def import_catalog(file: UploadFile = File(...)):
    """Restore a JSON backup, replacing the catalog wholesale."""
    content = await file.read()
    try:
        config = parse_pricing_json(content.decode("utf-8-sig"))
    except (CatalogImportError, UnicodeDecodeError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid catalog backup: {e}")
    logger.info(f"Importing catalog backup {file.filename}: {len(config)} companies")
    return config_to_dict(save_pricing_config(config))


@router.post("/reset")
def reset_catalog():
    """Restore the bundled default catalog."""
    return config_to_dict(reset_pricing_config())


@router.post("/lookup")
def lookup_product(request: LookupRequest):
    """Resolve one product text the way a conversion run would."""
    config = load_pricing_config()
    if request.company not in config:
        raise HTTPException(status_code=404, detail=f"Unknown company: {request.company}")

    matcher = ProductMatcher(config, oracle=get_oracle() if request.use_oracle else None)
    match = matcher.match(request.company, request.text)
    if match is None:
        return {"matched": False, "company": request.company, "text": request.text}
    return {
        "matched": True,
        "company": request.company,
        "text": request.text,
        "productKey": match.product_key,
        "displayName": match.display_name,
        "supplyPrice": match.supply_price,
        "method": match.method.value,
    }
