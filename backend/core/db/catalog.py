"""
Pricing catalog persistence - the single config/pricingConfig document.
"""
import logging

from harvest.reconcile.catalog import config_from_dict, config_to_dict, load_default_pricing
from harvest.reconcile.models import PricingConfig

from .base import Collection, PRICING_CONFIG_DOC
from .documents import get_document, set_document

logger = logging.getLogger(__name__)


def load_pricing_config() -> PricingConfig:
    """Stored catalog, or the bundled default when nothing has been saved."""
    data = get_document(Collection.CONFIG.value, PRICING_CONFIG_DOC)
    if data is None:
        logger.info("No stored pricing config, using bundled default")
        return load_default_pricing()
    return config_from_dict(data)


def save_pricing_config(config: PricingConfig) -> PricingConfig:
    """Replace the stored catalog wholesale."""
    set_document(Collection.CONFIG.value, PRICING_CONFIG_DOC, config_to_dict(config))
    logger.info(f"Saved pricing config ({len(config)} companies)")
    return config


def reset_pricing_config() -> PricingConfig:
    """Overwrite the stored catalog with the bundled default."""
    return save_pricing_config(load_default_pricing())
