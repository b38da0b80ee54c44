"""
Catalog backend selection.
"""
import logging
from typing import Optional

from costengine.core.config import config, SUPPORTED_CATALOG_BACKENDS
from costengine.pricing.catalog import Catalog, CatalogError
from costengine.pricing.memory_catalog import InMemoryCatalog


logger = logging.getLogger(__name__)


def create_catalog(backend_name: Optional[str] = None) -> Catalog:
    """
    Create the catalog named by configuration.

    Args:
        backend_name: Backend to use (defaults to config.CATALOG_BACKEND)

    Returns:
        Catalog wrapping the selected backend

    Raises:
        CatalogError: If the backend is unknown or cannot be initialized
    """
    name = backend_name or config.CATALOG_BACKEND

    if name == "memory":
        backend = InMemoryCatalog()
    elif name == "offer_files":
        from costengine.pricing.offer_file_catalog import OfferFileCatalog
        backend = OfferFileCatalog(cache_dir=config.OFFER_CACHE_DIR)
    elif name == "azure_retail":
        from costengine.pricing.azure_retail_catalog import AzureRetailCatalog
        backend = AzureRetailCatalog()
    elif name == "aws_pricing":
        from costengine.pricing.aws_pricing_catalog import AWSPricingCatalog
        backend = AWSPricingCatalog()
    else:
        raise CatalogError(
            f"Unknown catalog backend '{name}' (expected one of {', '.join(SUPPORTED_CATALOG_BACKENDS)})"
        )

    logger.info("Using %s catalog backend", name)
    return Catalog.from_backend(backend)
