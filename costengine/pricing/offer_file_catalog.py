"""
Offer File Catalog.
Reads products and prices from locally cached catalog snapshots written by the
ingestion pipeline.

Expects directory structure:
    pricing-cache/
        azurerm/
            VPN Gateway.json.gz
            Virtual Machines.json
            ...
        aws/
            AmazonEC2.json.gz
            ...

Each file holds one service of one provider:
    {
        "provider": "azurerm",
        "service": "VPN Gateway",
        "products": {
            "<product id>": {
                "sku": "...", "family": "...", "location": "...",
                "attributes": {"meter_name": "..."},
                "prices": [{"value": "0.04", "unit": "1 Hour", "attributes": {...}}]
            }
        }
    }
"""
import json
import gzip
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from costengine.domain.catalog_models import Product, Price
from costengine.domain.query_models import ProductFilter, PriceFilter
from costengine.pricing.catalog import CatalogError
from costengine.pricing.memory_catalog import InMemoryCatalog

logger = logging.getLogger(__name__)


class OfferFileCatalog:
    """
    Catalog backend over cached offer files.

    Files are loaded lazily, once per (provider, service), and indexed into an
    InMemoryCatalog. Products keep the order they have in the file.
    """

    def __init__(self, cache_dir: str = "pricing-cache"):
        """
        Initialize offer file catalog.

        Args:
            cache_dir: Path to the catalog cache directory

        Raises:
            CatalogError: If the cache directory does not exist
        """
        self.cache_dir = Path(cache_dir)
        if not self.cache_dir.is_dir():
            raise CatalogError(f"Catalog cache directory not found: {cache_dir}")

        # (provider, service) -> index of that offer file
        self._indexes: Dict[Tuple[str, str], InMemoryCatalog] = {}
        # product id -> index holding its prices
        self._product_owner: Dict[str, InMemoryCatalog] = {}

    def _offer_files(self) -> List[Tuple[str, str, Path]]:
        """List (provider, service, path) for every offer file, sorted for determinism."""
        files = []
        for provider_dir in sorted(p for p in self.cache_dir.iterdir() if p.is_dir()):
            for path in sorted(provider_dir.iterdir()):
                if path.name.endswith(".json.gz"):
                    service = path.name[:-len(".json.gz")]
                elif path.suffix == ".json":
                    service = path.stem
                else:
                    continue
                files.append((provider_dir.name, service, path))
        return files

    def _find_offer_file(self, provider: str, service: str) -> Optional[Path]:
        for suffix in (".json.gz", ".json"):
            path = self.cache_dir / provider / f"{service}{suffix}"
            if path.exists():
                return path
        return None

    def _read(self, path: Path) -> Dict:
        try:
            if path.name.endswith(".gz"):
                with gzip.open(path, "rt", encoding="utf-8") as f:
                    offer_data = json.load(f)
            else:
                with open(path, "r", encoding="utf-8") as f:
                    offer_data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError, EOFError, OSError) as error:
            logger.error(f"Error loading offer file {path}: {error}")
            raise CatalogError(f"Failed to load offer file {path.name}: {error}") from error

        if not isinstance(offer_data, dict):
            raise CatalogError(f"Malformed offer file {path.name}: expected a JSON object")
        return offer_data

    def _load(self, provider: str, service: str, path: Path) -> InMemoryCatalog:
        """Load and index one offer file."""
        key = (provider, service)
        if key in self._indexes:
            return self._indexes[key]

        offer_data = self._read(path)
        index = InMemoryCatalog()
        try:
            for product_id, entry in (offer_data.get("products") or {}).items():
                product = Product.from_dict(
                    {
                        "provider": offer_data.get("provider", provider),
                        "service": offer_data.get("service", service),
                        **entry,
                    },
                    product_id=product_id,
                )
                prices = [Price.from_dict(item) for item in entry.get("prices") or []]
                index.add_product(product, prices)
                self._product_owner[product.id] = index
        except (KeyError, TypeError, ValueError, AttributeError, ArithmeticError) as error:
            raise CatalogError(f"Malformed offer file {path.name}: {error}") from error

        logger.info(f"Indexed {len(index)} products from {path}")
        self._indexes[key] = index
        return index

    def _candidate_indexes(self, product_filter: ProductFilter) -> List[InMemoryCatalog]:
        if product_filter.provider is not None and product_filter.service is not None:
            path = self._find_offer_file(product_filter.provider, product_filter.service)
            if path is None:
                return []
            return [self._load(product_filter.provider, product_filter.service, path)]

        indexes = []
        for provider, service, path in self._offer_files():
            if product_filter.provider is not None and provider != product_filter.provider:
                continue
            indexes.append(self._load(provider, service, path))
        return indexes

    async def find_products(self, product_filter: ProductFilter) -> List[Product]:
        products: List[Product] = []
        for index in self._candidate_indexes(product_filter):
            products.extend(await index.find_products(product_filter))
        return products

    async def find_prices(self, product_id: str, price_filter: PriceFilter) -> List[Price]:
        index = self._product_owner.get(product_id)
        if index is None:
            # Product ids can be looked up before their file was loaded
            for provider, service, path in self._offer_files():
                self._load(provider, service, path)
            index = self._product_owner.get(product_id)
            if index is None:
                return []
        return await index.find_prices(product_id, price_filter)
