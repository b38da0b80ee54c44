"""
Catalog repository interfaces.

The state builder only depends on two narrow lookups: products by filter and
prices of one product by filter. Any backend implementing both can be
substituted without touching the builder.
"""
from typing import List, Dict, Optional, Protocol, runtime_checkable
from dataclasses import dataclass

from costengine.domain.catalog_models import Product, Price
from costengine.domain.query_models import ProductFilter, PriceFilter


class CatalogError(Exception):
    """Raised when a catalog backend fails (connectivity, corruption, open circuit)."""
    pass


@runtime_checkable
class ProductRepository(Protocol):
    """Lookup of products by filter."""

    async def find_products(self, product_filter: ProductFilter) -> List[Product]:
        """Return matching products in a deterministic order (empty if none match)."""
        ...


@runtime_checkable
class PriceRepository(Protocol):
    """Lookup of the prices of one product."""

    async def find_prices(self, product_id: str, price_filter: PriceFilter) -> List[Price]:
        """Return matching prices in a deterministic order (empty if none match)."""
        ...


@dataclass(frozen=True)
class Catalog:
    """The pair of repositories the state builder queries."""
    products: ProductRepository
    prices: PriceRepository

    @classmethod
    def from_backend(cls, backend) -> "Catalog":
        """Wrap a backend that implements both repositories."""
        return cls(products=backend, prices=backend)


def _attributes_match(attributes: Dict[str, str], filters) -> bool:
    for attribute_filter in filters:
        if attributes.get(attribute_filter.key) != attribute_filter.value:
            return False
    return True


def _scalar_matches(expected: Optional[str], actual: str) -> bool:
    return expected is None or expected == actual


def product_matches(product: Product, product_filter: ProductFilter) -> bool:
    """Check a product against every constraint of a product filter."""
    return (
        _scalar_matches(product_filter.provider, product.provider)
        and _scalar_matches(product_filter.service, product.service)
        and _scalar_matches(product_filter.family, product.family)
        and _scalar_matches(product_filter.location, product.location)
        and _attributes_match(product.attributes, product_filter.attribute_filters)
    )


def price_matches(price: Price, price_filter: PriceFilter) -> bool:
    """Check a price against every constraint of a price filter."""
    return (
        _scalar_matches(price_filter.unit, price.unit)
        and _scalar_matches(price_filter.purchase_option, price.purchase_option)
        and _attributes_match(price.attributes, price_filter.attribute_filters)
    )
