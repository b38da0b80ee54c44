"""
In-memory catalog backend.
Holds products and prices in insertion order; used by tests and as the index
behind the offer file catalog.
"""
from typing import Dict, List, Iterable, Optional

from costengine.domain.catalog_models import Product, Price
from costengine.domain.query_models import ProductFilter, PriceFilter
from costengine.pricing.catalog import product_matches, price_matches


class InMemoryCatalog:
    """Catalog backend answering lookups from dictionaries."""

    def __init__(
        self,
        products: Optional[Iterable[Product]] = None,
        prices: Optional[Dict[str, Iterable[Price]]] = None
    ):
        self._products: Dict[str, Product] = {}
        self._prices: Dict[str, List[Price]] = {}
        for product in products or []:
            self.add_product(product)
        for product_id, product_prices in (prices or {}).items():
            for price in product_prices:
                self.add_price(product_id, price)

    def add_product(self, product: Product, prices: Iterable[Price] = ()) -> None:
        """Add (or replace) a product and append its prices."""
        self._products[product.id] = product
        for price in prices:
            self.add_price(product.id, price)

    def add_price(self, product_id: str, price: Price) -> None:
        self._prices.setdefault(product_id, []).append(price)

    def __len__(self) -> int:
        return len(self._products)

    async def find_products(self, product_filter: ProductFilter) -> List[Product]:
        return [
            product for product in self._products.values()
            if product_matches(product, product_filter)
        ]

    async def find_prices(self, product_id: str, price_filter: PriceFilter) -> List[Price]:
        return [
            price for price in self._prices.get(product_id, [])
            if price_matches(price, price_filter)
        ]
