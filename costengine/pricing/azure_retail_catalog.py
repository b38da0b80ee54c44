"""
Azure Retail Prices API catalog backend.
Uses public REST API (no authentication required).

Every item returned by the API is one price of one meter, so a catalog
Product is identified by its meterId and its Prices are the items sharing
that meterId.
"""
from typing import Dict, Any, List, Optional, Tuple
import asyncio
import logging
from datetime import datetime, timedelta
from decimal import Decimal
import httpx

from costengine.core.config import config
from costengine.domain.catalog_models import Product, Price
from costengine.domain.query_models import ProductFilter, PriceFilter
from costengine.pricing.azure_locations import get_arm_region, get_location_name, is_zone, normalize_region
from costengine.pricing.catalog import CatalogError, product_matches, price_matches
from costengine.resilience.circuit_breaker import CircuitBreakerError, get_circuit_breaker


logger = logging.getLogger(__name__)

PROVIDER_KEY = "azurerm"

# Catalog attribute key -> Retail Prices API field
ATTRIBUTE_FIELDS: Dict[str, str] = {
    "meter_name": "meterName",
    "sku_name": "skuName",
    "arm_sku_name": "armSkuName",
    "product_name": "productName",
    "type": "type",
}

MAX_PAGES = 20


def _quote(value: str) -> str:
    """Quote a string literal for an OData filter."""
    return "'" + str(value).replace("'", "''") + "'"


class AzureRetailCatalog:
    """Catalog backend querying the Azure Retail Prices API."""

    # In-memory cache: OData filter -> (items, timestamp)
    _cache: Dict[str, Tuple[List[Dict[str, Any]], datetime]] = {}

    def __init__(
        self,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize Azure retail catalog.

        Args:
            api_url: Retail Prices endpoint (defaults to config)
            timeout: Request timeout in seconds (defaults to config)
            transport: Optional httpx transport, used by tests
        """
        self.api_url = api_url or config.AZURE_RETAIL_PRICES_URL
        self.timeout = timeout if timeout is not None else config.AZURE_PRICING_TIMEOUT
        self.cache_ttl = timedelta(seconds=config.PRICING_CACHE_TTL_SECONDS)
        self.transport = transport
        self.circuit_breaker = get_circuit_breaker("azure_retail")

    def _get_cached_items(self, odata_filter: str) -> Optional[List[Dict[str, Any]]]:
        if odata_filter in self._cache:
            items, timestamp = self._cache[odata_filter]
            if datetime.now() - timestamp < self.cache_ttl:
                return items
            del self._cache[odata_filter]
        return None

    def _cache_items(self, odata_filter: str, items: List[Dict[str, Any]]) -> None:
        self._cache[odata_filter] = (items, datetime.now())

    def _product_odata_filter(self, product_filter: ProductFilter) -> str:
        """Translate a product filter into an OData $filter expression."""
        clauses = []
        if product_filter.service is not None:
            clauses.append(f"serviceName eq {_quote(product_filter.service)}")
        if product_filter.family is not None:
            clauses.append(f"serviceFamily eq {_quote(product_filter.family)}")
        if product_filter.location is not None:
            if is_zone(product_filter.location):
                clauses.append(f"location eq {_quote(product_filter.location)}")
            else:
                arm_region = get_arm_region(product_filter.location) or normalize_region(product_filter.location)
                clauses.append(f"armRegionName eq {_quote(arm_region)}")
        for attribute_filter in product_filter.attribute_filters:
            api_field = ATTRIBUTE_FIELDS.get(attribute_filter.key)
            # Unknown keys are still checked locally by product_matches
            if api_field:
                clauses.append(f"{api_field} eq {_quote(attribute_filter.value)}")
        return " and ".join(clauses)

    def _price_odata_filter(self, product_id: str, price_filter: PriceFilter) -> str:
        clauses = [f"meterId eq {_quote(product_id)}"]
        if price_filter.unit is not None:
            clauses.append(f"unitOfMeasure eq {_quote(price_filter.unit)}")
        for attribute_filter in price_filter.attribute_filters:
            if attribute_filter.key == "type":
                clauses.append(f"type eq {_quote(attribute_filter.value)}")
        return " and ".join(clauses)

    async def _query(self, odata_filter: str) -> List[Dict[str, Any]]:
        """
        Fetch every item matching an OData filter, following pagination.

        Raises:
            CatalogError: If the API call fails or the circuit is open
        """
        cached_items = self._get_cached_items(odata_filter)
        if cached_items is not None:
            return cached_items

        try:
            self.circuit_breaker.check()
        except CircuitBreakerError as error:
            raise CatalogError(str(error)) from error

        items: List[Dict[str, Any]] = []
        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
                url: Optional[str] = self.api_url
                params: Optional[Dict[str, str]] = {"$filter": odata_filter}
                pages = 0
                while url and pages < MAX_PAGES:
                    response = await client.get(url, params=params)
                    response.raise_for_status()
                    data = response.json(parse_float=Decimal)
                    items.extend(data.get("Items", []))
                    # NextPageLink already carries the query string
                    url = data.get("NextPageLink")
                    params = None
                    pages += 1
        except httpx.HTTPStatusError as error:
            self.circuit_breaker.record_failure()
            logger.error(f"Azure retail prices HTTP error: {error}")
            raise CatalogError(
                f"Failed to query Azure retail prices: {error.response.status_code}"
            ) from error
        except httpx.RequestError as error:
            self.circuit_breaker.record_failure()
            logger.error(f"Azure retail prices request error: {error}")
            raise CatalogError(f"Failed to connect to Azure retail prices API: {error}") from error
        except ValueError as error:
            self.circuit_breaker.record_failure()
            logger.error(f"Error parsing Azure retail prices response: {error}")
            raise CatalogError(f"Malformed Azure retail prices response: {error}") from error
        except asyncio.CancelledError:
            self.circuit_breaker.record_cancelled()
            raise

        self.circuit_breaker.record_success()  # Not found is not a failure
        self._cache_items(odata_filter, items)
        return items

    def _item_to_product(self, item: Dict[str, Any]) -> Product:
        arm_region = item.get("armRegionName") or ""
        if arm_region and not is_zone(item.get("location", "")):
            location = get_location_name(arm_region)
        else:
            location = item.get("location", "")
        return Product(
            id=item["meterId"],
            provider=PROVIDER_KEY,
            sku=item.get("skuId", ""),
            service=item.get("serviceName", ""),
            family=item.get("serviceFamily", ""),
            location=location,
            attributes={
                "meter_name": item.get("meterName", ""),
                "sku_name": item.get("skuName", ""),
                "arm_sku_name": item.get("armSkuName", ""),
                "product_name": item.get("productName", ""),
                "product_id": item.get("productId", ""),
            },
        )

    def _item_to_price(self, item: Dict[str, Any]) -> Price:
        return Price(
            value=Decimal(str(item["retailPrice"])),
            unit=item.get("unitOfMeasure", ""),
            currency=item.get("currencyCode", config.DEFAULT_CURRENCY),
            purchase_option=item.get("type", ""),
            attributes={
                "type": item.get("type", ""),
                "tier_minimum_units": str(item.get("tierMinimumUnits", 0)),
            },
        )

    async def find_products(self, product_filter: ProductFilter) -> List[Product]:
        if product_filter.provider is not None and product_filter.provider != PROVIDER_KEY:
            return []

        items = await self._query(self._product_odata_filter(product_filter))

        products: List[Product] = []
        seen = set()
        try:
            for item in items:
                product = self._item_to_product(item)
                if product.id in seen or not product_matches(product, product_filter):
                    continue
                seen.add(product.id)
                products.append(product)
        except KeyError as error:
            raise CatalogError(f"Malformed Azure retail prices item: missing {error}") from error
        return products

    async def find_prices(self, product_id: str, price_filter: PriceFilter) -> List[Price]:
        items = await self._query(self._price_odata_filter(product_id, price_filter))
        try:
            prices = [self._item_to_price(item) for item in items]
        except (KeyError, ArithmeticError) as error:
            raise CatalogError(f"Malformed Azure retail prices item: {error}") from error
        return [price for price in prices if price_matches(price, price_filter)]
