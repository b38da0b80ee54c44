"""
AWS Price List API catalog backend.
Uses boto3 to query official AWS Price List API.
"""
from typing import Dict, Any, List, Optional
from collections import OrderedDict
import asyncio
import json
import logging
from decimal import Decimal

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from costengine.core.config import config
from costengine.domain.catalog_models import Product, Price
from costengine.domain.query_models import ProductFilter, PriceFilter
from costengine.pricing.catalog import CatalogError, price_matches
from costengine.resilience.circuit_breaker import CircuitBreakerError, get_circuit_breaker


logger = logging.getLogger(__name__)

PROVIDER_KEY = "aws"

# Region code -> Price List API location string
AWS_REGION_LOCATIONS: Dict[str, str] = {
    "us-east-1": "US East (N. Virginia)",
    "us-east-2": "US East (Ohio)",
    "us-west-1": "US West (N. California)",
    "us-west-2": "US West (Oregon)",
    "ca-central-1": "Canada (Central)",
    "sa-east-1": "South America (Sao Paulo)",
    "eu-west-1": "Europe (Ireland)",
    "eu-west-2": "Europe (London)",
    "eu-west-3": "Europe (Paris)",
    "eu-central-1": "Europe (Frankfurt)",
    "eu-north-1": "Europe (Stockholm)",
    "eu-south-1": "Europe (Milan)",
    "ap-south-1": "Asia Pacific (Mumbai)",
    "ap-southeast-1": "Asia Pacific (Singapore)",
    "ap-southeast-2": "Asia Pacific (Sydney)",
    "ap-northeast-1": "Asia Pacific (Tokyo)",
    "ap-northeast-2": "Asia Pacific (Seoul)",
    "ap-east-1": "Asia Pacific (Hong Kong)",
    "me-south-1": "Middle East (Bahrain)",
    "af-south-1": "Africa (Cape Town)",
}

# Price List term type -> purchase option
TERM_PURCHASE_OPTIONS = {
    "OnDemand": "on_demand",
    "Reserved": "reserved",
}

# Parsed terms kept for price lookups, least recently used evicted first
MAX_CACHED_SKUS = 5000


def get_pricing_location(location: str) -> str:
    """Translate a region code to its Price List location; other values pass through."""
    return AWS_REGION_LOCATIONS.get(location, location)


class AWSPricingCatalog:
    """Catalog backend querying the AWS Price List API."""

    def __init__(self, pricing_client=None, max_cached_skus: int = MAX_CACHED_SKUS):
        """
        Initialize AWS pricing catalog.

        Args:
            pricing_client: Optional boto3 'pricing' client (created from config if None)
            max_cached_skus: Number of SKUs whose parsed prices are kept
        """
        if pricing_client is None:
            # No retries, the circuit breaker handles failures
            boto_config = Config(
                connect_timeout=10,
                read_timeout=10,
                retries={"max_attempts": 0}
            )
            pricing_client = boto3.client(
                "pricing",
                region_name=config.AWS_PRICING_REGION,
                config=boto_config
            )
        self.pricing_client = pricing_client
        self.circuit_breaker = get_circuit_breaker("aws_pricing")

        # sku -> prices parsed from the terms of recent product lookups
        self._prices_by_sku: "OrderedDict[str, List[Price]]" = OrderedDict()
        self.max_cached_skus = max_cached_skus

    def _cache_prices(self, sku: str, prices: List[Price]) -> None:
        self._prices_by_sku[sku] = prices
        self._prices_by_sku.move_to_end(sku)
        while len(self._prices_by_sku) > self.max_cached_skus:
            self._prices_by_sku.popitem(last=False)

    def _build_filters(self, product_filter: ProductFilter) -> List[Dict[str, str]]:
        filters = []
        if product_filter.family is not None:
            filters.append({"Type": "TERM_MATCH", "Field": "productFamily", "Value": product_filter.family})
        if product_filter.location is not None:
            filters.append({
                "Type": "TERM_MATCH",
                "Field": "location",
                "Value": get_pricing_location(product_filter.location),
            })
        for attribute_filter in product_filter.attribute_filters:
            filters.append({"Type": "TERM_MATCH", "Field": attribute_filter.key, "Value": attribute_filter.value})
        return filters

    def _get_products(self, service_code: str, filters: List[Dict[str, str]]) -> List[str]:
        """Fetch every PriceList entry for a query (blocking, runs in a worker thread)."""
        price_list: List[str] = []
        kwargs: Dict[str, Any] = {"ServiceCode": service_code, "Filters": filters}
        while True:
            response = self.pricing_client.get_products(**kwargs)
            price_list.extend(response.get("PriceList", []))
            next_token = response.get("NextToken")
            if not next_token:
                return price_list
            kwargs["NextToken"] = next_token

    def _parse_prices(self, terms: Dict[str, Any]) -> List[Price]:
        prices: List[Price] = []
        for term_type, purchase_option in TERM_PURCHASE_OPTIONS.items():
            for term in (terms.get(term_type) or {}).values():
                term_attributes = {str(k): str(v) for k, v in (term.get("termAttributes") or {}).items()}
                for dimension in (term.get("priceDimensions") or {}).values():
                    price_per_unit = dimension.get("pricePerUnit", {})
                    if config.DEFAULT_CURRENCY not in price_per_unit:
                        continue
                    prices.append(Price(
                        value=Decimal(price_per_unit[config.DEFAULT_CURRENCY]),
                        unit=dimension.get("unit", ""),
                        currency=config.DEFAULT_CURRENCY,
                        purchase_option=purchase_option,
                        attributes={
                            **term_attributes,
                            "begin_range": str(dimension.get("beginRange", "0")),
                        },
                    ))
        return prices

    async def find_products(self, product_filter: ProductFilter) -> List[Product]:
        if product_filter.provider is not None and product_filter.provider != PROVIDER_KEY:
            return []
        if not product_filter.service:
            # The Price List API cannot search across services
            raise CatalogError("AWS pricing lookups require a service code")

        try:
            self.circuit_breaker.check()
        except CircuitBreakerError as error:
            raise CatalogError(str(error)) from error

        try:
            price_list = await asyncio.to_thread(
                self._get_products, product_filter.service, self._build_filters(product_filter)
            )
            products: List[Product] = []
            for entry in price_list:
                price_data = json.loads(entry)
                product_data = price_data["product"]
                attributes = {str(k): str(v) for k, v in (product_data.get("attributes") or {}).items()}
                product = Product(
                    id=product_data["sku"],
                    provider=PROVIDER_KEY,
                    sku=product_data["sku"],
                    service=product_filter.service,
                    family=product_data.get("productFamily", ""),
                    location=attributes.get("location", ""),
                    attributes=attributes,
                )
                self._cache_prices(product.id, self._parse_prices(price_data.get("terms") or {}))
                products.append(product)
        except (ClientError, BotoCoreError) as error:
            self.circuit_breaker.record_failure()
            logger.error(f"AWS pricing API error: {error}")
            raise CatalogError(f"Failed to query AWS pricing: {error}") from error
        except (ValueError, KeyError, ArithmeticError) as error:
            self.circuit_breaker.record_failure()
            logger.error(f"Error parsing AWS pricing response: {error}")
            raise CatalogError(f"Failed to parse AWS pricing response: {error}") from error
        except asyncio.CancelledError:
            self.circuit_breaker.record_cancelled()
            raise

        self.circuit_breaker.record_success()
        return products

    async def find_prices(self, product_id: str, price_filter: PriceFilter) -> List[Price]:
        # Terms arrive with the product, so prices are only known for looked-up SKUs
        prices: Optional[List[Price]] = self._prices_by_sku.get(product_id)
        if prices is None:
            logger.warning(f"AWS prices requested for unknown SKU {product_id}")
            return []
        self._prices_by_sku.move_to_end(product_id)
        return [price for price in prices if price_matches(price, price_filter)]
