"""
Tests for the AWS Price List catalog backend.
"""

import asyncio
import json
import threading
from decimal import Decimal
from unittest.mock import Mock

import pytest
from botocore.exceptions import ClientError

from costengine.domain.query_models import PriceFilter, ProductFilter, attribute_filters
from costengine.pricing.aws_pricing_catalog import AWSPricingCatalog, get_pricing_location
from costengine.pricing.catalog import CatalogError
from costengine.resilience.circuit_breaker import CircuitBreaker, CircuitState


def _price_list_entry(sku, instance_type, on_demand, reserved=None):
    terms = {
        "OnDemand": {
            f"{sku}.JRTCKXETXF": {
                "priceDimensions": {
                    f"{sku}.JRTCKXETXF.6YS6EN2CT7": {
                        "unit": "Hrs",
                        "pricePerUnit": {"USD": on_demand},
                        "beginRange": "0",
                    },
                },
                "termAttributes": {},
            },
        },
    }
    if reserved is not None:
        terms["Reserved"] = {
            f"{sku}.4NA7Y494T4": {
                "priceDimensions": {
                    f"{sku}.4NA7Y494T4.6YS6EN2CT7": {
                        "unit": "Hrs",
                        "pricePerUnit": {"USD": reserved},
                    },
                },
                "termAttributes": {"LeaseContractLength": "1yr", "PurchaseOption": "No Upfront"},
            },
        }
    return json.dumps({
        "product": {
            "sku": sku,
            "productFamily": "Compute Instance",
            "attributes": {"instanceType": instance_type, "location": "US East (N. Virginia)"},
        },
        "terms": terms,
    })


@pytest.fixture
def pricing_client():
    """Mock boto3 pricing client returning two pages."""
    mock = Mock()
    mock.get_products = Mock(side_effect=[
        {"PriceList": [_price_list_entry("SKU1", "t3.micro", "0.0104", reserved="0.0065")], "NextToken": "next"},
        {"PriceList": [_price_list_entry("SKU2", "t3.micro", "0.0208")]},
    ])
    return mock


def test_region_codes_map_to_price_list_locations():
    assert get_pricing_location("us-east-1") == "US East (N. Virginia)"
    assert get_pricing_location("US East (Ohio)") == "US East (Ohio)"


@pytest.mark.asyncio
async def test_products_and_prices_from_price_list(pricing_client):
    """Products come from every page and their terms become prices."""
    catalog = AWSPricingCatalog(pricing_client=pricing_client)

    products = await catalog.find_products(ProductFilter(
        provider="aws",
        service="AmazonEC2",
        family="Compute Instance",
        location="us-east-1",
        attribute_filters=attribute_filters(instanceType="t3.micro"),
    ))

    assert [p.id for p in products] == ["SKU1", "SKU2"]
    assert products[0].location == "US East (N. Virginia)"

    first_call = pricing_client.get_products.call_args_list[0].kwargs
    assert first_call["ServiceCode"] == "AmazonEC2"
    assert {"Type": "TERM_MATCH", "Field": "location", "Value": "US East (N. Virginia)"} in first_call["Filters"]
    assert pricing_client.get_products.call_args_list[1].kwargs["NextToken"] == "next"

    on_demand = await catalog.find_prices("SKU1", PriceFilter(purchase_option="on_demand"))
    assert [p.value for p in on_demand] == [Decimal("0.0104")]

    reserved = await catalog.find_prices(
        "SKU1",
        PriceFilter(purchase_option="reserved", attribute_filters=attribute_filters(LeaseContractLength="1yr")),
    )
    assert [p.value for p in reserved] == [Decimal("0.0065")]


@pytest.mark.asyncio
async def test_unknown_sku_has_no_prices(pricing_client):
    catalog = AWSPricingCatalog(pricing_client=pricing_client)

    assert await catalog.find_prices("SKU9", PriceFilter()) == []


@pytest.mark.asyncio
async def test_service_code_is_required(pricing_client):
    catalog = AWSPricingCatalog(pricing_client=pricing_client)

    with pytest.raises(CatalogError):
        await catalog.find_products(ProductFilter(provider="aws"))

    assert await catalog.find_products(ProductFilter(provider="azurerm", service="VPN Gateway")) == []
    pricing_client.get_products.assert_not_called()


@pytest.mark.asyncio
async def test_client_errors_raise_catalog_error():
    client = Mock()
    client.get_products = Mock(side_effect=ClientError(
        {"Error": {"Code": "ThrottlingException", "Message": "Rate exceeded"}}, "GetProducts"
    ))
    catalog = AWSPricingCatalog(pricing_client=client)

    with pytest.raises(CatalogError):
        await catalog.find_products(ProductFilter(service="AmazonEC2"))

    assert catalog.circuit_breaker.failure_count == 1


@pytest.mark.asyncio
async def test_least_recently_used_skus_are_evicted(pricing_client):
    """Only the most recent SKUs keep their parsed prices."""
    catalog = AWSPricingCatalog(pricing_client=pricing_client, max_cached_skus=1)

    await catalog.find_products(ProductFilter(service="AmazonEC2"))

    assert await catalog.find_prices("SKU1", PriceFilter()) == []
    assert [p.value for p in await catalog.find_prices("SKU2", PriceFilter())] == [Decimal("0.0208")]


@pytest.mark.asyncio
async def test_cancelled_lookup_releases_half_open_slot():
    """A lookup cancelled while HALF_OPEN does not keep later lookups out."""
    now = [1000.0]
    release = threading.Event()
    client = Mock()
    client.get_products = Mock(side_effect=lambda **kwargs: release.wait(5) and {"PriceList": []})
    catalog = AWSPricingCatalog(pricing_client=client)
    catalog.circuit_breaker = CircuitBreaker("aws_pricing", failure_threshold=1, clock=lambda: now[0])
    catalog.circuit_breaker.record_failure()
    now[0] += 61

    try:
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(catalog.find_products(ProductFilter(service="AmazonEC2")), 0.05)
    finally:
        release.set()

    assert catalog.circuit_breaker.state == CircuitState.HALF_OPEN
    assert catalog.circuit_breaker.allow_request() is True
