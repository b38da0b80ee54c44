"""
Tests for the Azure Retail Prices catalog backend.
"""

import asyncio
from decimal import Decimal

import httpx
import pytest

from costengine.domain.query_models import PriceFilter, ProductFilter, attribute_filters
from costengine.pricing.azure_retail_catalog import AzureRetailCatalog
from costengine.pricing.catalog import CatalogError
from costengine.resilience.circuit_breaker import CircuitBreaker, CircuitState


API_URL = "https://prices.example.test/api/retail/prices"


def _item(meter_id, meter_name, price, unit="1 Hour", location="US East", arm_region="eastus", **extra):
    item = {
        "currencyCode": "USD",
        "retailPrice": price,
        "unitOfMeasure": unit,
        "armRegionName": arm_region,
        "location": location,
        "meterId": meter_id,
        "meterName": meter_name,
        "productName": "VPN Gateway",
        "skuName": meter_name,
        "serviceName": "VPN Gateway",
        "serviceFamily": "Networking",
        "type": "Consumption",
    }
    item.update(extra)
    return item


def _catalog(handler):
    return AzureRetailCatalog(api_url=API_URL, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_products_are_queried_with_odata_filter():
    """Filters are translated to OData and items become products keyed by meter id."""
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"Items": [
            _item("m-1", "VpnGw1", 0.19),
            _item("m-1", "VpnGw1", 0.19, type="DevTestConsumption"),
            _item("m-2", "VpnGw1", 0.19, arm_region="eastus2", location="US East 2"),
        ]})

    catalog = _catalog(handler)
    products = await catalog.find_products(ProductFilter(
        provider="azurerm",
        service="VPN Gateway",
        family="Networking",
        location="East US",
        attribute_filters=attribute_filters(meter_name="VpnGw1"),
    ))

    assert [p.id for p in products] == ["m-1"]
    assert products[0].location == "East US"
    assert products[0].attributes["meter_name"] == "VpnGw1"

    odata_filter = requests[0].url.params["$filter"]
    assert "serviceName eq 'VPN Gateway'" in odata_filter
    assert "armRegionName eq 'eastus'" in odata_filter
    assert "meterName eq 'VpnGw1'" in odata_filter


@pytest.mark.asyncio
async def test_zone_location_filters_on_location():
    """Data transfer zones are matched on the item location."""
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"Items": [
            _item("t-1", "Standard Inter-Virtual Network Data Transfer Out", 0.035,
                  unit="1 GB", location="Zone 1", arm_region=""),
        ]})

    products = await _catalog(handler).find_products(ProductFilter(service="VPN Gateway", location="Zone 1"))

    assert [p.location for p in products] == ["Zone 1"]
    assert "location eq 'Zone 1'" in requests[0].url.params["$filter"]


@pytest.mark.asyncio
async def test_prices_follow_pagination():
    """Every page is fetched and prices keep their decimal value."""
    def handler(request):
        if "page=2" in str(request.url):
            return httpx.Response(200, json={"Items": [_item("m-1", "VpnGw1", 0.18)], "NextPageLink": None})
        return httpx.Response(200, json={
            "Items": [_item("m-1", "VpnGw1", 0.19)],
            "NextPageLink": API_URL + "?page=2",
        })

    prices = await _catalog(handler).find_prices(
        "m-1", PriceFilter(unit="1 Hour", attribute_filters=attribute_filters(type="Consumption"))
    )

    assert [p.value for p in prices] == [Decimal("0.19"), Decimal("0.18")]
    assert prices[0].currency == "USD"


@pytest.mark.asyncio
async def test_responses_are_cached():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"Items": [_item("m-1", "VpnGw1", 0.19)]})

    catalog = _catalog(handler)
    await catalog.find_prices("m-1", PriceFilter(unit="1 Hour"))
    await catalog.find_prices("m-1", PriceFilter(unit="1 Hour"))

    assert len(calls) == 1


@pytest.mark.asyncio
async def test_other_providers_are_not_queried():
    def handler(request):
        raise AssertionError("unexpected request")

    assert await _catalog(handler).find_products(ProductFilter(provider="aws", service="AmazonEC2")) == []


@pytest.mark.asyncio
async def test_http_errors_open_the_circuit():
    """Repeated API failures raise CatalogError and then fail fast."""
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503, json={"error": "unavailable"})

    catalog = _catalog(handler)
    for _ in range(3):
        with pytest.raises(CatalogError):
            await catalog.find_products(ProductFilter(service="VPN Gateway"))

    assert catalog.circuit_breaker.state == CircuitState.OPEN

    with pytest.raises(CatalogError):
        await catalog.find_products(ProductFilter(service="VPN Gateway"))
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_connection_errors_raise_catalog_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(CatalogError):
        await _catalog(handler).find_prices("m-1", PriceFilter())


@pytest.mark.asyncio
async def test_timed_out_recovery_request_does_not_wedge_the_circuit():
    """A request cancelled while the circuit is HALF_OPEN lets the next request through."""
    now = [1000.0]
    breaker = CircuitBreaker("azure_retail", failure_threshold=1, open_duration=60.0, clock=lambda: now[0])

    async def hanging(request):
        await asyncio.sleep(10)
        return httpx.Response(200, json={"Items": []})

    def healthy(request):
        return httpx.Response(200, json={"Items": [_item("m-1", "VpnGw1", 0.19)]})

    catalog = AzureRetailCatalog(api_url=API_URL, transport=httpx.MockTransport(hanging))
    catalog.circuit_breaker = breaker
    breaker.record_failure()
    now[0] += 61

    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(catalog.find_products(ProductFilter(service="VPN Gateway")), 0.05)
    assert breaker.state == CircuitState.HALF_OPEN

    catalog.transport = httpx.MockTransport(healthy)
    products = await catalog.find_products(ProductFilter(service="VPN Gateway"))

    assert [p.id for p in products] == ["m-1"]
    assert breaker.state == CircuitState.CLOSED
