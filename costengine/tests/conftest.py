"""
Shared pytest fixtures for cost engine tests.
"""

import sys
import os
from decimal import Decimal
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

# Set minimal environment variables for testing
os.environ.setdefault('CATALOG_BACKEND', 'memory')
os.environ.setdefault('BUILD_TIMEOUT_SECONDS', '5')

import pytest
from fastapi.testclient import TestClient

from costengine.domain.catalog_models import Product, Price
from costengine.domain.query_models import PriceFilter, ProductFilter, QueryComponent, QueryResource, attribute_filters
from costengine.pricing.catalog import Catalog
from costengine.pricing.memory_catalog import InMemoryCatalog
from costengine.pricing.azure_retail_catalog import AzureRetailCatalog
from costengine.resilience.circuit_breaker import reset_circuit_breakers


@pytest.fixture(autouse=True)
def reset_shared_state():
    """Forget circuit breakers, cached API responses and the shared estimator."""
    import costengine.api.estimate as estimate_api

    reset_circuit_breakers()
    AzureRetailCatalog._cache.clear()
    estimate_api._estimator = None
    yield
    reset_circuit_breakers()
    AzureRetailCatalog._cache.clear()
    estimate_api._estimator = None


@pytest.fixture
def client():
    """FastAPI test client."""
    from costengine.main import app
    return TestClient(app)


def _hourly(value: str) -> Price:
    return Price(value=Decimal(value), unit="1 Hour", attributes={"type": "Consumption"})


@pytest.fixture
def memory_catalog():
    """In-memory catalog with compute products and East US VPN gateway meters."""
    catalog = InMemoryCatalog()
    catalog.add_product(
        Product(
            id="compute-small",
            provider="test",
            service="Compute",
            family="Compute Instance",
            location="East US",
            attributes={"size": "small"},
        ),
        [Price(value=Decimal("0.10"), unit="1 Hour")],
    )
    catalog.add_product(
        Product(
            id="storage-standard",
            provider="test",
            service="Storage",
            family="Storage",
            location="East US",
            attributes={"tier": "standard"},
        ),
        [Price(value=Decimal("0.50"), unit="GB-Mo")],
    )
    catalog.add_product(
        Product(
            id="vpngw1",
            provider="azurerm",
            service="VPN Gateway",
            family="Networking",
            location="East US",
            attributes={"meter_name": "VpnGw1", "sku_name": "VpnGw1"},
        ),
        [_hourly("0.19")],
    )
    catalog.add_product(
        Product(
            id="basic",
            provider="azurerm",
            service="VPN Gateway",
            family="Networking",
            location="East US",
            attributes={"meter_name": "Basic Gateway", "sku_name": "Basic"},
        ),
        [_hourly("0.04")],
    )
    catalog.add_product(
        Product(
            id="vpngw1-p2s",
            provider="azurerm",
            service="VPN Gateway",
            family="Networking",
            location="East US",
            attributes={"meter_name": "P2S Connection", "sku_name": "VpnGw1"},
        ),
        [_hourly("0.01")],
    )
    catalog.add_product(
        Product(
            id="vnet-transfer-zone1",
            provider="azurerm",
            service="VPN Gateway",
            family="Networking",
            location="Zone 1",
            attributes={
                "meter_name": "Standard Inter-Virtual Network Data Transfer Out",
                "product_name": "VPN Gateway Bandwidth",
            },
        ),
        [Price(value=Decimal("0.035"), unit="1 GB", attributes={"type": "Consumption"})],
    )
    return catalog


@pytest.fixture
def catalog(memory_catalog):
    """Catalog wrapping the in-memory backend."""
    return Catalog.from_backend(memory_catalog)


def _compute_component(name: str = "Instance usage", size: str = "small", **kwargs) -> QueryComponent:
    return QueryComponent(
        name=name,
        product_filter=ProductFilter(
            provider="test",
            service="Compute",
            family="Compute Instance",
            location="East US",
            attribute_filters=attribute_filters(size=size),
        ),
        price_filter=PriceFilter(unit="1 Hour"),
        unit="hours",
        **kwargs,
    )


def _storage_component(name: str = "Storage", **kwargs) -> QueryComponent:
    return QueryComponent(
        name=name,
        product_filter=ProductFilter(provider="test", service="Storage", attribute_filters=attribute_filters(tier="standard")),
        price_filter=PriceFilter(unit="GB-Mo"),
        unit="GB",
        **kwargs,
    )


@pytest.fixture
def compute_resource():
    """Resource with a single hourly component."""
    return QueryResource(
        address="compute-1",
        components=(_compute_component(hourly_quantity=Decimal(1)),),
    )


@pytest.fixture
def compute_component():
    """Factory for query components matching the sample compute product."""
    return _compute_component


@pytest.fixture
def storage_component():
    """Factory for query components matching the sample storage product."""
    return _storage_component
