"""
Tests for the estimate API endpoints.
"""

from unittest.mock import AsyncMock, patch

import pytest

from costengine.pricing.catalog import CatalogError
from costengine.services.cost_estimator import CostEstimator
from costengine.services.state_builder import BuildAbortError, BuildCancelledError


GATEWAY = {
    "address": "azurerm_virtual_network_gateway.main",
    "type": "azurerm_virtual_network_gateway",
    "values": {"sku": "VpnGw1", "location": "eastus"},
}


@pytest.fixture
def estimator(catalog):
    return CostEstimator(catalog=catalog)


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_generators_are_listed(client):
    response = client.get("/api/generators")

    assert response.status_code == 200
    assert "azurerm_virtual_network_gateway" in response.json()["resource_types"]


def test_estimate_resolved_resources(client, estimator):
    """Resolved resources are priced and reported per address."""
    planned_gateway = {**GATEWAY, "values": {**GATEWAY["values"], "sku": "Basic"}}
    with patch("costengine.api.estimate.get_estimator", return_value=estimator):
        response = client.post("/api/estimate", json={
            "prior": [GATEWAY],
            "planned": [
                planned_gateway,
                {"address": "azurerm_resource_group.main", "type": "azurerm_resource_group", "values": {}},
            ],
            "usage": {"overrides": {GATEWAY["address"]: {"monthly_data_transfer_gb": 100}}},
        })

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"

    lines = {line["address"]: line for line in data["report"]["resources"]}
    gateway = lines["azurerm_virtual_network_gateway.main"]
    assert gateway["prior_monthly_cost"] == "149.50"
    # No P2S meter exists for Basic in the sample catalog
    assert gateway["error"] == "product not found"
    assert gateway["error_side"] == "planned"
    assert lines["azurerm_resource_group.main"]["skipped"] is True
    assert data["report"]["failed_resource_count"] == 1
    assert "azurerm_virtual_network_gateway.main: planned cost: product not found" in data["text"]


def test_estimate_requires_resources(client):
    response = client.post("/api/estimate", json={"prior": [], "planned": []})

    assert response.status_code == 400


def test_estimate_rejects_invalid_usage(client, estimator):
    resource = {**GATEWAY, "values": {**GATEWAY["values"], "tc_usage": {"monthly_data_transfer_gb": "lots"}}}
    with patch("costengine.api.estimate.get_estimator", return_value=estimator):
        response = client.post("/api/estimate", json={"planned": [resource]})

    assert response.status_code == 400
    assert "monthly_data_transfer_gb" in response.json()["detail"]


@pytest.mark.parametrize("value", ["NaN", "Infinity", -5])
def test_estimate_rejects_non_finite_or_negative_usage(client, estimator, value):
    resource = {**GATEWAY, "values": {**GATEWAY["values"], "tc_usage": {"monthly_data_transfer_gb": value}}}
    with patch("costengine.api.estimate.get_estimator", return_value=estimator):
        response = client.post("/api/estimate", json={"planned": [resource]})

    assert response.status_code == 400
    assert "monthly_data_transfer_gb" in response.json()["detail"]


def test_estimate_without_catalog_returns_503(client):
    """An estimator whose catalog could not be created aborts every build."""
    with patch("costengine.services.cost_estimator.create_catalog", side_effect=CatalogError("cache missing")):
        estimator = CostEstimator()
    assert estimator.catalog is None

    with patch("costengine.api.estimate.get_estimator", return_value=estimator):
        response = client.post("/api/estimate", json={"planned": [GATEWAY]})

    assert response.status_code == 503


def test_estimate_timeout_returns_504(client, estimator):
    with patch.object(estimator, "estimate_resolved", new_callable=AsyncMock) as mock_estimate:
        mock_estimate.side_effect = BuildCancelledError("deadline exceeded")
        with patch("costengine.api.estimate.get_estimator", return_value=estimator):
            response = client.post("/api/estimate", json={"planned": [GATEWAY]})

    assert response.status_code == 504


def test_unexpected_errors_return_generic_500(client, estimator):
    with patch.object(estimator, "estimate_resolved", new_callable=AsyncMock) as mock_estimate:
        mock_estimate.side_effect = RuntimeError("secret internals")
        with patch("costengine.api.estimate.get_estimator", return_value=estimator):
            response = client.post("/api/estimate", json={"planned": [GATEWAY]})

    assert response.status_code == 500
    assert "secret internals" not in response.json()["detail"]


def test_estimate_query_resources(client, estimator):
    """Pre-built query resources are priced as given."""
    query_resource = {
        "address": "compute-1",
        "components": [{
            "name": "Instance usage",
            "product_filter": {
                "provider": "test",
                "service": "Compute",
                "attribute_filters": [{"key": "size", "value": "small"}],
            },
            "price_filter": {"unit": "1 Hour"},
            "hourly_quantity": "1",
            "unit": "hours",
        }],
    }
    with patch("costengine.api.estimate.get_estimator", return_value=estimator):
        response = client.post("/api/estimate/query", json={"prior": [], "planned": [query_resource]})

    assert response.status_code == 200
    data = response.json()
    assert data["report"]["total_planned_monthly_cost"] == "73.00"
    component = data["plan"]["planned"]["resources"]["compute-1"]["components"]["Instance usage"]
    assert component["rate"] == "73.00"


def test_estimate_query_rejects_malformed_components(client, estimator):
    with patch("costengine.api.estimate.get_estimator", return_value=estimator):
        response = client.post("/api/estimate/query", json={"planned": [{"components": []}]})

    assert response.status_code == 422


def test_estimate_query_abort_returns_503(client, estimator):
    with patch.object(estimator, "estimate_plan", new_callable=AsyncMock) as mock_plan:
        mock_plan.side_effect = BuildAbortError("no catalog")
        with patch("costengine.api.estimate.get_estimator", return_value=estimator):
            response = client.post("/api/estimate/query", json={"planned": []})

    assert response.status_code == 503
