"""
Component generator for azurerm_virtual_network_gateway.

A VPN gateway bills for:
- the gateway itself, hourly, per SKU tier
- point-to-site connections, hourly, per SKU tier
- inter-network data transfer, per GB, priced by zone rather than region
"""
from typing import Any, Dict, List
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, field_validator

from costengine.domain.query_models import PriceFilter, ProductFilter, QueryComponent, attribute_filters
from costengine.domain.usage_models import usage_decimal
from costengine.generators.registry import register
from costengine.pricing.azure_locations import get_location_name, region_to_vnet_zone


PROVIDER_KEY = "azurerm"
SERVICE = "VPN Gateway"
FAMILY = "Networking"

# SKUs whose catalog meter is not named after the SKU
SKU_METER_NAMES: Dict[str, str] = {
    "Basic": "Basic Gateway",
}


class VirtualNetworkGatewayValues(BaseModel):
    """Configuration values the generator reads; everything else is ignored."""
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    sku: str = ""
    location: str = ""

    @field_validator("sku", "location", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        # Unknown or unset attributes arrive as null
        return "" if value is None else value


def meter_name_for_sku(sku: str) -> str:
    return SKU_METER_NAMES.get(sku, sku)


def _hourly_price_filter() -> PriceFilter:
    return PriceFilter(unit="1 Hour", attribute_filters=attribute_filters(type="Consumption"))


@register("azurerm_virtual_network_gateway")
def virtual_network_gateway_components(values: Dict[str, Any], usage: Dict[str, Any]) -> List[QueryComponent]:
    gateway = VirtualNetworkGatewayValues.model_validate(values)
    location = get_location_name(gateway.location)
    monthly_data_transfer_gb = usage_decimal(usage, "monthly_data_transfer_gb")

    return [
        QueryComponent(
            name=f"VPN gateway ({gateway.sku})",
            hourly_quantity=Decimal(1),
            unit="hours",
            product_filter=ProductFilter(
                provider=PROVIDER_KEY,
                service=SERVICE,
                family=FAMILY,
                location=location,
                attribute_filters=attribute_filters(meter_name=meter_name_for_sku(gateway.sku)),
            ),
            price_filter=_hourly_price_filter(),
        ),
        QueryComponent(
            name="VPN gateway P2S tunnels (over 128)",
            hourly_quantity=Decimal(1),
            unit="hours",
            product_filter=ProductFilter(
                provider=PROVIDER_KEY,
                service=SERVICE,
                family=FAMILY,
                location=location,
                attribute_filters=attribute_filters(sku_name=gateway.sku, meter_name="P2S Connection"),
            ),
            price_filter=_hourly_price_filter(),
        ),
        QueryComponent(
            name="VPN gateway data transfer",
            monthly_quantity=monthly_data_transfer_gb,
            unit="GB",
            usage=True,
            product_filter=ProductFilter(
                provider=PROVIDER_KEY,
                service=SERVICE,
                family=FAMILY,
                location=region_to_vnet_zone(gateway.location),
                attribute_filters=attribute_filters(
                    product_name="VPN Gateway Bandwidth",
                    meter_name="Standard Inter-Virtual Network Data Transfer Out",
                ),
            ),
            price_filter=PriceFilter(unit="1 GB", attribute_filters=attribute_filters(type="Consumption")),
        ),
    ]
