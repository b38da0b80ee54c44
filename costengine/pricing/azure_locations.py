"""
Azure location translation for catalog lookups.

Configuration uses ARM region names ('eastus'); the catalog keys products by
display name ('East US'). Inter-network data transfer is priced per zone
('Zone 1', 'Zone 2', ...) rather than per region.
"""
from typing import Dict, Optional


# ARM region name -> catalog location display name
AZURE_REGION_DISPLAY_NAMES: Dict[str, str] = {
    # Americas
    "eastus": "East US",
    "eastus2": "East US 2",
    "centralus": "Central US",
    "northcentralus": "North Central US",
    "southcentralus": "South Central US",
    "westcentralus": "West Central US",
    "westus": "West US",
    "westus2": "West US 2",
    "westus3": "West US 3",
    "canadacentral": "Canada Central",
    "canadaeast": "Canada East",
    "brazilsouth": "Brazil South",
    "brazilsoutheast": "Brazil Southeast",
    "usgovarizona": "US Gov Arizona",
    "usgovtexas": "US Gov Texas",
    "usgovvirginia": "US Gov Virginia",

    # Europe
    "northeurope": "North Europe",
    "westeurope": "West Europe",
    "francecentral": "France Central",
    "francesouth": "France South",
    "germanywestcentral": "Germany West Central",
    "germanynorth": "Germany North",
    "germanycentral": "Germany Central",
    "germanynortheast": "Germany Northeast",
    "norwayeast": "Norway East",
    "norwaywest": "Norway West",
    "swedencentral": "Sweden Central",
    "switzerlandnorth": "Switzerland North",
    "switzerlandwest": "Switzerland West",
    "uksouth": "UK South",
    "ukwest": "UK West",
    "polandcentral": "Poland Central",
    "italynorth": "Italy North",

    # Asia Pacific
    "eastasia": "East Asia",
    "southeastasia": "Southeast Asia",
    "australiaeast": "Australia East",
    "australiasoutheast": "Australia Southeast",
    "australiacentral": "Australia Central",
    "australiacentral2": "Australia Central 2",
    "japaneast": "Japan East",
    "japanwest": "Japan West",
    "koreacentral": "Korea Central",
    "koreasouth": "Korea South",
    "centralindia": "Central India",
    "southindia": "South India",
    "westindia": "West India",
    "chinaeast": "China East",
    "chinaeast2": "China East 2",
    "chinanorth": "China North",
    "chinanorth2": "China North 2",

    # Middle East and Africa
    "uaenorth": "UAE North",
    "uaecentral": "UAE Central",
    "qatarcentral": "Qatar Central",
    "southafricanorth": "South Africa North",
    "southafricawest": "South Africa West",
}

# Data transfer zones outside Zone 1 (the default)
_ZONE_2_REGIONS = {
    "eastasia", "southeastasia",
    "australiaeast", "australiasoutheast", "australiacentral", "australiacentral2",
    "japaneast", "japanwest", "koreacentral", "koreasouth",
    "centralindia", "southindia", "westindia",
}
_ZONE_3_REGIONS = {
    "brazilsouth", "brazilsoutheast",
    "southafricanorth", "southafricawest",
    "uaenorth", "uaecentral", "qatarcentral",
}

_DISPLAY_TO_ARM: Dict[str, str] = {
    display.lower(): arm for arm, display in AZURE_REGION_DISPLAY_NAMES.items()
}


def normalize_region(region: str) -> str:
    """
    Normalize an Azure region to its ARM name.

    Args:
        region: ARM name or display name (e.g., 'eastus' or 'East US')

    Returns:
        ARM region name (lowercase, no spaces)
    """
    lowered = (region or "").strip().lower()
    if lowered in _DISPLAY_TO_ARM:
        return _DISPLAY_TO_ARM[lowered]
    return lowered.replace(" ", "")


def get_location_name(region: str) -> str:
    """
    Get the catalog location display name of a region.

    Unknown regions are returned unchanged so the lookup simply finds no product.
    """
    return AZURE_REGION_DISPLAY_NAMES.get(normalize_region(region), region)


def get_arm_region(location: str) -> Optional[str]:
    """Reverse of get_location_name; None for zones and unknown names."""
    return _DISPLAY_TO_ARM.get((location or "").strip().lower())


def region_to_vnet_zone(region: str) -> str:
    """
    Get the inter-network data transfer zone of a region.

    Args:
        region: ARM name or display name

    Returns:
        Zone label as used by the catalog (e.g., 'Zone 1', 'US Gov Zone 1')
    """
    arm_region = normalize_region(region)
    if arm_region.startswith("usgov"):
        return "US Gov Zone 1"
    if arm_region in ("germanycentral", "germanynortheast"):
        return "DE Zone 1"
    if arm_region.startswith("china"):
        return "CN Zone 1"
    if arm_region in _ZONE_2_REGIONS:
        return "Zone 2"
    if arm_region in _ZONE_3_REGIONS:
        return "Zone 3"
    return "Zone 1"


def is_zone(location: str) -> bool:
    """True if a catalog location is a data transfer zone rather than a region."""
    return (location or "").strip().endswith(("Zone 1", "Zone 2", "Zone 3", "Zone 4"))
