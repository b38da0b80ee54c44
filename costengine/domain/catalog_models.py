"""
Domain models for pricing catalog entries.
Defines billable products and their price points.
"""
from typing import Dict, Any, Optional
from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class Product:
    """Catalog entry for a billable SKU."""
    id: str
    provider: str
    service: str
    family: str
    location: str
    sku: str = ""
    attributes: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "provider": self.provider,
            "sku": self.sku,
            "service": self.service,
            "family": self.family,
            "location": self.location,
            "attributes": dict(self.attributes),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], product_id: Optional[str] = None) -> "Product":
        """Build a product from its serialized form (as written by ingestion)."""
        return cls(
            id=str(product_id if product_id is not None else data["id"]),
            provider=data.get("provider", ""),
            sku=data.get("sku", ""),
            service=data.get("service", ""),
            family=data.get("family", ""),
            location=data.get("location", ""),
            attributes={str(k): str(v) for k, v in (data.get("attributes") or {}).items()},
        )


@dataclass(frozen=True)
class Price:
    """One price point of a product."""
    value: Decimal
    unit: str
    currency: str = "USD"
    purchase_option: str = ""
    attributes: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "value": str(self.value),
            "unit": self.unit,
            "currency": self.currency,
            "purchase_option": self.purchase_option,
            "attributes": dict(self.attributes),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Price":
        return cls(
            value=Decimal(str(data["value"])),
            unit=data.get("unit", ""),
            currency=data.get("currency", "USD"),
            purchase_option=data.get("purchase_option", ""),
            attributes={str(k): str(v) for k, v in (data.get("attributes") or {}).items()},
        )
