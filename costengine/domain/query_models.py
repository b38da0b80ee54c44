"""
Domain models for catalog queries.
Describes the billable dimensions of a resource before any price is resolved.
"""
from typing import List, Dict, Any, Optional, Tuple
from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class AttributeFilter:
    """Exact-match constraint on a single catalog attribute."""
    key: str
    value: str

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "value": self.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AttributeFilter":
        return cls(key=str(data["key"]), value=str(data["value"]))


@dataclass(frozen=True)
class ProductFilter:
    """
    Conjunction of constraints selecting catalog products.

    A scalar field left as None is unconstrained. Every attribute filter
    must match exactly.
    """
    provider: Optional[str] = None
    service: Optional[str] = None
    family: Optional[str] = None
    location: Optional[str] = None
    attribute_filters: Tuple[AttributeFilter, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "service": self.service,
            "family": self.family,
            "location": self.location,
            "attribute_filters": [f.to_dict() for f in self.attribute_filters],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProductFilter":
        return cls(
            provider=data.get("provider"),
            service=data.get("service"),
            family=data.get("family"),
            location=data.get("location"),
            attribute_filters=tuple(
                AttributeFilter.from_dict(item) for item in data.get("attribute_filters") or []
            ),
        )


@dataclass(frozen=True)
class PriceFilter:
    """Conjunction of constraints selecting prices of one product."""
    unit: Optional[str] = None
    purchase_option: Optional[str] = None
    attribute_filters: Tuple[AttributeFilter, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "unit": self.unit,
            "purchase_option": self.purchase_option,
            "attribute_filters": [f.to_dict() for f in self.attribute_filters],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PriceFilter":
        return cls(
            unit=data.get("unit"),
            purchase_option=data.get("purchase_option"),
            attribute_filters=tuple(
                AttributeFilter.from_dict(item) for item in data.get("attribute_filters") or []
            ),
        )


@dataclass(frozen=True)
class QueryComponent:
    """
    One billable dimension of a resource.

    Produced by a component generator. When monthly_quantity is zero the
    component is billed hourly and hourly_quantity is used instead.
    """
    name: str
    product_filter: ProductFilter
    price_filter: PriceFilter = field(default_factory=PriceFilter)
    hourly_quantity: Decimal = Decimal(0)
    monthly_quantity: Decimal = Decimal(0)
    unit: str = ""
    usage: bool = False  # quantity comes from usage estimates, not configuration
    details: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "product_filter": self.product_filter.to_dict(),
            "price_filter": self.price_filter.to_dict(),
            "hourly_quantity": str(self.hourly_quantity),
            "monthly_quantity": str(self.monthly_quantity),
            "unit": self.unit,
            "usage": self.usage,
            "details": list(self.details),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QueryComponent":
        return cls(
            name=str(data["name"]),
            product_filter=ProductFilter.from_dict(data.get("product_filter") or {}),
            price_filter=PriceFilter.from_dict(data.get("price_filter") or {}),
            hourly_quantity=Decimal(str(data.get("hourly_quantity") or 0)),
            monthly_quantity=Decimal(str(data.get("monthly_quantity") or 0)),
            unit=data.get("unit") or "",
            usage=bool(data.get("usage", False)),
            details=tuple(data.get("details") or ()),
        )


@dataclass(frozen=True)
class QueryResource:
    """A resource address with the ordered components that make up its cost."""
    address: str
    components: Tuple[QueryComponent, ...] = ()
    type: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "type": self.type,
            "components": [component.to_dict() for component in self.components],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QueryResource":
        return cls(
            address=str(data["address"]),
            type=data.get("type") or "",
            components=tuple(
                QueryComponent.from_dict(item) for item in data.get("components") or []
            ),
        )


def attribute_filters(**pairs: str) -> Tuple[AttributeFilter, ...]:
    """Build a tuple of attribute filters from keyword arguments, in order."""
    return tuple(AttributeFilter(key=key, value=value) for key, value in pairs.items())


def query_resources_from_dicts(items: List[Dict[str, Any]]) -> List[QueryResource]:
    """Parse a JSON list of query resources."""
    return [QueryResource.from_dict(item) for item in items]
