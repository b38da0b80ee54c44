"""
Domain models for usage estimates.

Usage-flagged components (data transferred, requests served, ...) depend on
runtime behaviour that configuration cannot know, so their quantities come
from caller-supplied estimates.
"""
from typing import Dict, Any, Optional
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation


# Key of the inline usage block a resource may carry in its values
INLINE_USAGE_KEY = "tc_usage"


@dataclass
class UsageEstimates:
    """
    Usage estimates keyed by resource type and by resource address.

    Precedence, lowest to highest: type defaults, address overrides, then the
    resource's own inline usage block. Keys absent everywhere are left to the
    generator, which treats them as zero.
    """
    resource_defaults: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    overrides: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @classmethod
    def default(cls) -> "UsageEstimates":
        """Estimates shipped with the engine: zero for every known usage key."""
        return cls(resource_defaults={
            "azurerm_virtual_network_gateway": {"monthly_data_transfer_gb": 0},
        })

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "UsageEstimates":
        data = data or {}
        return cls(
            resource_defaults={k: dict(v) for k, v in (data.get("resource_defaults") or {}).items()},
            overrides={k: dict(v) for k, v in (data.get("overrides") or {}).items()},
        )

    def merged_with(self, other: "UsageEstimates") -> "UsageEstimates":
        """Return a copy where entries of other take precedence."""
        merged = UsageEstimates(
            resource_defaults={k: dict(v) for k, v in self.resource_defaults.items()},
            overrides={k: dict(v) for k, v in self.overrides.items()},
        )
        for resource_type, values in other.resource_defaults.items():
            merged.resource_defaults.setdefault(resource_type, {}).update(values)
        for address, values in other.overrides.items():
            merged.overrides.setdefault(address, {}).update(values)
        return merged

    def for_resource(
        self,
        address: str,
        resource_type: str,
        values: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Resolve the usage of one resource.

        Args:
            address: Resource address
            resource_type: Resource type (e.g., 'azurerm_virtual_network_gateway')
            values: Resolved configuration values, possibly with an inline usage block

        Returns:
            Usage key -> value
        """
        usage: Dict[str, Any] = {}
        usage.update(self.resource_defaults.get(resource_type, {}))
        usage.update(self.overrides.get(address, {}))
        inline = (values or {}).get(INLINE_USAGE_KEY)
        if isinstance(inline, dict):
            usage.update(inline)
        return usage

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resource_defaults": self.resource_defaults,
            "overrides": self.overrides,
        }


def usage_decimal(usage: Dict[str, Any], key: str) -> Decimal:
    """
    Read a usage value as a Decimal, defaulting to zero when absent or blank.

    Raises:
        ValueError: If the value is not a finite, non-negative number
    """
    value = usage.get(key)
    if value is None or value == "":
        return Decimal(0)
    try:
        quantity = Decimal(str(value))
    except InvalidOperation as error:
        raise ValueError(f"usage value '{key}' is not a number: {value!r}") from error
    if not quantity.is_finite() or quantity < 0:
        raise ValueError(f"usage value '{key}' must be a finite, non-negative number: {value!r}")
    return quantity
