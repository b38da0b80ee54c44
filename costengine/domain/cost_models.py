"""
Domain models for cost estimation.
Defines the priced form of resources and components, and the State that holds them.
"""
from typing import List, Dict, Any, Optional, Tuple
from dataclasses import dataclass, field
from decimal import Decimal


@dataclass
class Component:
    """
    The resolved, priced form of a query component.

    A resolved component has a monthly quantity and a monthly rate. An
    unresolved one carries the lookup error and neither quantity nor rate.
    """
    quantity: Optional[Decimal] = None
    unit: str = ""
    rate: Optional[Decimal] = None
    details: Tuple[str, ...] = ()
    usage: bool = False
    error: Optional[Exception] = None

    @classmethod
    def failed(cls, error: Exception, unit: str = "", usage: bool = False) -> "Component":
        """Build an unresolved component carrying the given error."""
        return cls(unit=unit, usage=usage, error=error)

    def cost(self) -> Decimal:
        """Monthly cost of the component; an unresolved component costs nothing."""
        if self.error is not None or self.quantity is None or self.rate is None:
            return Decimal(0)
        return self.quantity * self.rate

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        if self.error is not None:
            return {
                "unit": self.unit,
                "usage": self.usage,
                "details": list(self.details),
                "error": str(self.error),
            }
        return {
            "quantity": str(self.quantity),
            "unit": self.unit,
            "rate": str(self.rate),
            "monthly_cost": str(self.cost()),
            "usage": self.usage,
            "details": list(self.details),
        }


@dataclass
class Resource:
    """A costed resource: its components keyed by label."""
    address: str
    components: Dict[str, Component] = field(default_factory=dict)
    skipped: bool = False

    def cost(self) -> Decimal:
        """Sum of the costs of every resolved component."""
        total = Decimal(0)
        for component in self.components.values():
            total += component.cost()
        return total

    def errors(self) -> List[Tuple[str, Exception]]:
        """(label, error) pairs of every unresolved component, in insertion order."""
        return [
            (label, component.error)
            for label, component in self.components.items()
            if component.error is not None
        ]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "address": self.address,
            "skipped": self.skipped,
            "monthly_cost": str(self.cost()),
            "components": {
                label: component.to_dict() for label, component in self.components.items()
            },
        }


@dataclass
class State:
    """
    A costed snapshot of every resource at one point in time (prior or planned).

    Not tied to any cloud provider or configuration tool.
    """
    resources: Dict[str, Resource] = field(default_factory=dict)

    def cost(self) -> Decimal:
        """Sum of the costs of every resource; unresolved components count as zero."""
        total = Decimal(0)
        for resource in self.resources.values():
            total += resource.cost()
        return total

    def add_component(self, address: str, label: str, component: Component) -> None:
        """
        Add a component under a resource, creating the resource if needed.

        A resource previously recorded as skipped stops being skipped once it
        receives a component.
        """
        resource = self.resources.get(address)
        if resource is None:
            resource = Resource(address=address)
            self.resources[address] = resource
        resource.skipped = False
        resource.components[label] = component

    def mark_skipped(self, address: str) -> None:
        """Record a resource that has no billable components."""
        if address not in self.resources:
            self.resources[address] = Resource(address=address, skipped=True)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "monthly_cost": str(self.cost()),
            "resources": {
                address: resource.to_dict() for address, resource in self.resources.items()
            },
        }
