"""
Domain models for comparing a prior and a planned State.
"""
from typing import List, Dict, Any, Optional
from dataclasses import dataclass, field
from decimal import Decimal

from costengine.domain.cost_models import Component, Resource, State


def _side_cost(resource: Optional[Resource]) -> Decimal:
    """
    Cost of one side of a diff.

    Raises the recorded error of the first unresolved component, so a caller
    can tell "zero" apart from "unknown".
    """
    if resource is None:
        return Decimal(0)
    errors = resource.errors()
    if errors:
        _label, error = errors[0]
        raise error
    return resource.cost()


@dataclass
class ComponentDiff:
    """Prior and planned versions of one component label of a resource."""
    label: str
    prior: Optional[Component] = None
    planned: Optional[Component] = None

    def prior_cost(self) -> Decimal:
        if self.prior is None:
            return Decimal(0)
        if self.prior.error is not None:
            raise self.prior.error
        return self.prior.cost()

    def planned_cost(self) -> Decimal:
        if self.planned is None:
            return Decimal(0)
        if self.planned.error is not None:
            raise self.planned.error
        return self.planned.cost()


@dataclass
class ResourceDiff:
    """Prior and planned versions of the resource at one address."""
    address: str
    prior: Optional[Resource] = None
    planned: Optional[Resource] = None

    def prior_cost(self) -> Decimal:
        """
        Monthly cost of the resource in the prior State.

        Returns:
            Sum of quantity x rate, or zero if the resource did not exist

        Raises:
            Exception: The recorded error of an unresolved component
        """
        return _side_cost(self.prior)

    def planned_cost(self) -> Decimal:
        """
        Monthly cost of the resource in the planned State.

        Raises:
            Exception: The recorded error of an unresolved component
        """
        return _side_cost(self.planned)

    @property
    def skipped(self) -> bool:
        """True when every existing side of the diff was skipped."""
        sides = [side for side in (self.prior, self.planned) if side is not None]
        return bool(sides) and all(side.skipped for side in sides)

    def component_differences(self) -> List[ComponentDiff]:
        """One ComponentDiff per label present on either side, prior labels first."""
        prior_components = self.prior.components if self.prior else {}
        planned_components = self.planned.components if self.planned else {}

        labels = list(prior_components)
        labels.extend(label for label in planned_components if label not in prior_components)

        return [
            ComponentDiff(
                label=label,
                prior=prior_components.get(label),
                planned=planned_components.get(label),
            )
            for label in labels
        ]


@dataclass
class Plan:
    """Pairs a prior and a planned State. Holds no data of its own."""
    prior: State = field(default_factory=State)
    planned: State = field(default_factory=State)

    def resource_differences(self) -> List[ResourceDiff]:
        """One ResourceDiff per address present in either State, sorted by address."""
        addresses = set(self.prior.resources) | set(self.planned.resources)
        return [
            ResourceDiff(
                address=address,
                prior=self.prior.resources.get(address),
                planned=self.planned.resources.get(address),
            )
            for address in sorted(addresses)
        ]

    def prior_cost(self) -> Decimal:
        """Total of the prior State; unresolved components count as zero."""
        return self.prior.cost()

    def planned_cost(self) -> Decimal:
        """Total of the planned State; unresolved components count as zero."""
        return self.planned.cost()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "prior": self.prior.to_dict(),
            "planned": self.planned.to_dict(),
        }
