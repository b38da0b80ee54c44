"""
Domain models for estimate reports.
Defines the per-resource lines and grand totals shown to users.
"""
from typing import List, Dict, Any, Optional
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP


_CENTS = Decimal("0.01")


def format_money(value: Decimal) -> str:
    """Round a monthly amount to cents for display."""
    return str(value.quantize(_CENTS, rounding=ROUND_HALF_UP))


@dataclass
class ResourceCostLine:
    """Prior and planned monthly cost of one resource, or why it is unknown."""
    address: str
    prior_cost: Optional[Decimal]
    planned_cost: Optional[Decimal]
    skipped: bool = False
    error: Optional[str] = None
    error_side: Optional[str] = None  # "prior" or "planned"

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def delta(self) -> Optional[Decimal]:
        if self.failed or self.prior_cost is None or self.planned_cost is None:
            return None
        return self.planned_cost - self.prior_cost

    def render(self) -> str:
        """Single text line for the report."""
        if self.failed:
            if self.error_side:
                return f"{self.address}: {self.error_side} cost: {self.error}"
            return f"{self.address}: {self.error}"
        line = f"{self.address}: {format_money(self.prior_cost)} -> {format_money(self.planned_cost)}"
        if self.skipped:
            line += " (skipped)"
        return line

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        delta = self.delta
        return {
            "address": self.address,
            "prior_monthly_cost": format_money(self.prior_cost) if self.prior_cost is not None else None,
            "planned_monthly_cost": format_money(self.planned_cost) if self.planned_cost is not None else None,
            "delta_monthly_cost": format_money(delta) if delta is not None else None,
            "skipped": self.skipped,
            "error": self.error,
            "error_side": self.error_side,
        }


@dataclass
class EstimateReport:
    """Complete estimate report: one line per resource plus grand totals."""
    currency: str
    lines: List[ResourceCostLine]
    total_prior_cost: Decimal
    total_planned_cost: Decimal
    generated_at: datetime

    @property
    def failed_resources(self) -> List[ResourceCostLine]:
        return [line for line in self.lines if line.failed]

    @property
    def total_delta(self) -> Decimal:
        return self.total_planned_cost - self.total_prior_cost

    def render(self) -> str:
        """Plain-text rendering, one resource per line followed by the totals."""
        rendered = [line.render() for line in self.lines]
        rendered.append(
            f"Total ({self.currency}/month): "
            f"{format_money(self.total_prior_cost)} -> {format_money(self.total_planned_cost)}"
        )
        if self.failed_resources:
            rendered.append(f"{len(self.failed_resources)} resource(s) could not be priced")
        return "\n".join(rendered)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "currency": self.currency,
            "total_prior_monthly_cost": format_money(self.total_prior_cost),
            "total_planned_monthly_cost": format_money(self.total_planned_cost),
            "total_delta_monthly_cost": format_money(self.total_delta),
            "generated_at": self.generated_at.isoformat(),
            "resources": [line.to_dict() for line in self.lines],
            "failed_resource_count": len(self.failed_resources),
        }
