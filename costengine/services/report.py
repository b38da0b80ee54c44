"""
Report service.
Turns a Plan into per-resource cost lines and grand totals.
"""
from datetime import datetime
from decimal import Decimal
import logging
from typing import Optional

from costengine.core.config import config
from costengine.domain.plan_models import Plan, ResourceDiff
from costengine.domain.report_models import EstimateReport, ResourceCostLine


logger = logging.getLogger(__name__)


def _cost_line(diff: ResourceDiff) -> ResourceCostLine:
    """
    Compute the report line of one resource.

    A side whose cost cannot be computed fails the whole line: the recorded
    error is reported instead of a figure.
    """
    try:
        prior_cost = diff.prior_cost()
    except Exception as error:  # recorded component errors can be any backend exception
        return ResourceCostLine(
            address=diff.address,
            prior_cost=None,
            planned_cost=None,
            skipped=diff.skipped,
            error=str(error),
            error_side="prior",
        )

    try:
        planned_cost = diff.planned_cost()
    except Exception as error:
        return ResourceCostLine(
            address=diff.address,
            prior_cost=prior_cost,
            planned_cost=None,
            skipped=diff.skipped,
            error=str(error),
            error_side="planned",
        )

    return ResourceCostLine(
        address=diff.address,
        prior_cost=prior_cost,
        planned_cost=planned_cost,
        skipped=diff.skipped,
    )


def build_report(plan: Plan, currency: Optional[str] = None) -> EstimateReport:
    """
    Build the report of a plan.

    Args:
        plan: Prior and planned States
        currency: Currency label (defaults to config.DEFAULT_CURRENCY)

    Returns:
        EstimateReport whose totals only include resources priced on both sides
    """
    lines = [_cost_line(diff) for diff in plan.resource_differences()]

    total_prior = Decimal(0)
    total_planned = Decimal(0)
    for line in lines:
        if line.failed:
            logger.info(f"Excluding {line.address} from totals: {line.error}")
            continue
        total_prior += line.prior_cost
        total_planned += line.planned_cost

    return EstimateReport(
        currency=currency or config.DEFAULT_CURRENCY,
        lines=lines,
        total_prior_cost=total_prior,
        total_planned_cost=total_planned,
        generated_at=datetime.now(),
    )
