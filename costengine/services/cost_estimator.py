"""
Cost estimator service.
Converts resolved resources into query resources, prices prior and planned
snapshots against the catalog and pairs them into a Plan.
"""
from typing import Dict, Any, List, Optional
import asyncio
import logging

from costengine.domain.cost_models import State
from costengine.domain.plan_models import Plan
from costengine.domain.query_models import QueryResource
from costengine.domain.report_models import EstimateReport
from costengine.domain.usage_models import UsageEstimates
from costengine.generators.registry import GeneratorError, build_query_resources
from costengine.pricing.catalog import Catalog, CatalogError
from costengine.pricing.factory import create_catalog
from costengine.services.report import build_report
from costengine.services.state_builder import build_state


logger = logging.getLogger(__name__)


class CostEstimatorError(Exception):
    """Raised when the estimator input cannot be turned into query resources."""
    pass


class CostEstimator:
    """Service for estimating prior and planned costs."""

    def __init__(self, catalog: Optional[Catalog] = None, usage: Optional[UsageEstimates] = None):
        """
        Initialize cost estimator with a catalog.

        If the configured catalog cannot be initialized (e.g. a missing cache
        directory), the problem is logged and the estimator is left without a
        catalog: every build then fails with BuildAbortError instead of the
        service failing at startup.

        Args:
            catalog: Catalog to price against (creates the configured one if None)
            usage: Base usage estimates (defaults to UsageEstimates.default())
        """
        if catalog is None:
            try:
                catalog = create_catalog()
            except CatalogError as error:
                logger.warning("Catalog unavailable, estimates will abort: %s", error)
                catalog = None
        self.catalog = catalog
        self.usage = usage or UsageEstimates.default()

    def to_query_resources(
        self,
        resolved_resources: List[Dict[str, Any]],
        usage: Optional[UsageEstimates] = None
    ) -> List[QueryResource]:
        """
        Run the component generators over resolved resources.

        Raises:
            CostEstimatorError: If a resource is malformed
        """
        estimates = self.usage.merged_with(usage) if usage else self.usage
        try:
            return build_query_resources(resolved_resources, estimates)
        except GeneratorError as error:
            raise CostEstimatorError(f"Invalid resource {error}") from error

    async def estimate_state(self, resources: List[QueryResource], timeout: Optional[float] = None) -> State:
        """Price one snapshot."""
        return await build_state(resources, self.catalog, timeout=timeout)

    async def estimate_plan(
        self,
        prior: List[QueryResource],
        planned: List[QueryResource],
        timeout: Optional[float] = None
    ) -> Plan:
        """
        Price the prior and planned snapshots and pair them.

        Raises:
            BuildAbortError: If there is no catalog
            BuildCancelledError: If either build exceeds its deadline; the
                                 other build is cancelled
        """
        builds = [
            asyncio.ensure_future(self.estimate_state(prior, timeout=timeout)),
            asyncio.ensure_future(self.estimate_state(planned, timeout=timeout)),
        ]
        try:
            prior_state, planned_state = await asyncio.gather(*builds)
        except BaseException:
            # One build failed or the caller cancelled: stop the other one too
            for build in builds:
                build.cancel()
            await asyncio.gather(*builds, return_exceptions=True)
            raise
        logger.info(
            "Estimated plan: %d prior resources, %d planned resources",
            len(prior_state.resources), len(planned_state.resources)
        )
        return Plan(prior=prior_state, planned=planned_state)

    async def estimate_resolved(
        self,
        prior: List[Dict[str, Any]],
        planned: List[Dict[str, Any]],
        usage: Optional[UsageEstimates] = None,
        timeout: Optional[float] = None
    ) -> Plan:
        """
        Estimate a plan from evaluator output.

        Args:
            prior: Resolved resources ({address, type, values}) currently deployed
            planned: Resolved resources after the change
            usage: Usage estimates layered over the estimator's own
            timeout: Build deadline in seconds

        Returns:
            Plan pairing the prior and planned States
        """
        return await self.estimate_plan(
            self.to_query_resources(prior, usage),
            self.to_query_resources(planned, usage),
            timeout=timeout,
        )

    async def estimate_report(
        self,
        prior: List[QueryResource],
        planned: List[QueryResource],
        timeout: Optional[float] = None
    ) -> EstimateReport:
        """Estimate a plan from query resources and build its report."""
        plan = await self.estimate_plan(prior, planned, timeout=timeout)
        return build_report(plan)
