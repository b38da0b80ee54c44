"""
API routes for cost estimation.
"""
from typing import Dict, Any, List, Optional
from decimal import InvalidOperation
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field
import logging

from costengine.domain.query_models import query_resources_from_dicts
from costengine.domain.usage_models import UsageEstimates
from costengine.generators.registry import supported_types
from costengine.services.cost_estimator import CostEstimator, CostEstimatorError
from costengine.services.report import build_report
from costengine.services.state_builder import BuildAbortError, BuildCancelledError


logger = logging.getLogger(__name__)
router = APIRouter()

_estimator: Optional[CostEstimator] = None


def get_estimator() -> CostEstimator:
    """Return the process-wide estimator, creating it on first use."""
    global _estimator
    if _estimator is None:
        _estimator = CostEstimator()
    return _estimator


class ResolvedResource(BaseModel):
    """A resource as resolved by the configuration evaluator."""
    address: str = Field(..., description="Unique resource address (e.g. module.vpn.azurerm_virtual_network_gateway.main)")
    type: str = Field(..., description="Resource type (e.g. azurerm_virtual_network_gateway)")
    values: Dict[str, Any] = Field(default_factory=dict, description="Resolved attribute values")


class UsageInput(BaseModel):
    """Usage estimates for usage-based components."""
    resource_defaults: Dict[str, Dict[str, Any]] = Field(default_factory=dict, description="Usage per resource type")
    overrides: Dict[str, Dict[str, Any]] = Field(default_factory=dict, description="Usage per resource address")


class ResolvedEstimateRequest(BaseModel):
    """Request model for estimating resolved resources."""
    prior: List[ResolvedResource] = Field(default_factory=list, description="Resources currently deployed")
    planned: List[ResolvedResource] = Field(default_factory=list, description="Resources after the change")
    usage: Optional[UsageInput] = Field(None, description="Optional usage estimates")


class QueryEstimateRequest(BaseModel):
    """Request model for estimating pre-built query resources."""
    prior: List[Dict[str, Any]] = Field(default_factory=list, description="Prior query resources")
    planned: List[Dict[str, Any]] = Field(default_factory=list, description="Planned query resources")


def _raise_build_error(error: Exception) -> None:
    if isinstance(error, BuildAbortError):
        raise HTTPException(
            status_code=503,
            detail=f"Pricing catalog unavailable: {error}"
        ) from error
    if isinstance(error, BuildCancelledError):
        raise HTTPException(
            status_code=504,
            detail="Cost estimation timed out"
        ) from error
    raise error


@router.post("/api/estimate")
async def estimate_resolved_resources(estimate_request: ResolvedEstimateRequest) -> Dict[str, Any]:
    """
    Estimate prior and planned monthly costs of resolved resources.

    Resources whose type has no component generator are reported as skipped.

    Args:
        estimate_request: Prior and planned resources plus optional usage

    Returns:
        JSON response with the estimate report

    Raises:
        HTTPException: If the input is invalid, the catalog is unavailable
                       or the estimate times out
    """
    try:
        if not estimate_request.prior and not estimate_request.planned:
            raise HTTPException(
                status_code=400,
                detail="At least one prior or planned resource is required"
            )

        usage = None
        if estimate_request.usage is not None:
            usage = UsageEstimates.from_dict(estimate_request.usage.model_dump())

        estimator = get_estimator()
        try:
            plan = await estimator.estimate_resolved(
                prior=[resource.model_dump() for resource in estimate_request.prior],
                planned=[resource.model_dump() for resource in estimate_request.planned],
                usage=usage,
            )
        except CostEstimatorError as error:
            raise HTTPException(
                status_code=400,
                detail=str(error)
            ) from error
        except (BuildAbortError, BuildCancelledError) as error:
            _raise_build_error(error)

        report = build_report(plan)
        return {
            "status": "ok",
            "report": report.to_dict(),
            "text": report.render(),
        }

    except HTTPException:
        raise
    except Exception as error:
        logger.error(f"Unexpected error estimating resources: {error}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail="An unexpected error occurred while estimating costs"
        ) from error


@router.post("/api/estimate/query")
async def estimate_query_resources(estimate_request: QueryEstimateRequest) -> Dict[str, Any]:
    """
    Estimate prior and planned monthly costs of query resources.

    For callers that build query components themselves.

    Returns:
        JSON response with the estimate report and both priced States
    """
    try:
        try:
            prior = query_resources_from_dicts(estimate_request.prior)
            planned = query_resources_from_dicts(estimate_request.planned)
        except (KeyError, TypeError, ValueError, InvalidOperation) as error:
            raise HTTPException(
                status_code=422,
                detail=f"Invalid query resource: {error}"
            ) from error

        estimator = get_estimator()
        try:
            plan = await estimator.estimate_plan(prior, planned)
        except (BuildAbortError, BuildCancelledError) as error:
            _raise_build_error(error)

        report = build_report(plan)
        return {
            "status": "ok",
            "report": report.to_dict(),
            "plan": plan.to_dict(),
        }

    except HTTPException:
        raise
    except Exception as error:
        logger.error(f"Unexpected error estimating query resources: {error}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail="An unexpected error occurred while estimating costs"
        ) from error


@router.get("/api/generators")
async def list_generators() -> Dict[str, Any]:
    """List the resource types that have a component generator."""
    return {"resource_types": supported_types()}
