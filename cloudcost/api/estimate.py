"""
API routes for cost estimation and free tier lookups.
"""
from typing import Dict, Any, Optional
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field
import logging

from cloudcost.domain.rate_models import RateTable
from cloudcost.freetier.resolver import FreeTierResolver, get_free_tier_resolver
from cloudcost.services.cost_estimator import CostEstimator, CostEstimatorError


logger = logging.getLogger(__name__)
router = APIRouter()


class EstimateRequest(BaseModel):
    """Request model for a single usage-based cost estimate."""
    rate: Dict[str, Any] = Field(..., description="Billing catalog rate object (tiers + unitInfo)")
    usage_amount: float = Field(..., ge=0, description="Usage in the SKU's unit (hours, GiB, requests, ...)")
    service_name: Optional[str] = Field(None, description="Service display name; enables free tier deduction")
    usage_unit: Optional[str] = Field(None, description="Billing unit code; defaults to rate.unitInfo.unit")
    currency_code: Optional[str] = Field(None, description="ISO-4217 currency code (default: USD)")
    region: Optional[str] = Field(None, description="Region the estimate is for")
    description: Optional[str] = Field(None, description="What this estimate covers")


_cost_estimator: Optional[CostEstimator] = None


def get_cost_estimator() -> CostEstimator:
    """
    Get the shared cost estimator instance.
    
    Returns:
        CostEstimator instance
    """
    global _cost_estimator
    if _cost_estimator is None:
        _cost_estimator = CostEstimator()
    return _cost_estimator


@router.post("/api/estimate")
async def estimate_cost(estimate_request: EstimateRequest) -> Dict[str, Any]:
    """
    Estimate the cost of a usage amount under a tiered rate.
    
    Free tier allowances are looked up for ``service_name`` and deducted
    before pricing; lookup problems never fail the estimate.
    
    Raises:
        HTTPException: 400 if the rate is malformed, has no tiers or usage is invalid
    """
    try:
        rate_table = RateTable.from_api(estimate_request.rate, estimate_request.currency_code)
    except ValueError as error:
        raise HTTPException(status_code=400, detail=f"Invalid rate: {error}") from error
    estimator = get_cost_estimator()
    
    try:
        estimate = await estimator.estimate(
            rate_table,
            estimate_request.usage_amount,
            service_name=estimate_request.service_name,
            usage_unit=estimate_request.usage_unit,
            currency_code=estimate_request.currency_code,
            region=estimate_request.region,
            description=estimate_request.description,
        )
    except CostEstimatorError as error:
        raise HTTPException(status_code=400, detail=str(error)) from error
    
    return {"estimate": estimate.to_dict()}


@router.get("/api/free-tier/cache/stats")
async def free_tier_cache_stats() -> Dict[str, Any]:
    """Free tier cache statistics."""
    return get_free_tier_resolver().cache_stats()


@router.delete("/api/free-tier/cache")
async def clear_free_tier_cache() -> Dict[str, Any]:
    """Drop every cached free tier lookup."""
    get_free_tier_resolver().clear_cache()
    logger.info("Free tier cache cleared")
    return {"status": "cleared"}


@router.delete("/api/free-tier/cache/{service_name}")
async def clear_free_tier_cache_entry(service_name: str) -> Dict[str, Any]:
    """Drop the cached free tier lookup for one service."""
    removed = get_free_tier_resolver().clear_cache_entry(service_name)
    return {"status": "cleared" if removed else "not_cached", "service_name": service_name}


@router.get("/api/free-tier/{service_name}")
async def get_free_tier(service_name: str) -> Dict[str, Any]:
    """
    Look up the free tier allowances of a service.
    
    Returns ``free_tier: null`` when nothing could be determined.
    """
    resolver: FreeTierResolver = get_free_tier_resolver()
    lookup = await resolver.lookup(service_name)
    return {
        "service_name": service_name,
        "outcome": lookup.outcome.value,
        "free_tier": lookup.record.to_dict() if lookup.record else None,
    }
