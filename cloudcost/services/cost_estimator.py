"""
Cost estimator service.
Applies free tier deductions to usage and prices the rest with tiered rates.
"""
from typing import Optional, Tuple
import logging

from cloudcost.core.config import config
from cloudcost.domain.cost_models import CostEstimate
from cloudcost.domain.freetier_models import FreeTierItem, FreeTierRecord
from cloudcost.domain.rate_models import RateTable
from cloudcost.freetier.matcher import FreeTierMatcher
from cloudcost.freetier.resolver import FreeTierResolver, get_free_tier_resolver
from cloudcost.pricing.tiered_calculator import CostCalculationError, TieredCostCalculator


logger = logging.getLogger(__name__)


class CostEstimatorError(Exception):
    """Raised when cost estimation fails."""
    pass


class CostEstimator:
    """Service for estimating the cost of usage against a rate table."""
    
    def __init__(
        self,
        free_tier_resolver: Optional[FreeTierResolver] = None,
        calculator: Optional[TieredCostCalculator] = None,
        matcher: Optional[FreeTierMatcher] = None,
        free_tier_enabled: Optional[bool] = None
    ):
        """
        Initialize cost estimator.
        
        Args:
            free_tier_resolver: Free tier lookup (shared instance if None)
            calculator: Tiered cost calculator (creates new if None)
            matcher: Unit-to-allowance matcher (creates new if None)
            free_tier_enabled: Override config.FREE_TIER_ENABLED
        """
        self.free_tier_resolver = free_tier_resolver or get_free_tier_resolver()
        self.calculator = calculator or TieredCostCalculator()
        self.matcher = matcher or FreeTierMatcher()
        self.free_tier_enabled = (
            config.FREE_TIER_ENABLED if free_tier_enabled is None else free_tier_enabled
        )
    
    async def estimate(
        self,
        rate_table: Optional[RateTable],
        usage_amount: float,
        service_name: Optional[str] = None,
        usage_unit: Optional[str] = None,
        currency_code: Optional[str] = None,
        region: Optional[str] = None,
        description: Optional[str] = None
    ) -> CostEstimate:
        """
        Estimate the cost of a usage amount.
        
        Args:
            rate_table: Tiered rates for the SKU
            usage_amount: Usage in the rate table's unit
            service_name: Service display name; enables free tier lookup
            usage_unit: Billing unit code (defaults to the rate table's unit)
            currency_code: Currency of the rates (defaults to the table's, then USD)
            region: Region the estimate is for (informational)
            description: What the estimate covers (informational)
        
        Returns:
            CostEstimate
        
        Raises:
            CostEstimatorError: If the usage or rate table is invalid
        """
        if usage_amount is None or usage_amount < 0:
            raise CostEstimatorError("usage_amount must be non-negative")
        
        unit = usage_unit or (rate_table.unit if rate_table else "") or ""
        currency = (
            currency_code
            or (rate_table.currency_code if rate_table else None)
            or config.DEFAULT_CURRENCY
        )
        
        total_usage = float(usage_amount)
        free_tier_applied = 0.0
        billable_usage = total_usage
        free_tier_note = ""
        free_tier_source_url = ""
        
        # Without tiers the estimate fails anyway; skip the network lookup
        if rate_table is not None and rate_table.tiers and self.free_tier_enabled and service_name:
            record, item = await self._find_allowance(service_name, unit)
            if item is not None:
                free_tier_applied = min(total_usage, item.amount)
                billable_usage = max(0.0, total_usage - item.amount)
                free_tier_note = (
                    f"Free tier applied: {item.amount:.0f} {item.resource} "
                    f"({record.scope.value}, {record.period.value})"
                )
                free_tier_source_url = record.source_url
                logger.info(
                    f"Free tier applied for {service_name}: {free_tier_applied:.0f} "
                    f"{item.resource} deducted, billable: {billable_usage:.0f}"
                )
        
        try:
            estimated_cost = self.calculator.calculate(rate_table, billable_usage)
        except CostCalculationError as error:
            logger.error(f"Error calculating cost: {error}")
            raise CostEstimatorError(f"failed to calculate cost: {error}") from error
        
        if billable_usage > 0:
            price_per_unit = estimated_cost / billable_usage
        else:
            price_per_unit = rate_table.tiers[0].price_per_unit
        
        estimate = CostEstimate(
            usage_amount=total_usage,
            unit=unit,
            estimated_cost=estimated_cost,
            currency_code=currency,
            price_per_unit=price_per_unit,
            number_of_tiers=len(rate_table.tiers),
            billable_usage=billable_usage,
            free_tier_applied=free_tier_applied,
            free_tier_note=free_tier_note,
            free_tier_source_url=free_tier_source_url,
            service_name=service_name,
            region=region,
            description=description,
        )
        estimate.cost_breakdown = self._describe(estimate)
        return estimate
    
    async def _find_allowance(
        self,
        service_name: str,
        unit: str
    ) -> Tuple[Optional[FreeTierRecord], Optional[FreeTierItem]]:
        record = await self.free_tier_resolver.resolve(service_name)
        if record is None:
            return None, None
        return record, self.matcher.match(record, unit)
    
    def _describe(self, estimate: CostEstimate) -> str:
        """Human-readable breakdown of the calculation."""
        description = ""
        if estimate.free_tier_applied > 0:
            description = (
                f"Total usage: {estimate.usage_amount:.2f} {estimate.unit}. "
                f"Free tier deducted: {estimate.free_tier_applied:.2f} {estimate.unit}. "
                f"Billable usage: {estimate.billable_usage:.2f} {estimate.unit}. "
            )
        
        if estimate.tiered_pricing:
            description += (
                f"Calculated using {estimate.number_of_tiers} pricing tiers. "
                f"Estimated cost: {estimate.estimated_cost:.6f} {estimate.currency_code}"
            )
        else:
            description += (
                f"Flat rate: {estimate.price_per_unit:.6f} {estimate.currency_code} per unit = "
                f"{estimate.estimated_cost:.6f} {estimate.currency_code}"
            )
        return description
