"""
Tiered (volume-based) cost calculation.
Pure computation over a RateTable; no I/O and no shared state.
"""
from typing import Optional
import logging

from cloudcost.domain.rate_models import RateTable


logger = logging.getLogger(__name__)


class CostCalculationError(Exception):
    """Raised when a cost cannot be computed from the given inputs."""
    pass


class InvalidRateError(CostCalculationError):
    """Raised when no rate table is supplied."""
    pass


class NoPricingTiersError(CostCalculationError):
    """Raised when the rate table has no tiers."""
    pass


class InvalidUsageError(CostCalculationError):
    """Raised when the usage amount is negative."""
    pass


def calculate_cost(rate_table: Optional[RateTable], usage_amount: float) -> float:
    """
    Calculate the cost of ``usage_amount`` under a tiered rate table.
    
    Tier i covers usage from its start_amount up to the next tier's
    start_amount; the last tier takes all remaining usage. Each tier bills
    ``min(remaining, upper - start)`` units at its own price.
    
    Args:
        rate_table: Ordered tiers with ascending start amounts
        usage_amount: Non-negative usage in the rate table's unit
    
    Returns:
        Total cost in the rate table's currency
    
    Raises:
        InvalidRateError: If rate_table is None
        NoPricingTiersError: If rate_table has no tiers
        InvalidUsageError: If usage_amount is negative
    """
    if rate_table is None:
        raise InvalidRateError("invalid price data: rate is missing")
    
    if not rate_table.tiers:
        raise NoPricingTiersError("no pricing tiers available")
    
    if usage_amount < 0:
        raise InvalidUsageError(f"usage amount must be non-negative (got: {usage_amount})")
    
    if usage_amount == 0:
        return 0.0
    
    tiers = rate_table.tiers
    total_cost = 0.0
    remaining_usage = float(usage_amount)
    
    for index, tier in enumerate(tiers):
        if index + 1 < len(tiers):
            tier_range = tiers[index + 1].start_amount - tier.start_amount
            if tier_range <= 0:
                # Malformed boundary: nothing can be billed in this bracket
                logger.debug(
                    f"Skipping tier {index} with non-positive range "
                    f"({tier.start_amount} -> {tiers[index + 1].start_amount})"
                )
                continue
            usage_in_tier = min(remaining_usage, tier_range)
        else:
            usage_in_tier = remaining_usage
        
        total_cost += usage_in_tier * tier.price_per_unit
        remaining_usage -= usage_in_tier
        
        if remaining_usage <= 0:
            break
    
    return total_cost


class TieredCostCalculator:
    """Object wrapper so the calculator can be injected and mocked."""
    
    def calculate(self, rate_table: Optional[RateTable], usage_amount: float) -> float:
        return calculate_cost(rate_table, usage_amount)
