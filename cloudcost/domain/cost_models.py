"""
Domain models for cost estimation.
Defines the structure of a single usage-based cost estimate.
"""
from typing import Dict, Any, Optional
from dataclasses import dataclass


@dataclass
class CostEstimate:
    """Represents the estimated cost of one rate table for a usage amount."""
    usage_amount: float
    unit: str
    estimated_cost: float
    currency_code: str
    price_per_unit: float
    number_of_tiers: int
    billable_usage: float
    free_tier_applied: float = 0.0
    free_tier_note: str = ""
    free_tier_source_url: str = ""
    cost_breakdown: str = ""
    service_name: Optional[str] = None
    region: Optional[str] = None
    description: Optional[str] = None
    
    @property
    def tiered_pricing(self) -> bool:
        """True when more than one volume bracket applies."""
        return self.number_of_tiers > 1
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            "usage_amount": self.usage_amount,
            "total_usage": self.usage_amount,
            "unit": self.unit,
            "estimated_cost": self.estimated_cost,
            "currency_code": self.currency_code,
            "price_per_unit": self.price_per_unit,
            "tiered_pricing": self.tiered_pricing,
            "number_of_tiers": self.number_of_tiers,
            "free_tier_applied": self.free_tier_applied,
            "billable_usage": self.billable_usage,
            "cost_breakdown": self.cost_breakdown,
        }
        # Optional context is only emitted when present
        optional = {
            "free_tier_note": self.free_tier_note,
            "free_tier_source_url": self.free_tier_source_url,
            "service_name": self.service_name,
            "region": self.region,
            "description": self.description,
        }
        result.update({key: value for key, value in optional.items() if value})
        return result
