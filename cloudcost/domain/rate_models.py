"""
Domain models for volume-based pricing rates.
A rate table is supplied by the billing catalog; it is never persisted.
"""
from typing import List, Dict, Any, Optional
from dataclasses import dataclass, field
import logging


logger = logging.getLogger(__name__)

NANOS_PER_UNIT = 1_000_000_000


def _to_float(value: Any) -> float:
    """Parse catalog numbers, which are often string-encoded."""
    if value in (None, ""):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning(f"Unparseable numeric value in rate payload: {value!r}")
        return 0.0


def _as_dict(value: Any, field_name: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{field_name} must be an object (got: {type(value).__name__})")
    return value


@dataclass(frozen=True)
class RateTier:
    """One volume bracket: usage from start_amount upwards is billed at this price."""
    start_amount: float
    units: int = 0
    nanos: int = 0
    
    @property
    def price_per_unit(self) -> float:
        """Price per unit as units + nanos / 1e9."""
        return self.units + self.nanos / NANOS_PER_UNIT
    
    @classmethod
    def from_price(cls, start_amount: float, price: float) -> "RateTier":
        """Build a tier from a plain decimal price (e.g. 0.000024)."""
        units = int(price)
        nanos = int(round((price - units) * NANOS_PER_UNIT))
        return cls(start_amount=start_amount, units=units, nanos=nanos)
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "start_amount": self.start_amount,
            "units": self.units,
            "nanos": self.nanos,
            "price_per_unit": self.price_per_unit,
        }


@dataclass
class RateTable:
    """Ordered tiers (ascending start_amount); the last tier is unbounded."""
    tiers: List[RateTier] = field(default_factory=list)
    unit: str = ""
    unit_description: str = ""
    currency_code: Optional[str] = None
    
    @classmethod
    def from_api(cls, payload: Dict[str, Any], currency_code: Optional[str] = None) -> "RateTable":
        """
        Build a rate table from a Cloud Billing Catalog ``rate`` object.
        
        Args:
            payload: Dict with ``tiers[].startAmount.value``,
                ``tiers[].listPrice.{units,nanos,currencyCode}`` and ``unitInfo``
            currency_code: Currency to record if the tiers do not carry one
        
        Returns:
            RateTable with tiers in payload order
        
        Raises:
            ValueError: If the payload, a tier or a nested price is not shaped as an object
        """
        payload = _as_dict(payload, "rate")
        raw_tiers = payload.get("tiers") or []
        if not isinstance(raw_tiers, list):
            raise ValueError(f"rate.tiers must be a list (got: {type(raw_tiers).__name__})")
        
        tiers = []
        for index, raw_tier in enumerate(raw_tiers):
            raw_tier = _as_dict(raw_tier, f"rate.tiers[{index}]")
            start = _as_dict(raw_tier.get("startAmount"), f"rate.tiers[{index}].startAmount").get("value")
            list_price = _as_dict(raw_tier.get("listPrice"), f"rate.tiers[{index}].listPrice")
            tiers.append(RateTier(
                start_amount=_to_float(start),
                units=int(_to_float(list_price.get("units"))),
                nanos=int(_to_float(list_price.get("nanos"))),
            ))
            if currency_code is None and list_price.get("currencyCode"):
                currency_code = list_price["currencyCode"]
        
        unit_info = _as_dict(payload.get("unitInfo"), "rate.unitInfo")
        return cls(
            tiers=tiers,
            unit=unit_info.get("unit", ""),
            unit_description=unit_info.get("unitDescription", ""),
            currency_code=currency_code,
        )
