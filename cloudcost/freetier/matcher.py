"""
Matching billing units to free tier allowances.
"""
from typing import Dict, Optional, Tuple

from cloudcost.domain.freetier_models import FreeTierItem, FreeTierRecord


# Catalog usage unit -> resource labels that can offset it, in preference order.
# New billing units are supported by adding entries here.
UNIT_RESOURCE_MAP: Dict[str, Tuple[str, ...]] = {
    "s": ("vCPU-seconds", "GiB-seconds", "seconds"),
    "GiBy": ("GiB-seconds", "storage"),
    "GiBy.s": ("GiB-seconds",),
    "By": ("storage", "egress"),
    "count": (
        "requests", "operations", "access-operations",
        "document-reads", "document-writes", "document-deletes",
    ),
    "1": ("requests", "operations", "secret-versions"),
    "h": ("hours",),
    "mo": ("months",),
}


def find_matching_item(
    record: Optional[FreeTierRecord],
    usage_unit: str,
    unit_map: Dict[str, Tuple[str, ...]] = UNIT_RESOURCE_MAP
) -> Optional[FreeTierItem]:
    """
    Find the allowance that offsets usage billed in ``usage_unit``.
    
    Items are scanned in record order; the first whose resource label contains
    any mapped label (case-insensitive) wins. Units missing from the map fall
    back to an exact, case-insensitive unit comparison.
    
    Args:
        record: Resolved free tier record (may be None)
        usage_unit: Catalog unit code, e.g. "s", "GiBy", "count"
        unit_map: Unit -> resource label table
    
    Returns:
        The matching item, or None
    """
    if record is None or not record.items or not usage_unit:
        return None
    
    candidates = unit_map.get(usage_unit)
    if candidates is None:
        for item in record.items:
            if item.unit.lower() == usage_unit.lower():
                return item
        return None
    
    lowered = [candidate.lower() for candidate in candidates]
    for item in record.items:
        resource = item.resource.lower()
        if any(candidate in resource for candidate in lowered):
            return item
    return None


class FreeTierMatcher:
    """Unit matcher with a configurable unit table."""
    
    def __init__(self, unit_map: Optional[Dict[str, Tuple[str, ...]]] = None):
        self.unit_map = unit_map if unit_map is not None else UNIT_RESOURCE_MAP
    
    def match(self, record: Optional[FreeTierRecord], usage_unit: str) -> Optional[FreeTierItem]:
        return find_matching_item(record, usage_unit, self.unit_map)
