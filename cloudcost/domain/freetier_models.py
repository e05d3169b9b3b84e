"""
Domain models for free tier allowances.
Records are immutable: a refresh replaces the record, it never edits one.
"""
from typing import Tuple, Dict, Any, Optional
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class FreeTierScope(str, Enum):
    """Who shares an allowance."""
    ACCOUNT = "account"
    PROJECT = "project"


class FreeTierPeriod(str, Enum):
    """How often an allowance resets."""
    DAY = "day"
    MONTH = "month"
    ALWAYS = "always"


class ResolutionOutcome(Enum):
    """Result kinds of a free tier lookup."""
    FOUND = "found"
    NOT_FOUND = "not_found"  # Pages were read, nothing matched
    ERROR = "error"  # Every attempt failed on the network or parse level


@dataclass(frozen=True)
class FreeTierItem:
    """One allowance, e.g. 240000 vCPU-seconds."""
    resource: str
    amount: float
    unit: str
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"resource": self.resource, "amount": self.amount, "unit": self.unit}


@dataclass(frozen=True)
class FreeTierRecord:
    """All allowances found for one service."""
    service_name: str
    items: Tuple[FreeTierItem, ...]
    scope: FreeTierScope = FreeTierScope.ACCOUNT
    period: FreeTierPeriod = FreeTierPeriod.MONTH
    source_url: str = ""
    conditions: Tuple[str, ...] = field(default_factory=tuple)
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "service_name": self.service_name,
            "items": [item.to_dict() for item in self.items],
            "scope": self.scope.value,
            "period": self.period.value,
            "source_url": self.source_url,
            "conditions": list(self.conditions),
        }


@dataclass(frozen=True)
class CacheEntry:
    """A cached lookup result; ``record`` is None when nothing was found."""
    record: Optional[FreeTierRecord]
    cached_at: datetime
    expires_at: datetime
    outcome: ResolutionOutcome = ResolutionOutcome.FOUND
    
    def is_expired(self, now: datetime) -> bool:
        """True once ``now`` is past the expiry time."""
        return now > self.expires_at


@dataclass(frozen=True)
class FreeTierLookup:
    """
    Outcome of a best-effort free tier lookup.
    
    Callers that only need "is there a deduction" use ``record``; logging and
    monitoring can tell NOT_FOUND apart from ERROR via ``outcome``.
    """
    service_name: str
    outcome: ResolutionOutcome
    record: Optional[FreeTierRecord] = None
    error: Optional[str] = None
    from_cache: bool = False
    
    @property
    def found(self) -> bool:
        return self.outcome is ResolutionOutcome.FOUND and self.record is not None
