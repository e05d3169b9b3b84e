"""
Time-bound cache of free tier lookups.

Entries are frozen and replaced wholesale, so readers never see a partial
update. Writers are serialized by a lock; readers take a single dict lookup.
"""
from typing import Callable, Dict, Any, Optional
from datetime import datetime, timedelta
import logging
import threading

from cloudcost.core.config import config
from cloudcost.domain.freetier_models import CacheEntry, FreeTierRecord, ResolutionOutcome


logger = logging.getLogger(__name__)


def normalize_service_name(name: str) -> str:
    """Cache key: lowercased, trimmed, spaces replaced with hyphens."""
    return name.lower().strip().replace(" ", "-")


class FreeTierCache:
    """In-memory free tier cache with a fixed TTL."""
    
    def __init__(
        self,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], datetime] = datetime.now
    ):
        """
        Initialize the cache.
        
        Args:
            ttl_seconds: Entry lifetime (default: config.FREE_TIER_CACHE_TTL_SECONDS)
            clock: Time source, injectable so expiry can be tested without sleeping
        """
        if ttl_seconds is None:
            ttl_seconds = config.FREE_TIER_CACHE_TTL_SECONDS
        self.ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
    
    def get(self, service_name: str) -> Optional[CacheEntry]:
        """
        Return the live entry for a service, or None on a miss.
        
        Expired entries count as misses; they are evicted by the next put.
        """
        entry = self._entries.get(normalize_service_name(service_name))
        if entry is None or entry.is_expired(self._clock()):
            return None
        return entry
    
    def put(
        self,
        service_name: str,
        record: Optional[FreeTierRecord],
        outcome: ResolutionOutcome = ResolutionOutcome.FOUND,
        ttl_seconds: Optional[int] = None
    ) -> CacheEntry:
        """
        Store a lookup result, replacing any existing entry for the key.
        
        Args:
            service_name: Service name (normalized internally)
            record: Resolved record, or None to remember an absence
            outcome: How the lookup ended
            ttl_seconds: Lifetime of this entry (default: the cache TTL)
        
        Returns:
            The stored entry
        """
        now = self._clock()
        ttl = self.ttl if ttl_seconds is None else timedelta(seconds=ttl_seconds)
        entry = CacheEntry(record=record, cached_at=now, expires_at=now + ttl, outcome=outcome)
        with self._lock:
            # Copy-on-write so lock-free readers always see a complete mapping
            entries = {
                key: cached for key, cached in self._entries.items()
                if not cached.is_expired(now)
            }
            evicted = len(self._entries) - len(entries)
            entries[normalize_service_name(service_name)] = entry
            self._entries = entries
        if evicted:
            logger.debug(f"Evicted {evicted} expired free tier cache entries")
        return entry
    
    def invalidate(self, service_name: str) -> bool:
        """Remove one entry; returns True if something was removed."""
        with self._lock:
            key = normalize_service_name(service_name)
            if key not in self._entries:
                return False
            entries = dict(self._entries)
            del entries[key]
            self._entries = entries
            return True
    
    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._entries = {}
    
    def stats(self) -> Dict[str, Any]:
        """
        Get cache statistics (for debugging/monitoring).
        
        Returns:
            Dictionary with entry counts and the TTL in hours
        """
        with self._lock:
            entries = list(self._entries.values())
        now = self._clock()
        expired = sum(1 for entry in entries if entry.is_expired(now))
        return {
            "total_entries": len(entries),
            "valid_entries": len(entries) - expired,
            "expired_entries": expired,
            "ttl_hours": self.ttl.total_seconds() / 3600,
        }
    
    def __len__(self) -> int:
        return len(self._entries)
