"""
Free tier resolution service.

Finds a service's pricing page, reads it and extracts the free tier
allowances. Lookups are cached and best-effort: any failure ends as
"no free tier" so cost estimation never depends on it.
"""
from typing import Optional, Dict, Any
import logging

from cloudcost.core.config import config
from cloudcost.domain.freetier_models import FreeTierLookup, FreeTierRecord, ResolutionOutcome
from cloudcost.freetier.cache import FreeTierCache
from cloudcost.freetier.classifier import classify_scope, classify_period, extract_conditions
from cloudcost.freetier.patterns import FreeTierExtractor
from cloudcost.freetier.scraper import DocumentFetcher, DocumentFetchError, is_trusted_url
from cloudcost.freetier.search import PricingPageLocator, SearchResult


logger = logging.getLogger(__name__)


def looks_like_pricing_page(result: SearchResult) -> bool:
    """Only pages whose URL or title mention pricing are worth fetching."""
    return "pricing" in result.url.lower() or "pricing" in result.title.lower()


class FreeTierResolver:
    """Resolves and caches free tier records per service."""
    
    def __init__(
        self,
        locator: Optional[PricingPageLocator] = None,
        fetcher: Optional[DocumentFetcher] = None,
        extractor: Optional[FreeTierExtractor] = None,
        cache: Optional[FreeTierCache] = None,
        search_limit: Optional[int] = None,
        error_ttl_seconds: Optional[int] = None
    ):
        """
        Initialize the resolver.
        
        Args:
            locator: Pricing page search (creates new if None)
            fetcher: Documentation fetcher (creates new if None)
            extractor: Allowance extractor (creates new if None)
            cache: Lookup cache (creates new if None)
            search_limit: Candidate pages per lookup
            error_ttl_seconds: Cache lifetime of failed lookups
        """
        self.locator = locator or PricingPageLocator()
        self.fetcher = fetcher or DocumentFetcher()
        self.extractor = extractor or FreeTierExtractor()
        self.cache = cache if cache is not None else FreeTierCache()
        self.search_limit = search_limit or config.FREE_TIER_SEARCH_LIMIT
        self.error_ttl_seconds = (
            config.FREE_TIER_ERROR_TTL_SECONDS if error_ttl_seconds is None else error_ttl_seconds
        )
    
    async def resolve(self, service_name: str) -> Optional[FreeTierRecord]:
        """
        Get the free tier record for a service.
        
        Args:
            service_name: Human-readable service name (e.g. "Cloud Run")
        
        Returns:
            FreeTierRecord, or None when no free tier could be determined
        """
        lookup = await self.lookup(service_name)
        return lookup.record
    
    async def lookup(self, service_name: str) -> FreeTierLookup:
        """
        Get the free tier record for a service with the outcome kind.
        
        Never raises for network, trust or parse problems.
        """
        if not service_name or not service_name.strip():
            return FreeTierLookup(service_name=service_name or "", outcome=ResolutionOutcome.NOT_FOUND)
        
        cached = self.cache.get(service_name)
        if cached is not None:
            logger.info(f"FreeTierResolver: Cache hit for {service_name}")
            return FreeTierLookup(
                service_name=service_name,
                outcome=cached.outcome,
                record=cached.record,
                from_cache=True,
            )
        
        logger.info(f"FreeTierResolver: Cache miss for {service_name}, fetching from documentation")
        lookup = await self._lookup_from_docs(service_name)
        
        if lookup.outcome is ResolutionOutcome.ERROR:
            logger.warning(f"FreeTierResolver: Lookup failed for {service_name}: {lookup.error}")
        elif lookup.outcome is ResolutionOutcome.NOT_FOUND:
            logger.info(f"FreeTierResolver: No free tier found for {service_name}")
        
        if lookup.outcome is ResolutionOutcome.ERROR:
            # Transient failures must not hide a free tier for a whole TTL
            self.cache.put(service_name, None, lookup.outcome, ttl_seconds=self.error_ttl_seconds)
        else:
            self.cache.put(service_name, lookup.record, lookup.outcome)
        return lookup
    
    async def _lookup_from_docs(self, service_name: str) -> FreeTierLookup:
        results = await self.locator.search(service_name, self.search_limit)
        if not results:
            return FreeTierLookup(
                service_name=service_name,
                outcome=ResolutionOutcome.NOT_FOUND,
                error=f"no pricing pages found for {service_name}",
            )
        
        last_error: Optional[DocumentFetchError] = None
        pages_read = 0
        
        for result in results:
            if not is_trusted_url(result.url, self.fetcher.trusted_host):
                continue
            if not looks_like_pricing_page(result):
                continue
            
            logger.info(f"FreeTierResolver: Fetching {result.url}")
            try:
                content = await self.fetcher.fetch_as_text(result.url)
            except DocumentFetchError as error:
                logger.info(f"FreeTierResolver: Skipping {result.url}: {error}")
                last_error = error
                continue
            pages_read += 1
            
            record = self._build_record(service_name, result.url, content)
            if record is not None:
                return FreeTierLookup(
                    service_name=service_name,
                    outcome=ResolutionOutcome.FOUND,
                    record=record,
                )
        
        if pages_read == 0 and last_error is not None:
            return FreeTierLookup(
                service_name=service_name,
                outcome=ResolutionOutcome.ERROR,
                error=str(last_error),
            )
        return FreeTierLookup(
            service_name=service_name,
            outcome=ResolutionOutcome.NOT_FOUND,
            error=f"no free tier information found for {service_name}",
        )
    
    def _build_record(self, service_name: str, url: str, content: str) -> Optional[FreeTierRecord]:
        """Extract from the pricing excerpt first, then from the whole page."""
        excerpt = self.fetcher.extract_pricing_section(content)
        items = self.extractor.extract(excerpt)
        if not items:
            items = self.extractor.extract(content)
        if not items:
            return None
        
        return FreeTierRecord(
            service_name=service_name,
            items=tuple(items),
            scope=classify_scope(content),
            period=classify_period(content),
            source_url=url,
            conditions=tuple(extract_conditions(content)),
        )
    
    def clear_cache(self) -> None:
        self.cache.clear()
    
    def clear_cache_entry(self, service_name: str) -> bool:
        return self.cache.invalidate(service_name)
    
    def cache_stats(self) -> Dict[str, Any]:
        return self.cache.stats()


# Global singleton instance
_free_tier_resolver: Optional[FreeTierResolver] = None


def get_free_tier_resolver() -> FreeTierResolver:
    """
    Get the global free tier resolver instance.
    
    Returns:
        FreeTierResolver instance
    """
    global _free_tier_resolver
    if _free_tier_resolver is None:
        _free_tier_resolver = FreeTierResolver()
    return _free_tier_resolver
