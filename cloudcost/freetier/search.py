"""
Pricing page discovery.

Asks the DuckDuckGo Instant Answer API for pricing pages on the trusted
host. The API is limited and frequently returns nothing useful, so any
failure or empty answer falls back to pricing URLs built from a static
alias table.
"""
from typing import Dict, Any, List, Optional, Tuple
from dataclasses import dataclass
import logging

import httpx

from cloudcost.core.config import config
from cloudcost.freetier.scraper import is_trusted_url
from cloudcost.resilience.circuit_breaker import CircuitBreaker, get_circuit_breaker


logger = logging.getLogger(__name__)


# Known service slugs -> pricing paths relative to the documentation base URL
PRICING_PATHS: Dict[str, Tuple[str, ...]] = {
    "cloud-run": ("run/pricing", "run/pricing/"),
    "compute-engine": ("compute/all-pricing", "compute/pricing"),
    "cloud-storage": ("storage/pricing", "storage-pricing"),
    "bigquery": ("bigquery/pricing", "bigquery/pricing/"),
    "cloud-sql": ("sql/pricing", "sql/pricing/"),
    "gke": ("kubernetes-engine/pricing", "kubernetes-engine/pricing/"),
    "kubernetes-engine": ("kubernetes-engine/pricing", "kubernetes-engine/pricing/"),
    "google-kubernetes-engine": ("kubernetes-engine/pricing", "kubernetes-engine/pricing/"),
    "cloud-functions": ("functions/pricing", "functions/pricing/"),
    "pub/sub": ("pubsub/pricing", "pubsub/pricing/"),
    "pubsub": ("pubsub/pricing", "pubsub/pricing/"),
    "cloud-pub/sub": ("pubsub/pricing", "pubsub/pricing/"),
    "firestore": ("firestore/pricing", "firestore/pricing/"),
    "cloud-firestore": ("firestore/pricing", "firestore/pricing/"),
    "spanner": ("spanner/pricing", "spanner/pricing/"),
    "cloud-spanner": ("spanner/pricing", "spanner/pricing/"),
    "memorystore": ("memorystore/pricing", "memorystore/pricing/"),
    "cloud-cdn": ("cdn/pricing", "cdn/pricing/"),
    "cloud-armor": ("armor/pricing", "armor/pricing/"),
    "artifact-registry": ("artifact-registry/pricing", "artifact-registry/pricing/"),
    "secret-manager": ("secret-manager/pricing", "secret-manager/pricing/"),
    "app-engine": ("appengine/pricing", "appengine/pricing/"),
    "cloud-load-balancing": ("load-balancing/pricing", "load-balancing/pricing/"),
    "vertex-ai": ("vertex-ai/pricing", "vertex-ai/pricing/"),
}

TITLE_MAX_CHARS = 100


@dataclass(frozen=True)
class SearchResult:
    """A candidate documentation page."""
    url: str
    title: str
    snippet: str = ""


def service_slug(service_name: str) -> str:
    """Lowercase, trim, and hyphenate a service name for URL building."""
    slug = service_name.strip().lower()
    slug = "-".join(slug.replace("_", " ").split())
    if slug.startswith("google-cloud-"):
        slug = slug[len("google-cloud-"):]
    return slug


def generate_pricing_urls(service_name: str, base_url: Optional[str] = None) -> List[str]:
    """
    Build likely pricing page URLs for a service.
    
    Args:
        service_name: Human-readable service name (e.g. "Cloud Run")
        base_url: Documentation root (default: config.FREE_TIER_BASE_URL)
    
    Returns:
        Candidate URLs, known aliases first, generic guesses otherwise
    """
    base_url = base_url or config.FREE_TIER_BASE_URL
    if not base_url.endswith("/"):
        base_url += "/"
    
    slug = service_slug(service_name)
    if not slug:
        return []
    
    paths = PRICING_PATHS.get(slug)
    if paths is None:
        paths = (
            f"{slug}/pricing",
            f"{slug}-pricing",
            f"{slug.replace('-', '/')}/pricing",
        )
    
    urls: List[str] = []
    for path in paths:
        url = base_url + path
        if url not in urls:
            urls.append(url)
    return urls


def extract_title(text: str) -> str:
    """Titles come as "Title - Description"; fall back to a truncated text."""
    index = text.find(" - ")
    if 0 < index < TITLE_MAX_CHARS:
        return text[:index]
    if len(text) > TITLE_MAX_CHARS:
        return text[:TITLE_MAX_CHARS] + "..."
    return text


class PricingPageLocator:
    """Finds candidate pricing pages for a service on the trusted host."""
    
    def __init__(
        self,
        search_url: Optional[str] = None,
        trusted_host: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        circuit_breaker: Optional[CircuitBreaker] = None
    ):
        """
        Initialize the locator.
        
        Args:
            search_url: Instant Answer API endpoint
            trusted_host: Host results must belong to
            timeout: Search timeout in seconds
            transport: Optional httpx transport (tests inject a MockTransport)
            circuit_breaker: Breaker for the search API
        """
        self.search_url = search_url or config.FREE_TIER_SEARCH_URL
        self.trusted_host = trusted_host or config.FREE_TIER_TRUSTED_HOST
        self.timeout = timeout or config.FREE_TIER_SEARCH_TIMEOUT
        self.transport = transport
        self.circuit_breaker = circuit_breaker or get_circuit_breaker("freetier_search")
    
    def build_query(self, service_name: str) -> str:
        return f"site:{self.trusted_host} {service_name} pricing"
    
    async def search(self, service_name: str, limit: Optional[int] = None) -> List[SearchResult]:
        """
        Search for pricing pages; never raises.
        
        Args:
            service_name: Human-readable service name
            limit: Maximum number of results (default: config.FREE_TIER_SEARCH_LIMIT)
        
        Returns:
            Live search results, or the deterministic fallback list
        """
        limit = limit or config.FREE_TIER_SEARCH_LIMIT
        
        if not self.circuit_breaker.allow_request():
            logger.info(f"Search circuit open, using fallback URLs for {service_name}")
            return self.fallback_results(service_name, limit)
        
        try:
            data = await self._query(self.build_query(service_name))
        except (httpx.HTTPError, ValueError) as error:
            self.circuit_breaker.record_failure()
            logger.info(f"Pricing search failed for {service_name} ({error}), using fallback URLs")
            return self.fallback_results(service_name, limit)
        except BaseException:
            self.circuit_breaker.release()
            raise
        
        self.circuit_breaker.record_success()
        results = self._parse_results(data, limit)
        if not results:
            logger.info(f"Pricing search returned no pages for {service_name}, using fallback URLs")
            return self.fallback_results(service_name, limit)
        return results
    
    async def locate(self, service_name: str, limit: Optional[int] = None) -> List[str]:
        """Candidate pricing page URLs for a service, in preference order."""
        return [result.url for result in await self.search(service_name, limit)]
    
    async def _query(self, query: str) -> Dict[str, Any]:
        params = {
            "q": query,
            "format": "json",
            "no_redirect": "1",
            "skip_disambig": "1",
        }
        async with httpx.AsyncClient(
            transport=self.transport,
            headers={"User-Agent": config.HTTP_USER_AGENT},
            timeout=self.timeout
        ) as client:
            response = await client.get(self.search_url, params=params)
            response.raise_for_status()
            data = response.json()
        if not isinstance(data, dict):
            raise ValueError("Unexpected search response shape")
        return data
    
    def _is_trusted(self, url: str) -> bool:
        return bool(url) and is_trusted_url(url, self.trusted_host)
    
    def _parse_results(self, data: Dict[str, Any], limit: int) -> List[SearchResult]:
        results: List[SearchResult] = []
        
        abstract_url = data.get("AbstractURL") or ""
        if self._is_trusted(abstract_url):
            results.append(SearchResult(
                url=abstract_url,
                title="Google Cloud Documentation",
                snippet=data.get("AbstractText") or "",
            ))
        
        topics: List[Dict[str, Any]] = []
        for topic in list(data.get("Results") or []) + list(data.get("RelatedTopics") or []):
            # Disambiguation groups nest their entries under "Topics"
            if isinstance(topic, dict) and "Topics" in topic:
                topics.extend(topic.get("Topics") or [])
            elif isinstance(topic, dict):
                topics.append(topic)
        
        for topic in topics:
            if len(results) >= limit:
                break
            url = topic.get("FirstURL") or ""
            if not self._is_trusted(url) or any(result.url == url for result in results):
                continue
            text = topic.get("Text") or ""
            results.append(SearchResult(url=url, title=extract_title(text), snippet=text))
        
        return results[:limit]
    
    def fallback_results(self, service_name: str, limit: int) -> List[SearchResult]:
        """Deterministic candidates from the alias table or generic URL guesses."""
        name = service_name.strip()
        urls = generate_pricing_urls(name)
        return [
            SearchResult(
                url=url,
                title=f"{name} Pricing - Google Cloud",
                snippet=f"Pricing information for {name}",
            )
            for url in urls[:limit]
        ]
