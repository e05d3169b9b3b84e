"""
Documentation page fetching and text extraction.
Only pages on the configured trusted host are fetched.
"""
from html.parser import HTMLParser
from typing import List, Optional
from urllib.parse import urlparse
import logging
import re

import httpx

from cloudcost.core.config import config
from cloudcost.resilience.circuit_breaker import CircuitBreaker, get_circuit_breaker


logger = logging.getLogger(__name__)


class DocumentFetchError(Exception):
    """Raised when a documentation page cannot be turned into text."""
    pass


class UntrustedSourceError(DocumentFetchError):
    """Raised when a URL is not on the trusted documentation host."""
    pass


class NetworkError(DocumentFetchError):
    """Raised on transport failures, non-success status codes or an open circuit."""
    pass


class ParseError(DocumentFetchError):
    """Raised when the response is not markup we can read."""
    pass


# Elements whose content is never page content
SKIP_TAGS = frozenset({
    "script", "style", "nav", "header", "footer", "noscript",
    "svg", "path", "meta", "link", "title", "template", "iframe",
})

# Elements that end a line of text
BLOCK_TAGS = frozenset({
    "p", "div", "h1", "h2", "h3", "h4", "h5", "h6", "li", "tr", "br",
    "section", "article", "main", "table", "ul", "ol", "dt", "dd", "pre",
})

VOID_TAGS = frozenset({"meta", "link", "br", "img", "input", "hr", "source", "wbr"})

# Markers for the start of pricing content, lowest index wins
PRICING_SECTION_MARKERS = (
    "pricing",
    "free tier",
    "free usage",
    "at no charge",
    "no cost",
    "free of charge",
    "monthly free",
    "always free",
)

_INLINE_SPACE = re.compile(r"[^\S\n]+")
_BLANK_RUNS = re.compile(r"\n{3,}")


class TextExtractor(HTMLParser):
    """Flattens markup into text, dropping non-content elements."""
    
    def __init__(self):
        super().__init__(convert_charrefs=True)
        self._parts: List[str] = []
        self._skip_depth = 0
    
    def handle_starttag(self, tag, attrs):
        if tag == "body":
            # Unclosed skipped elements (e.g. a <noscript> in a head without end tags) end at the body
            self._skip_depth = 0
            return
        if tag in SKIP_TAGS:
            if tag not in VOID_TAGS:
                self._skip_depth += 1
            return
        if tag in BLOCK_TAGS and not self._skip_depth:
            self._parts.append("\n")
    
    def handle_startendtag(self, tag, attrs):
        # Self-closing tags (<br/>, <path/>) open nothing
        if tag in BLOCK_TAGS and not self._skip_depth:
            self._parts.append("\n")
    
    def handle_endtag(self, tag):
        if tag in SKIP_TAGS:
            if tag not in VOID_TAGS and self._skip_depth:
                self._skip_depth -= 1
            return
        if tag in BLOCK_TAGS and not self._skip_depth:
            self._parts.append("\n")
    
    def handle_data(self, data):
        if self._skip_depth:
            return
        text = data.strip()
        if text:
            self._parts.append(text)
            self._parts.append(" ")
    
    def text(self) -> str:
        return clean_text("".join(self._parts))


def clean_text(text: str) -> str:
    """Collapse whitespace inside lines and runs of blank lines."""
    text = _INLINE_SPACE.sub(" ", text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    text = _BLANK_RUNS.sub("\n\n", text)
    return text.strip()


def extract_text_from_html(html_content: str) -> str:
    """
    Extract readable text from an HTML document.
    
    Args:
        html_content: Raw markup
    
    Returns:
        Whitespace-normalized text blob
    
    Raises:
        ParseError: If the parser gives up on the markup
    """
    extractor = TextExtractor()
    try:
        extractor.feed(html_content)
        extractor.close()
    except (AssertionError, ValueError) as error:
        raise ParseError(f"Failed to parse markup: {error}") from error
    return extractor.text()


def extract_pricing_section(
    content: str,
    window: Optional[int] = None,
    lead: Optional[int] = None
) -> str:
    """
    Cut a window of text around the first pricing-related marker.
    
    Args:
        content: Full page text
        window: Maximum characters to return (default: config.PRICING_SECTION_CHARS)
        lead: Characters of context kept before the marker
            (default: config.PRICING_SECTION_LEAD_CHARS)
    
    Returns:
        The excerpt, or the full content if no marker is present
    """
    window = config.PRICING_SECTION_CHARS if window is None else window
    lead = config.PRICING_SECTION_LEAD_CHARS if lead is None else lead
    
    lowered = content.lower()
    positions = [lowered.find(marker) for marker in PRICING_SECTION_MARKERS]
    positions = [position for position in positions if position != -1]
    if not positions:
        return content
    
    start = max(0, min(positions) - lead)
    return content[start:start + window]


def is_trusted_url(url: str, trusted_host: Optional[str] = None) -> bool:
    """True for https URLs whose host is exactly the trusted host."""
    trusted_host = trusted_host or config.FREE_TIER_TRUSTED_HOST
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme == "https" and (parsed.hostname or "").lower() == trusted_host.lower()


class DocumentFetcher:
    """Fetches documentation pages from the trusted host as plain text."""
    
    def __init__(
        self,
        trusted_host: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        circuit_breaker: Optional[CircuitBreaker] = None
    ):
        """
        Initialize document fetcher.
        
        Args:
            trusted_host: The only host pages may come from
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests inject a MockTransport)
            circuit_breaker: Breaker for the documentation host
        """
        self.trusted_host = trusted_host or config.FREE_TIER_TRUSTED_HOST
        self.timeout = timeout or config.FREE_TIER_FETCH_TIMEOUT
        self.transport = transport
        self.circuit_breaker = circuit_breaker or get_circuit_breaker("freetier_docs")
        self.headers = {
            "User-Agent": config.HTTP_USER_AGENT,
            "Accept": "text/html,application/xhtml+xml",
            "Accept-Language": "en-US,en;q=0.9",
        }
    
    async def fetch_html(self, url: str) -> str:
        """
        Fetch raw markup from the trusted host.
        
        Raises:
            UntrustedSourceError: If the URL (or a redirect target) is off-host
            NetworkError: On transport failure, non-2xx status or open circuit
            ParseError: If the response is not HTML
        """
        if not is_trusted_url(url, self.trusted_host):
            raise UntrustedSourceError(f"URL must be from {self.trusted_host}: {url}")
        
        if not self.circuit_breaker.allow_request():
            raise NetworkError(
                f"Documentation host temporarily unavailable (circuit breaker open): {url}"
            )
        
        try:
            async with httpx.AsyncClient(
                transport=self.transport,
                headers=self.headers,
                timeout=self.timeout,
                follow_redirects=True
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.HTTPStatusError as error:
            status_code = error.response.status_code
            if status_code >= 500:
                self.circuit_breaker.record_failure()
            else:
                # A missing page (e.g. a guessed URL) is a miss, not an unhealthy host
                self.circuit_breaker.record_success()
            raise NetworkError(f"Page returned status {status_code}: {url}") from error
        except httpx.HTTPError as error:
            self.circuit_breaker.record_failure()
            raise NetworkError(f"Failed to fetch page {url}: {error}") from error
        except BaseException:
            # Cancelled or otherwise aborted: no verdict on the host
            self.circuit_breaker.release()
            raise
        
        # The host answered; whatever it sent is not a transport failure
        self.circuit_breaker.record_success()
        
        if not is_trusted_url(str(response.url), self.trusted_host):
            raise UntrustedSourceError(f"Redirected off trusted host: {response.url}")
        
        content_type = response.headers.get("content-type", "")
        if content_type and "html" not in content_type.lower():
            raise ParseError(f"Unexpected content type '{content_type}' for {url}")
        
        return response.text
    
    async def fetch_as_text(self, url: str) -> str:
        """
        Fetch a documentation page and return its text content.
        
        Args:
            url: Absolute https URL on the trusted host
        
        Returns:
            Normalized page text
        
        Raises:
            DocumentFetchError: See fetch_html
        """
        html_content = await self.fetch_html(url)
        text = extract_text_from_html(html_content)
        logger.debug(f"Fetched {len(text)} characters of text from {url}")
        return text
    
    def extract_pricing_section(self, content: str) -> str:
        return extract_pricing_section(content)
