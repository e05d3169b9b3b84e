"""
Configuration module for loading environment variables.
All tunables for pricing and free-tier discovery are read here.
"""
import os
from urllib.parse import urlparse


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Application configuration loaded from environment variables."""
    
    # Free tier documentation source (single trusted host)
    FREE_TIER_TRUSTED_HOST: str = os.getenv("FREE_TIER_TRUSTED_HOST", "cloud.google.com")
    FREE_TIER_BASE_URL: str = os.getenv("FREE_TIER_BASE_URL", "https://cloud.google.com/")
    FREE_TIER_SEARCH_URL: str = os.getenv("FREE_TIER_SEARCH_URL", "https://api.duckduckgo.com/")
    
    # Network timeouts (seconds)
    FREE_TIER_FETCH_TIMEOUT: float = float(os.getenv("FREE_TIER_FETCH_TIMEOUT", "15"))
    FREE_TIER_SEARCH_TIMEOUT: float = float(os.getenv("FREE_TIER_SEARCH_TIMEOUT", "10"))
    
    # Free tier lookup behaviour
    FREE_TIER_ENABLED: bool = _env_bool("FREE_TIER_ENABLED", "true")
    FREE_TIER_CACHE_TTL_SECONDS: int = int(os.getenv("FREE_TIER_CACHE_TTL_SECONDS", "86400"))  # 24 hours
    # Failed lookups (network errors, open circuit) are retried sooner
    FREE_TIER_ERROR_TTL_SECONDS: int = int(os.getenv("FREE_TIER_ERROR_TTL_SECONDS", "300"))  # 5 minutes
    FREE_TIER_SEARCH_LIMIT: int = int(os.getenv("FREE_TIER_SEARCH_LIMIT", "3"))
    
    # Pricing excerpt window
    PRICING_SECTION_CHARS: int = int(os.getenv("PRICING_SECTION_CHARS", "5000"))
    PRICING_SECTION_LEAD_CHARS: int = int(os.getenv("PRICING_SECTION_LEAD_CHARS", "200"))
    
    HTTP_USER_AGENT: str = os.getenv(
        "HTTP_USER_AGENT",
        "Mozilla/5.0 (compatible; CloudCost-Estimator/1.0)"
    )
    
    DEFAULT_CURRENCY: str = os.getenv("DEFAULT_CURRENCY", "USD")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    
    @classmethod
    def validate(cls) -> None:
        """
        Validates that configuration values are usable.
        
        Raises:
            ValueError: If any configuration value is missing or invalid.
        """
        if not cls.FREE_TIER_TRUSTED_HOST:
            raise ValueError("FREE_TIER_TRUSTED_HOST is required")
        
        base = urlparse(cls.FREE_TIER_BASE_URL)
        if base.scheme != "https" or base.hostname != cls.FREE_TIER_TRUSTED_HOST:
            raise ValueError(
                f"FREE_TIER_BASE_URL must be an https URL on {cls.FREE_TIER_TRUSTED_HOST} "
                f"(got: {cls.FREE_TIER_BASE_URL})"
            )
        
        if cls.FREE_TIER_FETCH_TIMEOUT <= 0 or cls.FREE_TIER_SEARCH_TIMEOUT <= 0:
            raise ValueError("Free tier network timeouts must be positive")
        if cls.FREE_TIER_CACHE_TTL_SECONDS <= 0 or cls.FREE_TIER_ERROR_TTL_SECONDS <= 0:
            raise ValueError("Free tier cache TTLs must be positive")
        if cls.FREE_TIER_SEARCH_LIMIT <= 0:
            raise ValueError("FREE_TIER_SEARCH_LIMIT must be positive")
        if cls.PRICING_SECTION_CHARS <= 0 or cls.PRICING_SECTION_LEAD_CHARS < 0:
            raise ValueError("Pricing section window must be positive")


config = Config()
