"""
Main FastAPI application bootstrap.
Configures logging and includes routers.
"""
import logging

from fastapi import FastAPI

from cloudcost.core.config import config
from cloudcost.api.estimate import router as estimate_router
from cloudcost.middleware.request_size_limiter import RequestSizeLimiterMiddleware


logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Validate configuration on startup
try:
    config.validate()
except ValueError as error:
    raise RuntimeError(f"Configuration error: {error}") from error

logger.info(
    "Free tier lookup %s (trusted host=%s, cache ttl=%ss)",
    "enabled" if config.FREE_TIER_ENABLED else "disabled",
    config.FREE_TIER_TRUSTED_HOST,
    config.FREE_TIER_CACHE_TTL_SECONDS,
)


app = FastAPI(
    title="Cloud Cost Estimation",
    description="Tiered cost estimation with free tier deduction",
)

# Reject oversized rate payloads before they reach the estimator
app.add_middleware(RequestSizeLimiterMiddleware)

app.include_router(estimate_router)


@app.get("/health")
async def health() -> dict:
    """Liveness probe."""
    return {"status": "ok"}
