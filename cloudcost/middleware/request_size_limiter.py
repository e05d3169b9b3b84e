"""
Request size limiting middleware for FastAPI.
Protects the estimation endpoint from oversized rate payloads.
"""
from typing import Dict, Set, Optional
import json
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


# Size limit constants
MAX_REQUEST_BODY_SIZE = 262_144  # 256 KB in bytes
MAX_RATE_TIERS = 100

# Endpoints that require size limiting
PROTECTED_ENDPOINTS: Set[str] = {
    "/api/estimate",
}


def _too_large(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=413,
        content={
            "status": "error",
            "error": "request_too_large",
            "message": message,
        }
    )


class RequestSizeLimiterMiddleware(BaseHTTPMiddleware):
    """
    FastAPI middleware for request size limiting.
    
    Applies size limits only to configured endpoints.
    Other routes pass through untouched.
    """
    
    async def dispatch(self, request: Request, call_next: ASGIApp):
        """
        Process request and apply size limits if applicable.
        
        Args:
            request: FastAPI request object
            call_next: Next middleware or route handler
        
        Returns:
            Response object
        """
        path = request.url.path
        if path not in PROTECTED_ENDPOINTS:
            return await call_next(request)
        
        content_length = request.headers.get("Content-Length")
        if content_length and content_length.isdigit() and int(content_length) > MAX_REQUEST_BODY_SIZE:
            logger.info(
                f"Request body size exceeded for {path}: "
                f"{content_length} bytes (limit: {MAX_REQUEST_BODY_SIZE})"
            )
            return _too_large("Request body size exceeds allowed limit of 256 KB.")
        
        body_bytes = await request.body()
        if len(body_bytes) > MAX_REQUEST_BODY_SIZE:
            logger.info(
                f"Request body size exceeded for {path}: "
                f"{len(body_bytes)} bytes (limit: {MAX_REQUEST_BODY_SIZE})"
            )
            return _too_large("Request body size exceeds allowed limit of 256 KB.")
        
        if body_bytes:
            try:
                body_json = json.loads(body_bytes.decode("utf-8"))
            except (json.JSONDecodeError, UnicodeDecodeError):
                # Let FastAPI report malformed bodies
                body_json = None
            
            validation_error = self._validate_estimate_request(body_json)
            if validation_error:
                logger.info(f"Payload validation failed for {path}: {validation_error}")
                return _too_large(validation_error)
        
        # Starlette requires the body to be restored for downstream reads
        async def receive():
            return {"type": "http.request", "body": body_bytes}
        
        request._receive = receive
        return await call_next(request)
    
    def _validate_estimate_request(self, body_json: Optional[Dict]) -> Optional[str]:
        """
        Validate the rate payload of /api/estimate.
        
        Returns:
            Error message if validation fails, None if valid
        """
        if not isinstance(body_json, dict):
            return None
        rate = body_json.get("rate")
        if not isinstance(rate, dict):
            return None
        tiers = rate.get("tiers") or []
        
        if isinstance(tiers, list) and len(tiers) > MAX_RATE_TIERS:
            return f"Too many pricing tiers: {len(tiers)} (limit: {MAX_RATE_TIERS})"
        
        return None
