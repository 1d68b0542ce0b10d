"""
Rate limiting for the credential endpoints using slowapi.
Protects register, login and refresh against brute force.
"""
import logging
from typing import Callable

from fastapi import Request
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from travel_api.config import get_settings
from travel_api.utils.client_ip import get_client_ip
from travel_api.utils.prometheus_metrics import rate_limit_hits_total

logger = logging.getLogger("app.rate_limit")
settings = get_settings()


def get_client_identifier(request: Request) -> str:
    """Rate-limit key: client IP behind proxies, "unknown" when absent."""
    return get_client_ip(request) or "unknown"


# In-memory storage: limits are per process
limiter = Limiter(
    key_func=get_client_identifier,
    enabled=settings.rate_limit_enabled,
    storage_uri="memory://",
)


def setup_rate_limit_exception_handler(app) -> None:
    """Register the 429 handler (metrics + warning log)."""

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        endpoint = request.url.path
        rate_limit_hits_total.labels(endpoint=endpoint).inc()
        logger.warning(
            "Rate limit exceeded",
            extra={
                "event": "rate_limit",
                "client_id": get_client_identifier(request),
                "endpoint": endpoint,
                "limit": getattr(exc, "detail", "unknown"),
            },
        )
        return _rate_limit_exceeded_handler(request, exc)


def get_rate_limit_decorator(limit: str):
    """
    Build a rate-limit decorator.

    Args:
        limit: Limit string such as "20/minute"

    Returns:
        slowapi decorator, or a passthrough when rate limiting is disabled
    """
    if not settings.rate_limit_enabled:
        def noop_decorator(func: Callable) -> Callable:
            return func
        return noop_decorator

    return limiter.limit(limit)
