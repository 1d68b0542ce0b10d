"""
In-flight request tracking.

Lets shutdown wait for running requests before the database is closed.
"""
import asyncio
import logging
import time
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from travel_api.utils.prometheus_metrics import in_flight_requests

logger = logging.getLogger("app.request_tracking")

# Probes must keep answering during shutdown
EXCLUDED_PATHS = {"/health", "/health/liveness", "/health/readiness"}

_active_tracker: Optional["RequestTrackingMiddleware"] = None


def get_active_tracker() -> Optional["RequestTrackingMiddleware"]:
    """Tracker of the running application, None before the first request."""
    return _active_tracker


class RequestTrackingMiddleware(BaseHTTPMiddleware):
    """Counts in-flight requests and mirrors the count to a gauge."""

    def __init__(self, app):
        super().__init__(app)
        self._lock = asyncio.Lock()
        self._request_count = 0

        global _active_tracker
        _active_tracker = self

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in EXCLUDED_PATHS:
            return await call_next(request)

        async with self._lock:
            self._request_count += 1
            in_flight_requests.set(self._request_count)

        try:
            return await call_next(request)
        finally:
            async with self._lock:
                self._request_count = max(0, self._request_count - 1)
                in_flight_requests.set(self._request_count)

    async def wait_for_requests(self, timeout: float = 30.0) -> bool:
        """
        Wait until no request is in flight.

        Args:
            timeout: Maximum wait in seconds

        Returns:
            True when drained, False on timeout
        """
        start_time = time.monotonic()
        while True:
            async with self._lock:
                count = self._request_count

            if count == 0:
                logger.info("All in-flight requests completed", extra={"event": "shutdown"})
                return True

            if time.monotonic() - start_time >= timeout:
                logger.warning(
                    f"Timeout waiting for requests (remaining: {count})",
                    extra={"event": "shutdown", "remaining_requests": count, "timeout": timeout},
                )
                return False

            await asyncio.sleep(0.5)
