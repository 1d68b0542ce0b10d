"""
Structured request logging middleware.

Assigns a request id to every request and logs failed or slow requests.
"""
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from travel_api.utils.client_ip import get_client_ip
from travel_api.utils.logger import log_error, log_warning, set_request_id

# Slow response threshold (ms)
SLOW_REQUEST_THRESHOLD_MS = 3000

REQUEST_ID_HEADER = "X-Request-ID"

# Paths that are neither logged nor given a request id
EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc", "/metrics", "/favicon.ico"}


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Request id propagation and request logging.

    - 5xx responses and exceptions: ERROR
    - 4xx responses: WARNING
    - responses slower than 3s: WARNING
    - everything else: not logged
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in EXCLUDED_PATHS:
            return await call_next(request)

        rid = set_request_id(request.headers.get(REQUEST_ID_HEADER))
        context = {
            "http_method": request.method,
            "http_path": request.url.path,
            "client_ip": get_client_ip(request),
            "user_agent": request.headers.get("user-agent"),
            "event": "request",
        }

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            log_error(
                f"Request exception: {e}",
                exc_info=True,
                error_type=type(e).__name__,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
                **context,
            )
            raise

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        response.headers[REQUEST_ID_HEADER] = rid
        status_code = response.status_code

        if status_code >= 500:
            log_error(
                "Request error - Server error occurred",
                error_code=f"HTTP_{status_code}",
                http_status=status_code,
                duration_ms=duration_ms,
                **context,
            )
        elif status_code >= 400:
            log_warning(
                "Request failed - Client error",
                http_status=status_code,
                duration_ms=duration_ms,
                **context,
            )
        elif duration_ms >= SLOW_REQUEST_THRESHOLD_MS:
            log_warning(
                "Slow request detected",
                http_status=status_code,
                duration_ms=duration_ms,
                performance_issue=True,
                **context,
            )

        return response
