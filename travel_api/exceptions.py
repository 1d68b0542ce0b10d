"""
Domain errors raised by services and their HTTP rendering.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger("app.errors")


class TravelApiError(Exception):
    """Base class for errors that map to a client-visible status."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(TravelApiError):
    """Missing user, travel, point or photo."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(TravelApiError):
    """Duplicate registration email or bad login credentials."""

    status_code = status.HTTP_409_CONFLICT


class BadRequestError(TravelApiError):
    """Malformed payload: empty points, bad time, oversized photo, missing cookie."""

    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(TravelApiError):
    """Invalid, expired or unmatched token."""

    status_code = status.HTTP_401_UNAUTHORIZED


def setup_exception_handlers(app: FastAPI) -> None:
    """Register handlers for domain errors and request validation errors."""

    @app.exception_handler(TravelApiError)
    async def travel_api_error_handler(request: Request, exc: TravelApiError):
        headers = None
        if isinstance(exc, UnauthorizedError):
            headers = {"WWW-Authenticate": "Bearer"}
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.info(
            "Request validation failed",
            extra={"event": "request", "http_path": request.url.path},
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": jsonable_encoder(exc.errors())},
        )
