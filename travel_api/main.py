"""
FastAPI Travel Journal API application.

Main application entry point that configures:
- CORS middleware
- API routers
- Database lifecycle
- Logging system
- Exception handlers
- Prometheus metrics
- Static photo files
- Graceful shutdown
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from travel_api.config import get_settings
from travel_api.database import init_db, close_db
from travel_api.exceptions import setup_exception_handlers
from travel_api.routers import auth_router, travels_router, feed_router, photos_router
from travel_api.routers.health import router as health_router
from travel_api.utils.prometheus_metrics import exceptions_total, ready, setup_prometheus
from travel_api.middlewares.rate_limit_middleware import limiter, setup_rate_limit_exception_handler
from travel_api.middlewares.logging_middleware import LoggingMiddleware
from travel_api.middlewares.request_tracking_middleware import RequestTrackingMiddleware, get_active_tracker
from travel_api.utils.logger import setup_logging, get_request_id, log_error, log_info

settings = get_settings()
logger = logging.getLogger("app")

setup_logging()

SHUTDOWN_WAIT_SECONDS = 30.0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan.

    Startup creates tables and the uploads directory. Shutdown fails the
    probes first, waits for in-flight requests, then closes the database.
    """
    settings.uploads_path.mkdir(parents=True, exist_ok=True)
    await init_db()

    ready.set(1)
    log_info(
        "Application startup completed",
        event="lifecycle",
        version=settings.app_version,
        environment=settings.environment.value,
    )

    yield

    ready.set(0)
    log_info("Application shutdown initiated", event="lifecycle")

    tracker = get_active_tracker()
    if tracker is not None:
        await tracker.wait_for_requests(timeout=SHUTDOWN_WAIT_SECONDS)

    await close_db()
    log_info("Graceful shutdown completed", event="lifecycle")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
## Travel Journal API

Backend for a travel journal, featuring:

### Features
- **Accounts**: Registration, login, refresh-token rotation via HttpOnly cookie
- **Travels**: Travels made of ordered points with coordinates, notes and photos
- **Partial updates**: Points and photos reconciled against the stored travel
- **Feed**: Tagged travels are published to a paginated, searchable feed
- **Likes**: Like counters that never go below zero
    """,
    openapi_tags=[
        {"name": "Authentication", "description": "Registration, login and tokens"},
        {"name": "Travels", "description": "Travel creation, update and removal"},
        {"name": "Feed", "description": "Published travels, tags and likes"},
        {"name": "Photos", "description": "Photo removal"},
    ],
    lifespan=lifespan,
)

# Prometheus: FastAPI metrics + node info at /metrics
setup_prometheus(app)

# Rate limiting (register / login / refresh)
app.state.limiter = limiter
setup_rate_limit_exception_handler(app)

# Domain errors and request validation errors
setup_exception_handlers(app)

# Configure CORS (credentials are needed for the refresh cookie)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add structured logging middleware
app.add_middleware(LoggingMiddleware)
# In-flight request tracking for graceful shutdown
app.add_middleware(RequestTrackingMiddleware)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Unhandled exception handler with structured logging.

    Logs at ERROR with traceback and answers 500 with the request id so a
    client report can be matched to the log line.
    """
    exceptions_total.inc()
    rid = get_request_id()

    log_error(
        "Unhandled exception occurred",
        exc_info=True,
        error_type=type(exc).__name__,
        error_message=str(exc),
        error_code="INTERNAL_SERVER_ERROR",
        http_method=request.method,
        http_path=request.url.path,
        event="exception",
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "request_id": rid,
        },
    )


# Include routers
app.include_router(health_router)
app.include_router(auth_router, prefix="/api")
app.include_router(travels_router, prefix="/api")
app.include_router(feed_router, prefix="/api")
app.include_router(photos_router, prefix="/api")

# Stored photos, addressed by their relative "uploads/<name>" path
app.mount(
    f"/{settings.uploads_dirname}",
    StaticFiles(directory=settings.uploads_path, check_dir=False),
    name="uploads",
)


# Root endpoint
@app.get(
    "/",
    tags=["Root"],
    summary="API information",
)
async def root():
    """
    Root endpoint with API information.
    """
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }
