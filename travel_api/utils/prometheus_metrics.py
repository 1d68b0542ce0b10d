"""
Prometheus metrics for stability and business events.

- FastAPI: request count, latency (Instrumentator)
- Stability: exceptions_total, db_errors_total, in_flight_requests
- HA: ready gauge (1=up, 0=shutting down)
- Auth: registrations, logins, refreshes, token validations, login latency
- Travels: travel operations, photo uploads, likes
"""
import logging
import socket

from prometheus_client import REGISTRY, Counter, Gauge, Histogram
from prometheus_fastapi_instrumentator import Instrumentator

from travel_api.config import get_settings

logger = logging.getLogger(__name__)

# --- Stability ---
exceptions_total = Counter(
    "travel_api_exceptions_total",
    "Total unhandled exceptions",
    registry=REGISTRY,
)
db_errors_total = Counter(
    "travel_api_db_errors_total",
    "Total database session/transaction errors",
    registry=REGISTRY,
)

# --- HA ---
ready = Gauge(
    "travel_api_ready",
    "Application ready (1=up, 0=shutting down)",
    registry=REGISTRY,
)
in_flight_requests = Gauge(
    "travel_api_in_flight_requests",
    "Number of requests currently being processed",
    registry=REGISTRY,
)

# --- Rate Limiting ---
rate_limit_hits_total = Counter(
    "travel_api_rate_limit_hits_total",
    "Total number of rate limit hits (requests blocked)",
    ["endpoint"],
    registry=REGISTRY,
)

# --- Auth ---
login_duration_seconds = Histogram(
    "travel_api_login_duration_seconds",
    "Login request duration in seconds",
    ["result"],  # success | failure
    buckets=(0.05, 0.1, 0.2, 0.5, 1.0, 2.0, 3.0, 5.0),
    registry=REGISTRY,
)
user_registration_total = Counter(
    "travel_api_user_registration_total",
    "Total user registration attempts",
    ["result"],  # success | failure
    registry=REGISTRY,
)
user_login_total = Counter(
    "travel_api_user_login_total",
    "Total login attempts",
    ["result"],  # success | not_found | bad_password
    registry=REGISTRY,
)
token_refresh_total = Counter(
    "travel_api_token_refresh_total",
    "Total refresh token rotations",
    ["result"],  # success | missing | unknown | expired
    registry=REGISTRY,
)
jwt_token_validation_total = Counter(
    "travel_api_jwt_token_validation_total",
    "Total access token validation attempts",
    ["result"],  # success | failure
    registry=REGISTRY,
)

# --- Travels ---
travel_operations_total = Counter(
    "travel_api_travel_operations_total",
    "Total travel operations",
    ["operation", "result"],  # operation: create|update|share|delete, result: success|failure
    registry=REGISTRY,
)
photo_upload_total = Counter(
    "travel_api_photo_upload_total",
    "Total photos written to the uploads directory",
    ["result"],  # success | invalid | too_large
    registry=REGISTRY,
)
photo_upload_file_size_bytes = Histogram(
    "travel_api_photo_upload_file_size_bytes",
    "Decoded photo size in bytes",
    buckets=(16_384, 131_072, 524_288, 1_048_576, 2_097_152, 5_242_880),
    registry=REGISTRY,
)
photo_delete_total = Counter(
    "travel_api_photo_delete_total",
    "Total photo file removals",
    ["result"],  # success | failure
    registry=REGISTRY,
)
likes_total = Counter(
    "travel_api_likes_total",
    "Total like/unlike requests",
    ["action"],  # like | unlike
    registry=REGISTRY,
)


def _node_identity() -> str:
    """Node label: INSTANCE_IP or hostname."""
    settings = get_settings()
    return (settings.instance_ip or "").strip() or socket.gethostname()


def setup_prometheus(app) -> None:
    """
    Register Prometheus instrumentation and expose /metrics.

    1. app_info gauge with node/app/version/environment labels.
    2. Instrumentator for per-route request metrics.
    """
    settings = get_settings()

    app_info = Gauge(
        "travel_api_app_info",
        "Application and node identity (labels only, value is 1)",
        ["node", "app", "version", "environment"],
        registry=REGISTRY,
    )
    app_info.labels(
        node=_node_identity(),
        app=settings.app_name,
        version=settings.app_version,
        environment=settings.environment.value,
    ).set(1)

    Instrumentator(should_group_status_codes=False).instrument(app).expose(
        app, endpoint="/metrics"
    )
