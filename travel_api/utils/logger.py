"""
Logging setup for the Travel Journal API.

Levels:
- INFO: business events (registration, login, travel created, travel shared)
- WARNING: client errors (bad credentials, expired refresh token, 4xx)
- ERROR: system errors, persistence failures, unhandled exceptions
- Personal data (email, username, tokens) is kept out of structured context

Outputs:
- stdout: human readable text
- <log_dir>/app.log, <log_dir>/error.log: NDJSON, only when LOG_DIR is set
"""
import contextvars
import json
import logging
import socket
import sys
import uuid
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

from travel_api.config import get_settings

logger = logging.getLogger("app")

# Fields never copied into the JSON context
_SENSITIVE_FIELDS = frozenset({"email", "username", "password", "token", "refresh_token", "secret"})

request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_id", default=None
)


def _get_instance_ip() -> str:
    """INSTANCE_IP if configured, otherwise the hostname."""
    ip = (get_settings().instance_ip or "").strip()
    if ip:
        return ip
    return socket.gethostname()


INSTANCE_IP = _get_instance_ip()


def generate_request_id() -> str:
    """Short, readable request id."""
    return uuid.uuid4().hex[:12]


def get_request_id() -> Optional[str]:
    """Current request id."""
    return request_id_var.get()


def set_request_id(request_id: Optional[str] = None) -> str:
    """Set the request id, generating one when None."""
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


class FlushingRotatingFileHandler(RotatingFileHandler):
    """Flush after every record so log shippers see the newest line."""

    def emit(self, record: logging.LogRecord) -> None:
        super().emit(record)
        self.flush()


_STANDARD_ATTRS = frozenset(
    {
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "pathname", "process", "processName", "relativeCreated",
        "stack_info", "exc_info", "exc_text", "thread", "threadName",
        "message", "asctime", "taskName",
    }
)


class JsonLinesFormatter(logging.Formatter):
    """
    NDJSON formatter.

    Fields:
    - ts: UTC timestamp
    - level: log level
    - instance: instance IP
    - rid: request id
    - event: event type (lifecycle, request, auth, travel, photo, db)
    - msg: message
    - ctx: extra context (personal data removed)
    - exc: exception text
    """

    def format(self, record: logging.LogRecord) -> str:
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        msecs = int(getattr(record, "msecs", 0) or 0) % 1000
        payload = {
            "ts": dt.strftime("%Y-%m-%dT%H:%M:%S") + f".{msecs:03d}Z",
            "level": record.levelname,
            "instance": INSTANCE_IP,
        }

        rid = get_request_id()
        if rid:
            payload["rid"] = rid

        if getattr(record, "event", None):
            payload["event"] = record.event

        payload["msg"] = record.getMessage()

        _skip_in_ctx = _STANDARD_ATTRS | {"event", "instance"}
        extra_ctx = {
            k: v for k, v in record.__dict__.items()
            if k not in _skip_in_ctx
            and k not in _SENSITIVE_FIELDS
            and v is not None
        }
        if extra_ctx:
            payload["ctx"] = extra_ctx

        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging() -> None:
    """
    Configure root logging.

    - stdout: text format, INFO and above
    - stderr: ERROR and above
    - LOG_DIR/app.log and LOG_DIR/error.log: NDJSON when LOG_DIR is set
    - noisy third-party loggers raised to WARNING
    """
    settings = get_settings()
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)
    root_logger.handlers.clear()

    text_formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(logging.INFO)
    stdout_handler.setFormatter(text_formatter)
    root_logger.addHandler(stdout_handler)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.ERROR)
    stderr_handler.setFormatter(text_formatter)
    root_logger.addHandler(stderr_handler)

    if settings.log_dir:
        json_formatter = JsonLinesFormatter()
        log_dir = Path(settings.log_dir)
        try:
            log_dir.mkdir(parents=True, exist_ok=True)

            file_handler = FlushingRotatingFileHandler(
                log_dir / "app.log",
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
                encoding="utf-8",
            )
            file_handler.setLevel(logging.INFO)
            file_handler.setFormatter(json_formatter)
            root_logger.addHandler(file_handler)

            error_handler = FlushingRotatingFileHandler(
                log_dir / "error.log",
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
                encoding="utf-8",
            )
            error_handler.setLevel(logging.ERROR)
            error_handler.setFormatter(json_formatter)
            root_logger.addHandler(error_handler)
        except OSError as e:
            root_logger.warning("File logging disabled: %s", e)

    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)

    # Slow queries are reported separately through app.db
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)


def _log(level: int, message: str, exc_info: bool = False, **extra: Any) -> None:
    logger.log(level, message, exc_info=exc_info, extra=extra)


def log_info(message: str, **extra: Any) -> None:
    """Log an info message with structured context."""
    _log(logging.INFO, message, **extra)


def log_warning(message: str, **extra: Any) -> None:
    """Log a warning message with structured context."""
    _log(logging.WARNING, message, **extra)


def log_error(message: str, exc_info: bool = False, **extra: Any) -> None:
    """Log an error message with structured context."""
    _log(logging.ERROR, message, exc_info=exc_info, **extra)
