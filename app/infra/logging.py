"""Structured logging with correlation IDs and JSON formatting."""
import json
import logging
import uuid
from contextvars import ContextVar
from datetime import datetime
from typing import Optional, Dict, Any

# Context variables propagated from the calling context
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
actor_id_var: ContextVar[Optional[str]] = ContextVar("actor_id", default=None)


class CorrelationIdFilter(logging.Filter):
    """Logging filter that adds correlation and actor IDs to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Add context IDs to log record."""
        record.correlation_id = correlation_id_var.get() or "-"
        record.actor_id = actor_id_var.get() or "-"
        return True


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Formats log records as JSON for better machine parsing and log aggregation.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if getattr(record, "correlation_id", "-") != "-":
            log_data["correlation_id"] = record.correlation_id
        if getattr(record, "actor_id", "-") != "-":
            log_data["actor_id"] = record.actor_id

        # Identifiers passed through ``extra=`` by the engines
        for key in ("instance_id", "request_id", "definition_id", "status", "user_id"):
            value = getattr(record, key, None)
            if value is not None:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(use_json: bool = False):
    """Configure structured logging with correlation IDs.

    Args:
        use_json: If True, use JSON formatter for machine parsing.
                  If False, use human-readable formatter.
    """
    correlation_filter = CorrelationIdFilter()

    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        handler.addFilter(correlation_filter)

    if use_json:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - "
            "[correlation_id=%(correlation_id)s] "
            "[actor_id=%(actor_id)s] - "
            "%(message)s"
        )

    for handler in root_logger.handlers:
        handler.setFormatter(formatter)


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Set correlation ID for current context."""
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())

    correlation_id_var.set(correlation_id)
    return correlation_id


def set_actor_id(actor_id: Optional[str]) -> None:
    """Set acting user ID for current context."""
    actor_id_var.set(actor_id)


def get_correlation_id() -> Optional[str]:
    """Get current correlation ID."""
    return correlation_id_var.get()


def get_actor_id() -> Optional[str]:
    """Get current acting user ID."""
    return actor_id_var.get()


# Middleware for FastAPI to add correlation IDs
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Middleware to propagate correlation and actor IDs from request headers."""

    async def dispatch(self, request: Request, call_next):
        """Process request with correlation ID."""
        correlation_id = request.headers.get("X-Correlation-ID")
        if not correlation_id:
            correlation_id = str(uuid.uuid4())

        set_correlation_id(correlation_id)
        set_actor_id(request.headers.get("X-User-ID"))

        response: Response = await call_next(request)

        response.headers["X-Correlation-ID"] = correlation_id

        return response
