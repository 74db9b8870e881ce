"""
Logging middleware and utilities.

Sets up structlog, tags every log line with the request's correlation ID,
and keeps taxpayer data (TINs, account numbers, birth dates, generated XML)
out of the logs.
"""
import logging
import time
import uuid
from contextvars import ContextVar
from typing import Any, Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
import structlog

CORRELATION_HEADER = "X-Correlation-ID"

correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")

logger = structlog.get_logger(__name__)

# Matched as the whole key or as a "_" suffix ("holder_tin", "cp_birth_date")
SENSITIVE_FIELDS = {
    "tin", "tax_id", "account_number",
    "birth_date", "xml",
    "authorization", "api_key", "secret",
}

REDACTED = "[REDACTED]"

MAX_REDACT_DEPTH = 5

SLOW_REQUEST_MS = 5000


def get_correlation_id() -> str:
    """Correlation ID of the request being handled ("" outside a request)."""
    return correlation_id.get()


def is_sensitive_key(key: Any) -> bool:
    if not isinstance(key, str):
        return False
    name = key.lower()
    if name in SENSITIVE_FIELDS:
        return True
    return any(name.endswith("_" + field) for field in SENSITIVE_FIELDS)


def redact_sensitive_data(data: dict, depth: int = 0) -> dict:
    """
    Return a copy of ``data`` with sensitive values replaced by "[REDACTED]".

    Nested dicts, and dicts inside lists, are redacted down to
    MAX_REDACT_DEPTH levels.
    """
    if depth > MAX_REDACT_DEPTH or not isinstance(data, dict):
        return data

    redacted = {}
    for key, value in data.items():
        if is_sensitive_key(key):
            redacted[key] = REDACTED
        elif isinstance(value, dict):
            redacted[key] = redact_sensitive_data(value, depth + 1)
        elif isinstance(value, list):
            redacted[key] = [redact_sensitive_data(item, depth + 1) for item in value]
        else:
            redacted[key] = value
    return redacted


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Reuses the caller's X-Correlation-ID or issues a new one, and echoes it back."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        token = correlation_id.set(request_id)
        try:
            response = await call_next(request)
        finally:
            correlation_id.reset(token)

        response.headers[CORRELATION_HEADER] = request_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each request with its timing and upload size.

    Health check and documentation paths are skipped. Query strings and request
    bodies are never logged.
    """

    SKIP_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        request_info = {
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else None,
            "upload_bytes": _content_length(request),
        }

        logger.info("request_started", **request_info)

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                **request_info,
                error_type=type(e).__name__,
                duration_ms=_elapsed_ms(start_time),
            )
            raise

        duration_ms = _elapsed_ms(start_time)
        log = logger.warning if duration_ms > SLOW_REQUEST_MS else logger.info
        log(
            "request_completed",
            **request_info,
            status_code=response.status_code,
            duration_ms=duration_ms,
            slow=duration_ms > SLOW_REQUEST_MS,
        )
        return response


def _content_length(request: Request) -> Optional[int]:
    value = request.headers.get("content-length")
    return int(value) if value and value.isdigit() else None


def _elapsed_ms(start_time: float) -> float:
    return round((time.perf_counter() - start_time) * 1000, 2)


def add_correlation_id_processor(
    logger: Any, method_name: str, event_dict: dict
) -> dict:
    """Structlog processor that adds correlation ID to all log entries."""
    event_dict["correlation_id"] = get_correlation_id()
    return event_dict


def redact_sensitive_processor(
    logger: Any, method_name: str, event_dict: dict
) -> dict:
    """Structlog processor that redacts sensitive data from log entries."""
    return redact_sensitive_data(event_dict)


def configure_logging(log_level: str = "INFO") -> None:
    """Configure stdlib logging and structlog with JSON output."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", level=level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            add_correlation_id_processor,
            redact_sensitive_processor,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
