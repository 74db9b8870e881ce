"""
Middleware module initialization.
"""
from backend.middleware.logging import (
    CorrelationIdMiddleware,
    RequestLoggingMiddleware,
    get_correlation_id,
    redact_sensitive_data,
    add_correlation_id_processor,
    redact_sensitive_processor,
    configure_logging,
)
from backend.middleware.security import SecurityHeadersMiddleware

__all__ = [
    "CorrelationIdMiddleware",
    "RequestLoggingMiddleware",
    "get_correlation_id",
    "redact_sensitive_data",
    "add_correlation_id_processor",
    "redact_sensitive_processor",
    "configure_logging",
    "SecurityHeadersMiddleware",
]
