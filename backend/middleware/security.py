"""
Security headers middleware.

Adds security headers to all responses. Converted documents carry personal
and tax data, so responses are never cached.
"""
import os
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds security headers to all responses.

    Headers added:
    - X-Content-Type-Options: nosniff
    - X-Frame-Options: DENY
    - Referrer-Policy
    - Cache-Control: no-store
    - Content-Security-Policy
    - Strict-Transport-Security (when ENABLE_HSTS=true)
    """

    ENABLE_HSTS = os.getenv("ENABLE_HSTS", "false").lower() == "true"

    # HSTS max-age in seconds (1 year)
    HSTS_MAX_AGE = 31536000

    CSP_POLICY = "; ".join([
        "default-src 'self'",
        "frame-ancestors 'none'",
        "base-uri 'self'",
        "form-action 'self'",
    ])

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cache-Control"] = "no-store"

        # Swagger UI pulls its assets from a CDN
        if not request.url.path.startswith(("/docs", "/redoc")):
            response.headers["Content-Security-Policy"] = self.CSP_POLICY

        if self.ENABLE_HSTS:
            response.headers["Strict-Transport-Security"] = (
                f"max-age={self.HSTS_MAX_AGE}; includeSubDomains"
            )

        return response
