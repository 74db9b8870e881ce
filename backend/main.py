"""
FastAPI application entry point.

Configures the application with routes, middleware, and settings.
"""
import traceback

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.api.routes import convert
from backend.api.routes import monitoring
from backend.api.routes.monitoring import APP_VERSION
from backend.config import get_settings
from backend.exceptions import CRSConverterError
from backend.middleware.logging import (
    CorrelationIdMiddleware,
    RequestLoggingMiddleware,
    configure_logging,
)
from backend.middleware.security import SecurityHeadersMiddleware

settings = get_settings()

configure_logging(settings.log_level)

logger = structlog.get_logger(__name__)

app = FastAPI(
    title="CRS XML Converter API",
    description="""
## Spreadsheet to OECD CRS XML

Converts a Common Reporting Standard workbook into a CRS v2 XML message
ready for submission to a tax authority.

### Workbook Layout

| Sheet | Content |
|-------|---------|
| Business Information | Label/value rows describing the reporting financial institution |
| Individual Accounts | Header row, then one row per individual account holder |
| Entity Accounts | Header row, then one row per entity account (with optional controlling person) |

Uploaded files and generated documents are never stored.
    """,
    version=APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "Conversion", "description": "Workbook to CRS XML conversion"},
        {"name": "Monitoring", "description": "Health checks"},
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Correlation-ID", "X-Individual-Count", "X-Entity-Count", "Content-Disposition"],
)

app.add_middleware(SecurityHeadersMiddleware)

# Order matters: correlation ID first
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)

app.include_router(convert.router, prefix="/api/v1", tags=["Conversion"])
app.include_router(monitoring.router, tags=["Monitoring"])


@app.exception_handler(CRSConverterError)
async def crs_converter_exception_handler(request: Request, exc: CRSConverterError):
    """Handle all CRS converter exceptions."""
    log = logger.error if exc.http_status >= 500 else logger.warning
    log(
        "crs_converter_error",
        error_code=exc.error_code,
        message=exc.message,
        details=exc.details,
        path=str(request.url.path),
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions with consistent format."""
    logger.error(
        "unhandled_error",
        error_type=type(exc).__name__,
        message=str(exc),
        path=str(request.url.path),
        traceback=traceback.format_exc(),
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": True,
            "error_code": "CRS-999",
            "message": "An unexpected error occurred. Please try again.",
            "details": {"error_type": type(exc).__name__} if settings.debug else {},
        },
    )


@app.on_event("startup")
async def startup_event() -> None:
    """Log application startup."""
    logger.info("Starting CRS XML Converter API", debug=settings.debug, version=APP_VERSION)
