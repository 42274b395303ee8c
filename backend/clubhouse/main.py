# backend/clubhouse/main.py
"""
FastAPI application for the club booking service.

Mounts the v1 routers under /api/v1, exposes Prometheus metrics at
/metrics and a liveness check at /health.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
from typing import Any, AsyncGenerator, Dict

from fastapi import APIRouter, FastAPI, Request, Response
from fastapi.responses import JSONResponse

from .core.config import settings
from .core.exceptions import DomainException
from .core.logging import configure_logging
from .database import init_db
from .middleware.prometheus_middleware import PrometheusMiddleware
from .monitoring.prometheus_metrics import prometheus_metrics
from .routes.v1 import (
    admin as admin_v1,
    bookings as bookings_v1,
    members as members_v1,
    quotas as quotas_v1,
    schedule as schedule_v1,
)

API_TITLE = "Clubhouse Booking API"
API_VERSION = "1.0.0"

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown without deprecated events."""
    configure_logging()
    logger.info("%s starting up (environment=%s)", API_TITLE, settings.environment)
    init_db()
    yield
    logger.info("%s shutting down", API_TITLE)


app = FastAPI(
    title=API_TITLE,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
)

app.add_middleware(PrometheusMiddleware)


@app.exception_handler(DomainException)
async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    """Render domain errors that escaped a route as the standard error envelope."""
    http_exc = exc.to_http_exception()
    if http_exc.status_code >= 500:
        logger.error("Unhandled domain error on %s: %s", request.url.path, exc.message)
    return JSONResponse(
        status_code=http_exc.status_code,
        content={"detail": http_exc.detail},
        headers=getattr(http_exc, "headers", None),
    )


# Create API v1 router
api_v1 = APIRouter(prefix="/api/v1")

# Static prefixes; /bookings/roster is declared before /bookings/{booking_id}
api_v1.include_router(schedule_v1.router, prefix="/schedule")
api_v1.include_router(bookings_v1.router, prefix="/bookings")
api_v1.include_router(quotas_v1.router, prefix="/quotas")
api_v1.include_router(members_v1.router, prefix="/members")
api_v1.include_router(admin_v1.router, prefix="/admin")

app.include_router(api_v1)


@app.get("/health")
def health() -> Dict[str, Any]:
    return {
        "status": "healthy",
        "service": API_TITLE,
        "version": API_VERSION,
        "environment": settings.environment,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    """Prometheus exposition; public like any scrape target."""
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
    )
