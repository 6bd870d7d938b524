"""Observability API endpoints.

Provides metrics, health checks, and readiness probes for monitoring.
"""

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from dependencies import get_db
from .health import (
    check_database_health,
    check_catalog_health,
    get_overall_health,
    HealthStatus,
)

router = APIRouter(tags=["Observability"])


@router.get(
    "/metrics",
    summary="Prometheus metrics endpoint",
    include_in_schema=False,
)
def metrics():
    """Expose Prometheus metrics in text exposition format."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


@router.get(
    "/health",
    summary="Health check endpoint",
    description="Returns health status of the database and the catalog index",
    status_code=200,
)
def health_check(request: Request, db: Session = Depends(get_db)):
    """Check health of all system components.

    Returns 200 OK unless a component is unhealthy, 503 otherwise.
    """
    components = {
        "database": check_database_health(db),
        "catalog": check_catalog_health(getattr(request.app.state, "catalog_index", None)),
    }
    overall_status = get_overall_health(components)

    response_data = {
        "status": overall_status.value,
        "components": {
            name: {
                "status": comp.status.value,
                "message": comp.message,
                "latency_ms": comp.latency_ms,
            }
            for name, comp in components.items()
        }
    }
    status_code = 200 if overall_status != HealthStatus.UNHEALTHY else 503

    return JSONResponse(
        content=response_data,
        status_code=status_code
    )


@router.get(
    "/ready",
    summary="Readiness check endpoint",
    status_code=200,
)
def readiness_check(request: Request):
    """Ready once the catalog index has been loaded.

    Matching cannot run before that, so the probe keeps traffic away.
    """
    catalog_health = check_catalog_health(getattr(request.app.state, "catalog_index", None))

    if catalog_health.status != HealthStatus.UNHEALTHY:
        return {
            "status": "ready",
            "message": "Application is ready to serve traffic"
        }
    return JSONResponse(
        content={
            "status": "not_ready",
            "message": catalog_health.message
        },
        status_code=503
    )
