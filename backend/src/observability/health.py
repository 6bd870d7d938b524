"""Health check utilities.

Provides health and readiness checks for the database and the catalog index.
"""

import logging
import time
from enum import Enum
from typing import Dict, Optional
from dataclasses import dataclass

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from matching.catalog_index import CatalogIndex

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    """Health check status enum."""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class ComponentHealth:
    """Health status for a single component."""
    status: HealthStatus
    message: Optional[str] = None
    latency_ms: Optional[float] = None


def check_database_health(db: Session) -> ComponentHealth:
    """Check database connectivity.

    Args:
        db: Database session

    Returns:
        ComponentHealth: Database health status
    """
    try:
        start = time.time()
        db.execute(text("SELECT 1"))
        latency_ms = (time.time() - start) * 1000

        return ComponentHealth(
            status=HealthStatus.HEALTHY,
            message="Database connection OK",
            latency_ms=round(latency_ms, 2)
        )
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        return ComponentHealth(
            status=HealthStatus.UNHEALTHY,
            message=f"Database error: {str(e)}"
        )


def check_catalog_health(index: Optional[CatalogIndex]) -> ComponentHealth:
    """Check that the catalog index holds a loaded snapshot.

    An empty catalog is reported as degraded: every item would end up
    unmatched.
    """
    if index is None or not index.is_loaded:
        return ComponentHealth(
            status=HealthStatus.UNHEALTHY,
            message="Catalog index not loaded"
        )

    snapshot = index.snapshot
    if len(snapshot) == 0:
        return ComponentHealth(
            status=HealthStatus.DEGRADED,
            message="Catalog index is empty"
        )
    return ComponentHealth(
        status=HealthStatus.HEALTHY,
        message=f"{len(snapshot)} active products, loaded {snapshot.loaded_at.isoformat()}"
    )


def get_overall_health(components: Dict[str, ComponentHealth]) -> HealthStatus:
    """Determine overall health from component statuses.

    Args:
        components: Dictionary of component health statuses

    Returns:
        HealthStatus: Overall system health
    """
    if all(c.status == HealthStatus.HEALTHY for c in components.values()):
        return HealthStatus.HEALTHY

    if any(c.status == HealthStatus.UNHEALTHY for c in components.values()):
        return HealthStatus.UNHEALTHY

    return HealthStatus.DEGRADED
