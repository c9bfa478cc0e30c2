"""Health check utilities.

Checks the two backing services: the Postgres database and the Supabase
Storage bucket.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from domain.documents.ports.object_storage_port import ObjectStoragePort
from .logging_config import get_logger

logger = get_logger(__name__)


class HealthStatus(str, Enum):
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
    """Run `SELECT 1` against the database."""
    try:
        start = time.perf_counter()
        db.execute(text("SELECT 1"))
        latency_ms = (time.perf_counter() - start) * 1000

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


async def check_object_storage_health(storage: ObjectStoragePort) -> ComponentHealth:
    """Check the documents bucket.

    Storage problems only degrade the service: applications still go
    through without documents (uploads are best-effort).
    """
    start = time.perf_counter()
    result = await storage.health_check()
    latency_ms = (time.perf_counter() - start) * 1000

    if result.success:
        return ComponentHealth(
            status=HealthStatus.HEALTHY,
            message="Object storage connection OK",
            latency_ms=round(latency_ms, 2)
        )

    logger.error(f"Object storage health check failed: {result.error}")
    return ComponentHealth(
        status=HealthStatus.DEGRADED,
        message=f"Object storage error: {result.error}"
    )


def get_overall_health(components: Dict[str, ComponentHealth]) -> HealthStatus:
    if all(c.status == HealthStatus.HEALTHY for c in components.values()):
        return HealthStatus.HEALTHY

    if any(c.status == HealthStatus.UNHEALTHY for c in components.values()):
        return HealthStatus.UNHEALTHY

    return HealthStatus.DEGRADED
