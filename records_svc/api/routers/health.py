"""
Health and readiness endpoints for operational visibility.

This module provides:
- /health: Liveness probe (is the app running?)
- /ready: Readiness probe (is the database reachable?)

No authentication required (infrastructure use).
"""
import logging
import time
from typing import List, Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from core.datetime_utils import format_iso, utc_now
from core.dependencies import get_database
from repositories.base import Database

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

API_VERSION = "1.0.0"


# =============================================================================
# RESPONSE MODELS
# =============================================================================

class HealthResponse(BaseModel):
    """Response model for /health endpoint."""
    status: str  # "healthy"
    version: str
    timestamp: str  # ISO 8601 UTC


class DependencyStatus(BaseModel):
    """Status of a single dependency."""
    name: str
    status: str  # "ok", "unavailable"
    latency_ms: Optional[float] = None
    message: Optional[str] = None


class ReadyResponse(BaseModel):
    """Response model for /ready endpoint."""
    status: str  # "ready", "not_ready"
    dependencies: List[DependencyStatus]
    timestamp: str


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness probe",
    description="Returns immediately without checking dependencies."
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="healthy", version=API_VERSION, timestamp=format_iso(utc_now()))


def _check_database(db: Database) -> DependencyStatus:
    start = time.perf_counter()
    try:
        db.ping()
        return DependencyStatus(
            name="database",
            status="ok",
            latency_ms=round((time.perf_counter() - start) * 1000, 2),
            message="SQLite connection healthy"
        )
    except Exception as e:
        logger.error("Database health check failed", extra={"error": str(e)})
        return DependencyStatus(
            name="database",
            status="unavailable",
            latency_ms=round((time.perf_counter() - start) * 1000, 2),
            message=f"Connection failed: {type(e).__name__}"
        )


@router.get(
    "/ready",
    response_model=ReadyResponse,
    summary="Readiness probe",
    description="Verifies the database is reachable. Returns 503 if not ready."
)
async def readiness_check(response: Response, db: Database = Depends(get_database)) -> ReadyResponse:
    database = _check_database(db)
    ready = database.status == "ok"
    if not ready:
        response.status_code = 503
    return ReadyResponse(
        status="ready" if ready else "not_ready",
        dependencies=[database],
        timestamp=format_iso(utc_now()),
    )
