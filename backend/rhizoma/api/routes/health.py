"""Health & Readiness Probes: liveness and installation-aware readiness.

Invariants:
    - GET /health/ always returns 200 if process is up (liveness)
    - GET /health/ready runs the installed-check; failure surfaces as NOT_INSTALLED (503)

Design Decisions:
    - Installed-check raises instead of returning a flag: the global RhizomaError
      handler renders it, same envelope as every other error
"""

import logging
from fastapi import APIRouter, Depends, status

from rhizoma.infrastructure.database import Database, get_database

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {"status": "healthy", "service": "rhizoma-db"}


@router.get("/ready")
async def readiness_check(db: Database = Depends(get_database)):
    """Readiness probe: verifies the schema is installed."""
    await db.assert_installed()
    return {
        "status": "ready",
        "checks": {"database": "installed"},
        "query_count": db.query_count,
    }
