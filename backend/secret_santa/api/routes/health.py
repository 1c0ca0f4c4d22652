"""Health & Readiness Probes - liveness plus dependency readiness.

Invariants:
    - GET /health/ answers 200 while the process is up
    - GET /health/ready answers 503 when the database is unreachable
    - An unreachable identity provider is reported as "degraded" but keeps the
      service ready: provisioning is best-effort, draws and matches still work
"""

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from secret_santa.core.errors import ProvisioningError
from secret_santa.infrastructure import database, identity_client

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])

SERVICE_NAME = "secret-santa-api"
SERVICE_VERSION = "1.0.0"


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    return {"status": "healthy", "service": SERVICE_NAME, "version": SERVICE_VERSION}


@router.get("/ready")
async def readiness_check():
    """Database is required; the identity provider is informational."""
    manager = database.db_manager
    if manager is None or not await manager.health_check():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "reason": "database_unavailable"},
        )
    return {
        "status": "ready",
        "checks": {
            "database": "healthy",
            "identity": await _identity_status(),
        },
    }


async def _identity_status() -> str:
    client = identity_client.identity_client
    if client is None:
        return "not_configured"
    try:
        await client.ensure_available()
    except ProvisioningError as e:
        logger.warning(f"Identity provider not ready: {e.message}")
        return "degraded"
    return "healthy"
