"""Health & Readiness Probes — liveness and readiness endpoints.

Invariants:
    - GET /health/ always returns 200 if the process is up (liveness)
    - GET /health/ready returns 503 if the store is unreachable (readiness)
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from courier_dispatch.api.dependencies import get_dispatch
from courier_dispatch.services.dispatch_system import DispatchSystem

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": "courier-dispatch-api",
        "version": "1.0.0",
    }


@router.get("/ready")
def readiness_check(system: DispatchSystem = Depends(get_dispatch)):
    """Readiness probe: store connectivity plus simulator state."""
    if not system.ctx.health_check():
        logger.warning("Readiness check failed: store unavailable")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "reason": "store_unavailable"},
        )
    return {
        "status": "ready",
        "checks": {"store": "healthy"},
        "simulator_running": system.admin.simulator_running,
    }
