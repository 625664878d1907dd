"""Health check endpoints for the VortexStream API."""

from fastapi import APIRouter, status

from vortexstream.errors import respond

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def health_check():
    """
    Liveness probe.

    Returns:
        A simple status object indicating the process is up
    """
    return {"ok": True}


@router.get("/readyz")
async def readiness_check():
    """
    Readiness probe.

    Returns:
        A simple status object indicating the service is ready to serve requests
    """
    return {"ok": True}


@router.get("/api/v1/healthcheck")
async def healthcheck():
    """Health check wrapped in the standard response envelope."""
    return respond(status.HTTP_200_OK, "OK", {"status": "ok"})
