"""Liveness and readiness probes."""

from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def health_check():
    """The process is up. Touches no dependencies."""
    return {"ok": True}


@router.get("/readyz")
async def readiness_check():
    """Ready to serve. The backend API is not probed; it is reached per request."""
    return {"ready": True}
