"""Health check endpoint for Cloud Run liveness / readiness probes.

Returns service metadata and feature-flag status so operators can verify
which optional integrations are active. Does not touch Firestore.
"""

import time

from fastapi import APIRouter

from app.config import settings

router = APIRouter(prefix="/api", tags=["health"])

_START_TIME = time.monotonic()


@router.get("/health")
async def health_check() -> dict:
    """Return service health status with version, uptime, and feature flags."""
    return {
        "status": "healthy",
        "service": settings.app_title,
        "version": settings.app_version,
        "uptime_seconds": round(time.monotonic() - _START_TIME),
        "database": settings.firestore_database,
        "features": {
            "image_uploads": settings.enable_storage,
            "seeding": settings.allow_seeding,
        },
    }
