"""Friendly Games application entry point.

Configures FastAPI with middleware, the catalog API, and static file
serving for the browser front end. Data lives in Cloud Firestore; game
images live in Cloud Storage.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles

from app.config import settings
from app.logging_config import setup_logging
from app.middleware import RateLimitMiddleware, RequestLoggingMiddleware, SecurityHeadersMiddleware
from app.routes.games import router as games_router
from app.routes.health import router as health_router

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI):
    """Log configuration at startup and a marker at shutdown."""
    logger.info(
        "%s %s starting (database=%s, collection=%s, image uploads=%s, seeding=%s)",
        settings.app_title,
        settings.app_version,
        settings.firestore_database,
        settings.games_collection,
        "on" if settings.enable_storage else "off",
        "on" if settings.allow_seeding else "off",
    )
    if settings.enable_storage and not settings.gcs_bucket_name:
        logger.warning("ENABLE_STORAGE is set but GCS_BUCKET_NAME is empty; uploads will fail")
    yield
    logger.info("%s %s shutting down", settings.app_title, settings.app_version)


app = FastAPI(
    title=settings.app_title,
    description=settings.app_description,
    version=settings.app_version,
    docs_url=None,
    redoc_url=None,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack — applied in reverse order of addition.
#   Request flow: CORS → GZip → RateLimit → Logging → SecurityHeaders
# ---------------------------------------------------------------------------
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(RateLimitMiddleware, max_requests=settings.rate_limit_per_minute)
app.add_middleware(GZipMiddleware, minimum_size=500)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.allowed_origins),
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
)

# API routes (registered before static mount so they take priority)
app.include_router(health_router)
app.include_router(games_router)

# Static files served from root path; html=True serves index.html for "/"
STATIC_DIR = Path(__file__).resolve().parent / "static"
app.mount("/", StaticFiles(directory=str(STATIC_DIR), html=True), name="static")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=True,
    )
