"""Application configuration loaded from environment variables.

Uses a frozen dataclass for immutable, type-safe settings with validation.
Optional Google Cloud features (image uploads, sample-data seeding) default
to disabled for safe local development.
"""

import os
import re
from dataclasses import dataclass

# Firestore collection IDs may not contain slashes or be reserved (__.*__).
_COLLECTION_RE = re.compile(r"^(?!__.*__$)[^/]{1,150}$")

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _parse_bool(value: str) -> bool:
    """Parse a boolean from an environment string, accepting common truthy values."""
    return value.strip().lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class Settings:
    """Immutable application settings populated from environment variables."""

    app_title: str = "Friendly Games"
    app_version: str = "1.0.0"
    app_description: str = (
        "Browse the game catalog, filter by genre and release year, "
        "and share star ratings and reviews"
    )
    allowed_origins: tuple = ("*",)

    # Google Cloud
    gcp_project_id: str = ""

    # Firestore
    firestore_database: str = "(default)"
    games_collection: str = "games"
    ratings_collection: str = "ratings"

    # Cloud Storage
    enable_storage: bool = False
    gcs_bucket_name: str = ""
    image_prefix: str = "images"
    max_image_bytes: int = 5 * 1024 * 1024

    # Sample data
    allow_seeding: bool = False

    # Live updates
    stream_heartbeat_seconds: float = 15.0

    # Rate limiting
    rate_limit_per_minute: int = 60

    # Server
    port: int = 8080
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        """Validate settings after initialisation."""
        if self.rate_limit_per_minute < 1:
            object.__setattr__(self, "rate_limit_per_minute", 1)
        if self.port < 1 or self.port > 65535:
            object.__setattr__(self, "port", 8080)
        if not _COLLECTION_RE.match(self.games_collection):
            object.__setattr__(self, "games_collection", "games")
        if not _COLLECTION_RE.match(self.ratings_collection):
            object.__setattr__(self, "ratings_collection", "ratings")
        if self.max_image_bytes < 1:
            object.__setattr__(self, "max_image_bytes", 5 * 1024 * 1024)
        if self.stream_heartbeat_seconds <= 0:
            object.__setattr__(self, "stream_heartbeat_seconds", 15.0)
        if self.log_level not in _LOG_LEVELS:
            object.__setattr__(self, "log_level", "INFO")
        object.__setattr__(self, "image_prefix", self.image_prefix.strip("/") or "images")

    @classmethod
    def load(cls) -> "Settings":
        """Create a Settings instance from the current environment variables."""
        return cls(
            gcp_project_id=os.environ.get("GCP_PROJECT_ID", ""),
            firestore_database=os.environ.get("FIRESTORE_DATABASE", "(default)"),
            games_collection=os.environ.get("GAMES_COLLECTION", "games"),
            ratings_collection=os.environ.get("RATINGS_COLLECTION", "ratings"),
            enable_storage=_parse_bool(os.environ.get("ENABLE_STORAGE", "false")),
            gcs_bucket_name=os.environ.get("GCS_BUCKET_NAME", ""),
            image_prefix=os.environ.get("IMAGE_PREFIX", "images"),
            max_image_bytes=int(os.environ.get("MAX_IMAGE_BYTES", str(5 * 1024 * 1024))),
            allow_seeding=_parse_bool(os.environ.get("ALLOW_SEEDING", "false")),
            stream_heartbeat_seconds=float(os.environ.get("STREAM_HEARTBEAT_SECONDS", "15")),
            rate_limit_per_minute=int(os.environ.get("RATE_LIMIT_PER_MINUTE", "60")),
            port=int(os.environ.get("PORT", "8080")),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )


settings = Settings.load()
