"""FastAPI dependency injection for service singletons.

Provides lazy-initialized, cacheable service instances that can be
overridden in tests via ``app.dependency_overrides``.

Cloud Storage is guarded by its feature toggle in :mod:`app.config`. When it
is disabled the image dependency returns ``None`` and the route layer
responds with 503.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from app.config import settings

if TYPE_CHECKING:
    from app.services.firestore_service import FirestoreService
    from app.services.image_service import ImageService
    from app.services.storage_service import StorageService

logger = logging.getLogger(__name__)

# Lazy singletons — initialised on first request, reused for lifetime.
_firestore_service: FirestoreService | None = None
_storage_service: StorageService | None = None
_image_service: ImageService | None = None


def get_firestore_service() -> FirestoreService:
    """Return (or create) the singleton FirestoreService."""
    global _firestore_service
    if _firestore_service is None:
        from app.services.firestore_service import FirestoreService
        _firestore_service = FirestoreService()
        logger.info("Initialized FirestoreService (database=%s)", settings.firestore_database)
    return _firestore_service


def get_storage_service() -> StorageService | None:
    """Return StorageService if enabled, ``None`` otherwise."""
    global _storage_service
    if not settings.enable_storage:
        return None
    if _storage_service is None:
        from app.services.storage_service import StorageService
        _storage_service = StorageService()
        logger.info("Initialized StorageService (bucket=%s)", settings.gcs_bucket_name)
    return _storage_service


def get_image_service() -> ImageService | None:
    """Return ImageService if storage is enabled, ``None`` otherwise."""
    global _image_service
    storage = get_storage_service()
    if storage is None:
        return None
    if _image_service is None:
        from app.services.image_service import ImageService
        _image_service = ImageService(storage, get_firestore_service())
        logger.info("Initialized ImageService")
    return _image_service
