"""Google Cloud Storage for game images.

Wraps the synchronous GCS client with ``asyncio.to_thread`` so that
blocking upload calls do not stall the event loop.
"""

from __future__ import annotations

import asyncio
import logging

from google.cloud import storage

from app.config import settings

logger = logging.getLogger(__name__)


class StorageService:
    """Upload game images to Google Cloud Storage."""

    def __init__(self, client: storage.Client | None = None) -> None:
        self._client = client or storage.Client(project=settings.gcp_project_id or None)
        self._bucket = self._client.bucket(settings.gcs_bucket_name)

    async def upload_bytes(self, data: bytes, blob_name: str, content_type: str) -> str:
        """Upload *data* to GCS and return its public URL."""
        blob = self._bucket.blob(blob_name)
        # Replacing an image reuses the same name when the file name matches.
        blob.cache_control = "public, max-age=300"
        await asyncio.to_thread(blob.upload_from_string, data, content_type=content_type)
        await asyncio.to_thread(blob.make_public)
        url: str = blob.public_url
        logger.info("Uploaded %s (%d bytes) to GCS", blob_name, len(data), extra={"blob_name": blob_name})
        return url
