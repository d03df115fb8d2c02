"""Replacement images for catalog entries.

Uploads the file under ``images/{game_id}/{file_name}`` in Cloud Storage,
then points the game's ``photo`` field at the public URL. The game document
is only touched after the upload has succeeded.
"""

from __future__ import annotations

import logging
from pathlib import PurePosixPath

from app.config import settings
from app.services.firestore_service import FirestoreService, GameNotFoundError, InvalidInputError
from app.services.storage_service import StorageService

logger = logging.getLogger(__name__)


def image_blob_name(game_id: str, filename: str, prefix: str = "images") -> str:
    # Only the final path component of a client-supplied name is kept.
    name = PurePosixPath(filename.replace("\\", "/")).name
    return f"{prefix}/{game_id}/{name}"


class ImageService:
    """Coordinates the upload and the Firestore image-reference update."""

    def __init__(self, storage_service: StorageService, firestore_service: FirestoreService) -> None:
        self._storage = storage_service
        self._firestore = firestore_service

    async def update_game_image(
        self,
        game_id: str,
        filename: str | None,
        data: bytes | None,
        content_type: str | None = None,
    ) -> str:
        """Upload a new image for *game_id* and return its public URL."""
        if not game_id:
            raise InvalidInputError("No game ID has been provided.")
        if not filename or not PurePosixPath(filename.replace("\\", "/")).name or not data:
            raise InvalidInputError("A valid image has not been provided.")

        if await self._firestore.get_game_by_id(game_id) is None:
            raise GameNotFoundError(game_id)

        blob_name = image_blob_name(game_id, filename, settings.image_prefix)
        try:
            public_url = await self._storage.upload_bytes(
                data, blob_name, content_type or "application/octet-stream"
            )
        except Exception as e:
            logger.error("Image upload failed for %s: %s", blob_name, e, extra={"game_id": game_id})
            raise ImageUpdateError(game_id, "upload") from e

        try:
            await self._firestore.update_game_image_reference(game_id, public_url)
        except Exception as e:
            logger.error("Image reference update failed: %s", e, extra={"game_id": game_id})
            raise ImageUpdateError(game_id, "update") from e
        return public_url


class ImageUpdateError(Exception):
    """Raised when uploading or recording a game image fails."""

    def __init__(self, game_id: str, stage: str) -> None:
        self.game_id = game_id
        self.stage = stage
        super().__init__(f"Image {stage} failed for game {game_id}")
