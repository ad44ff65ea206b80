from __future__ import annotations

import logging
from typing import Optional

from ..config import Settings, get_settings
from ..db import get_db
from ..models.profile import Photo
from ..repositories import PhotoRepository
from ..repositories.exceptions import NotFoundRepositoryError, RepositoryError
from .storage import delete_image, upload_image, validate_image_data_url

LOGGER = logging.getLogger("uvicorn.error")


class PhotoLimitError(ValueError):
    """Raised when a user already has the maximum number of photos."""


class PhotoService:
    def __init__(self, photos: PhotoRepository, settings: Optional[Settings] = None) -> None:
        self._photos = photos
        self._settings = settings or get_settings()

    @property
    def max_photos(self) -> int:
        return self._settings.max_photos

    async def list_photos(self, user_id: str) -> list[Photo]:
        return await self._photos.list_for_user(user_id)

    async def add_photo(self, user_id: str, data_url: str) -> Photo:
        count = await self._photos.count_for_user(user_id)
        if count >= self.max_photos:
            raise PhotoLimitError(f"A profile can hold at most {self.max_photos} photos")
        validate_image_data_url(data_url, max_bytes=self._settings.max_upload_bytes)
        url = await upload_image(data_url, folder=f"{self._settings.avatars_folder}/{user_id}")
        photo = await self._photos.insert(user_id, url, order_index=count)
        LOGGER.info("Photo %s added for user=%s at index %d", photo.id, user_id, count)
        return photo

    async def delete_photo(self, user_id: str, photo_id: str) -> list[Photo]:
        """Delete one photo and return the remaining ones, re-indexed from 0."""
        photo = await self._photos.get(user_id, photo_id)
        if photo is None:
            raise NotFoundRepositoryError("photo not found")
        await self._photos.delete(user_id, photo_id)

        try:
            await delete_image(photo.photo_url, folder=self._settings.avatars_folder)
        except RepositoryError as exc:
            LOGGER.warning("Stored image for photo %s was not removed: %s", photo_id, exc)

        remaining = await self._photos.list_for_user(user_id)
        for index, item in enumerate(remaining):
            if item.order_index != index:
                await self._photos.set_order(item.id, index)
                item.order_index = index
        return remaining


def get_photo_service() -> PhotoService:
    return PhotoService(PhotoRepository(get_db()))


__all__ = ["PhotoLimitError", "PhotoService", "get_photo_service"]
