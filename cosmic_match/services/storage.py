"""Image uploads to the object store (avatars and chat images)."""

from __future__ import annotations

import asyncio
import base64
import binascii
import re
from typing import Optional

from cloudinary.exceptions import Error as CloudinaryError

from ..integrations import cloudinary as object_store
from ..repositories.base import with_timeout
from ..repositories.exceptions import RepositoryError, StorageError

ALLOWED_IMAGE_MIMES = {
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/gif",
    "image/avif",
    "image/heic",
}

_DATA_URL = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<payload>.+)$", re.DOTALL)


def validate_image_data_url(data_url: str, *, max_bytes: int) -> str:
    """Check an image data URL and return its MIME type. Raises ``ValueError``."""
    match = _DATA_URL.match((data_url or "").strip())
    if not match:
        raise ValueError("expected a base64 image data URL")
    mime = match.group("mime").lower()
    if mime not in ALLOWED_IMAGE_MIMES:
        raise ValueError(f"Unsupported image type: {mime}")
    try:
        raw = base64.b64decode(match.group("payload"), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("image payload is not valid base64") from exc
    if not raw:
        raise ValueError("image payload is empty")
    if len(raw) > max_bytes:
        raise ValueError(f"Image too large. Max {max_bytes // (1024 * 1024)} MB.")
    return mime


async def upload_image(data_url: str, *, folder: str, public_id: Optional[str] = None) -> str:
    """Upload into ``folder`` and return the public URL."""
    if not object_store.is_enabled():
        raise StorageError("object storage is not configured")
    try:
        url = await with_timeout(
            asyncio.to_thread(object_store.upload_data_url, data_url, folder=folder, public_id=public_id)
        )
    except RepositoryError:
        raise
    except (CloudinaryError, RuntimeError) as exc:
        raise StorageError(f"upload failed: {exc}") from exc
    if not url:
        raise StorageError("upload returned no URL")
    return url


async def delete_image(url: str, *, folder: str) -> bool:
    """Remove the asset behind ``url``. Returns False when it cannot be located."""
    public_id = object_store.public_id_from_url(url, folder)
    if not public_id:
        return False
    if not object_store.is_enabled():
        raise StorageError("object storage is not configured")
    try:
        return await with_timeout(asyncio.to_thread(object_store.delete_asset, public_id))
    except RepositoryError:
        raise
    except (CloudinaryError, RuntimeError) as exc:
        raise StorageError(f"delete failed: {exc}") from exc


__all__ = ["ALLOWED_IMAGE_MIMES", "delete_image", "upload_image", "validate_image_data_url"]
