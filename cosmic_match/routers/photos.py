from typing import Dict, List

from fastapi import APIRouter, Depends

from ..deps import get_current_user_id
from ..models.profile import ImageUploadRequest, Photo
from ..services.photos import PhotoService, get_photo_service
from .errors import SERVICE_ERRORS, http_error

router = APIRouter()


@router.get("/photos")
async def list_photos(
    user_id: str = Depends(get_current_user_id),
    service: PhotoService = Depends(get_photo_service),
) -> Dict[str, List[Photo]]:
    try:
        return {"photos": await service.list_photos(user_id)}
    except SERVICE_ERRORS as exc:
        raise http_error(exc) from exc


@router.post("/photos", response_model=Photo, status_code=201)
async def add_photo(
    payload: ImageUploadRequest,
    user_id: str = Depends(get_current_user_id),
    service: PhotoService = Depends(get_photo_service),
):
    try:
        return await service.add_photo(user_id, payload.data_url)
    except SERVICE_ERRORS as exc:
        raise http_error(exc) from exc


@router.delete("/photos/{photo_id}")
async def delete_photo(
    photo_id: str,
    user_id: str = Depends(get_current_user_id),
    service: PhotoService = Depends(get_photo_service),
) -> Dict[str, List[Photo]]:
    try:
        return {"photos": await service.delete_photo(user_id, photo_id)}
    except SERVICE_ERRORS as exc:
        raise http_error(exc) from exc


__all__ = ["router"]
