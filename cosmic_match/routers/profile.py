from typing import Dict, List

from fastapi import APIRouter, Depends

from ..deps import get_current_user_id
from ..models.profile import (
    GoalsRequest,
    ImageUploadRequest,
    InterestsRequest,
    OnboardingStepRequest,
    Profile,
    ProfileUpdate,
    ProfileView,
)
from ..services.profile_service import ProfileService, get_profile_service
from .errors import SERVICE_ERRORS, http_error

router = APIRouter()


@router.get("/profile/me", response_model=Profile)
async def get_my_profile(
    user_id: str = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service),
):
    try:
        return await service.ensure_profile(user_id)
    except SERVICE_ERRORS as exc:
        raise http_error(exc) from exc


@router.patch("/profile/me", response_model=Profile)
async def update_my_profile(
    patch: ProfileUpdate,
    user_id: str = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service),
):
    try:
        return await service.update_profile(user_id, patch)
    except SERVICE_ERRORS as exc:
        raise http_error(exc) from exc


@router.put("/profile/me/onboarding-step", response_model=Profile)
async def set_onboarding_step(
    payload: OnboardingStepRequest,
    user_id: str = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service),
):
    try:
        return await service.set_onboarding_step(user_id, payload.step)
    except SERVICE_ERRORS as exc:
        raise http_error(exc) from exc


@router.post("/profile/me/complete-onboarding", response_model=Profile)
async def complete_onboarding(
    user_id: str = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service),
):
    try:
        return await service.complete_onboarding(user_id)
    except SERVICE_ERRORS as exc:
        raise http_error(exc) from exc


@router.put("/profile/me/interests")
async def set_interests(
    payload: InterestsRequest,
    user_id: str = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service),
) -> Dict[str, List[str]]:
    try:
        return {"interests": await service.set_interests(user_id, payload.interests)}
    except SERVICE_ERRORS as exc:
        raise http_error(exc) from exc


@router.put("/profile/me/goals")
async def set_goals(
    payload: GoalsRequest,
    user_id: str = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service),
) -> Dict[str, List[str]]:
    try:
        return {"goals": await service.set_goals(user_id, payload.goals)}
    except SERVICE_ERRORS as exc:
        raise http_error(exc) from exc


@router.post("/profile/me/avatar", response_model=Profile)
async def upload_avatar(
    payload: ImageUploadRequest,
    user_id: str = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service),
):
    try:
        return await service.upload_avatar(user_id, payload.data_url)
    except SERVICE_ERRORS as exc:
        raise http_error(exc) from exc


@router.get("/profiles/{target_id}", response_model=ProfileView)
async def view_profile(
    target_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service),
):
    try:
        return await service.view_profile(user_id, target_id)
    except SERVICE_ERRORS as exc:
        raise http_error(exc) from exc


__all__ = ["router"]
