from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from ..config import Settings, get_settings
from ..db import get_db
from ..models.profile import Profile, ProfileUpdate, ProfileView
from ..repositories import PhotoRepository, ProfileRepository
from ..repositories.exceptions import (
    DuplicateKeyRepositoryError,
    NotFoundRepositoryError,
    RepositoryError,
)
from ..utils.clock import utc_now_iso
from .scoring import MIN_SCORE, compatibility_score
from .storage import upload_image, validate_image_data_url

LOGGER = logging.getLogger("uvicorn.error")


def _clean_values(values: Iterable[Any], limit: int = 30) -> list[str]:
    cleaned: list[str] = []
    for value in values or []:
        if not isinstance(value, str):
            continue
        text = value.strip()
        if text and text not in cleaned:
            cleaned.append(text)
        if len(cleaned) >= limit:
            break
    return cleaned


class ProfileService:
    """Read/update flows for the signed-in user's profile and profile detail views."""

    def __init__(
        self,
        profiles: ProfileRepository,
        photos: PhotoRepository,
        settings: Optional[Settings] = None,
    ) -> None:
        self._profiles = profiles
        self._photos = photos
        self._settings = settings or get_settings()

    async def ensure_profile(self, user_id: str, email: Optional[str] = None) -> Profile:
        """Return the user's profile, creating the initial row on first sight."""
        existing = await self._profiles.get_by_id(user_id)
        if existing is not None:
            return existing
        try:
            profile = await self._profiles.create_profile(user_id=user_id, email=email)
            LOGGER.info("Created profile for user=%s", user_id)
            return profile
        except DuplicateKeyRepositoryError:
            profile = await self._profiles.get_by_id(user_id)
            if profile is None:
                raise NotFoundRepositoryError("user profile not found")
            return profile

    async def get_profile(self, user_id: str) -> Profile:
        profile = await self._profiles.get_by_id(user_id)
        if profile is None:
            raise NotFoundRepositoryError("user profile not found")
        return profile

    async def update_profile(self, user_id: str, patch: ProfileUpdate) -> Profile:
        updates = patch.model_dump(exclude_unset=True)
        if not updates:
            return await self.get_profile(user_id)
        try:
            return await self._profiles.update_profile(user_id, updates)
        except RepositoryError as exc:
            LOGGER.error("Profile update failed for user=%s: %s", user_id, exc)
            raise

    async def set_onboarding_step(self, user_id: str, step: int) -> Profile:
        return await self._profiles.update_profile(user_id, {"onboarding_current_step": step})

    async def complete_onboarding(self, user_id: str) -> Profile:
        return await self._profiles.update_profile(user_id, {"onboarding_completed_at": utc_now_iso()})

    async def get_interests(self, user_id: str) -> list[str]:
        grouped = await self._profiles.interests_for([user_id])
        return grouped.get(user_id, [])

    async def set_interests(self, user_id: str, interests: Iterable[str]) -> list[str]:
        await self.get_profile(user_id)
        return await self._profiles.replace_interests(user_id, _clean_values(interests))

    async def get_goals(self, user_id: str) -> list[str]:
        grouped = await self._profiles.goals_for([user_id])
        return grouped.get(user_id, [])

    async def set_goals(self, user_id: str, goals: Iterable[str]) -> list[str]:
        await self.get_profile(user_id)
        return await self._profiles.replace_goals(user_id, _clean_values(goals))

    async def view_profile(self, viewer_id: str, target_id: str) -> ProfileView:
        """Another user's profile with the same compatibility score the swipe deck shows."""
        profiles = await self._profiles.get_many([viewer_id, target_id])
        target = profiles.get(target_id)
        if target is None:
            raise NotFoundRepositoryError("user profile not found")
        photos = await self._photos.urls_for([target_id])
        interests = await self.get_interests(target_id)
        viewer = profiles.get(viewer_id)
        if viewer is None or viewer_id == target_id:
            score = MIN_SCORE
        else:
            score = compatibility_score(viewer, target, interests)
        return ProfileView(
            **target.model_dump(),
            photos=photos.get(target_id, []),
            interests=interests,
            goals=await self.get_goals(target_id),
            compatibility_score=score,
        )

    async def upload_avatar(self, user_id: str, data_url: str) -> Profile:
        await self.get_profile(user_id)
        validate_image_data_url(data_url, max_bytes=self._settings.max_upload_bytes)
        url = await upload_image(data_url, folder=f"{self._settings.avatars_folder}/{user_id}")
        LOGGER.info("Avatar uploaded for user=%s", user_id)
        return await self._profiles.update_profile(user_id, {"avatar_url": url})


def get_profile_service() -> ProfileService:
    db = get_db()
    return ProfileService(ProfileRepository(db), PhotoRepository(db))


__all__ = ["ProfileService", "get_profile_service"]
