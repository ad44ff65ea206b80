from __future__ import annotations

import logging

from ..config import get_settings
from ..db import get_db
from ..models.matching import Candidate
from ..repositories import ActionRepository, MatchRepository, PhotoRepository, ProfileRepository
from ..repositories.exceptions import RepositoryError
from .scoring import (
    acceptable_genders,
    acceptable_preferences,
    compatibility_score,
    is_reciprocal_match,
)

LOGGER = logging.getLogger("uvicorn.error")


class CandidateSelector:
    """Builds the swipe deck for a user."""

    def __init__(
        self,
        profiles: ProfileRepository,
        actions: ActionRepository,
        matches: MatchRepository,
        photos: PhotoRepository,
        *,
        limit: int = 20,
        pool_size: int = 200,
    ) -> None:
        self._profiles = profiles
        self._actions = actions
        self._matches = matches
        self._photos = photos
        self._limit = limit
        self._pool_size = max(pool_size, limit)

    async def excluded_ids(self, user_id: str) -> set[str]:
        """The user, everyone they acted on, and everyone they share a match row with."""
        excluded = {user_id}
        excluded |= await self._actions.target_ids(user_id)
        excluded |= await self._matches.counterpart_ids(user_id)
        return excluded

    async def select(self, user_id: str) -> list[Candidate]:
        """Up to ``limit`` candidates, best score first. Failures yield an empty deck."""
        try:
            return await self._select(user_id)
        except RepositoryError as exc:
            LOGGER.error("Candidate selection failed for user=%s: %s", user_id, exc)
            return []

    async def _select(self, user_id: str) -> list[Candidate]:
        me = await self._profiles.get_by_id(user_id)
        if me is None:
            LOGGER.warning("No profile for user=%s; empty candidate list", user_id)
            return []

        excluded = await self.excluded_ids(user_id)
        pool = await self._profiles.find_candidates(
            exclude_ids=excluded,
            genders=acceptable_genders(me.looking_for),
            preferences=acceptable_preferences(me.gender),
            limit=self._pool_size,
        )
        # The query already applies both preferences; this guards odd stored values
        pool = [p for p in pool if p.id not in excluded and is_reciprocal_match(me, p)]
        if not pool:
            return []

        ids = [p.id for p in pool]
        photos = await self._photos.urls_for(ids)
        interests = await self._profiles.interests_for(ids)
        goals = await self._profiles.goals_for(ids)

        candidates = []
        for profile in pool:
            their_interests = interests.get(profile.id, [])
            candidates.append(
                Candidate(
                    **profile.model_dump(),
                    photos=photos.get(profile.id, []),
                    interests=their_interests,
                    goals=goals.get(profile.id, []),
                    compatibility_score=compatibility_score(me, profile, their_interests),
                )
            )

        # sorted() is stable, so equal scores keep pool order
        candidates = sorted(candidates, key=lambda c: c.compatibility_score, reverse=True)
        return candidates[: self._limit]


def get_candidate_selector() -> CandidateSelector:
    settings = get_settings()
    db = get_db()
    return CandidateSelector(
        ProfileRepository(db),
        ActionRepository(db),
        MatchRepository(db),
        PhotoRepository(db),
        limit=settings.candidate_limit,
        pool_size=settings.candidate_pool_size,
    )


__all__ = ["CandidateSelector", "get_candidate_selector"]
