"""Repository helpers for ``user_profiles`` and its satellite tables."""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Iterable, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, ReturnDocument

from ..db.collections import (
    USER_GOALS_COLLECTION,
    USER_INTERESTS_COLLECTION,
    USER_PROFILES_COLLECTION,
)
from ..models.profile import EVERYONE, Profile
from ..utils.clock import utc_now_iso
from .base import LOGGER, BaseRepository, new_id, with_timeout
from .exceptions import DuplicateKeyRepositoryError, NotFoundRepositoryError


class ProfileRepository(BaseRepository):
    """MongoDB access layer for user profile rows."""

    collection_name = USER_PROFILES_COLLECTION

    def __init__(self, database: AsyncIOMotorDatabase) -> None:
        super().__init__(database)
        self._interests = database[USER_INTERESTS_COLLECTION]
        self._goals = database[USER_GOALS_COLLECTION]

    async def create_profile(
        self,
        *,
        user_id: str,
        email: Optional[str] = None,
        **fields: Any,
    ) -> Profile:
        """Insert the initial profile row for a newly signed-up user."""

        now = utc_now_iso()
        doc: dict[str, Any] = {
            "onboarding_current_step": 0,
            "onboarding_completed_at": None,
            "core_values": [],
            "love_languages": [],
            "languages_spoken": [],
            **fields,
            "_id": user_id,
            "email": email,
            "created_at": now,
            "updated_at": now,
        }
        try:
            await with_timeout(self._collection.insert_one(doc))
        except DuplicateKeyRepositoryError:
            LOGGER.debug("Profile already exists for user_id=%s", user_id)
            raise
        return Profile(**doc)

    async def get_by_id(self, user_id: str) -> Optional[Profile]:
        doc = await with_timeout(self._collection.find_one({"_id": user_id}))
        return Profile(**doc) if doc else None

    async def get_many(self, user_ids: Iterable[str]) -> dict[str, Profile]:
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return {}
        rows = await self._find_many({"_id": {"$in": ids}})
        return {row["_id"]: Profile(**row) for row in rows}

    async def update_profile(self, user_id: str, updates: dict[str, Any]) -> Profile:
        doc = await with_timeout(
            self._collection.find_one_and_update(
                {"_id": user_id},
                {"$set": {**updates, "updated_at": utc_now_iso()}},
                return_document=ReturnDocument.AFTER,
            )
        )
        if not doc:
            raise NotFoundRepositoryError("user profile not found")
        return Profile(**doc)

    async def find_candidates(
        self,
        *,
        exclude_ids: Iterable[str],
        genders: Optional[list[str]],
        preferences: Optional[Iterable[str]] = None,
        limit: int,
    ) -> list[Profile]:
        """Profiles outside ``exclude_ids`` whose gender is one of ``genders``
        and whose ``looking_for`` is one of ``preferences``.

        ``genders`` of None means any gender is acceptable. An unset
        ``looking_for`` counts as "everyone".
        """

        query: dict[str, Any] = {"_id": {"$nin": list(exclude_ids)}}
        if genders is not None:
            query["gender"] = {"$in": genders}
        if preferences is not None:
            prefs = sorted(set(preferences))
            branches: list[dict[str, Any]] = [{"looking_for": {"$in": prefs}}]
            if EVERYONE in prefs:
                branches.append({"looking_for": None})
            query["$or"] = branches
        rows = await self._find_many(query, sort=[("created_at", ASCENDING)], limit=limit)
        return [Profile(**row) for row in rows]

    async def interests_for(self, user_ids: Iterable[str]) -> dict[str, list[str]]:
        return await self._grouped(self._interests, "interest", user_ids)

    async def goals_for(self, user_ids: Iterable[str]) -> dict[str, list[str]]:
        return await self._grouped(self._goals, "goal", user_ids)

    async def _grouped(self, collection, field: str, user_ids: Iterable[str]) -> dict[str, list[str]]:
        ids = list(dict.fromkeys(user_ids))
        grouped: dict[str, list[str]] = defaultdict(list)
        if not ids:
            return grouped
        cursor = collection.find({"user_id": {"$in": ids}}).sort([("created_at", ASCENDING)])
        rows = await with_timeout(cursor.to_list(length=None))
        for row in rows:
            value = row.get(field)
            if isinstance(value, str) and value:
                grouped[row["user_id"]].append(value)
        return grouped

    async def replace_interests(self, user_id: str, interests: list[str]) -> list[str]:
        return await self._replace(self._interests, "interest", user_id, interests)

    async def replace_goals(self, user_id: str, goals: list[str]) -> list[str]:
        return await self._replace(self._goals, "goal", user_id, goals)

    async def _replace(self, collection, field: str, user_id: str, values: list[str]) -> list[str]:
        await with_timeout(collection.delete_many({"user_id": user_id}))
        if not values:
            return []
        now = utc_now_iso()
        docs = [
            {"_id": new_id(), "user_id": user_id, field: value, "created_at": now}
            for value in values
        ]
        await with_timeout(collection.insert_many(docs))
        return list(values)


__all__ = ["ProfileRepository"]
