"""Repository helpers for ``matches``."""

from __future__ import annotations

from typing import Any, Optional

from pymongo import ReturnDocument

from ..db.collections import MATCHES_COLLECTION
from ..models.matching import Match
from ..utils.clock import utc_now_iso
from .base import BaseRepository, new_id, with_timeout


def pair_key(user_a: str, user_b: str) -> str:
    """Order-independent key for a pair of users; carries the unique index."""
    first, second = sorted((user_a, user_b))
    return f"{first}|{second}"


def _participant_query(user_id: str) -> dict[str, Any]:
    return {"$or": [{"user1_id": user_id}, {"user2_id": user_id}]}


class MatchRepository(BaseRepository):
    """MongoDB access layer for match rows."""

    collection_name = MATCHES_COLLECTION

    async def find_between(self, user_a: str, user_b: str) -> Optional[Match]:
        doc = await with_timeout(self._collection.find_one({"pair_key": pair_key(user_a, user_b)}))
        return Match(**doc) if doc else None

    async def get_by_id(self, match_id: str) -> Optional[Match]:
        doc = await with_timeout(self._collection.find_one({"_id": match_id}))
        return Match(**doc) if doc else None

    async def insert_pending(
        self,
        user1_id: str,
        user2_id: str,
        *,
        compatibility_score: Optional[int] = None,
    ) -> Match:
        """Create a pending match from ``user1_id``'s like.

        Raises ``DuplicateKeyRepositoryError`` if the pair already has a row.
        """

        doc = {
            "_id": new_id(),
            "pair_key": pair_key(user1_id, user2_id),
            "user1_id": user1_id,
            "user2_id": user2_id,
            "status": "pending",
            "compatibility_score": compatibility_score,
            "created_at": utc_now_iso(),
            "matched_at": None,
        }
        await with_timeout(self._collection.insert_one(doc))
        return Match(**doc)

    async def promote_to_mutual(self, match_id: str, *, liked_by: str) -> Optional[Match]:
        """Flip a pending match created by the other user to mutual.

        The update only applies while the row is still pending and ``liked_by``
        is its ``user2_id``; returns None when another writer got there first
        or the row is not eligible.
        """

        doc = await with_timeout(
            self._collection.find_one_and_update(
                {"_id": match_id, "status": "pending", "user2_id": liked_by},
                {"$set": {"status": "mutual", "matched_at": utc_now_iso()}},
                return_document=ReturnDocument.AFTER,
            )
        )
        return Match(**doc) if doc else None

    async def list_for_user(self, user_id: str, *, status: Optional[str] = None) -> list[Match]:
        query = _participant_query(user_id)
        if status:
            query = {"$and": [query, {"status": status}]}
        rows = await self._find_many(query)
        matches = [Match(**row) for row in rows]
        matches.sort(key=lambda m: m.matched_at or m.created_at or "", reverse=True)
        return matches

    async def counterpart_ids(self, user_id: str) -> set[str]:
        rows = await self._find_many(
            _participant_query(user_id),
            projection={"user1_id": 1, "user2_id": 1},
        )
        others: set[str] = set()
        for row in rows:
            other = row.get("user2_id") if row.get("user1_id") == user_id else row.get("user1_id")
            if other:
                others.add(other)
        return others


__all__ = ["MatchRepository", "pair_key"]
