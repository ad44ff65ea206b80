"""Repository helpers for ``user_actions`` (swipe history)."""

from __future__ import annotations

from ..db.collections import USER_ACTIONS_COLLECTION
from ..models.matching import Action, ActionType
from ..utils.clock import utc_now_iso
from .base import BaseRepository, new_id, with_timeout


class ActionRepository(BaseRepository):
    """Write-once like/pass rows, unique per (user_id, target_user_id)."""

    collection_name = USER_ACTIONS_COLLECTION

    async def record(self, user_id: str, target_user_id: str, action_type: ActionType) -> Action:
        """Insert an action row.

        Raises ``DuplicateKeyRepositoryError`` when the pair already has one.
        """

        doc = {
            "_id": new_id(),
            "user_id": user_id,
            "target_user_id": target_user_id,
            "action_type": action_type,
            "created_at": utc_now_iso(),
        }
        await with_timeout(self._collection.insert_one(doc))
        return Action(**doc)

    async def target_ids(self, user_id: str) -> set[str]:
        rows = await self._find_many({"user_id": user_id}, projection={"target_user_id": 1})
        return {row["target_user_id"] for row in rows if row.get("target_user_id")}


__all__ = ["ActionRepository"]
