"""Repository helpers for ``user_photos``."""

from __future__ import annotations

from typing import Optional

from pymongo import ASCENDING

from ..db.collections import USER_PHOTOS_COLLECTION
from ..models.profile import Photo
from ..utils.clock import utc_now_iso
from .base import BaseRepository, new_id, with_timeout


class PhotoRepository(BaseRepository):
    collection_name = USER_PHOTOS_COLLECTION

    async def list_for_user(self, user_id: str) -> list[Photo]:
        rows = await self._find_many({"user_id": user_id}, sort=[("order_index", ASCENDING)])
        return [Photo(**row) for row in rows]

    async def urls_for(self, user_ids: list[str]) -> dict[str, list[str]]:
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return {}
        rows = await self._find_many(
            {"user_id": {"$in": ids}},
            sort=[("order_index", ASCENDING)],
        )
        grouped: dict[str, list[str]] = {}
        for row in rows:
            url = row.get("photo_url")
            if url:
                grouped.setdefault(row["user_id"], []).append(url)
        return grouped

    async def count_for_user(self, user_id: str) -> int:
        return await with_timeout(self._collection.count_documents({"user_id": user_id}))

    async def get(self, user_id: str, photo_id: str) -> Optional[Photo]:
        doc = await with_timeout(self._collection.find_one({"_id": photo_id, "user_id": user_id}))
        return Photo(**doc) if doc else None

    async def insert(self, user_id: str, photo_url: str, order_index: int) -> Photo:
        doc = {
            "_id": new_id(),
            "user_id": user_id,
            "photo_url": photo_url,
            "order_index": order_index,
            "created_at": utc_now_iso(),
        }
        await with_timeout(self._collection.insert_one(doc))
        return Photo(**doc)

    async def delete(self, user_id: str, photo_id: str) -> bool:
        result = await with_timeout(self._collection.delete_one({"_id": photo_id, "user_id": user_id}))
        return bool(result.deleted_count)

    async def set_order(self, photo_id: str, order_index: int) -> None:
        await with_timeout(
            self._collection.update_one({"_id": photo_id}, {"$set": {"order_index": order_index}})
        )


__all__ = ["PhotoRepository"]
