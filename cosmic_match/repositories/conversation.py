"""Repository helpers for ``conversations`` and ``messages``."""

from __future__ import annotations

from typing import Iterable, Optional

from pymongo import ASCENDING, DESCENDING, ReturnDocument

from ..db.collections import CONVERSATIONS_COLLECTION, MESSAGES_COLLECTION
from ..models.chat import Conversation, Message, MessageType
from ..utils.clock import utc_now_iso
from .base import BaseRepository, new_id, with_timeout


class ConversationRepository(BaseRepository):
    """Conversation rows, one per mutual match."""

    collection_name = CONVERSATIONS_COLLECTION

    async def get_by_id(self, conversation_id: str) -> Optional[Conversation]:
        doc = await with_timeout(self._collection.find_one({"_id": conversation_id}))
        return Conversation(**doc) if doc else None

    async def get_by_match(self, match_id: str) -> Optional[Conversation]:
        doc = await with_timeout(self._collection.find_one({"match_id": match_id}))
        return Conversation(**doc) if doc else None

    async def list_by_matches(self, match_ids: Iterable[str]) -> dict[str, Conversation]:
        ids = list(match_ids)
        if not ids:
            return {}
        rows = await self._find_many({"match_id": {"$in": ids}}, sort=[("created_at", ASCENDING)])
        # Earliest row wins if a concurrent create slipped through
        by_match: dict[str, Conversation] = {}
        for row in rows:
            by_match.setdefault(row["match_id"], Conversation(**row))
        return by_match

    async def insert(self, match_id: str, participant_ids: list[str]) -> Conversation:
        now = utc_now_iso()
        doc = {
            "_id": new_id(),
            "match_id": match_id,
            "participant_ids": list(participant_ids),
            "created_at": now,
            "updated_at": now,
        }
        await with_timeout(self._collection.insert_one(doc))
        return Conversation(**doc)

    async def touch(self, conversation_id: str) -> Optional[Conversation]:
        doc = await with_timeout(
            self._collection.find_one_and_update(
                {"_id": conversation_id},
                {"$set": {"updated_at": utc_now_iso()}},
                return_document=ReturnDocument.AFTER,
            )
        )
        return Conversation(**doc) if doc else None


class MessageRepository(BaseRepository):
    collection_name = MESSAGES_COLLECTION

    async def get_by_id(self, message_id: str) -> Optional[Message]:
        doc = await with_timeout(self._collection.find_one({"_id": message_id}))
        return Message(**doc) if doc else None

    async def insert(
        self,
        conversation_id: str,
        sender_id: str,
        content: str,
        message_type: MessageType = "text",
    ) -> Message:
        doc = {
            "_id": new_id(),
            "conversation_id": conversation_id,
            "sender_id": sender_id,
            "content": content,
            "message_type": message_type,
            "sent_at": utc_now_iso(),
            "read_at": None,
        }
        await with_timeout(self._collection.insert_one(doc))
        return Message(**doc)

    async def list_for_conversation(self, conversation_id: str) -> list[Message]:
        rows = await self._find_many(
            {"conversation_id": conversation_id},
            sort=[("sent_at", ASCENDING)],
        )
        return [Message(**row) for row in rows]

    async def last_message(self, conversation_id: str) -> Optional[Message]:
        rows = await self._find_many(
            {"conversation_id": conversation_id},
            sort=[("sent_at", DESCENDING)],
            limit=1,
        )
        return Message(**rows[0]) if rows else None

    async def count_unread(self, conversation_id: str, reader_id: str) -> int:
        return await with_timeout(
            self._collection.count_documents(
                {
                    "conversation_id": conversation_id,
                    "sender_id": {"$ne": reader_id},
                    "read_at": None,
                }
            )
        )

    async def count_for_conversation(self, conversation_id: str) -> int:
        return await with_timeout(
            self._collection.count_documents({"conversation_id": conversation_id})
        )

    async def mark_read(self, message_id: str) -> Optional[Message]:
        """Stamp ``read_at`` only if the message is still unread."""

        doc = await with_timeout(
            self._collection.find_one_and_update(
                {"_id": message_id, "read_at": None},
                {"$set": {"read_at": utc_now_iso()}},
                return_document=ReturnDocument.AFTER,
            )
        )
        return Message(**doc) if doc else None

    async def mark_conversation_read(self, conversation_id: str, reader_id: str) -> int:
        result = await with_timeout(
            self._collection.update_many(
                {
                    "conversation_id": conversation_id,
                    "sender_id": {"$ne": reader_id},
                    "read_at": None,
                },
                {"$set": {"read_at": utc_now_iso()}},
            )
        )
        return int(result.modified_count)


__all__ = ["ConversationRepository", "MessageRepository"]
