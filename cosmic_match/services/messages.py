from __future__ import annotations

import logging
from typing import Optional

from ..config import Settings, get_settings
from ..db import get_db
from ..db.collections import MESSAGES_COLLECTION
from ..models.chat import Conversation, Message, MessageType
from ..realtime.bus import ChangeFeed, get_change_feed
from ..repositories import (
    ConversationRepository,
    MatchRepository,
    MessageRepository,
    ProfileRepository,
)
from ..repositories.exceptions import NotFoundRepositoryError
from .conversations import ConversationService
from .storage import upload_image, validate_image_data_url

LOGGER = logging.getLogger("uvicorn.error")

MAX_MESSAGE_LENGTH = 4000


class MessageService:
    """Sending, listing and read receipts within a conversation."""

    def __init__(
        self,
        conversations: ConversationService,
        conversation_repo: ConversationRepository,
        messages: MessageRepository,
        feed: Optional[ChangeFeed] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._conversations = conversations
        self._conversation_repo = conversation_repo
        self._messages = messages
        self._feed = feed or get_change_feed()
        self._settings = settings or get_settings()

    async def send_message(
        self,
        conversation_id: str,
        sender_id: str,
        content: str,
        message_type: MessageType = "text",
    ) -> Message:
        conversation = await self._conversations.get_for_participant(conversation_id, sender_id)
        text = (content or "").strip()
        if not text:
            raise ValueError("message content is required")
        if len(text) > MAX_MESSAGE_LENGTH:
            raise ValueError(f"message content exceeds {MAX_MESSAGE_LENGTH} characters")

        message = await self._messages.insert(conversation.id, sender_id, text, message_type)
        await self._conversation_repo.touch(conversation.id)
        await self._announce(conversation, message, "INSERT")
        return message

    async def send_image(self, conversation_id: str, sender_id: str, data_url: str) -> Message:
        # Check membership before paying for the upload
        await self._conversations.get_for_participant(conversation_id, sender_id)
        validate_image_data_url(data_url, max_bytes=self._settings.max_upload_bytes)
        url = await upload_image(data_url, folder=f"{self._settings.chat_images_folder}/{conversation_id}")
        return await self.send_message(conversation_id, sender_id, url, "image")

    async def list_messages(self, conversation_id: str, user_id: str) -> list[Message]:
        await self._conversations.get_for_participant(conversation_id, user_id)
        return await self._messages.list_for_conversation(conversation_id)

    async def mark_as_read(self, message_id: str, user_id: str) -> Optional[Message]:
        """Stamp ``read_at`` on one message. Returns None if it was already read."""
        message = await self._messages.get_by_id(message_id)
        if message is None:
            raise NotFoundRepositoryError("message not found")
        conversation = await self._conversations.get_for_participant(message.conversation_id, user_id)
        if message.sender_id == user_id:
            return None
        updated = await self._messages.mark_read(message_id)
        if updated is not None:
            await self._announce(conversation, updated, "UPDATE", old=message)
        return updated

    async def mark_conversation_read(self, conversation_id: str, user_id: str) -> int:
        conversation = await self._conversations.get_for_participant(conversation_id, user_id)
        updated = await self._messages.mark_conversation_read(conversation.id, user_id)
        if updated:
            LOGGER.debug("Marked %d messages read in conversation %s", updated, conversation.id)
            await self._feed.emit(
                MESSAGES_COLLECTION,
                "UPDATE",
                {"conversation_id": conversation.id, "read_by": user_id},
                participants=conversation.participant_ids,
            )
        return updated

    async def _announce(
        self,
        conversation: Conversation,
        message: Message,
        change_type: str,
        old: Optional[Message] = None,
    ) -> None:
        await self._feed.emit(
            MESSAGES_COLLECTION,
            change_type,
            message.model_dump(),
            old_record=old.model_dump() if old else None,
            participants=conversation.participant_ids,
        )


def get_message_service() -> MessageService:
    db = get_db()
    conversation_repo = ConversationRepository(db)
    messages = MessageRepository(db)
    conversations = ConversationService(
        MatchRepository(db),
        conversation_repo,
        messages,
        ProfileRepository(db),
    )
    return MessageService(conversations, conversation_repo, messages)


__all__ = ["MAX_MESSAGE_LENGTH", "MessageService", "get_message_service"]
