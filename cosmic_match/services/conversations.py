from __future__ import annotations

import logging
from typing import Optional

from ..db import get_db
from ..db.collections import CONVERSATIONS_COLLECTION
from ..models.chat import Conversation, ConversationSummary
from ..models.matching import Match, MatchWithProfile
from ..realtime.bus import ChangeFeed, get_change_feed
from ..repositories import (
    ConversationRepository,
    MatchRepository,
    MessageRepository,
    ProfileRepository,
)
from ..repositories.exceptions import NotFoundRepositoryError, RepositoryError

LOGGER = logging.getLogger("uvicorn.error")


class ConversationService:
    """Materialises conversations for mutual matches and builds the chat lists."""

    def __init__(
        self,
        matches: MatchRepository,
        conversations: ConversationRepository,
        messages: MessageRepository,
        profiles: ProfileRepository,
        feed: Optional[ChangeFeed] = None,
    ) -> None:
        self._matches = matches
        self._conversations = conversations
        self._messages = messages
        self._profiles = profiles
        self._feed = feed or get_change_feed()

    async def get_or_create_for_match(self, match_id: str, user_id: Optional[str] = None) -> Conversation:
        """Return the match's conversation, creating it on first use.

        Raises ``NotFoundRepositoryError`` for an unknown match and
        ``PermissionError`` when the match is not mutual or ``user_id`` is not
        one of its participants.
        """

        match = await self._matches.get_by_id(match_id)
        if match is None:
            raise NotFoundRepositoryError("match not found")
        if user_id is not None and not match.involves(user_id):
            raise PermissionError("not a participant of this match")
        return await self.materialize(match)

    async def materialize(self, match: Match) -> Conversation:
        if match.status != "mutual":
            raise PermissionError("match is not mutual")
        existing = await self._conversations.get_by_match(match.id)
        if existing is not None:
            return existing
        # Lookup then insert; two devices racing here can both insert
        conversation = await self._conversations.insert(match.id, [match.user1_id, match.user2_id])
        LOGGER.info("Conversation %s created for match %s", conversation.id, match.id)
        await self._feed.emit(
            CONVERSATIONS_COLLECTION,
            "INSERT",
            conversation.model_dump(),
            participants=conversation.participant_ids,
        )
        return conversation

    async def get_for_participant(self, conversation_id: str, user_id: str) -> Conversation:
        conversation = await self._conversations.get_by_id(conversation_id)
        if conversation is None:
            raise NotFoundRepositoryError("conversation not found")
        participants = conversation.participant_ids
        if not participants:
            match = await self._matches.get_by_id(conversation.match_id)
            participants = [match.user1_id, match.user2_id] if match else []
        if user_id not in participants:
            raise PermissionError("not a participant of this conversation")
        return conversation

    async def list_for_user(self, user_id: str) -> list[ConversationSummary]:
        """Conversations of the user's mutual matches, most recent activity first."""
        try:
            mutual = await self._matches.list_for_user(user_id, status="mutual")
            by_match = await self._conversations.list_by_matches(m.id for m in mutual)
            profiles = await self._profiles.get_many(m.other_user(user_id) for m in mutual)

            summaries: list[ConversationSummary] = []
            for match in mutual:
                conversation = by_match.get(match.id)
                if conversation is None:
                    continue
                summaries.append(
                    ConversationSummary(
                        **conversation.model_dump(),
                        match=match,
                        user_profile=profiles.get(match.other_user(user_id)),
                        last_message=await self._messages.last_message(conversation.id),
                        unread_count=await self._messages.count_unread(conversation.id, user_id),
                    )
                )
        except RepositoryError as exc:
            LOGGER.error("Loading conversations failed for user=%s: %s", user_id, exc)
            return []

        def _activity(summary: ConversationSummary) -> str:
            if summary.last_message and summary.last_message.sent_at:
                return summary.last_message.sent_at
            return summary.updated_at or summary.created_at or ""

        summaries.sort(key=_activity, reverse=True)
        return summaries

    async def list_new_matches(self, user_id: str) -> list[MatchWithProfile]:
        """Mutual matches nobody has written in yet, newest first."""
        try:
            mutual = await self._matches.list_for_user(user_id, status="mutual")
            by_match = await self._conversations.list_by_matches(m.id for m in mutual)
            profiles = await self._profiles.get_many(m.other_user(user_id) for m in mutual)

            fresh: list[MatchWithProfile] = []
            for match in mutual:
                conversation = by_match.get(match.id)
                if conversation is not None and await self._messages.count_for_conversation(conversation.id):
                    continue
                fresh.append(
                    MatchWithProfile(
                        match=match,
                        user_profile=profiles.get(match.other_user(user_id)),
                        conversation_id=conversation.id if conversation else None,
                    )
                )
            return fresh
        except RepositoryError as exc:
            LOGGER.error("Loading new matches failed for user=%s: %s", user_id, exc)
            return []


def get_conversation_service() -> ConversationService:
    db = get_db()
    return ConversationService(
        MatchRepository(db),
        ConversationRepository(db),
        MessageRepository(db),
        ProfileRepository(db),
    )


__all__ = ["ConversationService", "get_conversation_service"]
