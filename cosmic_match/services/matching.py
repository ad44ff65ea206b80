"""Like/pass recording and pending -> mutual match resolution.

At most one match row exists per unordered pair; the unique ``pair_key``
index enforces it. Two users liking each other at the same moment both try to
insert: the loser sees a duplicate key, re-reads the winner's row and promotes
it with a conditional update, so neither side needs a lock.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..db import get_db
from ..db.collections import MATCHES_COLLECTION
from ..models.matching import ActionType, LikeResult, Match
from ..realtime.bus import ChangeFeed, get_change_feed
from ..repositories import (
    ActionRepository,
    ConversationRepository,
    MatchRepository,
    MessageRepository,
    ProfileRepository,
)
from ..repositories.exceptions import DuplicateKeyRepositoryError, NotFoundRepositoryError
from .conversations import ConversationService
from .scoring import compatibility_score

LOGGER = logging.getLogger("uvicorn.error")


class MatchService:
    def __init__(
        self,
        profiles: ProfileRepository,
        actions: ActionRepository,
        matches: MatchRepository,
        conversations: ConversationService,
        feed: Optional[ChangeFeed] = None,
    ) -> None:
        self._profiles = profiles
        self._actions = actions
        self._matches = matches
        self._conversations = conversations
        self._feed = feed or get_change_feed()

    async def _ensure_target(self, user_id: str, target_id: str, verb: str) -> None:
        if user_id == target_id:
            raise ValueError(f"Users cannot {verb} themselves")
        if await self._profiles.get_by_id(target_id) is None:
            raise NotFoundRepositoryError("target user not found")

    async def _record_action(self, user_id: str, target_id: str, action_type: ActionType) -> bool:
        try:
            await self._actions.record(user_id, target_id, action_type)
            return True
        except DuplicateKeyRepositoryError:
            # Already recorded; the unique index keeps this idempotent
            LOGGER.debug("Action %s->%s already recorded", user_id, target_id)
            return False

    async def pass_user(self, user_id: str, target_id: str) -> bool:
        """Record a pass. Returns False when an action for the pair already existed."""
        await self._ensure_target(user_id, target_id, "pass")
        return await self._record_action(user_id, target_id, "pass")

    async def like_user(self, user_id: str, target_id: str) -> LikeResult:
        await self._ensure_target(user_id, target_id, "like")

        existing = await self._matches.find_between(user_id, target_id)
        if existing is not None:
            return await self._resolve_existing(existing, user_id, target_id)

        try:
            match = await self._matches.insert_pending(
                user_id,
                target_id,
                compatibility_score=await self._score(user_id, target_id),
            )
        except DuplicateKeyRepositoryError:
            LOGGER.info("Concurrent like for pair %s/%s; re-reading match", user_id, target_id)
            existing = await self._matches.find_between(user_id, target_id)
            if existing is None:
                return LikeResult(is_match=False)
            return await self._resolve_existing(existing, user_id, target_id)

        await self._record_action(user_id, target_id, "like")
        await self._feed.emit(
            MATCHES_COLLECTION,
            "INSERT",
            match.model_dump(),
            participants=[match.user1_id, match.user2_id],
        )
        return LikeResult(is_match=False, match_id=match.id)

    async def _resolve_existing(self, match: Match, user_id: str, target_id: str) -> LikeResult:
        if match.status == "mutual":
            # Get-or-create: repairs a promotion whose conversation insert failed
            conversation = await self._conversations.materialize(match)
            return LikeResult(is_match=False, match_id=match.id, conversation_id=conversation.id)
        if match.user1_id != target_id:
            # Our own pending like
            return LikeResult(is_match=False, match_id=match.id)

        promoted = await self._matches.promote_to_mutual(match.id, liked_by=user_id)
        if promoted is None:
            LOGGER.info("Match %s was no longer pending when promoting", match.id)
            return LikeResult(is_match=False, match_id=match.id)

        await self._record_action(user_id, target_id, "like")
        conversation = await self._conversations.materialize(promoted)
        await self._feed.emit(
            MATCHES_COLLECTION,
            "UPDATE",
            promoted.model_dump(),
            old_record=match.model_dump(),
            participants=[promoted.user1_id, promoted.user2_id],
        )
        LOGGER.info("Mutual match %s between %s and %s", promoted.id, user_id, target_id)
        return LikeResult(is_match=True, match_id=promoted.id, conversation_id=conversation.id)

    async def _score(self, user_id: str, target_id: str) -> Optional[int]:
        profiles = await self._profiles.get_many([user_id, target_id])
        me, them = profiles.get(user_id), profiles.get(target_id)
        if me is None or them is None:
            return None
        interests = await self._profiles.interests_for([target_id])
        return compatibility_score(me, them, interests.get(target_id, []))


def get_match_service() -> MatchService:
    db = get_db()
    profiles = ProfileRepository(db)
    matches = MatchRepository(db)
    conversations = ConversationService(
        matches,
        ConversationRepository(db),
        MessageRepository(db),
        profiles,
    )
    return MatchService(profiles, ActionRepository(db), matches, conversations)


__all__ = ["MatchService", "get_match_service"]
