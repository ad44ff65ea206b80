"""A connected user's match session: state, optimistic actions, realtime reloads."""

from __future__ import annotations

import inspect
import logging
from typing import Awaitable, Callable, Optional, Union

from .config import get_settings
from .models.matching import ActionType, LikeResult
from .realtime.bus import ChangeFeed, get_change_feed
from .realtime.listener import RealtimeListener
from .repositories.exceptions import (
    BackendTimeoutError,
    DuplicateKeyRepositoryError,
    RepositoryError,
)
from .services.candidates import CandidateSelector, get_candidate_selector
from .services.conversations import ConversationService, get_conversation_service
from .services.matching import MatchService, get_match_service
from .services.messages import MessageService, get_message_service
from .state import (
    MatchState,
    open_conversation,
    remove_candidate,
    restore_candidate,
    set_candidates,
    set_conversations,
    set_messages,
    set_new_matches,
    settle_action,
)

LOGGER = logging.getLogger("uvicorn.error")

# Called with the name of the slice that changed and the new state
StateListener = Callable[[str, MatchState], Union[None, Awaitable[None]]]

CANDIDATES = "candidates"
CONVERSATIONS = "conversations"
NEW_MATCHES = "new_matches"
MESSAGES = "messages"


class MatchSession:
    """Owns one user's ``MatchState``.

    Like and pass remove the candidate immediately, then reconcile with the
    backend result:

    * success or a duplicate action: the removal stands;
    * a confirmed failure: the candidate goes back where it was;
    * a timeout: the outcome is unknown, so the removal stands and the next
      full reload corrects any drift.
    """

    def __init__(
        self,
        user_id: str,
        *,
        selector: CandidateSelector,
        matches: MatchService,
        conversations: ConversationService,
        messages: MessageService,
        feed: Optional[ChangeFeed] = None,
        debounce_ms: int = 500,
        on_change: Optional[StateListener] = None,
    ) -> None:
        self.user_id = user_id
        self._selector = selector
        self._matches = matches
        self._conversations = conversations
        self._messages = messages
        self._on_change = on_change
        self._state = MatchState(user_id=user_id)
        self._listener = RealtimeListener(
            user_id,
            feed or get_change_feed(),
            reload_conversations=self.reload_conversations,
            reload_new_matches=self.reload_new_matches,
            reload_messages=self.reload_messages,
            debounce_ms=debounce_ms,
        )

    @property
    def state(self) -> MatchState:
        return self._state

    @property
    def listener(self) -> RealtimeListener:
        return self._listener

    async def _commit(self, state: MatchState, changed: str) -> None:
        self._state = state
        if self._on_change is None:
            return
        try:
            result = self._on_change(changed, state)
            if inspect.isawaitable(result):
                await result
        except Exception:
            LOGGER.exception("Session listener failed for user=%s", self.user_id)

    async def start(self) -> None:
        """Load every list once and begin listening for changes."""
        self._listener.start()
        await self.load_candidates()
        await self.reload_conversations()
        await self.reload_new_matches()

    async def close(self) -> None:
        await self._listener.close()

    async def load_candidates(self) -> None:
        candidates = await self._selector.select(self.user_id)
        await self._commit(set_candidates(self._state, candidates), CANDIDATES)

    async def reload_conversations(self) -> None:
        conversations = await self._conversations.list_for_user(self.user_id)
        await self._commit(set_conversations(self._state, conversations), CONVERSATIONS)

    async def reload_new_matches(self) -> None:
        new_matches = await self._conversations.list_new_matches(self.user_id)
        await self._commit(set_new_matches(self._state, new_matches), NEW_MATCHES)

    async def reload_messages(self) -> None:
        conversation_id = self._state.open_conversation_id
        if not conversation_id:
            return
        try:
            messages = await self._messages.list_messages(conversation_id, self.user_id)
        except (RepositoryError, PermissionError) as exc:
            LOGGER.error("Loading messages failed for conversation=%s: %s", conversation_id, exc)
            return
        await self._commit(set_messages(self._state, conversation_id, messages), MESSAGES)

    async def open_conversation(self, conversation_id: Optional[str]) -> None:
        await self._commit(open_conversation(self._state, conversation_id), MESSAGES)
        self._listener.watch_conversation(conversation_id)
        await self.reload_messages()

    async def like(self, target_user_id: str) -> Optional[LikeResult]:
        """Like a candidate. Returns None when the backend outcome is a failure or unknown."""
        await self._commit(remove_candidate(self._state, target_user_id, "like"), CANDIDATES)
        try:
            result = await self._matches.like_user(self.user_id, target_user_id)
        except Exception as exc:
            await self._reconcile_failure(target_user_id, "like", exc)
            return None
        await self._commit(settle_action(self._state, target_user_id), CANDIDATES)
        if result.is_match:
            await self.reload_conversations()
            await self.reload_new_matches()
        return result

    async def pass_user(self, target_user_id: str) -> bool:
        """Pass on a candidate. Returns True unless the backend confirmed a failure."""
        await self._commit(remove_candidate(self._state, target_user_id, "pass"), CANDIDATES)
        try:
            await self._matches.pass_user(self.user_id, target_user_id)
        except Exception as exc:
            return await self._reconcile_failure(target_user_id, "pass", exc)
        await self._commit(settle_action(self._state, target_user_id), CANDIDATES)
        return True

    async def _reconcile_failure(self, target_user_id: str, action: ActionType, exc: Exception) -> bool:
        """Settle or roll back after a failed action. Returns whether the removal stands."""
        if isinstance(exc, DuplicateKeyRepositoryError):
            await self._commit(settle_action(self._state, target_user_id), CANDIDATES)
            return True
        if isinstance(exc, BackendTimeoutError):
            LOGGER.warning(
                "%s %s->%s timed out; keeping local removal until next reload",
                action, self.user_id, target_user_id,
            )
            await self._commit(settle_action(self._state, target_user_id), CANDIDATES)
            return True
        await self._commit(restore_candidate(self._state, target_user_id), CANDIDATES)
        if isinstance(exc, (RepositoryError, ValueError, PermissionError)):
            LOGGER.error("%s %s->%s failed, candidate restored: %s", action, self.user_id, target_user_id, exc)
            return False
        raise exc


def build_match_session(user_id: str, *, on_change: Optional[StateListener] = None) -> MatchSession:
    """Wire a session to the shared database, settings and change feed."""
    return MatchSession(
        user_id,
        selector=get_candidate_selector(),
        matches=get_match_service(),
        conversations=get_conversation_service(),
        messages=get_message_service(),
        debounce_ms=get_settings().realtime_debounce_ms,
        on_change=on_change,
    )


__all__ = [
    "CANDIDATES",
    "CONVERSATIONS",
    "MESSAGES",
    "MatchSession",
    "NEW_MATCHES",
    "build_match_session",
]
