"""Per-user application state and the pure reducers that change it.

``MatchState`` is immutable; every reducer returns a new instance, so a
session can keep the previous value around for rollback and tests can
compare states directly.
"""

from __future__ import annotations

from typing import Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from .models.chat import ConversationSummary, Message
from .models.matching import ActionType, Candidate, MatchWithProfile


class PendingAction(BaseModel):
    """A like/pass applied locally but not yet confirmed by the backend."""

    model_config = ConfigDict(frozen=True)

    target_user_id: str
    action_type: ActionType
    candidate: Candidate
    index: int


class MatchState(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    candidates: Tuple[Candidate, ...] = ()
    conversations: Tuple[ConversationSummary, ...] = ()
    new_matches: Tuple[MatchWithProfile, ...] = ()
    open_conversation_id: Optional[str] = None
    messages: Tuple[Message, ...] = ()
    pending: Tuple[PendingAction, ...] = ()

    def candidate_ids(self) -> list[str]:
        return [c.id for c in self.candidates]

    def pending_for(self, target_user_id: str) -> Optional[PendingAction]:
        for entry in self.pending:
            if entry.target_user_id == target_user_id:
                return entry
        return None


def set_candidates(state: MatchState, candidates: Iterable[Candidate]) -> MatchState:
    # Anyone with an in-flight action stays hidden until it settles
    in_flight = {p.target_user_id for p in state.pending}
    kept = tuple(c for c in candidates if c.id not in in_flight)
    return state.model_copy(update={"candidates": kept})


def remove_candidate(state: MatchState, target_user_id: str, action_type: ActionType) -> MatchState:
    """Optimistically drop a candidate and remember where it was."""
    for index, candidate in enumerate(state.candidates):
        if candidate.id == target_user_id:
            remaining = state.candidates[:index] + state.candidates[index + 1:]
            entry = PendingAction(
                target_user_id=target_user_id,
                action_type=action_type,
                candidate=candidate,
                index=index,
            )
            pending = tuple(p for p in state.pending if p.target_user_id != target_user_id)
            return state.model_copy(update={"candidates": remaining, "pending": pending + (entry,)})
    return state


def settle_action(state: MatchState, target_user_id: str) -> MatchState:
    """Forget the pending entry; the removal stands."""
    if state.pending_for(target_user_id) is None:
        return state
    pending = tuple(p for p in state.pending if p.target_user_id != target_user_id)
    return state.model_copy(update={"pending": pending})


def restore_candidate(state: MatchState, target_user_id: str) -> MatchState:
    """Undo an optimistic removal, putting the candidate back at its old position."""
    entry = state.pending_for(target_user_id)
    if entry is None:
        return state
    pending = tuple(p for p in state.pending if p.target_user_id != target_user_id)
    candidates = state.candidates
    if target_user_id not in {c.id for c in candidates}:
        index = min(entry.index, len(candidates))
        candidates = candidates[:index] + (entry.candidate,) + candidates[index:]
    return state.model_copy(update={"candidates": candidates, "pending": pending})


def set_conversations(state: MatchState, conversations: Iterable[ConversationSummary]) -> MatchState:
    return state.model_copy(update={"conversations": tuple(conversations)})


def set_new_matches(state: MatchState, new_matches: Iterable[MatchWithProfile]) -> MatchState:
    return state.model_copy(update={"new_matches": tuple(new_matches)})


def open_conversation(state: MatchState, conversation_id: Optional[str]) -> MatchState:
    if conversation_id == state.open_conversation_id:
        return state
    return state.model_copy(update={"open_conversation_id": conversation_id, "messages": ()})


def set_messages(state: MatchState, conversation_id: str, messages: Iterable[Message]) -> MatchState:
    # A reload that finishes after the user switched conversations is dropped
    if conversation_id != state.open_conversation_id:
        return state
    return state.model_copy(update={"messages": tuple(messages)})


__all__ = [
    "MatchState",
    "PendingAction",
    "open_conversation",
    "remove_candidate",
    "restore_candidate",
    "set_candidates",
    "set_conversations",
    "set_messages",
    "set_new_matches",
    "settle_action",
]
