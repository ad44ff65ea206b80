from fastapi import APIRouter, Depends

from ..deps import get_current_user_id
from ..models.chat import Conversation
from ..models.matching import (
    ActionRequest,
    CandidatesResponse,
    LikeResponse,
    NewMatchesResponse,
    PassResponse,
)
from ..services.candidates import CandidateSelector, get_candidate_selector
from ..services.conversations import ConversationService, get_conversation_service
from ..services.matching import MatchService, get_match_service
from .errors import SERVICE_ERRORS, http_error

router = APIRouter()


@router.get("/candidates", response_model=CandidatesResponse)
async def list_candidates(
    user_id: str = Depends(get_current_user_id),
    selector: CandidateSelector = Depends(get_candidate_selector),
):
    return CandidatesResponse(candidates=await selector.select(user_id))


@router.post("/actions/like", response_model=LikeResponse)
async def like(
    payload: ActionRequest,
    user_id: str = Depends(get_current_user_id),
    service: MatchService = Depends(get_match_service),
):
    try:
        result = await service.like_user(user_id, payload.target_user_id.strip())
    except SERVICE_ERRORS as exc:
        raise http_error(exc) from exc
    return LikeResponse(**result.model_dump())


@router.post("/actions/pass", response_model=PassResponse)
async def pass_user(
    payload: ActionRequest,
    user_id: str = Depends(get_current_user_id),
    service: MatchService = Depends(get_match_service),
):
    try:
        recorded = await service.pass_user(user_id, payload.target_user_id.strip())
    except SERVICE_ERRORS as exc:
        raise http_error(exc) from exc
    return PassResponse(recorded=recorded)


@router.get("/matches/new", response_model=NewMatchesResponse)
async def list_new_matches(
    user_id: str = Depends(get_current_user_id),
    service: ConversationService = Depends(get_conversation_service),
):
    return NewMatchesResponse(matches=await service.list_new_matches(user_id))


@router.post("/matches/{match_id}/conversation", response_model=Conversation)
async def open_match_conversation(
    match_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ConversationService = Depends(get_conversation_service),
):
    """Message a mutual match: returns its conversation, creating it if needed."""
    try:
        return await service.get_or_create_for_match(match_id, user_id)
    except SERVICE_ERRORS as exc:
        raise http_error(exc) from exc


__all__ = ["router"]
