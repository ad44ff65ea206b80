from fastapi import APIRouter, Depends, Request, Response

from ..deps import get_current_user_id
from ..models.chat import (
    ConversationsResponse,
    Message,
    MessageCreateRequest,
    MessageListResponse,
    ReadReceiptResponse,
)
from ..models.profile import ImageUploadRequest
from ..services.conversations import ConversationService, get_conversation_service
from ..services.messages import MessageService, get_message_service
from ..utils.http import etag_matches, weak_etag
from .errors import SERVICE_ERRORS, http_error

router = APIRouter()


@router.get("/conversations", response_model=ConversationsResponse)
async def list_conversations(
    request: Request,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    service: ConversationService = Depends(get_conversation_service),
):
    payload = ConversationsResponse(conversations=await service.list_for_user(user_id))
    tag = weak_etag(payload.model_dump(mode="json"))
    if etag_matches(request.headers.get("if-none-match"), tag):
        return Response(status_code=304, headers={"ETag": tag})
    response.headers["ETag"] = tag
    response.headers["Cache-Control"] = "private, no-cache"
    return payload


@router.get("/conversations/{conversation_id}/messages", response_model=MessageListResponse)
async def list_messages(
    conversation_id: str,
    user_id: str = Depends(get_current_user_id),
    service: MessageService = Depends(get_message_service),
):
    try:
        messages = await service.list_messages(conversation_id, user_id)
    except SERVICE_ERRORS as exc:
        raise http_error(exc) from exc
    return MessageListResponse(messages=messages)


@router.post("/conversations/{conversation_id}/messages", response_model=Message, status_code=201)
async def send_message(
    conversation_id: str,
    payload: MessageCreateRequest,
    user_id: str = Depends(get_current_user_id),
    service: MessageService = Depends(get_message_service),
):
    try:
        return await service.send_message(conversation_id, user_id, payload.content)
    except SERVICE_ERRORS as exc:
        raise http_error(exc) from exc


@router.post("/conversations/{conversation_id}/images", response_model=Message, status_code=201)
async def send_image(
    conversation_id: str,
    payload: ImageUploadRequest,
    user_id: str = Depends(get_current_user_id),
    service: MessageService = Depends(get_message_service),
):
    try:
        return await service.send_image(conversation_id, user_id, payload.data_url)
    except SERVICE_ERRORS as exc:
        raise http_error(exc) from exc


@router.post("/conversations/{conversation_id}/read", response_model=ReadReceiptResponse)
async def mark_conversation_read(
    conversation_id: str,
    user_id: str = Depends(get_current_user_id),
    service: MessageService = Depends(get_message_service),
):
    try:
        updated = await service.mark_conversation_read(conversation_id, user_id)
    except SERVICE_ERRORS as exc:
        raise http_error(exc) from exc
    return ReadReceiptResponse(updated=updated)


@router.post("/messages/{message_id}/read", response_model=ReadReceiptResponse)
async def mark_message_read(
    message_id: str,
    user_id: str = Depends(get_current_user_id),
    service: MessageService = Depends(get_message_service),
):
    try:
        updated = await service.mark_as_read(message_id, user_id)
    except SERVICE_ERRORS as exc:
        raise http_error(exc) from exc
    return ReadReceiptResponse(updated=1 if updated else 0)


__all__ = ["router"]
