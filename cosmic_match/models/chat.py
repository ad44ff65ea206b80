from typing import List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .matching import Match
from .profile import Profile

MessageType = Literal["text", "image"]


class Conversation(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    match_id: str
    participant_ids: List[str] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class Message(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    conversation_id: str
    sender_id: str
    content: str
    message_type: MessageType = "text"
    sent_at: Optional[str] = None
    read_at: Optional[str] = None


class ConversationSummary(Conversation):
    """Conversation list entry: the match, the other participant and unread state."""

    match: Optional[Match] = None
    user_profile: Optional[Profile] = None
    last_message: Optional[Message] = None
    unread_count: int = 0


class ConversationsResponse(BaseModel):
    conversations: List[ConversationSummary] = Field(default_factory=list)


class MessageCreateRequest(BaseModel):
    """Text messages only; images go through the upload endpoint."""

    content: str = Field(min_length=1, max_length=4000)
    message_type: Literal["text"] = "text"


class MessageListResponse(BaseModel):
    messages: List[Message] = Field(default_factory=list)


class ReadReceiptResponse(BaseModel):
    status: Literal["ok"] = "ok"
    updated: int = 0


__all__ = [
    "Conversation",
    "ConversationSummary",
    "ConversationsResponse",
    "Message",
    "MessageCreateRequest",
    "MessageListResponse",
    "MessageType",
    "ReadReceiptResponse",
]
