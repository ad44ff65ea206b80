"""Service layer: orchestration on top of the repositories."""

from .candidates import CandidateSelector, get_candidate_selector
from .conversations import ConversationService, get_conversation_service
from .matching import MatchService, get_match_service
from .messages import MessageService, get_message_service
from .photos import PhotoLimitError, PhotoService, get_photo_service
from .profile_service import ProfileService, get_profile_service

__all__ = [
    "CandidateSelector",
    "ConversationService",
    "MatchService",
    "MessageService",
    "PhotoLimitError",
    "PhotoService",
    "ProfileService",
    "get_candidate_selector",
    "get_conversation_service",
    "get_match_service",
    "get_message_service",
    "get_photo_service",
    "get_profile_service",
]
