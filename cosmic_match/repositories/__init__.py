"""Repository layer to abstract MongoDB access patterns."""

from .action import ActionRepository
from .conversation import ConversationRepository, MessageRepository
from .match import MatchRepository
from .photo import PhotoRepository
from .profile import ProfileRepository

__all__ = [
    "ActionRepository",
    "ConversationRepository",
    "MatchRepository",
    "MessageRepository",
    "PhotoRepository",
    "ProfileRepository",
]
