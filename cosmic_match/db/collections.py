"""MongoDB collection names used by the service."""

from __future__ import annotations

USER_PROFILES_COLLECTION = "user_profiles"
USER_INTERESTS_COLLECTION = "user_interests"
USER_GOALS_COLLECTION = "user_goals"
USER_PHOTOS_COLLECTION = "user_photos"
USER_ACTIONS_COLLECTION = "user_actions"
MATCHES_COLLECTION = "matches"
CONVERSATIONS_COLLECTION = "conversations"
MESSAGES_COLLECTION = "messages"

# Tables whose writes are announced on the realtime change feed
REALTIME_TABLES = (
    MATCHES_COLLECTION,
    CONVERSATIONS_COLLECTION,
    MESSAGES_COLLECTION,
)

__all__ = [
    "USER_PROFILES_COLLECTION",
    "USER_INTERESTS_COLLECTION",
    "USER_GOALS_COLLECTION",
    "USER_PHOTOS_COLLECTION",
    "USER_ACTIONS_COLLECTION",
    "MATCHES_COLLECTION",
    "CONVERSATIONS_COLLECTION",
    "MESSAGES_COLLECTION",
    "REALTIME_TABLES",
]
