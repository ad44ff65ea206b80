from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from .collections import (
    CONVERSATIONS_COLLECTION,
    MATCHES_COLLECTION,
    MESSAGES_COLLECTION,
    USER_ACTIONS_COLLECTION,
    USER_GOALS_COLLECTION,
    USER_INTERESTS_COLLECTION,
    USER_PHOTOS_COLLECTION,
    USER_PROFILES_COLLECTION,
)


async def ensure_profile_indexes(db: AsyncIOMotorDatabase) -> None:
    await db[USER_PROFILES_COLLECTION].create_index(
        [("gender", ASCENDING), ("looking_for", ASCENDING)],
        name="user_profiles_gender_looking_for_idx",
    )
    await db[USER_INTERESTS_COLLECTION].create_index(
        [("user_id", ASCENDING), ("interest", ASCENDING)],
        name="user_interests_user_interest_unique",
        unique=True,
    )
    await db[USER_GOALS_COLLECTION].create_index(
        [("user_id", ASCENDING), ("goal", ASCENDING)],
        name="user_goals_user_goal_unique",
        unique=True,
    )
    await db[USER_PHOTOS_COLLECTION].create_index(
        [("user_id", ASCENDING), ("order_index", ASCENDING)],
        name="user_photos_user_order_idx",
    )


async def ensure_matching_indexes(db: AsyncIOMotorDatabase) -> None:
    await db[USER_ACTIONS_COLLECTION].create_index(
        [("user_id", ASCENDING), ("target_user_id", ASCENDING)],
        name="user_actions_user_target_unique",
        unique=True,
    )
    # One match row per unordered pair
    await db[MATCHES_COLLECTION].create_index(
        "pair_key",
        name="matches_pair_key_unique",
        unique=True,
    )
    await db[MATCHES_COLLECTION].create_index(
        [("user1_id", ASCENDING), ("status", ASCENDING)],
        name="matches_user1_status_idx",
    )
    await db[MATCHES_COLLECTION].create_index(
        [("user2_id", ASCENDING), ("status", ASCENDING)],
        name="matches_user2_status_idx",
    )


async def ensure_chat_indexes(db: AsyncIOMotorDatabase) -> None:
    await db[CONVERSATIONS_COLLECTION].create_index("match_id", name="conversations_match_id_idx")
    await db[MESSAGES_COLLECTION].create_index(
        [("conversation_id", ASCENDING), ("sent_at", DESCENDING)],
        name="messages_conversation_sent_at_idx",
    )


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    await ensure_profile_indexes(db)
    await ensure_matching_indexes(db)
    await ensure_chat_indexes(db)


__all__ = [
    "ensure_chat_indexes",
    "ensure_indexes",
    "ensure_matching_indexes",
    "ensure_profile_indexes",
]
