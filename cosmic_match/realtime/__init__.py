"""Realtime change feed and per-user listeners."""

from .bus import ChangeFeed, Subscription, change_feed, get_change_feed
from .events import ChangeEvent, ChangeFilter
from .listener import Debouncer, RealtimeListener

__all__ = [
    "ChangeEvent",
    "ChangeFeed",
    "ChangeFilter",
    "Debouncer",
    "RealtimeListener",
    "Subscription",
    "change_feed",
    "get_change_feed",
]
