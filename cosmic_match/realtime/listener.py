"""Per-user realtime listener: change events trigger debounced full reloads."""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Set

from ..db.collections import (
    CONVERSATIONS_COLLECTION,
    MATCHES_COLLECTION,
    MESSAGES_COLLECTION,
)
from .bus import ChangeFeed, Subscription
from .events import ChangeEvent, ChangeFilter

LOGGER = logging.getLogger("uvicorn.error")

Reload = Callable[[], Awaitable[None]]

RELOAD_CONVERSATIONS = "conversations"
RELOAD_NEW_MATCHES = "new_matches"
RELOAD_MESSAGES = "messages"


class Debouncer:
    """Coalesces bursts of triggers per key into one call after a quiet period."""

    def __init__(self, delay_seconds: float) -> None:
        self._delay = max(0.0, float(delay_seconds))
        self._tasks: Dict[str, asyncio.Task] = {}
        # Every task until it finishes, including reloads already running
        self._live: Set[asyncio.Task] = set()

    def schedule(self, key: str, action: Reload) -> None:
        existing = self._tasks.get(key)
        if existing is not None and not existing.done():
            existing.cancel()
        task = asyncio.create_task(self._run(key, action))
        self._tasks[key] = task
        self._live.add(task)
        task.add_done_callback(self._live.discard)

    async def _run(self, key: str, action: Reload) -> None:
        await asyncio.sleep(self._delay)
        # Leave the slot free so triggers arriving mid-reload queue a fresh run
        if self._tasks.get(key) is asyncio.current_task():
            self._tasks.pop(key, None)
        try:
            await action()
        except Exception:
            LOGGER.exception("Debounced reload '%s' failed", key)

    def pending(self) -> List[str]:
        return [key for key, task in self._tasks.items() if not task.done()]

    async def close(self) -> None:
        tasks = [task for task in self._live if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        self._live.clear()


class RealtimeListener:
    """Subscribes one user to matches, conversations and messages changes.

    Every matching event schedules a full reload of the list it affects;
    nothing is applied incrementally.
    """

    def __init__(
        self,
        user_id: str,
        feed: ChangeFeed,
        *,
        reload_conversations: Reload,
        reload_new_matches: Reload,
        reload_messages: Optional[Reload] = None,
        debounce_ms: int = 500,
    ) -> None:
        self.user_id = user_id
        self._feed = feed
        self._reload_conversations = reload_conversations
        self._reload_new_matches = reload_new_matches
        self._reload_messages = reload_messages
        self._debouncer = Debouncer(debounce_ms / 1000.0)
        self._subscriptions: List[Subscription] = []
        self._message_subscription: Optional[Subscription] = None
        self.watched_conversation_id: Optional[str] = None

    @property
    def started(self) -> bool:
        return bool(self._subscriptions)

    def start(self) -> None:
        if self.started:
            return
        involving = ChangeFilter.involving(self.user_id)
        self._subscriptions = [
            self._feed.subscribe(MATCHES_COLLECTION, self._on_match_change, involving),
            self._feed.subscribe(CONVERSATIONS_COLLECTION, self._on_conversation_change, involving),
            self._feed.subscribe(MESSAGES_COLLECTION, self._on_conversation_change, involving),
        ]
        LOGGER.debug("Realtime listener started for user=%s", self.user_id)

    def watch_conversation(self, conversation_id: Optional[str]) -> None:
        if self._message_subscription is not None:
            self._message_subscription.unsubscribe()
            self._message_subscription = None
        self.watched_conversation_id = conversation_id
        if conversation_id and self._reload_messages is not None:
            self._message_subscription = self._feed.subscribe(
                MESSAGES_COLLECTION,
                self._on_message_change,
                ChangeFilter.eq("conversation_id", conversation_id),
            )

    def _on_match_change(self, event: ChangeEvent) -> None:
        self._debouncer.schedule(RELOAD_NEW_MATCHES, self._reload_new_matches)
        self._debouncer.schedule(RELOAD_CONVERSATIONS, self._reload_conversations)

    def _on_conversation_change(self, event: ChangeEvent) -> None:
        self._debouncer.schedule(RELOAD_CONVERSATIONS, self._reload_conversations)
        if event.table == MESSAGES_COLLECTION and event.type == "INSERT":
            # The first message moves a match out of the new matches panel
            self._debouncer.schedule(RELOAD_NEW_MATCHES, self._reload_new_matches)

    def _on_message_change(self, event: ChangeEvent) -> None:
        if self._reload_messages is not None:
            self._debouncer.schedule(RELOAD_MESSAGES, self._reload_messages)

    def pending_reloads(self) -> List[str]:
        return self._debouncer.pending()

    async def close(self) -> None:
        dropped = self.pending_reloads()
        if dropped:
            LOGGER.debug("Dropping pending reloads %s for user=%s", dropped, self.user_id)
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []
        self.watch_conversation(None)
        await self._debouncer.close()


__all__ = [
    "Debouncer",
    "RELOAD_CONVERSATIONS",
    "RELOAD_MESSAGES",
    "RELOAD_NEW_MATCHES",
    "RealtimeListener",
]
