"""Realtime change feed.

Writes to matches, conversations and messages are announced here. When Redis
pub/sub is configured the events travel through Redis so every instance sees
them; otherwise they fan out to in-process subscribers directly.
"""

import asyncio
import inspect
import json
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from redis.asyncio import Redis
from redis.asyncio.client import PubSub

from ..config import get_settings
from ..db.collections import REALTIME_TABLES
from .events import ChangeEvent, ChangeFilter

LOGGER = logging.getLogger("uvicorn.error")

ChangeCallback = Callable[[ChangeEvent], Union[None, Awaitable[None]]]


def _channel(table: str) -> str:
    prefix = (get_settings().redis_pubsub_prefix or "").strip()
    name = f"changes.{table}"
    return f"{prefix}.{name}" if prefix else name


class Subscription:
    def __init__(
        self,
        feed: "ChangeFeed",
        table: str,
        callback: ChangeCallback,
        change_filter: Optional[ChangeFilter],
    ) -> None:
        self.table = table
        self.callback = callback
        self.filter = change_filter
        self._feed = feed
        self.active = True

    def wants(self, event: ChangeEvent) -> bool:
        return self.active and (self.filter is None or self.filter.matches(event))

    def unsubscribe(self) -> None:
        self.active = False
        self._feed._remove(self)


class ChangeFeed:
    def __init__(self) -> None:
        self._subscriptions: Dict[str, List[Subscription]] = defaultdict(list)
        self._client: Optional[Redis] = None
        self._listener_task: Optional[asyncio.Task] = None
        self._pubsub: Optional[PubSub] = None

    def subscribe(
        self,
        table: str,
        callback: ChangeCallback,
        change_filter: Optional[ChangeFilter] = None,
    ) -> Subscription:
        subscription = Subscription(self, table, callback, change_filter)
        self._subscriptions[table].append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        subs = self._subscriptions.get(subscription.table)
        if subs and subscription in subs:
            subs.remove(subscription)

    async def dispatch(self, event: ChangeEvent) -> None:
        for subscription in list(self._subscriptions.get(event.table, ())):
            if not subscription.wants(event):
                continue
            try:
                result = subscription.callback(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                LOGGER.exception("Realtime subscriber failed for table=%s", event.table)

    async def publish(self, event: ChangeEvent) -> None:
        """Best-effort announcement of a change; never raises."""
        settings = get_settings()
        if settings.redis_pubsub_enabled:
            client = await self._ensure_client()
            if client is not None:
                try:
                    payload = json.dumps(event.model_dump(), separators=(",", ":")).encode("utf-8")
                    await client.publish(_channel(event.table), payload)
                    return
                except Exception as exc:
                    LOGGER.warning("Realtime publish over Redis failed, delivering locally: %s", exc)
        await self.dispatch(event)

    async def emit(
        self,
        table: str,
        change_type: str,
        record: Dict[str, Any],
        *,
        participants: Optional[List[str]] = None,
        old_record: Optional[Dict[str, Any]] = None,
    ) -> None:
        await self.publish(
            ChangeEvent(
                table=table,
                type=change_type,
                record=record,
                old_record=old_record,
                participants=list(participants or []),
            )
        )

    async def _ensure_client(self) -> Optional[Redis]:
        if self._client is not None:
            return self._client
        settings = get_settings()
        if not settings.redis_url:
            return None
        try:
            client = Redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=False,
            )
            await client.ping()
            self._client = client
        except Exception as exc:
            LOGGER.warning("Redis unavailable for realtime feed: %s", exc)
            self._client = None
        return self._client

    async def start(self) -> bool:
        """Start relaying Redis channel messages to local subscribers."""
        if self._listener_task is not None:
            return True
        if not get_settings().redis_pubsub_enabled:
            return False
        client = await self._ensure_client()
        if client is None:
            return False

        async def _run() -> None:
            pubsub = client.pubsub()
            channels = [_channel(table) for table in REALTIME_TABLES]
            try:
                await pubsub.subscribe(*channels)
                self._pubsub = pubsub
                async for message in pubsub.listen():
                    if message.get("type") != "message":
                        continue
                    raw_data = message.get("data")
                    try:
                        if isinstance(raw_data, (bytes, bytearray)):
                            raw_data = raw_data.decode("utf-8")
                        event = ChangeEvent(**json.loads(raw_data))
                    except Exception:
                        LOGGER.debug("Dropping malformed realtime payload")
                        continue
                    await self.dispatch(event)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                LOGGER.error("Realtime listener stopped: %s", exc)
            finally:
                try:
                    await pubsub.close()
                except Exception:
                    pass
                self._pubsub = None

        self._listener_task = asyncio.create_task(_run())
        return True

    async def stop(self) -> None:
        if self._listener_task is not None:
            self._listener_task.cancel()
            try:
                await self._listener_task
            except asyncio.CancelledError:
                pass
            self._listener_task = None
        if self._client is not None:
            try:
                await self._client.close()
            except Exception:
                pass
            self._client = None


change_feed = ChangeFeed()


def get_change_feed() -> ChangeFeed:
    return change_feed


__all__ = ["ChangeFeed", "Subscription", "change_feed", "get_change_feed"]
