"""Shared plumbing for repositories: timeouts and error translation."""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Awaitable, Optional, TypeVar

from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..config import get_settings
from .exceptions import BackendTimeoutError, DuplicateKeyRepositoryError, RepositoryError

LOGGER = logging.getLogger("uvicorn.error")

T = TypeVar("T")

# E11000 duplicate key, plus the legacy update variant
UNIQUE_VIOLATION_CODES = frozenset({11000, 11001})


def is_unique_violation(exc: BaseException) -> bool:
    if isinstance(exc, DuplicateKeyError):
        return True
    return getattr(exc, "code", None) in UNIQUE_VIOLATION_CODES


def new_id() -> str:
    return str(uuid.uuid4())


async def with_timeout(awaitable: Awaitable[T], *, timeout: Optional[float] = None) -> T:
    """Await a backend call under the client-side timeout, translating driver errors."""

    limit = timeout if timeout is not None else get_settings().backend_timeout_seconds
    try:
        return await asyncio.wait_for(awaitable, timeout=limit)
    except asyncio.TimeoutError as exc:
        raise BackendTimeoutError(f"backend call timed out after {limit:g}s") from exc
    except PyMongoError as exc:
        if is_unique_violation(exc):
            raise DuplicateKeyRepositoryError(str(exc)) from exc
        raise RepositoryError(str(exc)) from exc


class BaseRepository:
    """Holds the collection handle for one table."""

    collection_name: str = ""

    def __init__(self, database: AsyncIOMotorDatabase) -> None:
        self._database = database
        self._collection: AsyncIOMotorCollection = database[self.collection_name]

    @property
    def collection(self) -> AsyncIOMotorCollection:
        return self._collection

    async def _find_many(
        self,
        query: dict[str, Any],
        *,
        sort: Optional[list[tuple[str, int]]] = None,
        limit: int = 0,
        projection: Optional[dict[str, Any]] = None,
    ) -> list[dict[str, Any]]:
        cursor = self._collection.find(query, projection=projection)
        if sort:
            cursor = cursor.sort(sort)
        if limit:
            cursor = cursor.limit(limit)
        return await with_timeout(cursor.to_list(length=None))


__all__ = [
    "BaseRepository",
    "LOGGER",
    "UNIQUE_VIOLATION_CODES",
    "is_unique_violation",
    "new_id",
    "with_timeout",
]
