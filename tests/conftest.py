from __future__ import annotations

import base64
from collections.abc import AsyncIterator
from types import SimpleNamespace

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from cosmic_match.config import get_settings
from cosmic_match.db import close_mongo_connection, connect_to_mongo, get_db
from cosmic_match.main import app
from cosmic_match.realtime.bus import change_feed
from cosmic_match.repositories import (
    ActionRepository,
    ConversationRepository,
    MatchRepository,
    MessageRepository,
    PhotoRepository,
    ProfileRepository,
)

TEST_JWT_SECRET = "test-secret"
PNG_DATA_URL = "data:image/png;base64," + base64.b64encode(b"\x89PNG\r\n\x1a\nfake-image").decode("ascii")


@pytest.fixture(autouse=True)
def _env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MONGO_URI", "mongodb://localhost:27017/test")
    monkeypatch.setenv("MONGO_DB_NAME", "cosmic-match-test")
    monkeypatch.setenv("JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setenv("JWT_AUDIENCE", "")
    monkeypatch.setenv("REDIS_URL", "")
    monkeypatch.setenv("REDIS_PUBSUB_ENABLED", "false")
    monkeypatch.setenv("REALTIME_DEBOUNCE_MS", "20")
    get_settings.cache_clear()  # type: ignore[attr-defined]


@pytest.fixture(autouse=True)
def _reset_change_feed() -> None:
    change_feed._subscriptions.clear()
    yield
    change_feed._subscriptions.clear()


@pytest.fixture
def object_store(monkeypatch: pytest.MonkeyPatch) -> SimpleNamespace:
    """Fake Cloudinary: records uploads and deletes instead of calling out."""
    calls = SimpleNamespace(uploads=[], deletes=[])

    def _upload(data_url, *, folder=None, public_id=None, **_kwargs):
        calls.uploads.append(folder)
        return f"https://res.cloudinary.com/demo/image/upload/v1/{folder}/img{len(calls.uploads)}.png"

    def _delete(public_id):
        calls.deletes.append(public_id)
        return True

    monkeypatch.setattr("cosmic_match.integrations.cloudinary.is_enabled", lambda: True)
    monkeypatch.setattr("cosmic_match.integrations.cloudinary.upload_data_url", _upload)
    monkeypatch.setattr("cosmic_match.integrations.cloudinary.delete_asset", _delete)
    return calls


def make_token(user_id: str) -> str:
    return jwt.encode({"sub": user_id}, TEST_JWT_SECRET, algorithm="HS256")


def auth_headers(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest_asyncio.fixture
async def mongo_client(monkeypatch: pytest.MonkeyPatch) -> AsyncIterator[AsyncMongoMockClient]:
    client = AsyncMongoMockClient()

    def _client_factory(*_args, **_kwargs) -> AsyncMongoMockClient:
        return client

    monkeypatch.setattr("cosmic_match.db.AsyncIOMotorClient", _client_factory)
    yield client
    client.close()


@pytest_asyncio.fixture
async def db(mongo_client: AsyncMongoMockClient):
    await connect_to_mongo()
    yield get_db()
    await close_mongo_connection()


@pytest.fixture
def repos(db) -> SimpleNamespace:
    return SimpleNamespace(
        db=db,
        profiles=ProfileRepository(db),
        actions=ActionRepository(db),
        matches=MatchRepository(db),
        conversations=ConversationRepository(db),
        messages=MessageRepository(db),
        photos=PhotoRepository(db),
    )


@pytest_asyncio.fixture
async def api_client(db) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client


async def seed_profile(repos: SimpleNamespace, user_id: str, **fields):
    return await repos.profiles.create_profile(user_id=user_id, email=f"{user_id}@example.com", **fields)


async def count_rows(repos: SimpleNamespace, collection: str, **query) -> int:
    return await repos.db[collection].count_documents(query)
