from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient
from starlette.websockets import WebSocketDisconnect

from conftest import PNG_DATA_URL, auth_headers, make_token, seed_profile
from cosmic_match.main import app


@pytest.mark.asyncio
async def test_health(api_client) -> None:
    root = await api_client.get("/")
    health = await api_client.get("/api/health/db")

    assert root.json() == {"status": "cosmic-match-ok"}
    assert health.json() == {"mongo": "connected", "db": "cosmic-match-test"}


@pytest.mark.asyncio
async def test_requires_bearer_token(api_client) -> None:
    missing = await api_client.get("/api/candidates")
    garbage = await api_client.get("/api/candidates", headers={"Authorization": "Bearer not-a-jwt"})

    assert missing.status_code == 401
    assert garbage.status_code == 401


@pytest.mark.asyncio
async def test_match_flow_over_http(api_client, repos) -> None:
    await seed_profile(repos, "alice", gender="feminine", looking_for="men")
    await seed_profile(repos, "bob", gender="masculine", looking_for="women", name="Bob")

    deck = await api_client.get("/api/candidates", headers=auth_headers("alice"))
    assert [c["id"] for c in deck.json()["candidates"]] == ["bob"]

    first = await api_client.post(
        "/api/actions/like", json={"target_user_id": "bob"}, headers=auth_headers("alice")
    )
    assert first.status_code == 200
    assert first.json()["is_match"] is False

    second = await api_client.post(
        "/api/actions/like", json={"target_user_id": "alice"}, headers=auth_headers("bob")
    )
    body = second.json()
    assert body["is_match"] is True
    assert body["status"] == "ok"
    conversation_id = body["conversation_id"]

    deck = await api_client.get("/api/candidates", headers=auth_headers("alice"))
    assert deck.json()["candidates"] == []

    fresh = await api_client.get("/api/matches/new", headers=auth_headers("alice"))
    assert fresh.json()["matches"][0]["user_profile"]["name"] == "Bob"

    opened = await api_client.post(
        f"/api/matches/{body['match_id']}/conversation", headers=auth_headers("alice")
    )
    assert opened.json()["id"] == conversation_id

    sent = await api_client.post(
        f"/api/conversations/{conversation_id}/messages",
        json={"content": "hey"},
        headers=auth_headers("alice"),
    )
    assert sent.status_code == 201

    spoofed = await api_client.post(
        f"/api/conversations/{conversation_id}/messages",
        json={"content": "https://elsewhere.example/x.png", "message_type": "image"},
        headers=auth_headers("alice"),
    )
    assert spoofed.status_code == 422

    listed = await api_client.get(f"/api/conversations/{conversation_id}/messages", headers=auth_headers("bob"))
    assert [m["content"] for m in listed.json()["messages"]] == ["hey"]

    read = await api_client.post(f"/api/conversations/{conversation_id}/read", headers=auth_headers("bob"))
    assert read.json() == {"status": "ok", "updated": 1}


@pytest.mark.asyncio
async def test_conversations_etag(api_client, repos) -> None:
    await seed_profile(repos, "alice", gender="feminine", looking_for="men")
    await seed_profile(repos, "bob", gender="masculine", looking_for="women")
    await api_client.post("/api/actions/like", json={"target_user_id": "bob"}, headers=auth_headers("alice"))
    await api_client.post("/api/actions/like", json={"target_user_id": "alice"}, headers=auth_headers("bob"))

    first = await api_client.get("/api/conversations", headers=auth_headers("alice"))
    tag = first.headers["ETag"]
    assert tag.startswith('W/"')
    assert len(first.json()["conversations"]) == 1

    cached = await api_client.get(
        "/api/conversations", headers={**auth_headers("alice"), "If-None-Match": tag}
    )
    assert cached.status_code == 304


@pytest.mark.asyncio
async def test_action_errors_map_to_status_codes(api_client, repos) -> None:
    await seed_profile(repos, "alice")

    self_like = await api_client.post(
        "/api/actions/like", json={"target_user_id": "alice"}, headers=auth_headers("alice")
    )
    unknown = await api_client.post(
        "/api/actions/pass", json={"target_user_id": "ghost"}, headers=auth_headers("alice")
    )
    stranger = await api_client.get("/api/conversations/nope/messages", headers=auth_headers("alice"))

    assert self_like.status_code == 400
    assert unknown.status_code == 404
    assert stranger.status_code == 404


@pytest.mark.asyncio
async def test_pass_reports_recorded_once(api_client, repos) -> None:
    await seed_profile(repos, "alice")
    await seed_profile(repos, "bob")

    first = await api_client.post("/api/actions/pass", json={"target_user_id": "bob"}, headers=auth_headers("alice"))
    second = await api_client.post("/api/actions/pass", json={"target_user_id": "bob"}, headers=auth_headers("alice"))

    assert first.json() == {"status": "ok", "recorded": True}
    assert second.json() == {"status": "ok", "recorded": False}


@pytest.mark.asyncio
async def test_profile_endpoints(api_client, repos) -> None:
    me = await api_client.get("/api/profile/me", headers=auth_headers("newbie"))
    assert me.status_code == 200
    assert me.json()["id"] == "newbie"

    patched = await api_client.patch(
        "/api/profile/me",
        json={"name": "Nova", "gender": "non-binary", "lifestyle": {"alcohol": "socially"}},
        headers=auth_headers("newbie"),
    )
    assert patched.json()["name"] == "Nova"
    assert patched.json()["lifestyle"]["alcohol"] == "socially"

    invalid = await api_client.patch("/api/profile/me", json={"gender": "robot"}, headers=auth_headers("newbie"))
    assert invalid.status_code == 422

    step = await api_client.put(
        "/api/profile/me/onboarding-step", json={"step": 4}, headers=auth_headers("newbie")
    )
    assert step.json()["onboarding_current_step"] == 4

    interests = await api_client.put(
        "/api/profile/me/interests", json={"interests": ["tarot", "tarot", "jazz"]}, headers=auth_headers("newbie")
    )
    assert interests.json() == {"interests": ["tarot", "jazz"]}

    goals = await api_client.put("/api/profile/me/goals", json={"goals": ["friendship"]}, headers=auth_headers("newbie"))
    assert goals.json() == {"goals": ["friendship"]}

    done = await api_client.post("/api/profile/me/complete-onboarding", headers=auth_headers("newbie"))
    assert done.json()["onboarding_completed_at"]

    viewed = await api_client.get("/api/profiles/newbie", headers=auth_headers("someone"))
    assert viewed.json()["interests"] == ["tarot", "jazz"]
    assert 50 <= viewed.json()["compatibility_score"] <= 99


@pytest.mark.asyncio
async def test_photo_endpoints(api_client, repos, object_store, monkeypatch) -> None:
    monkeypatch.setenv("MAX_PHOTOS", "2")
    from cosmic_match.config import get_settings

    get_settings.cache_clear()  # type: ignore[attr-defined]

    headers = auth_headers("alice")
    await api_client.get("/api/profile/me", headers=headers)
    first = await api_client.post("/api/photos", json={"data_url": PNG_DATA_URL}, headers=headers)
    await api_client.post("/api/photos", json={"data_url": PNG_DATA_URL}, headers=headers)
    over = await api_client.post("/api/photos", json={"data_url": PNG_DATA_URL}, headers=headers)
    bad = await api_client.post("/api/profile/me/avatar", json={"data_url": "not-a-data-url"}, headers=headers)

    assert first.status_code == 201
    assert over.status_code == 409
    assert bad.status_code == 400

    deleted = await api_client.delete(f"/api/photos/{first.json()['id']}", headers=headers)
    assert [p["order_index"] for p in deleted.json()["photos"]] == [0]


def test_session_socket(monkeypatch) -> None:
    client_db = AsyncMongoMockClient()
    monkeypatch.setattr("cosmic_match.db.AsyncIOMotorClient", lambda *_a, **_k: client_db)

    with TestClient(app) as client:
        with client.websocket_connect(f"/api/ws/session?token={make_token('alice')}") as ws:
            assert ws.receive_json() == {"type": "ack", "message": "connected"}
            kinds = [ws.receive_json()["type"] for _ in range(3)]
            assert kinds == ["candidates", "conversations", "new_matches"]

            ws.send_text("{not json")
            assert ws.receive_json()["message"] == "invalid-json"

            ws.send_json({"type": "dance"})
            assert ws.receive_json()["message"] == "ignored"


def test_session_socket_rejects_bad_token(monkeypatch) -> None:
    client_db = AsyncMongoMockClient()
    monkeypatch.setattr("cosmic_match.db.AsyncIOMotorClient", lambda *_a, **_k: client_db)

    with TestClient(app) as client:
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/api/ws/session?token=bogus") as ws:
                ws.receive_json()
