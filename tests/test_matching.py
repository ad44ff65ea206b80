from __future__ import annotations

import pytest
import pytest_asyncio

from conftest import count_rows, seed_profile
from cosmic_match.db.collections import (
    CONVERSATIONS_COLLECTION,
    MATCHES_COLLECTION,
    USER_ACTIONS_COLLECTION,
)
from cosmic_match.realtime.bus import change_feed
from cosmic_match.realtime.events import ChangeFilter
from cosmic_match.repositories.exceptions import BackendTimeoutError, NotFoundRepositoryError
from cosmic_match.repositories.match import pair_key
from cosmic_match.services.matching import get_match_service


@pytest_asyncio.fixture
async def pair(repos):
    await seed_profile(repos, "alice", gender="feminine", looking_for="men")
    await seed_profile(repos, "bob", gender="masculine", looking_for="women")
    return repos


def test_pair_key_is_order_independent() -> None:
    assert pair_key("b", "a") == pair_key("a", "b") == "a|b"


@pytest.mark.asyncio
async def test_first_like_creates_pending_match(pair) -> None:
    service = get_match_service()

    result = await service.like_user("alice", "bob")

    assert result.is_match is False
    assert result.conversation_id is None
    match = await pair.matches.find_between("bob", "alice")
    assert match is not None
    assert (match.user1_id, match.user2_id, match.status) == ("alice", "bob", "pending")
    assert match.compatibility_score == 70
    assert result.match_id == match.id
    assert await count_rows(pair, USER_ACTIONS_COLLECTION, user_id="alice", target_user_id="bob") == 1
    assert await count_rows(pair, MATCHES_COLLECTION, pair_key=pair_key("alice", "bob")) == 1


@pytest.mark.asyncio
async def test_reciprocal_like_promotes_and_creates_one_conversation(pair) -> None:
    service = get_match_service()
    await service.like_user("alice", "bob")

    result = await service.like_user("bob", "alice")

    assert result.is_match is True
    assert result.conversation_id
    match = await pair.matches.get_by_id(result.match_id)
    assert match.status == "mutual"
    assert match.matched_at is not None
    assert await count_rows(pair, CONVERSATIONS_COLLECTION, match_id=match.id) == 1
    conversation = await pair.conversations.get_by_id(result.conversation_id)
    assert conversation.match_id == match.id
    assert sorted(conversation.participant_ids) == ["alice", "bob"]
    assert await count_rows(pair, USER_ACTIONS_COLLECTION, user_id="bob", target_user_id="alice") == 1


@pytest.mark.asyncio
async def test_like_on_mutual_or_same_direction_changes_nothing(pair) -> None:
    service = get_match_service()
    first = await service.like_user("alice", "bob")
    again = await service.like_user("alice", "bob")

    assert again.is_match is False
    assert again.match_id == first.match_id
    assert await count_rows(pair, USER_ACTIONS_COLLECTION, user_id="alice", target_user_id="bob") == 1

    await service.like_user("bob", "alice")
    repeat = await service.like_user("bob", "alice")

    assert repeat.is_match is False
    assert await count_rows(pair, CONVERSATIONS_COLLECTION, match_id=first.match_id) == 1
    assert await count_rows(pair, MATCHES_COLLECTION, pair_key=pair_key("alice", "bob")) == 1


@pytest.mark.asyncio
async def test_repeat_like_repairs_missing_conversation(pair, monkeypatch) -> None:
    service = get_match_service()
    await service.like_user("alice", "bob")

    conversation_repo = service._conversations._conversations
    real_insert = conversation_repo.insert
    calls = {"n": 0}

    async def _fail_once(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 1:
            raise BackendTimeoutError("conversation insert timed out")
        return await real_insert(*args, **kwargs)

    monkeypatch.setattr(conversation_repo, "insert", _fail_once)

    with pytest.raises(BackendTimeoutError):
        await service.like_user("bob", "alice")
    match = await pair.matches.find_between("alice", "bob")
    assert match.status == "mutual"
    assert await count_rows(pair, CONVERSATIONS_COLLECTION, match_id=match.id) == 0

    retry = await service.like_user("bob", "alice")

    assert retry.is_match is False
    assert retry.conversation_id
    assert await count_rows(pair, CONVERSATIONS_COLLECTION, match_id=match.id) == 1
    assert (await service.like_user("alice", "bob")).conversation_id == retry.conversation_id


@pytest.mark.asyncio
async def test_pass_is_idempotent(pair) -> None:
    service = get_match_service()

    assert await service.pass_user("alice", "bob") is True
    assert await service.pass_user("alice", "bob") is False
    assert await count_rows(pair, USER_ACTIONS_COLLECTION, user_id="alice", target_user_id="bob") == 1


@pytest.mark.asyncio
async def test_self_actions_rejected(pair) -> None:
    service = get_match_service()

    with pytest.raises(ValueError):
        await service.like_user("alice", "alice")
    with pytest.raises(ValueError):
        await service.pass_user("alice", "alice")


@pytest.mark.asyncio
async def test_unknown_target_not_found(pair) -> None:
    with pytest.raises(NotFoundRepositoryError):
        await get_match_service().like_user("alice", "nobody")


@pytest.mark.asyncio
async def test_concurrent_insert_resolves_by_promoting(pair, monkeypatch) -> None:
    """Bob's like lands between Alice's lookup and her insert."""
    service = get_match_service()
    await pair.matches.insert_pending("bob", "alice")

    real_find = service._matches.find_between
    calls = {"n": 0}

    async def _stale_then_real(user_a, user_b):
        calls["n"] += 1
        if calls["n"] == 1:
            return None
        return await real_find(user_a, user_b)

    monkeypatch.setattr(service._matches, "find_between", _stale_then_real)

    result = await service.like_user("alice", "bob")

    assert result.is_match is True
    assert calls["n"] == 2
    assert await count_rows(pair, MATCHES_COLLECTION, pair_key=pair_key("alice", "bob")) == 1
    match = await pair.matches.get_by_id(result.match_id)
    assert match.status == "mutual"
    assert await count_rows(pair, CONVERSATIONS_COLLECTION, match_id=match.id) == 1


@pytest.mark.asyncio
async def test_promotion_is_compare_and_swap(pair) -> None:
    pending = await pair.matches.insert_pending("bob", "alice")

    # Only the liked side may promote
    assert await pair.matches.promote_to_mutual(pending.id, liked_by="bob") is None
    promoted = await pair.matches.promote_to_mutual(pending.id, liked_by="alice")
    assert promoted is not None and promoted.status == "mutual"
    # Second writer loses
    assert await pair.matches.promote_to_mutual(pending.id, liked_by="alice") is None


@pytest.mark.asyncio
async def test_promotion_announces_change(pair) -> None:
    service = get_match_service()
    seen = []
    change_feed.subscribe(MATCHES_COLLECTION, seen.append, ChangeFilter.involving("alice"))

    await service.like_user("alice", "bob")
    await service.like_user("bob", "alice")

    assert [event.type for event in seen] == ["INSERT", "UPDATE"]
    assert seen[1].record["status"] == "mutual"
    assert seen[1].old_record["status"] == "pending"
