from __future__ import annotations

import pytest
import pytest_asyncio

from conftest import PNG_DATA_URL, count_rows, seed_profile
from cosmic_match.db.collections import CONVERSATIONS_COLLECTION
from cosmic_match.repositories.exceptions import NotFoundRepositoryError
from cosmic_match.services.conversations import get_conversation_service
from cosmic_match.services.matching import get_match_service
from cosmic_match.services.messages import get_message_service


@pytest_asyncio.fixture
async def mutual(repos):
    await seed_profile(repos, "alice", gender="feminine", looking_for="men", name="Alice")
    await seed_profile(repos, "bob", gender="masculine", looking_for="women", name="Bob")
    await seed_profile(repos, "eve", gender="feminine", looking_for="men")
    service = get_match_service()
    await service.like_user("alice", "bob")
    return await service.like_user("bob", "alice")


@pytest.mark.asyncio
async def test_get_or_create_returns_existing_conversation(mutual, repos) -> None:
    conversation = await get_conversation_service().get_or_create_for_match(mutual.match_id, "alice")

    assert conversation.id == mutual.conversation_id
    assert await count_rows(repos, CONVERSATIONS_COLLECTION, match_id=mutual.match_id) == 1


@pytest.mark.asyncio
async def test_get_or_create_materialises_missing_conversation(repos) -> None:
    await seed_profile(repos, "a")
    await seed_profile(repos, "b")
    pending = await repos.matches.insert_pending("a", "b")
    match = await repos.matches.promote_to_mutual(pending.id, liked_by="b")

    created = await get_conversation_service().get_or_create_for_match(match.id, "b")
    again = await get_conversation_service().get_or_create_for_match(match.id)

    assert created.id == again.id
    assert await count_rows(repos, CONVERSATIONS_COLLECTION, match_id=match.id) == 1


@pytest.mark.asyncio
async def test_get_or_create_guards(mutual, repos) -> None:
    service = get_conversation_service()
    pending = await repos.matches.insert_pending("eve", "bob")

    with pytest.raises(NotFoundRepositoryError):
        await service.get_or_create_for_match("missing")
    with pytest.raises(PermissionError):
        await service.get_or_create_for_match(pending.id)
    with pytest.raises(PermissionError):
        await service.get_or_create_for_match(mutual.match_id, "eve")
    assert await count_rows(repos, CONVERSATIONS_COLLECTION, match_id=pending.id) == 0


@pytest.mark.asyncio
async def test_new_matches_until_first_message(mutual) -> None:
    conversations = get_conversation_service()

    fresh = await conversations.list_new_matches("alice")
    assert [m.match.id for m in fresh] == [mutual.match_id]
    assert fresh[0].user_profile.name == "Bob"
    assert fresh[0].conversation_id == mutual.conversation_id

    await get_message_service().send_message(mutual.conversation_id, "bob", "hi there")

    assert await conversations.list_new_matches("alice") == []


@pytest.mark.asyncio
async def test_conversation_list_summary(mutual) -> None:
    messages = get_message_service()
    await messages.send_message(mutual.conversation_id, "bob", "hello")
    last = await messages.send_message(mutual.conversation_id, "bob", "  still there?  ")

    summaries = await get_conversation_service().list_for_user("alice")

    assert len(summaries) == 1
    summary = summaries[0]
    assert summary.id == mutual.conversation_id
    assert summary.user_profile.id == "bob"
    assert summary.last_message.id == last.id
    assert summary.last_message.content == "still there?"
    assert summary.unread_count == 2
    assert (await get_conversation_service().list_for_user("bob"))[0].unread_count == 0


@pytest.mark.asyncio
async def test_send_message_validation(mutual) -> None:
    messages = get_message_service()

    with pytest.raises(ValueError):
        await messages.send_message(mutual.conversation_id, "alice", "   ")
    with pytest.raises(PermissionError):
        await messages.send_message(mutual.conversation_id, "eve", "hey")
    with pytest.raises(NotFoundRepositoryError):
        await messages.send_message("missing", "alice", "hey")


@pytest.mark.asyncio
async def test_messages_listed_oldest_first_and_touch_conversation(mutual, repos) -> None:
    before = await repos.conversations.get_by_id(mutual.conversation_id)
    messages = get_message_service()
    await messages.send_message(mutual.conversation_id, "alice", "one")
    await messages.send_message(mutual.conversation_id, "bob", "two")

    listed = await messages.list_messages(mutual.conversation_id, "alice")

    assert [m.content for m in listed] == ["one", "two"]
    after = await repos.conversations.get_by_id(mutual.conversation_id)
    assert after.updated_at > before.updated_at


@pytest.mark.asyncio
async def test_read_receipts(mutual) -> None:
    messages = get_message_service()
    first = await messages.send_message(mutual.conversation_id, "bob", "one")
    await messages.send_message(mutual.conversation_id, "bob", "two")
    own = await messages.send_message(mutual.conversation_id, "alice", "three")

    read = await messages.mark_as_read(first.id, "alice")
    assert read is not None and read.read_at is not None
    # Already read, and senders never mark their own messages
    assert await messages.mark_as_read(first.id, "alice") is None
    assert await messages.mark_as_read(own.id, "alice") is None

    assert await messages.mark_conversation_read(mutual.conversation_id, "alice") == 1
    assert await messages.mark_conversation_read(mutual.conversation_id, "alice") == 0


@pytest.mark.asyncio
async def test_send_image_uploads_then_posts(mutual, object_store) -> None:
    message = await get_message_service().send_image(mutual.conversation_id, "alice", PNG_DATA_URL)

    assert message.message_type == "image"
    assert message.content.startswith("https://res.cloudinary.com/")
    assert object_store.uploads == [f"chat-images/{mutual.conversation_id}"]


@pytest.mark.asyncio
async def test_send_image_rejects_non_image(mutual, object_store) -> None:
    with pytest.raises(ValueError):
        await get_message_service().send_image(mutual.conversation_id, "alice", "data:text/plain;base64,aGk=")
    assert object_store.uploads == []
