from datetime import datetime, timezone

import pytest

from parley.domain.identity.models import User
from parley.domain.social.models import Friendship, FriendshipStatus
from parley.infra.store.changes import ChangeFeed
from parley.infra.store.errors import (
    FRIENDSHIPS_PAIR_KEY,
    USERS_NAME_KEY,
    ReadOnlyTransaction,
    UniqueViolation,
)
from parley.infra.store.memory import MemoryStore

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _user(user_id: str, name: str | None = None) -> User:
    return User(id=user_id, name=name or user_id, password_hash="x", created_at=NOW)


def _friendship(friendship_id: str, user_id1: str, user_id2: str) -> Friendship:
    return Friendship(
        id=friendship_id,
        user_id1=user_id1,
        user_id2=user_id2,
        status=FriendshipStatus.PENDING,
        action_user_id=user_id1,
        created_at=NOW,
    )


@pytest.fixture
def feed():
    return ChangeFeed(origin="test")


@pytest.fixture
def store(feed):
    return MemoryStore(feed)


@pytest.fixture
def published(feed):
    seen = []

    async def _listener(changes):
        seen.append(changes)

    feed.subscribe(_listener)
    return seen


@pytest.mark.asyncio
async def test_commit_publishes_touched_tables(store, published):
    async with store.transaction() as tx:
        await tx.insert_user(_user("u1"))
        await tx.insert_user(_user("u2"))
        await tx.insert_friendship(_friendship("f1", "u1", "u2"))
    assert len(published) == 1
    assert published[0].tables == frozenset({"users", "friendships"})
    assert published[0].origin == "test"


@pytest.mark.asyncio
async def test_failed_transaction_rolls_back_and_publishes_nothing(store, published):
    with pytest.raises(RuntimeError):
        async with store.transaction() as tx:
            await tx.insert_user(_user("u1"))
            raise RuntimeError("abort")
    async with store.transaction(readonly=True) as tx:
        assert await tx.get_user("u1") is None
    assert published == []


@pytest.mark.asyncio
async def test_readonly_transaction_rejects_writes(store, published):
    async with store.transaction(readonly=True) as tx:
        with pytest.raises(ReadOnlyTransaction):
            await tx.insert_user(_user("u1"))
    assert published == []


@pytest.mark.asyncio
async def test_reader_keeps_its_snapshot(store):
    async with store.transaction(readonly=True) as reader:
        async with store.transaction() as writer:
            await writer.insert_user(_user("u1"))
        assert await reader.get_user("u1") is None
    async with store.transaction(readonly=True) as tx:
        assert (await tx.get_user("u1")).id == "u1"


@pytest.mark.asyncio
async def test_unique_name_guard(store):
    async with store.transaction() as tx:
        await tx.insert_user(_user("u1", "alice"))
    with pytest.raises(UniqueViolation) as exc_info:
        async with store.transaction() as tx:
            await tx.insert_user(_user("u2", "alice"))
    assert exc_info.value.constraint == USERS_NAME_KEY


@pytest.mark.asyncio
async def test_unique_ordered_pair_guard(store):
    async with store.transaction() as tx:
        await tx.insert_user(_user("u1"))
        await tx.insert_user(_user("u2"))
        await tx.insert_friendship(_friendship("f1", "u1", "u2"))
        await tx.insert_friendship(_friendship("f2", "u2", "u1"))
    with pytest.raises(UniqueViolation) as exc_info:
        async with store.transaction() as tx:
            await tx.insert_friendship(_friendship("f3", "u1", "u2"))
    assert exc_info.value.constraint == FRIENDSHIPS_PAIR_KEY


@pytest.mark.asyncio
async def test_blocked_set_updates_replace_row(store):
    async with store.transaction() as tx:
        await tx.insert_user(_user("u1"))
    async with store.transaction(readonly=True) as tx:
        before = await tx.get_user("u1")
    async with store.transaction() as tx:
        await tx.add_blocked("u1", "u2")
        await tx.add_blocked("u1", "u2")
    async with store.transaction(readonly=True) as tx:
        after = await tx.get_user("u1")
    assert before.blocked_users == frozenset()
    assert after.blocked_users == frozenset({"u2"})


@pytest.mark.asyncio
async def test_messages_get_increasing_seq(store):
    async with store.transaction() as tx:
        await tx.insert_user(_user("u1"))
        await tx.insert_user(_user("u2"))
        first = await tx.insert_message("m1", "a", "u1", "u2")
        second = await tx.insert_message("m2", "b", "u2", "u1")
    assert second.seq == first.seq + 1
    assert second.created_at > first.created_at


@pytest.mark.asyncio
async def test_scan_users_by_name_is_half_open(store):
    async with store.transaction() as tx:
        for name in ("ab", "abc", "abd", "ac", "a"):
            await tx.insert_user(_user(name))
    async with store.transaction(readonly=True) as tx:
        users = await tx.scan_users_by_name("ab", "abd")
    assert [user.name for user in users] == ["ab", "abc"]


@pytest.mark.asyncio
async def test_deleted_user_frees_name_and_leaves_scan(store):
    async with store.transaction() as tx:
        await tx.insert_user(_user("u1", "alice"))
        await tx.insert_user(_user("u2", "alex"))
    async with store.transaction() as tx:
        assert await tx.delete_user("u1") is True
        assert await tx.delete_user("u1") is False
    async with store.transaction(readonly=True) as tx:
        assert await tx.find_user_by_name("alice") is None
        assert [user.id for user in await tx.scan_users_by_name("al", "al\uffff")] == ["u2"]
    async with store.transaction() as tx:
        await tx.insert_user(_user("u3", "alice"))
    async with store.transaction(readonly=True) as tx:
        assert (await tx.find_user_by_name("alice")).id == "u3"


@pytest.mark.asyncio
async def test_deleted_friendship_frees_the_pair(store):
    async with store.transaction() as tx:
        await tx.insert_user(_user("u1"))
        await tx.insert_user(_user("u2"))
        await tx.insert_friendship(_friendship("f1", "u1", "u2"))
    async with store.transaction() as tx:
        assert await tx.delete_friendship("f1") is True
        await tx.insert_friendship(_friendship("f2", "u1", "u2"))
    async with store.transaction(readonly=True) as tx:
        assert (await tx.find_friendship("u1", "u2")).id == "f2"
        assert await tx.find_friendship("u2", "u1") is None
        assert [row.id for row in await tx.friendships_for_recipient("u2", FriendshipStatus.PENDING)] == ["f2"]


@pytest.mark.asyncio
async def test_cascade_helpers_clear_every_index(store):
    async with store.transaction() as tx:
        for user_id in ("u1", "u2", "u3"):
            await tx.insert_user(_user(user_id))
        await tx.insert_friendship(_friendship("f1", "u1", "u2"))
        await tx.insert_friendship(_friendship("f2", "u3", "u1"))
        await tx.insert_friendship(_friendship("f3", "u2", "u3"))
        await tx.insert_message("m1", "a", "u1", "u2")
        await tx.insert_message("m2", "b", "u2", "u3")
        await tx.insert_message("m3", "c", "u3", "u1")
    async with store.transaction() as tx:
        assert await tx.delete_friendships_touching("u1") == 2
        assert await tx.delete_messages_touching("u1") == 2
    async with store.transaction(readonly=True) as tx:
        assert await tx.find_friendship("u1", "u2") is None
        assert await tx.find_friendship("u3", "u1") is None
        assert [row.id for row in await tx.friendships_touching("u3", FriendshipStatus.PENDING)] == ["f3"]
        assert await tx.messages_between("u1", "u2") == []
        assert [m.id for m in await tx.messages_between("u3", "u2")] == ["m2"]


@pytest.mark.asyncio
async def test_writer_does_not_touch_reader_indexes(store):
    async with store.transaction() as tx:
        await tx.insert_user(_user("u1", "alice"))
        await tx.insert_user(_user("u2", "bob"))
        await tx.insert_message("m1", "a", "u1", "u2")
    async with store.transaction(readonly=True) as reader:
        async with store.transaction() as writer:
            await writer.insert_user(_user("u3", "albert"))
            await writer.insert_message("m2", "b", "u2", "u1")
            await writer.delete_user("u1")
        assert (await reader.find_user_by_name("alice")).id == "u1"
        assert [user.name for user in await reader.scan_users_by_name("al", "al\uffff")] == ["alice"]
        assert [m.id for m in await reader.messages_between("u2", "u1")] == ["m1"]


@pytest.mark.asyncio
async def test_messages_to_self_form_one_conversation(store):
    async with store.transaction() as tx:
        await tx.insert_user(_user("u1"))
        await tx.insert_message("m1", "note", "u1", "u1")
        await tx.insert_message("m2", "again", "u1", "u1")
    async with store.transaction(readonly=True) as tx:
        assert [m.id for m in await tx.messages_between("u1", "u1")] == ["m1", "m2"]
