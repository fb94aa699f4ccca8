import asyncio

import pytest

from parley.domain.identity import service
from parley.domain.identity.exceptions import DuplicateName, UserNotFound
from parley.domain.social import audit
from parley.obs import metrics


@pytest.mark.asyncio
async def test_create_user_defaults():
    user = await service.create_user("alice", "pw1234")
    assert user.name == "alice"
    assert user.is_online is True
    assert user.blocked_users == frozenset()
    assert user.password_hash != "pw1234"

    fetched = await service.get_user(user.id)
    assert fetched == user


@pytest.mark.asyncio
async def test_create_user_rejects_duplicate_name(alice):
    with pytest.raises(DuplicateName) as exc_info:
        await service.create_user("alice", "other")
    assert exc_info.value.reason == "duplicate_name"


@pytest.mark.asyncio
async def test_name_match_is_exact(alice):
    other = await service.create_user("Alice", "pw1234")
    assert other.id != alice.id


@pytest.mark.asyncio
async def test_concurrent_signups_with_same_name_create_one_user():
    results = await asyncio.gather(
        service.create_user("dave", "pw1"),
        service.create_user("dave", "pw2"),
        return_exceptions=True,
    )
    created = [item for item in results if not isinstance(item, Exception)]
    failures = [item for item in results if isinstance(item, Exception)]
    assert len(created) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], DuplicateName)


@pytest.mark.asyncio
async def test_login_returns_user_on_match(alice):
    user = await service.login("alice", "pw1234")
    assert user is not None
    assert user.id == alice.id


@pytest.mark.asyncio
async def test_login_mismatch_is_absent_not_error(alice):
    before = metrics.LOGINS.labels(result="mismatch")._value.get()
    assert await service.login("alice", "wrong") is None
    assert await service.login("nobody", "pw1234") is None
    after = metrics.LOGINS.labels(result="mismatch")._value.get()
    assert after == before + 2


@pytest.mark.asyncio
async def test_get_user_missing():
    with pytest.raises(UserNotFound):
        await service.get_user("missing")


@pytest.mark.asyncio
async def test_block_is_idempotent(alice, bob):
    await service.block_user(alice.id, bob.id)
    await service.block_user(alice.id, bob.id)
    user = await service.get_user(alice.id)
    assert user.blocked_users == frozenset({bob.id})


@pytest.mark.asyncio
async def test_unblock_removes_and_is_idempotent(alice, bob):
    await service.block_user(alice.id, bob.id)
    await service.unblock_user(alice.id, bob.id)
    await service.unblock_user(alice.id, bob.id)
    user = await service.get_user(alice.id)
    assert user.blocked_users == frozenset()


@pytest.mark.asyncio
async def test_block_does_not_touch_target(alice, bob):
    await service.block_user(alice.id, bob.id)
    target = await service.get_user(bob.id)
    assert target.blocked_users == frozenset()


@pytest.mark.asyncio
async def test_block_accepts_unknown_target(alice):
    await service.block_user(alice.id, "ghost")
    user = await service.get_user(alice.id)
    assert "ghost" in user.blocked_users


@pytest.mark.asyncio
async def test_block_requires_existing_actor(bob):
    with pytest.raises(UserNotFound):
        await service.block_user("missing", bob.id)
    with pytest.raises(UserNotFound):
        await service.unblock_user("missing", bob.id)


@pytest.mark.asyncio
async def test_account_events_are_audited(fake_redis):
    user = await service.create_user("erin", "pw1234")
    await service.delete_account(user.id)
    entries = await fake_redis.xrange(audit.ACCOUNT_STREAM)
    events = [fields["event"] for _, fields in entries]
    assert events == ["created", "deleted"]
    assert all(fields["user_id"] == user.id for _, fields in entries)
