import pytest

from parley.domain.chat import service
from parley.domain.identity import service as identity_service
from parley.domain.identity.exceptions import UserNotFound
from parley.domain.social.exceptions import Blocked
from parley.obs import metrics


@pytest.mark.asyncio
async def test_send_and_read_in_both_directions(alice, bob):
    first = await service.send_message("one", alice.id, bob.id)
    second = await service.send_message("two", bob.id, alice.id)
    third = await service.send_message("three", alice.id, bob.id)

    forward = await service.get_messages(alice.id, bob.id)
    backward = await service.get_messages(bob.id, alice.id)
    assert [m.id for m in forward] == [first.id, second.id, third.id]
    assert [m.id for m in backward] == [first.id, second.id, third.id]
    assert [m.content for m in forward] == ["one", "two", "three"]


@pytest.mark.asyncio
async def test_timestamps_strictly_increase(alice, bob):
    for index in range(20):
        await service.send_message(str(index), alice.id, bob.id)
    messages = await service.get_messages(alice.id, bob.id)
    stamps = [m.created_at for m in messages]
    assert all(earlier < later for earlier, later in zip(stamps, stamps[1:]))
    seqs = [m.seq for m in messages]
    assert seqs == sorted(seqs)
    assert len(set(seqs)) == len(seqs)


@pytest.mark.asyncio
async def test_messages_are_scoped_to_the_pair(alice, bob, carol):
    await service.send_message("to bob", alice.id, bob.id)
    await service.send_message("to carol", alice.id, carol.id)
    messages = await service.get_messages(alice.id, carol.id)
    assert [m.content for m in messages] == ["to carol"]


@pytest.mark.asyncio
async def test_send_requires_both_users(alice):
    with pytest.raises(UserNotFound):
        await service.send_message("hi", alice.id, "ghost")
    with pytest.raises(UserNotFound):
        await service.send_message("hi", "ghost", alice.id)


@pytest.mark.asyncio
async def test_block_gates_both_directions(alice, bob):
    before = metrics.CHAT_SEND.labels(result="blocked")._value.get()
    await identity_service.block_user(alice.id, bob.id)
    with pytest.raises(Blocked):
        await service.send_message("hi", bob.id, alice.id)
    with pytest.raises(Blocked):
        await service.send_message("hi", alice.id, bob.id)
    assert await service.get_messages(alice.id, bob.id) == []
    after = metrics.CHAT_SEND.labels(result="blocked")._value.get()
    assert after == before + 2


@pytest.mark.asyncio
async def test_block_is_not_retroactive(alice, bob):
    await service.send_message("before", alice.id, bob.id)
    await identity_service.block_user(bob.id, alice.id)
    messages = await service.get_messages(alice.id, bob.id)
    assert [m.content for m in messages] == ["before"]


@pytest.mark.asyncio
async def test_unblock_restores_messaging(alice, bob):
    await identity_service.block_user(alice.id, bob.id)
    await identity_service.unblock_user(alice.id, bob.id)
    message = await service.send_message("back", bob.id, alice.id)
    assert message.sender_id == bob.id


@pytest.mark.asyncio
async def test_no_content_limit(alice, bob):
    body = "x" * 100_000
    message = await service.send_message(body, alice.id, bob.id)
    assert message.content == body


@pytest.mark.asyncio
async def test_get_messages_for_unknown_users_is_empty():
    assert await service.get_messages("ghost", "phantom") == []
