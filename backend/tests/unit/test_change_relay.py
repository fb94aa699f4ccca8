import json

import pytest

from parley.domain.live.relay import ChangeRelay
from parley.infra.store.changes import ChangeFeed, ChangeSet


@pytest.fixture
def feed():
    return ChangeFeed(origin="worker-a")


@pytest.fixture
def received(feed):
    seen = []

    async def _listener(changes):
        seen.append(changes)

    feed.subscribe(_listener)
    return seen


@pytest.mark.asyncio
async def test_forward_publishes_local_changes(fake_redis, feed):
    relay = ChangeRelay(fake_redis, feed, channel="test:changes")
    pubsub = fake_redis.pubsub(ignore_subscribe_messages=True)
    await pubsub.subscribe("test:changes")

    await relay.forward(feed.changeset({"messages"}))
    await relay.forward(ChangeSet(tables=frozenset({"users"}), origin="worker-b"))

    message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
    assert message is not None
    assert json.loads(message["data"]) == {"tables": ["messages"], "origin": "worker-a"}
    assert await pubsub.get_message(ignore_subscribe_messages=True, timeout=0.1) is None
    await pubsub.aclose()


@pytest.mark.asyncio
async def test_handle_message_replays_remote_changes(fake_redis, feed, received):
    relay = ChangeRelay(fake_redis, feed, channel="test:changes")
    payload = json.dumps({"tables": ["friendships", "bogus"], "origin": "worker-b"})
    assert await relay.handle_message(payload) is True
    assert received == [ChangeSet(tables=frozenset({"friendships"}), origin="worker-b")]


@pytest.mark.asyncio
async def test_handle_message_ignores_own_and_malformed(fake_redis, feed, received):
    relay = ChangeRelay(fake_redis, feed, channel="test:changes")
    assert await relay.handle_message(json.dumps({"tables": ["users"], "origin": "worker-a"})) is False
    assert await relay.handle_message("not json") is False
    assert await relay.handle_message(json.dumps(["users"])) is False
    assert await relay.handle_message(json.dumps({"tables": [], "origin": "worker-b"})) is False
    assert received == []


@pytest.mark.asyncio
async def test_replayed_changes_are_not_forwarded_again(fake_redis, feed):
    relay = ChangeRelay(fake_redis, feed, channel="test:changes")
    published = []

    async def _publish(channel, data):
        published.append((channel, data))

    fake_redis.publish = _publish
    feed.subscribe(relay.forward)
    await relay.handle_message(json.dumps({"tables": ["users"], "origin": "worker-b"}))
    assert published == []
