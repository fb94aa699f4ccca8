"""Relay committed change sets between API workers over Redis pub/sub.

Each worker has its own change feed; the relay forwards locally produced change
sets to the shared channel and replays change sets from other workers into the
local feed so their live subscriptions refresh too.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Optional

from redis.exceptions import RedisError

from parley.infra.redis import redis_client
from parley.infra.store.changes import ChangeFeed, ChangeSet, change_feed
from parley.settings import settings

logger = logging.getLogger(__name__)


class ChangeRelay:
	def __init__(
		self,
		redis: Any = None,
		feed: ChangeFeed | None = None,
		*,
		channel: str | None = None,
	) -> None:
		self._redis = redis if redis is not None else redis_client
		self._feed = feed or change_feed
		self.channel = channel or settings.change_relay_channel
		self._detach: Optional[Callable[[], None]] = None
		self._pubsub = None
		self._task: Optional[asyncio.Task] = None

	async def start(self) -> None:
		if self._task is not None:
			return
		self._pubsub = self._redis.pubsub(ignore_subscribe_messages=True)
		await self._pubsub.subscribe(self.channel)
		self._detach = self._feed.subscribe(self.forward)
		self._task = asyncio.create_task(self._listen(), name="change-relay")
		logger.info("change relay started", extra={"channel": self.channel})

	async def stop(self) -> None:
		if self._detach is not None:
			self._detach()
			self._detach = None
		if self._task is not None:
			self._task.cancel()
			await asyncio.gather(self._task, return_exceptions=True)
			self._task = None
		if self._pubsub is not None:
			await self._pubsub.unsubscribe(self.channel)
			await self._pubsub.aclose()
			self._pubsub = None

	async def forward(self, changes: ChangeSet) -> None:
		"""Publish change sets produced by this worker."""
		if changes.origin != self._feed.origin:
			return
		try:
			await self._redis.publish(self.channel, json.dumps(changes.to_payload()))
		except RedisError:
			logger.warning("change relay publish failed", exc_info=True)

	async def handle_message(self, data: Any) -> bool:
		"""Replay a change set received from another worker."""
		try:
			payload = json.loads(data)
		except (TypeError, ValueError):
			logger.warning("change relay dropped malformed payload")
			return False
		if not isinstance(payload, dict):
			return False
		changes = ChangeSet.from_payload(payload)
		if not changes.origin or changes.origin == self._feed.origin or not changes.tables:
			return False
		await self._feed.publish(changes)
		return True

	async def _listen(self) -> None:
		while True:
			try:
				message = await self._pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
			except RedisError:
				logger.warning("change relay receive failed", exc_info=True)
				await asyncio.sleep(1.0)
				continue
			if message and message.get("type") == "message":
				await self.handle_message(message.get("data"))
