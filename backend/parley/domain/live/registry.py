"""Registry of live query subscriptions refreshed from the change feed."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

import ulid

from parley.domain.live.queries import LiveQuery, get_query
from parley.infra.store.changes import ChangeFeed, ChangeSet, change_feed
from parley.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

Callback = Callable[[str, Any], Awaitable[None]]


@dataclass(slots=True)
class Subscription:
	id: str
	query: LiveQuery
	params: Dict[str, str]
	callback: Callback
	result: Any
	owner: Optional[str] = None
	lock: asyncio.Lock = field(default_factory=asyncio.Lock)
	ready: bool = False
	# set when a relevant commit lands while the first result is being computed
	stale: bool = False


class LiveQueryRegistry:
	"""Keeps query results current without polling.

	Each committed change set re-runs the subscriptions whose tables it touches;
	the callback only fires when the serialised result actually changed.
	"""

	def __init__(self, feed: ChangeFeed | None = None) -> None:
		self._feed = feed or change_feed
		self._subscriptions: Dict[str, Subscription] = {}
		self._detach: Optional[Callable[[], None]] = None

	def attach(self) -> None:
		if self._detach is None:
			self._detach = self._feed.subscribe(self._on_change)

	def detach(self) -> None:
		if self._detach is not None:
			self._detach()
			self._detach = None

	def __len__(self) -> int:
		return len(self._subscriptions)

	def get(self, subscription_id: str) -> Optional[Subscription]:
		return self._subscriptions.get(subscription_id)

	async def subscribe(
		self,
		query_name: str,
		params: Mapping[str, Any],
		callback: Callback,
		*,
		owner: Optional[str] = None,
	) -> Subscription:
		"""Register the subscription and compute its first result.

		The subscription is visible to the change feed before the first run, so a
		commit landing during that run triggers another run instead of being lost.
		"""
		query = get_query(query_name)
		bound = query.bind(params)
		subscription = Subscription(
			id=ulid.new().str,
			query=query,
			params=bound,
			callback=callback,
			result=None,
			owner=owner,
		)
		self._subscriptions[subscription.id] = subscription
		try:
			while True:
				subscription.stale = False
				result = await query.run(bound)
				if not subscription.stale:
					break
		except BaseException:
			self._subscriptions.pop(subscription.id, None)
			raise
		subscription.result = result
		subscription.ready = True
		obs_metrics.live_subscribed()
		return subscription

	def unsubscribe(self, subscription_id: str) -> bool:
		subscription = self._subscriptions.pop(subscription_id, None)
		if subscription is None:
			return False
		if subscription.ready:
			obs_metrics.live_unsubscribed()
		return True

	def unsubscribe_owner(self, owner: str) -> int:
		doomed = [sub for sub in self._subscriptions.values() if sub.owner == owner]
		for subscription in doomed:
			del self._subscriptions[subscription.id]
		obs_metrics.live_unsubscribed(sum(1 for sub in doomed if sub.ready))
		return len(doomed)

	async def _on_change(self, changes: ChangeSet) -> None:
		affected = [sub for sub in list(self._subscriptions.values()) if changes.touches(sub.query.tables)]
		for subscription in affected:
			if not subscription.ready:
				subscription.stale = True
				continue
			try:
				await self.refresh(subscription)
			except Exception:
				logger.exception(
					"live query refresh failed",
					extra={"query": subscription.query.name, "subscription_id": subscription.id},
				)

	async def refresh(self, subscription: Subscription) -> bool:
		"""Re-run the query and notify when the result changed."""
		async with subscription.lock:
			result = await subscription.query.run(subscription.params)
			if subscription.id not in self._subscriptions or result == subscription.result:
				return False
			subscription.result = result
			obs_metrics.inc_live_push(subscription.query.name)
			await subscription.callback(subscription.id, result)
			return True


live_registry = LiveQueryRegistry()
