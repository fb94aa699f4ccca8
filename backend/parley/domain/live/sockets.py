"""Socket.IO namespace that pushes live query results to subscribers."""

from __future__ import annotations

from typing import Any, Dict, Optional

import socketio
from socketio.exceptions import ConnectionRefusedError

from parley.domain.live.queries import InvalidLiveParams, UnknownLiveQuery, get_query
from parley.domain.live.registry import LiveQueryRegistry, live_registry
from parley.infra.auth import AuthenticatedUser, user_from_socket
from parley.obs import metrics as obs_metrics


class LiveNamespace(socketio.AsyncNamespace):
	"""Each client subscribes to named queries and receives `live:result` events in its sid room."""

	def __init__(self, registry: LiveQueryRegistry | None = None) -> None:
		super().__init__("/live")
		self._registry = registry or live_registry
		self._sessions: Dict[str, AuthenticatedUser] = {}

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		user = user_from_socket(environ, auth)
		if user is None:
			raise ConnectionRefusedError("missing user id")
		obs_metrics.socket_connected(self.namespace)
		self._sessions[sid] = user

	async def on_disconnect(self, sid: str, *args: Any) -> None:
		if self._sessions.pop(sid, None) is not None:
			obs_metrics.socket_disconnected(self.namespace)
		self._registry.unsubscribe_owner(sid)

	async def on_subscribe(self, sid: str, payload: dict) -> dict:
		obs_metrics.socket_event(self.namespace, "subscribe")
		user = self._sessions.get(sid)
		if user is None:
			return {"error": "unauthenticated"}
		payload = payload or {}
		query_name = str(payload.get("query") or "")
		params = dict(payload.get("params") or {})
		try:
			query = get_query(query_name)
			if query.actor_param:
				params.setdefault(query.actor_param, user.id)
			subscription = await self._registry.subscribe(
				query_name,
				params,
				self._push_callback(sid),
				owner=sid,
			)
		except UnknownLiveQuery:
			return {"error": "unknown_query"}
		except InvalidLiveParams as exc:
			return {"error": "invalid_params", "detail": str(exc)}
		return {"subscription_id": subscription.id, "result": subscription.result}

	async def on_unsubscribe(self, sid: str, payload: dict) -> dict:
		obs_metrics.socket_event(self.namespace, "unsubscribe")
		subscription_id = str((payload or {}).get("subscription_id") or "")
		subscription = self._registry.get(subscription_id)
		if subscription is None or subscription.owner != sid:
			return {"ok": False}
		return {"ok": self._registry.unsubscribe(subscription_id)}

	def _push_callback(self, sid: str):
		async def _push(subscription_id: str, result: Any) -> None:
			await self.emit("live:result", {"subscription_id": subscription_id, "result": result}, room=sid)
			obs_metrics.socket_event(self.namespace, "live:result")

		return _push
