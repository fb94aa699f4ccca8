"""Process-wide change feed published after every committed write."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, List

import ulid

logger = logging.getLogger(__name__)

USERS = "users"
FRIENDSHIPS = "friendships"
MESSAGES = "messages"
TABLES = frozenset({USERS, FRIENDSHIPS, MESSAGES})


@dataclass(slots=True, frozen=True)
class ChangeSet:
	tables: frozenset[str]
	origin: str

	def touches(self, tables: Iterable[str]) -> bool:
		return not self.tables.isdisjoint(tables)

	def to_payload(self) -> dict:
		return {"tables": sorted(self.tables), "origin": self.origin}

	@classmethod
	def from_payload(cls, payload: dict) -> "ChangeSet":
		tables = frozenset(str(name) for name in payload.get("tables", ()) if name in TABLES)
		return cls(tables=tables, origin=str(payload.get("origin") or ""))


Listener = Callable[[ChangeSet], Awaitable[None]]


class ChangeFeed:
	"""Fan committed change sets out to listeners.

	Listeners are awaited in registration order. A failing listener is logged and
	does not affect the others or the write that produced the change.
	"""

	def __init__(self, origin: str | None = None) -> None:
		self.origin = origin or ulid.new().str
		self._listeners: List[Listener] = []

	def subscribe(self, listener: Listener) -> Callable[[], None]:
		self._listeners.append(listener)

		def _unsubscribe() -> None:
			if listener in self._listeners:
				self._listeners.remove(listener)

		return _unsubscribe

	def changeset(self, tables: Iterable[str]) -> ChangeSet:
		return ChangeSet(tables=frozenset(tables), origin=self.origin)

	async def publish(self, changes: ChangeSet) -> None:
		if not changes.tables:
			return
		for listener in list(self._listeners):
			try:
				await listener(changes)
			except Exception:
				logger.exception("change listener failed", extra={"tables": sorted(changes.tables)})


change_feed = ChangeFeed()
