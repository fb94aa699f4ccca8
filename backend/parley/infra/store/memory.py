"""In-process store used for development, single-worker deployments and tests."""

from __future__ import annotations

import asyncio
import dataclasses
from bisect import bisect_left, insort
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Set, Tuple

from parley.domain.chat.models import Message
from parley.domain.identity.models import User
from parley.domain.social.models import Friendship, FriendshipStatus
from parley.infra.store import changes
from parley.infra.store.changes import ChangeFeed
from parley.infra.store.errors import (
	FRIENDSHIPS_PAIR_KEY,
	USERS_NAME_KEY,
	ReadOnlyTransaction,
	UniqueViolation,
)

_TICK = timedelta(microseconds=1)

Pair = Tuple[str, str]


def _conversation_key(user_a: str, user_b: str) -> Pair:
	return (user_a, user_b) if user_a <= user_b else (user_b, user_a)


@dataclass(slots=True)
class _State:
	"""Committed rows plus the indexes that serve every lookup.

	A snapshot is never mutated once committed. Writers fork it and replace
	each container the first time they change it.
	"""

	users: Dict[str, User] = field(default_factory=dict)
	names: Dict[str, str] = field(default_factory=dict)
	sorted_names: List[str] = field(default_factory=list)
	friendships: Dict[str, Friendship] = field(default_factory=dict)
	pairs: Dict[Pair, str] = field(default_factory=dict)
	# friendship ids per user, in insertion order
	by_user: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
	# messages per unordered pair, in seq order
	conversations: Dict[Pair, Tuple[Message, ...]] = field(default_factory=dict)
	seq: int = 0
	last_created_at: Optional[datetime] = None

	def fork(self) -> "_State":
		return dataclasses.replace(self)


class MemoryTransaction:
	def __init__(self, state: _State, *, readonly: bool = False) -> None:
		self._state = state
		self.readonly = readonly
		self.touched: Set[str] = set()
		self._owned: Set[str] = set()

	def _write(self, table: str) -> None:
		if self.readonly:
			raise ReadOnlyTransaction(table)
		self.touched.add(table)

	def _own(self, name: str) -> Any:
		"""Private copy of one container of the draft, made on first write."""
		if name not in self._owned:
			setattr(self._state, name, getattr(self._state, name).copy())
			self._owned.add(name)
		return getattr(self._state, name)

	async def get_user(self, user_id: str) -> Optional[User]:
		return self._state.users.get(user_id)

	async def find_user_by_name(self, name: str) -> Optional[User]:
		user_id = self._state.names.get(name)
		return self._state.users.get(user_id) if user_id is not None else None

	async def insert_user(self, user: User) -> User:
		self._write(changes.USERS)
		if user.name in self._state.names:
			raise UniqueViolation(USERS_NAME_KEY)
		self._own("users")[user.id] = user
		self._own("names")[user.name] = user.id
		insort(self._own("sorted_names"), user.name)
		return user

	async def scan_users_by_name(self, lower: str, upper: str) -> Sequence[User]:
		state = self._state
		start = bisect_left(state.sorted_names, lower)
		end = bisect_left(state.sorted_names, upper, lo=start)
		return [state.users[state.names[name]] for name in state.sorted_names[start:end]]

	async def add_blocked(self, user_id: str, target_id: str) -> None:
		self._write(changes.USERS)
		user = self._state.users.get(user_id)
		if user is None or target_id in user.blocked_users:
			return
		self._own("users")[user_id] = dataclasses.replace(user, blocked_users=user.blocked_users | {target_id})

	async def remove_blocked(self, user_id: str, target_id: str) -> None:
		self._write(changes.USERS)
		user = self._state.users.get(user_id)
		if user is None or target_id not in user.blocked_users:
			return
		self._own("users")[user_id] = dataclasses.replace(user, blocked_users=user.blocked_users - {target_id})

	async def delete_user(self, user_id: str) -> bool:
		self._write(changes.USERS)
		user = self._state.users.get(user_id)
		if user is None:
			return False
		del self._own("users")[user_id]
		del self._own("names")[user.name]
		sorted_names = self._own("sorted_names")
		del sorted_names[bisect_left(sorted_names, user.name)]
		return True

	async def get_friendship(self, friendship_id: str) -> Optional[Friendship]:
		return self._state.friendships.get(friendship_id)

	async def find_friendship(self, user_id1: str, user_id2: str) -> Optional[Friendship]:
		friendship_id = self._state.pairs.get((user_id1, user_id2))
		return self._state.friendships.get(friendship_id) if friendship_id is not None else None

	async def insert_friendship(self, friendship: Friendship) -> Friendship:
		self._write(changes.FRIENDSHIPS)
		pair = (friendship.user_id1, friendship.user_id2)
		if pair in self._state.pairs:
			raise UniqueViolation(FRIENDSHIPS_PAIR_KEY)
		self._own("friendships")[friendship.id] = friendship
		self._own("pairs")[pair] = friendship.id
		by_user = self._own("by_user")
		for user_id in dict.fromkeys(pair):
			by_user[user_id] = by_user.get(user_id, ()) + (friendship.id,)
		return friendship

	async def update_friendship_status(self, friendship_id: str, status: FriendshipStatus) -> Optional[Friendship]:
		self._write(changes.FRIENDSHIPS)
		row = self._state.friendships.get(friendship_id)
		if row is None:
			return None
		updated = dataclasses.replace(row, status=status)
		self._own("friendships")[friendship_id] = updated
		return updated

	def _unlink(self, row: Friendship) -> None:
		del self._own("friendships")[row.id]
		del self._own("pairs")[(row.user_id1, row.user_id2)]
		by_user = self._own("by_user")
		for user_id in dict.fromkeys((row.user_id1, row.user_id2)):
			remaining = tuple(fid for fid in by_user.get(user_id, ()) if fid != row.id)
			if remaining:
				by_user[user_id] = remaining
			else:
				by_user.pop(user_id, None)

	def _rows_for(self, user_id: str) -> List[Friendship]:
		state = self._state
		return [state.friendships[fid] for fid in state.by_user.get(user_id, ())]

	async def delete_friendship(self, friendship_id: str) -> bool:
		self._write(changes.FRIENDSHIPS)
		row = self._state.friendships.get(friendship_id)
		if row is None:
			return False
		self._unlink(row)
		return True

	async def friendships_for_recipient(self, user_id: str, status: FriendshipStatus) -> Sequence[Friendship]:
		return [row for row in self._rows_for(user_id) if row.user_id2 == user_id and row.status == status]

	async def friendships_touching(self, user_id: str, status: FriendshipStatus) -> Sequence[Friendship]:
		return [row for row in self._rows_for(user_id) if row.status == status]

	async def delete_friendships_touching(self, user_id: str) -> int:
		self._write(changes.FRIENDSHIPS)
		rows = self._rows_for(user_id)
		for row in rows:
			self._unlink(row)
		return len(rows)

	async def insert_message(self, message_id: str, content: str, sender_id: str, receiver_id: str) -> Message:
		self._write(changes.MESSAGES)
		state = self._state
		now = datetime.now(timezone.utc)
		if state.last_created_at is not None and now <= state.last_created_at:
			now = state.last_created_at + _TICK
		state.seq += 1
		state.last_created_at = now
		message = Message(
			id=message_id,
			content=content,
			sender_id=sender_id,
			receiver_id=receiver_id,
			seq=state.seq,
			created_at=now,
		)
		key = _conversation_key(sender_id, receiver_id)
		conversations = self._own("conversations")
		conversations[key] = conversations.get(key, ()) + (message,)
		return message

	async def messages_between(self, user_a: str, user_b: str) -> Sequence[Message]:
		return list(self._state.conversations.get(_conversation_key(user_a, user_b), ()))

	async def delete_messages_touching(self, user_id: str) -> int:
		self._write(changes.MESSAGES)
		conversations = self._own("conversations")
		doomed = [key for key in conversations if user_id in key]
		return sum(len(conversations.pop(key)) for key in doomed)


class MemoryStore:
	"""Snapshot store with serialised writers and lock-free readers.

	A write transaction works on a fork of the committed state and swaps it in
	only when its block exits cleanly. Readers keep whatever snapshot was
	committed when they started.
	"""

	def __init__(self, feed: ChangeFeed | None = None) -> None:
		self._state = _State()
		self._lock = asyncio.Lock()
		self._feed = feed or changes.change_feed

	@asynccontextmanager
	async def transaction(self, *, readonly: bool = False) -> AsyncIterator[MemoryTransaction]:
		if readonly:
			yield MemoryTransaction(self._state, readonly=True)
			return
		async with self._lock:
			draft = self._state.fork()
			tx = MemoryTransaction(draft)
			yield tx
			self._state = draft
		if tx.touched:
			await self._feed.publish(self._feed.changeset(tx.touched))

	async def ping(self) -> bool:
		return True

	async def close(self) -> None:
		return None
