"""PostgreSQL store backed by the shared asyncpg pool."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Sequence, Set

import asyncpg

from parley.domain.chat.models import Message
from parley.domain.identity.models import User
from parley.domain.social.models import Friendship, FriendshipStatus
from parley.infra.store import changes
from parley.infra.store.changes import ChangeFeed
from parley.infra.store.errors import ConcurrentUpdate, ReadOnlyTransaction, UniqueViolation

logger = logging.getLogger(__name__)

_USER_COLUMNS = """
	u.id, u.name, u.password_hash, u.is_online, u.created_at,
	COALESCE(
		(SELECT array_agg(b.blocked_id ORDER BY b.blocked_id) FROM user_blocks b WHERE b.user_id = u.id),
		'{}'::text[]
	) AS blocked_users
"""

_FRIENDSHIP_COLUMNS = "id, user_id1, user_id2, status, action_user_id, created_at"
_MESSAGE_COLUMNS = "id, content, sender_id, receiver_id, seq, created_at"


class PostgresTransaction:
	def __init__(self, conn: asyncpg.Connection, *, readonly: bool = False) -> None:
		self._conn = conn
		self.readonly = readonly
		self.touched: Set[str] = set()

	def _write(self, table: str) -> None:
		if self.readonly:
			raise ReadOnlyTransaction(table)
		self.touched.add(table)

	async def _execute_unique(self, query: str, *args) -> None:
		try:
			await self._conn.execute(query, *args)
		except asyncpg.exceptions.UniqueViolationError as exc:
			raise UniqueViolation(getattr(exc, "constraint_name", None) or "unique") from exc

	async def get_user(self, user_id: str) -> Optional[User]:
		row = await self._conn.fetchrow(f"SELECT {_USER_COLUMNS} FROM users u WHERE u.id = $1", user_id)
		return User.from_record(row) if row else None

	async def find_user_by_name(self, name: str) -> Optional[User]:
		row = await self._conn.fetchrow(f"SELECT {_USER_COLUMNS} FROM users u WHERE u.name = $1", name)
		return User.from_record(row) if row else None

	async def insert_user(self, user: User) -> User:
		self._write(changes.USERS)
		await self._execute_unique(
			"""
			INSERT INTO users (id, name, password_hash, is_online, created_at)
			VALUES ($1, $2, $3, $4, $5)
			""",
			user.id,
			user.name,
			user.password_hash,
			user.is_online,
			user.created_at,
		)
		return user

	async def scan_users_by_name(self, lower: str, upper: str) -> Sequence[User]:
		rows = await self._conn.fetch(
			f"""
			SELECT {_USER_COLUMNS}
			FROM users u
			WHERE u.name >= $1 AND u.name < $2
			ORDER BY u.name
			""",
			lower,
			upper,
		)
		return [User.from_record(row) for row in rows]

	async def add_blocked(self, user_id: str, target_id: str) -> None:
		self._write(changes.USERS)
		await self._conn.execute(
			"""
			INSERT INTO user_blocks (user_id, blocked_id)
			VALUES ($1, $2)
			ON CONFLICT (user_id, blocked_id) DO NOTHING
			""",
			user_id,
			target_id,
		)

	async def remove_blocked(self, user_id: str, target_id: str) -> None:
		self._write(changes.USERS)
		await self._conn.execute(
			"DELETE FROM user_blocks WHERE user_id = $1 AND blocked_id = $2",
			user_id,
			target_id,
		)

	async def delete_user(self, user_id: str) -> bool:
		self._write(changes.USERS)
		await self._conn.execute("DELETE FROM user_blocks WHERE user_id = $1", user_id)
		result = await self._conn.execute("DELETE FROM users WHERE id = $1", user_id)
		return _affected(result) > 0

	async def get_friendship(self, friendship_id: str) -> Optional[Friendship]:
		row = await self._conn.fetchrow(
			f"SELECT {_FRIENDSHIP_COLUMNS} FROM friendships WHERE id = $1",
			friendship_id,
		)
		return Friendship.from_record(row) if row else None

	async def find_friendship(self, user_id1: str, user_id2: str) -> Optional[Friendship]:
		row = await self._conn.fetchrow(
			f"SELECT {_FRIENDSHIP_COLUMNS} FROM friendships WHERE user_id1 = $1 AND user_id2 = $2",
			user_id1,
			user_id2,
		)
		return Friendship.from_record(row) if row else None

	async def insert_friendship(self, friendship: Friendship) -> Friendship:
		self._write(changes.FRIENDSHIPS)
		await self._execute_unique(
			"""
			INSERT INTO friendships (id, user_id1, user_id2, status, action_user_id, created_at)
			VALUES ($1, $2, $3, $4, $5, $6)
			""",
			friendship.id,
			friendship.user_id1,
			friendship.user_id2,
			friendship.status.value,
			friendship.action_user_id,
			friendship.created_at,
		)
		return friendship

	async def update_friendship_status(self, friendship_id: str, status: FriendshipStatus) -> Optional[Friendship]:
		self._write(changes.FRIENDSHIPS)
		row = await self._conn.fetchrow(
			f"UPDATE friendships SET status = $2 WHERE id = $1 RETURNING {_FRIENDSHIP_COLUMNS}",
			friendship_id,
			status.value,
		)
		return Friendship.from_record(row) if row else None

	async def delete_friendship(self, friendship_id: str) -> bool:
		self._write(changes.FRIENDSHIPS)
		result = await self._conn.execute("DELETE FROM friendships WHERE id = $1", friendship_id)
		return _affected(result) > 0

	async def friendships_for_recipient(self, user_id: str, status: FriendshipStatus) -> Sequence[Friendship]:
		rows = await self._conn.fetch(
			f"""
			SELECT {_FRIENDSHIP_COLUMNS}
			FROM friendships
			WHERE user_id2 = $1 AND status = $2
			ORDER BY seq
			""",
			user_id,
			status.value,
		)
		return [Friendship.from_record(row) for row in rows]

	async def friendships_touching(self, user_id: str, status: FriendshipStatus) -> Sequence[Friendship]:
		rows = await self._conn.fetch(
			f"""
			SELECT {_FRIENDSHIP_COLUMNS}
			FROM friendships
			WHERE (user_id1 = $1 OR user_id2 = $1) AND status = $2
			ORDER BY seq
			""",
			user_id,
			status.value,
		)
		return [Friendship.from_record(row) for row in rows]

	async def delete_friendships_touching(self, user_id: str) -> int:
		self._write(changes.FRIENDSHIPS)
		result = await self._conn.execute(
			"DELETE FROM friendships WHERE user_id1 = $1 OR user_id2 = $1",
			user_id,
		)
		return _affected(result)

	async def insert_message(self, message_id: str, content: str, sender_id: str, receiver_id: str) -> Message:
		self._write(changes.MESSAGES)
		row = await self._conn.fetchrow(
			f"""
			INSERT INTO messages (id, content, sender_id, receiver_id, created_at)
			VALUES ($1, $2, $3, $4, clock_timestamp())
			RETURNING {_MESSAGE_COLUMNS}
			""",
			message_id,
			content,
			sender_id,
			receiver_id,
		)
		return Message.from_record(row)

	async def messages_between(self, user_a: str, user_b: str) -> Sequence[Message]:
		rows = await self._conn.fetch(
			f"""
			SELECT {_MESSAGE_COLUMNS}
			FROM messages
			WHERE (sender_id = $1 AND receiver_id = $2) OR (sender_id = $2 AND receiver_id = $1)
			ORDER BY seq ASC
			""",
			user_a,
			user_b,
		)
		return [Message.from_record(row) for row in rows]

	async def delete_messages_touching(self, user_id: str) -> int:
		self._write(changes.MESSAGES)
		result = await self._conn.execute(
			"DELETE FROM messages WHERE sender_id = $1 OR receiver_id = $1",
			user_id,
		)
		return _affected(result)


def _affected(status: str) -> int:
	# asyncpg returns the command tag, e.g. "DELETE 3"
	try:
		return int(str(status).rsplit(" ", 1)[-1])
	except ValueError:
		return 0


class PostgresStore:
	"""Runs every transaction at SERIALIZABLE isolation; conflicts surface immediately."""

	def __init__(self, pool: asyncpg.Pool, feed: ChangeFeed | None = None) -> None:
		self._pool = pool
		self._feed = feed or changes.change_feed

	@asynccontextmanager
	async def transaction(self, *, readonly: bool = False) -> AsyncIterator[PostgresTransaction]:
		async with self._pool.acquire() as conn:
			tx = PostgresTransaction(conn, readonly=readonly)
			try:
				async with conn.transaction(isolation="serializable", readonly=readonly):
					yield tx
			except (asyncpg.exceptions.SerializationError, asyncpg.exceptions.DeadlockDetectedError) as exc:
				logger.info("transaction aborted by concurrent update", extra={"sqlstate": exc.sqlstate})
				raise ConcurrentUpdate(str(exc)) from exc
		if tx.touched:
			await self._feed.publish(self._feed.changeset(tx.touched))

	async def ping(self) -> bool:
		async with self._pool.acquire() as conn:
			await conn.execute("SELECT 1")
		return True

	async def close(self) -> None:
		return None
