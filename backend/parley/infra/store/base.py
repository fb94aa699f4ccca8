"""Transaction interface shared by the store backends.

Every domain operation runs inside exactly one transaction. Writes are
all-or-nothing: an exception raised inside the `async with` block discards
every change made in it. Committed writes are published on the change feed
with the set of tables they touched.
"""

from __future__ import annotations

from typing import AsyncContextManager, Optional, Protocol, Sequence

from parley.domain.chat.models import Message
from parley.domain.identity.models import User
from parley.domain.social.models import Friendship, FriendshipStatus


class Transaction(Protocol):
	readonly: bool

	# users
	async def get_user(self, user_id: str) -> Optional[User]:
		...

	async def find_user_by_name(self, name: str) -> Optional[User]:
		...

	async def insert_user(self, user: User) -> User:
		...

	async def scan_users_by_name(self, lower: str, upper: str) -> Sequence[User]:
		"""Users with lower <= name < upper in code-point order."""
		...

	async def add_blocked(self, user_id: str, target_id: str) -> None:
		...

	async def remove_blocked(self, user_id: str, target_id: str) -> None:
		...

	async def delete_user(self, user_id: str) -> bool:
		...

	# friendships
	async def get_friendship(self, friendship_id: str) -> Optional[Friendship]:
		...

	async def find_friendship(self, user_id1: str, user_id2: str) -> Optional[Friendship]:
		"""Exact ordered-pair lookup."""
		...

	async def insert_friendship(self, friendship: Friendship) -> Friendship:
		...

	async def update_friendship_status(self, friendship_id: str, status: FriendshipStatus) -> Optional[Friendship]:
		...

	async def delete_friendship(self, friendship_id: str) -> bool:
		...

	async def friendships_for_recipient(self, user_id: str, status: FriendshipStatus) -> Sequence[Friendship]:
		"""Rows with user_id2 == user_id in insertion order."""
		...

	async def friendships_touching(self, user_id: str, status: FriendshipStatus) -> Sequence[Friendship]:
		"""Rows with the user on either side in insertion order."""
		...

	async def delete_friendships_touching(self, user_id: str) -> int:
		...

	# messages
	async def insert_message(self, message_id: str, content: str, sender_id: str, receiver_id: str) -> Message:
		"""Append a message; the store assigns `seq` and `created_at`."""
		...

	async def messages_between(self, user_a: str, user_b: str) -> Sequence[Message]:
		...

	async def delete_messages_touching(self, user_id: str) -> int:
		...


class Store(Protocol):
	def transaction(self, *, readonly: bool = False) -> AsyncContextManager[Transaction]:
		...

	async def ping(self) -> bool:
		...

	async def close(self) -> None:
		...
