"""Domain models for friend requests and friendships."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping


class FriendshipStatus(str, Enum):
	"""Friendship states tracked in the store. Refusal deletes the row."""

	PENDING = "pending"
	ACCEPTED = "accepted"


@dataclass(slots=True, frozen=True)
class Friendship:
	"""A friendship row keyed by the ordered pair (user_id1, user_id2).

	user_id1 is the requester; the pair is never canonicalised, so (a, b) and
	(b, a) are distinct rows.
	"""

	id: str
	user_id1: str
	user_id2: str
	status: FriendshipStatus
	action_user_id: str
	created_at: datetime

	def other(self, user_id: str) -> str:
		return self.user_id2 if self.user_id1 == user_id else self.user_id1

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "Friendship":
		return cls(
			id=str(record["id"]),
			user_id1=str(record["user_id1"]),
			user_id2=str(record["user_id2"]),
			status=FriendshipStatus(record["status"]),
			action_user_id=str(record["action_user_id"]),
			created_at=record["created_at"],
		)
