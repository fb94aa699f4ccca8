"""Domain models for user accounts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping


@dataclass(slots=True, frozen=True)
class User:
	"""A registered account and the set of ids it has blocked."""

	id: str
	name: str
	password_hash: str
	created_at: datetime
	is_online: bool = True
	blocked_users: frozenset[str] = field(default_factory=frozenset)

	def has_blocked(self, user_id: str) -> bool:
		return user_id in self.blocked_users

	def to_public(self) -> dict[str, Any]:
		return {
			"id": self.id,
			"name": self.name,
			"is_online": self.is_online,
			"blocked_users": sorted(self.blocked_users),
			"created_at": self.created_at,
		}

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "User":
		blocked = record.get("blocked_users") or ()
		return cls(
			id=str(record["id"]),
			name=str(record["name"]),
			password_hash=str(record["password_hash"]),
			created_at=record["created_at"],
			is_online=bool(record["is_online"]),
			blocked_users=frozenset(str(item) for item in blocked),
		)
