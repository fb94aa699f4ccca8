"""Domain models for direct messages."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping


@dataclass(slots=True, frozen=True)
class Message:
	id: str
	content: str
	sender_id: str
	receiver_id: str
	seq: int
	created_at: datetime

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "Message":
		return cls(
			id=str(record["id"]),
			content=str(record["content"]),
			sender_id=str(record["sender_id"]),
			receiver_id=str(record["receiver_id"]),
			seq=int(record["seq"]),
			created_at=record["created_at"],
		)
