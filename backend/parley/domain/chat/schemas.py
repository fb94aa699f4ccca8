"""Pydantic schemas for chat transport."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from parley.domain.chat.models import Message


class SendMessageRequest(BaseModel):
	to_user_id: str
	content: str = Field(..., description="Message body; no length limit is enforced")


class MessageOut(BaseModel):
	id: str
	content: str
	sender_id: str
	receiver_id: str
	seq: int
	created_at: datetime

	@classmethod
	def from_domain(cls, message: Message) -> "MessageOut":
		return cls(
			id=message.id,
			content=message.content,
			sender_id=message.sender_id,
			receiver_id=message.receiver_id,
			seq=message.seq,
			created_at=message.created_at,
		)
