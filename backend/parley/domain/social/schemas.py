"""Pydantic schemas for friend requests and friendships."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from parley.domain.identity.schemas import UserOut
from parley.domain.social.models import Friendship
from parley.domain.social.service import FriendRequest


class FriendRequestCreate(BaseModel):
	to_user_id: str = Field(..., description="Recipient of the request")


class FriendshipOut(BaseModel):
	id: str
	user_id1: str
	user_id2: str
	status: Literal["pending", "accepted"]
	action_user_id: str
	created_at: datetime

	@classmethod
	def from_domain(cls, friendship: Friendship) -> "FriendshipOut":
		return cls(
			id=friendship.id,
			user_id1=friendship.user_id1,
			user_id2=friendship.user_id2,
			status=friendship.status.value,
			action_user_id=friendship.action_user_id,
			created_at=friendship.created_at,
		)


class FriendRequestOut(FriendshipOut):
	requester: UserOut

	@classmethod
	def from_request(cls, request: FriendRequest) -> "FriendRequestOut":
		base = FriendshipOut.from_domain(request.friendship)
		return cls(**base.model_dump(), requester=UserOut.from_domain(request.requester))
