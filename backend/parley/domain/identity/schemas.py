"""Pydantic schemas for accounts."""

from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from parley.domain.identity.models import User


class CreateUserRequest(BaseModel):
	name: str = Field(..., description="Unique display name")
	password: str


class LoginRequest(BaseModel):
	name: str
	password: str


class UserOut(BaseModel):
	"""Public view of an account; never carries the credential."""

	id: str
	name: str
	is_online: bool
	blocked_users: List[str] = Field(default_factory=list)
	created_at: datetime

	@classmethod
	def from_domain(cls, user: User) -> "UserOut":
		return cls(**user.to_public())
