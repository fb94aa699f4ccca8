"""Blocking policy and guard checks for friendships and messaging."""

from __future__ import annotations

from parley.domain.identity.models import User
from parley.domain.social.exceptions import Blocked, SelfFriendRequest


def can_message(user_a: User, user_b: User) -> bool:
	"""True when neither user has the other in their blocked set."""
	return not user_a.has_blocked(user_b.id) and not user_b.has_blocked(user_a.id)


def ensure_can_message(sender: User, receiver: User) -> None:
	if not can_message(sender, receiver):
		raise Blocked()


def guard_not_self(user_id: str, target_id: str) -> None:
	if str(user_id) == str(target_id):
		raise SelfFriendRequest()
