"""Service layer for the friend-request lifecycle and friendship reads."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

from parley.domain.common.transactions import new_id, now, unit_of_work
from parley.domain.identity.exceptions import UserNotFound
from parley.domain.identity.models import User
from parley.domain.social import audit, policy
from parley.domain.social.exceptions import DuplicateRequest, FriendshipNotFound
from parley.domain.social.models import Friendship, FriendshipStatus
from parley.infra.store.errors import UniqueViolation
from parley.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class FriendRequest:
	"""A pending friendship row joined with the requesting user."""

	friendship: Friendship
	requester: User


async def send_friend_request(from_user_id: str, to_user_id: str) -> Friendship:
	"""Create a pending row for the exact ordered pair (from, to).

	Only that order is checked for duplicates: a request in the opposite
	direction is a separate row.
	"""
	policy.guard_not_self(from_user_id, to_user_id)
	try:
		async with unit_of_work() as tx:
			if await tx.get_user(from_user_id) is None or await tx.get_user(to_user_id) is None:
				raise UserNotFound()
			if await tx.find_friendship(from_user_id, to_user_id) is not None:
				raise DuplicateRequest()
			friendship = await tx.insert_friendship(
				Friendship(
					id=new_id(),
					user_id1=from_user_id,
					user_id2=to_user_id,
					status=FriendshipStatus.PENDING,
					action_user_id=from_user_id,
					created_at=now(),
				)
			)
	except UniqueViolation as exc:
		obs_metrics.inc_friend_request("duplicate")
		raise DuplicateRequest() from exc
	except DuplicateRequest:
		obs_metrics.inc_friend_request("duplicate")
		raise
	obs_metrics.inc_friend_request("sent")
	await audit.log_friend_event(
		"request_sent",
		{"friendship_id": friendship.id, "user_id1": from_user_id, "user_id2": to_user_id},
	)
	return friendship


async def accept_friend_request(friendship_id: str) -> Friendship:
	# No recipient check: any caller holding the id may accept.
	async with unit_of_work() as tx:
		friendship = await tx.update_friendship_status(friendship_id, FriendshipStatus.ACCEPTED)
		if friendship is None:
			raise FriendshipNotFound()
	obs_metrics.inc_friendship_accept()
	await audit.log_friend_event(
		"accepted",
		{"friendship_id": friendship.id, "user_id1": friendship.user_id1, "user_id2": friendship.user_id2},
	)
	return friendship


async def refuse_friend_request(friendship_id: str) -> None:
	"""Delete the row whatever its status; this is also how friends are removed."""
	async with unit_of_work() as tx:
		friendship = await tx.get_friendship(friendship_id)
		if friendship is None:
			raise FriendshipNotFound()
		await tx.delete_friendship(friendship_id)
	obs_metrics.inc_friendship_refuse()
	logger.info(
		"friendship removed",
		extra={"friendship_id": friendship_id, "previous_status": friendship.status.value},
	)
	await audit.log_friend_event(
		"refused",
		{"friendship_id": friendship.id, "user_id1": friendship.user_id1, "user_id2": friendship.user_id2},
	)


async def get_friend_requests(user_id: str) -> List[FriendRequest]:
	"""Pending rows addressed to user_id, in insertion order."""
	requests: List[FriendRequest] = []
	async with unit_of_work(readonly=True) as tx:
		for friendship in await tx.friendships_for_recipient(user_id, FriendshipStatus.PENDING):
			requester = await tx.get_user(friendship.user_id1)
			if requester is None:
				continue
			requests.append(FriendRequest(friendship=friendship, requester=requester))
	return requests


async def get_friends(user_id: str) -> List[User]:
	"""Accepted friends on either side of the pair, resolved to the other user."""
	friends: List[User] = []
	async with unit_of_work(readonly=True) as tx:
		for friendship in await tx.friendships_touching(user_id, FriendshipStatus.ACCEPTED):
			friend = await tx.get_user(friendship.other(user_id))
			if friend is not None:
				friends.append(friend)
	return friends
