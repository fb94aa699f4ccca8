"""Catalogue of subscribable queries and the tables each one reads."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple

from parley.domain.chat import service as chat_service
from parley.domain.chat.schemas import MessageOut
from parley.domain.identity import service as identity_service
from parley.domain.identity.exceptions import UserNotFound
from parley.domain.identity.schemas import UserOut
from parley.domain.search import service as search_service
from parley.domain.social import service as social_service
from parley.domain.social.schemas import FriendRequestOut
from parley.infra.store.changes import FRIENDSHIPS, MESSAGES, USERS


class UnknownLiveQuery(LookupError):
	pass


class InvalidLiveParams(ValueError):
	pass


@dataclass(frozen=True)
class LiveQuery:
	name: str
	tables: frozenset[str]
	params: Tuple[str, ...]
	runner: Callable[..., Awaitable[Any]]
	# parameter filled from the connected user when the client omits it
	actor_param: Optional[str] = None

	def bind(self, params: Mapping[str, Any]) -> Dict[str, str]:
		bound: Dict[str, str] = {}
		for name in self.params:
			value = params.get(name)
			if value is None:
				raise InvalidLiveParams(f"missing parameter: {name}")
			bound[name] = str(value)
		return bound

	async def run(self, params: Mapping[str, str]) -> Any:
		return await self.runner(**params)


async def _user(user_id: str) -> Optional[dict]:
	try:
		user = await identity_service.get_user(user_id)
	except UserNotFound:
		return None
	return UserOut.from_domain(user).model_dump(mode="json")


async def _search_users(term: str, current_user_id: str) -> list[dict]:
	users = await search_service.search_users(term, current_user_id)
	return [UserOut.from_domain(user).model_dump(mode="json") for user in users]


async def _friend_requests(user_id: str) -> list[dict]:
	requests = await social_service.get_friend_requests(user_id)
	return [FriendRequestOut.from_request(request).model_dump(mode="json") for request in requests]


async def _friends(user_id: str) -> list[dict]:
	friends = await social_service.get_friends(user_id)
	return [UserOut.from_domain(user).model_dump(mode="json") for user in friends]


async def _messages(user_a: str, user_b: str) -> list[dict]:
	messages = await chat_service.get_messages(user_a, user_b)
	return [MessageOut.from_domain(message).model_dump(mode="json") for message in messages]


QUERIES: Dict[str, LiveQuery] = {
	query.name: query
	for query in (
		LiveQuery("user", frozenset({USERS}), ("user_id",), _user),
		LiveQuery(
			"search_users",
			frozenset({USERS, FRIENDSHIPS}),
			("term", "current_user_id"),
			_search_users,
			actor_param="current_user_id",
		),
		LiveQuery(
			"friend_requests",
			frozenset({USERS, FRIENDSHIPS}),
			("user_id",),
			_friend_requests,
			actor_param="user_id",
		),
		LiveQuery("friends", frozenset({USERS, FRIENDSHIPS}), ("user_id",), _friends, actor_param="user_id"),
		LiveQuery("messages", frozenset({MESSAGES}), ("user_a", "user_b"), _messages, actor_param="user_a"),
	)
}


def get_query(name: str) -> LiveQuery:
	try:
		return QUERIES[name]
	except KeyError:
		raise UnknownLiveQuery(name) from None
