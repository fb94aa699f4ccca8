"""Domain-level exceptions for friend requests, friendships and blocking."""

from __future__ import annotations

from parley.domain.common.errors import ConflictError, ForbiddenError, NotFoundError


class FriendshipNotFound(NotFoundError):
	reason = "friendship_not_found"


class DuplicateRequest(ConflictError):
	reason = "duplicate_request"


class SelfFriendRequest(ConflictError):
	reason = "self_request"


class Blocked(ForbiddenError):
	"""One side of the pair has blocked the other."""

	reason = "blocked"
