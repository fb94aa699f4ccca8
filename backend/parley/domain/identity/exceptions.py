"""Domain-level exceptions for accounts."""

from __future__ import annotations

from parley.domain.common.errors import ConflictError, NotFoundError


class UserNotFound(NotFoundError):
	reason = "user_not_found"


class DuplicateName(ConflictError):
	reason = "duplicate_name"
