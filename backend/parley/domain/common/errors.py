"""Shared error taxonomy for the domain services."""

from __future__ import annotations


class DomainError(Exception):
	"""Base class for failures surfaced to callers.

	`reason` is a stable machine-readable code; the API layer maps the error kind
	to an HTTP status and returns the reason as `detail`.
	"""

	reason: str = "unknown"

	def __init__(self, reason: str | None = None) -> None:
		super().__init__(reason or self.reason)
		if reason:
			self.reason = reason


class NotFoundError(DomainError):
	reason = "not_found"


class ConflictError(DomainError):
	reason = "conflict"


class ForbiddenError(DomainError):
	reason = "forbidden"


class ConcurrentUpdate(ConflictError):
	"""The store aborted the transaction because of a conflicting commit."""

	reason = "concurrent_update"
