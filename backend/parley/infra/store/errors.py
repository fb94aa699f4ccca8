"""Errors raised by store backends."""

from __future__ import annotations


class StoreError(Exception):
	"""Base class for store failures."""


class ReadOnlyTransaction(StoreError):
	"""A write was attempted inside a read-only transaction."""


class UniqueViolation(StoreError):
	"""An insert collided with a uniqueness guard."""

	def __init__(self, constraint: str) -> None:
		super().__init__(constraint)
		self.constraint = constraint


class ConcurrentUpdate(StoreError):
	"""The transaction could not be serialised against a concurrent commit."""


USERS_NAME_KEY = "users_name_key"
FRIENDSHIPS_PAIR_KEY = "friendships_pair_key"
