"""Transactional store selection and lifecycle."""

from __future__ import annotations

from typing import Optional

from parley.infra.store.base import Store, Transaction
from parley.infra.store.changes import ChangeFeed, ChangeSet, change_feed
from parley.infra.store.memory import MemoryStore
from parley.settings import settings

_store: Optional[Store] = None


async def init_store() -> Store:
	global _store
	if _store is None:
		if settings.store_backend == "postgres":
			from parley.infra import postgres
			from parley.infra.store.postgres import PostgresStore

			_store = PostgresStore(await postgres.init_pool())
		else:
			_store = MemoryStore()
	return _store


def set_store(store: Optional[Store]) -> None:
	global _store
	_store = store


def get_store() -> Store:
	if _store is None:
		raise RuntimeError("store not initialised")
	return _store


async def close_store() -> None:
	global _store
	if _store is not None:
		await _store.close()
		if settings.store_backend == "postgres":
			from parley.infra import postgres

			await postgres.close_pool()
		_store = None


__all__ = [
	"ChangeFeed",
	"ChangeSet",
	"MemoryStore",
	"Store",
	"Transaction",
	"change_feed",
	"close_store",
	"get_store",
	"init_store",
	"set_store",
]
