"""Unit-of-work helper used by every domain operation."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator

import ulid

from parley.domain.common.errors import ConcurrentUpdate
from parley.infra.store import Transaction, get_store
from parley.infra.store import errors as store_errors
from parley.obs import metrics as obs_metrics


@asynccontextmanager
async def unit_of_work(*, readonly: bool = False) -> AsyncIterator[Transaction]:
	"""Run the block as one atomic transaction against the configured store."""
	try:
		async with get_store().transaction(readonly=readonly) as tx:
			yield tx
	except store_errors.ConcurrentUpdate as exc:
		obs_metrics.inc_store_conflict("serialization")
		raise ConcurrentUpdate() from exc


def new_id() -> str:
	return ulid.new().str


def now() -> datetime:
	return datetime.now(timezone.utc)
