"""Prefix search over the user directory."""

from __future__ import annotations

from typing import List

from parley.domain.common.transactions import unit_of_work
from parley.domain.identity.models import User
from parley.obs import metrics as obs_metrics

# Upper bound appended to the term to turn a prefix into a half-open range.
PREFIX_SENTINEL = "\uffff"


def prefix_range(term: str) -> tuple[str, str]:
	return term, term + PREFIX_SENTINEL


async def search_users(term: str, current_user_id: str) -> List[User]:
	"""Users whose name starts with `term`, in name order.

	Skips the caller and anyone the caller already has a friendship row with in
	the (caller, candidate) order. Requests received from a candidate do not
	exclude them.
	"""
	if not term:
		return []
	obs_metrics.inc_search_query()
	lower, upper = prefix_range(term)
	results: List[User] = []
	async with unit_of_work(readonly=True) as tx:
		for candidate in await tx.scan_users_by_name(lower, upper):
			if candidate.id == current_user_id:
				continue
			if await tx.find_friendship(current_user_id, candidate.id) is not None:
				continue
			results.append(candidate)
	return results
