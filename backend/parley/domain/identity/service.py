"""Service layer for accounts: signup, login, lookup, blocking and deletion."""

from __future__ import annotations

import logging
from typing import Optional

from parley.domain.common.transactions import new_id, now, unit_of_work
from parley.domain.identity.exceptions import DuplicateName, UserNotFound
from parley.domain.identity.models import User
from parley.domain.social import audit
from parley.infra.password import hash_password, verify_password
from parley.infra.store.errors import UniqueViolation
from parley.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


async def create_user(name: str, password: str) -> User:
	"""Register a new account. Names are unique by exact match."""
	password_hash = hash_password(password)
	try:
		async with unit_of_work() as tx:
			if await tx.find_user_by_name(name) is not None:
				raise DuplicateName()
			user = await tx.insert_user(
				User(
					id=new_id(),
					name=name,
					password_hash=password_hash,
					created_at=now(),
					is_online=True,
				)
			)
	except UniqueViolation as exc:
		raise DuplicateName() from exc
	obs_metrics.inc_account_created()
	logger.info("account created", extra={"user_id": user.id})
	await audit.log_account_event("created", {"user_id": user.id})
	return user


async def login(name: str, password: str) -> Optional[User]:
	"""Return the user when name and password match, otherwise None.

	An unknown name and a wrong password are indistinguishable to the caller.
	"""
	async with unit_of_work(readonly=True) as tx:
		user = await tx.find_user_by_name(name)
	if user is None or not verify_password(user.password_hash, password):
		obs_metrics.inc_login("mismatch")
		return None
	obs_metrics.inc_login("ok")
	return user


async def get_user(user_id: str) -> User:
	async with unit_of_work(readonly=True) as tx:
		user = await tx.get_user(user_id)
	if user is None:
		raise UserNotFound()
	return user


async def block_user(user_id: str, target_id: str) -> None:
	"""Add target_id to the user's blocked set. Blocking twice is a no-op."""
	async with unit_of_work() as tx:
		if await tx.get_user(user_id) is None:
			raise UserNotFound()
		await tx.add_blocked(user_id, target_id)
	obs_metrics.inc_block("block")
	await audit.log_friend_event("blocked", {"user_id": user_id, "target_id": target_id})


async def unblock_user(user_id: str, target_id: str) -> None:
	async with unit_of_work() as tx:
		if await tx.get_user(user_id) is None:
			raise UserNotFound()
		await tx.remove_blocked(user_id, target_id)
	obs_metrics.inc_block("unblock")
	await audit.log_friend_event("unblocked", {"user_id": user_id, "target_id": target_id})


async def delete_account(user_id: str) -> None:
	"""Delete the user together with every friendship and message referencing it.

	Dependent rows go first so no reference to the user outlives it; the whole
	cascade commits or rolls back as one transaction.
	"""
	async with unit_of_work() as tx:
		if await tx.get_user(user_id) is None:
			raise UserNotFound()
		friendships = await tx.delete_friendships_touching(user_id)
		messages = await tx.delete_messages_touching(user_id)
		await tx.delete_user(user_id)
	obs_metrics.inc_account_deleted()
	logger.info(
		"account deleted",
		extra={"user_id": user_id, "friendships_removed": friendships, "messages_removed": messages},
	)
	await audit.log_account_event(
		"deleted",
		{"user_id": user_id, "friendships": str(friendships), "messages": str(messages)},
	)
