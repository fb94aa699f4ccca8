"""Chat service for one-to-one message exchange."""

from __future__ import annotations

import logging
from typing import List

from parley.domain.chat.models import Message
from parley.domain.common.transactions import new_id, unit_of_work
from parley.domain.identity.exceptions import UserNotFound
from parley.domain.social import policy
from parley.domain.social.exceptions import Blocked
from parley.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


async def send_message(content: str, sender_id: str, receiver_id: str) -> Message:
	"""Append a message to the pair's log.

	Both users must exist and neither may have blocked the other at send time.
	"""
	try:
		async with unit_of_work() as tx:
			sender = await tx.get_user(sender_id)
			receiver = await tx.get_user(receiver_id)
			if sender is None or receiver is None:
				raise UserNotFound()
			policy.ensure_can_message(sender, receiver)
			message = await tx.insert_message(new_id(), content, sender_id, receiver_id)
	except UserNotFound:
		obs_metrics.inc_chat_send("not_found")
		raise
	except Blocked:
		obs_metrics.inc_chat_send("blocked")
		logger.info("message rejected by block", extra={"sender_id": sender_id, "receiver_id": receiver_id})
		raise
	obs_metrics.inc_chat_send("ok")
	return message


async def get_messages(user_a: str, user_b: str) -> List[Message]:
	"""Full history between the pair in either direction, oldest first."""
	async with unit_of_work(readonly=True) as tx:
		return list(await tx.messages_between(user_a, user_b))
