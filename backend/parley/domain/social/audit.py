"""Audit helpers for friendships, blocks and account lifecycle."""

from __future__ import annotations

import logging
from typing import Dict

from redis.exceptions import RedisError

from parley.infra.redis import redis_client
from parley.settings import settings

logger = logging.getLogger(__name__)

FRIENDSHIP_STREAM = "x:friendships.events"
ACCOUNT_STREAM = "x:accounts.events"


async def _append(stream: str, event: str, fields: Dict[str, str]) -> None:
	if not settings.audit_stream_enabled:
		return
	payload = {"event": event, **fields}
	try:
		await redis_client.xadd(stream, payload)
	except (RedisError, OSError):
		# The operation already committed; the audit trail is best-effort.
		logger.warning("audit append failed", extra={"stream": stream, "event": event}, exc_info=True)


async def log_friend_event(event: str, fields: Dict[str, str]) -> None:
	await _append(FRIENDSHIP_STREAM, event, fields)


async def log_account_event(event: str, fields: Dict[str, str]) -> None:
	await _append(ACCOUNT_STREAM, event, fields)
