"""JSON logging for the API and socket workers.

Request-scoped fields (request id, route, acting user, client ip) are carried in
a single context variable so every log line emitted while serving a request can
be correlated. Message bodies and credentials are redacted before a record is
serialised.
"""

from __future__ import annotations

import json
import logging
import random
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping, Optional

from parley.settings import settings

_LOGGER_NAME = "parley"

_EMPTY: Mapping[str, str] = MappingProxyType({})
_CONTEXT: ContextVar[Mapping[str, str]] = ContextVar("parley_log_context", default=_EMPTY)

# Output key for each bindable context field.
_CONTEXT_KEYS = {
	"request_id": "request_id",
	"route": "route",
	"user_id": "user_id",
	"client_ip": "ip",
}

REDACTED = "[redacted]"
_REDACT_MARKERS = ("password", "credential", "secret", "token", "authorization", "content", "body")

_STRING_LIMIT = 256
_ITEM_LIMIT = 10

# Attributes every LogRecord carries; anything else on a record came from `extra=`.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))) | {
	"message",
	"asctime",
	"taskName",
}


def bind_context(**fields: Optional[str]) -> Token:
	"""Merge non-empty fields into the logging context; pass the token to `reset_context`."""
	merged = dict(_CONTEXT.get())
	merged.update({key: value for key, value in fields.items() if key in _CONTEXT_KEYS and value})
	return _CONTEXT.set(MappingProxyType(merged))


def reset_context(token: Token) -> None:
	_CONTEXT.reset(token)


def current_request_id() -> Optional[str]:
	return _CONTEXT.get().get("request_id")


def _is_sensitive(key: str) -> bool:
	lowered = key.lower()
	return any(marker in lowered for marker in _REDACT_MARKERS)


def _clip(value: Any) -> Any:
	if isinstance(value, str) and len(value) > _STRING_LIMIT:
		return value[:_STRING_LIMIT] + "…"
	if isinstance(value, Mapping):
		items = list(value.items())
		clipped = {str(key): sanitize_field(str(key), nested) for key, nested in items[:_ITEM_LIMIT]}
		if len(items) > _ITEM_LIMIT:
			clipped["…"] = f"+{len(items) - _ITEM_LIMIT} keys"
		return clipped
	if isinstance(value, (list, tuple, set, frozenset)):
		items = [_clip(item) for item in value]
		return items if len(items) <= _ITEM_LIMIT else items[:_ITEM_LIMIT] + ["…"]
	return value


def sanitize_field(key: str, value: Any) -> Any:
	"""Redact sensitive keys and bound the size of everything else."""
	if _is_sensitive(key):
		return REDACTED
	return _clip(value)


class JSONLogFormatter(logging.Formatter):
	"""One compact JSON object per record."""

	def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (logging api)
		entry: dict[str, Any] = {
			"ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
			"level": record.levelname.lower(),
			"logger": record.name,
			"msg": record.getMessage(),
			"service": settings.service_name,
			"env": settings.environment,
			"commit": settings.git_commit,
		}
		for field, value in _CONTEXT.get().items():
			entry[_CONTEXT_KEYS[field]] = value
		if record.exc_info:
			entry["exc_info"] = self.formatException(record.exc_info)
		entry.update(
			(key, sanitize_field(key, value))
			for key, value in vars(record).items()
			if key not in _RECORD_ATTRS and not key.startswith("_")
		)
		return json.dumps(entry, separators=(",", ":"), default=str)


class InfoSamplingFilter(logging.Filter):
	"""Drop a share of INFO records; everything else passes."""

	def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
		if record.levelno != logging.INFO:
			return True
		rate = settings.obs_log_sampling_rate_info
		return rate >= 1.0 or random.random() < max(rate, 0.0)


def configure_logging() -> logging.Logger:
	handler = logging.StreamHandler()
	handler.setFormatter(JSONLogFormatter())
	handler.addFilter(InfoSamplingFilter())
	root = logging.getLogger()
	root.handlers[:] = [handler]
	root.setLevel(settings.obs_log_level)
	return get_logger()


def get_logger(name: Optional[str] = None) -> logging.Logger:
	return logging.getLogger(name or _LOGGER_NAME)
