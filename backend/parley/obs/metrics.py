"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

import logging

from prometheus_client import Counter, Gauge, Histogram

log = logging.getLogger(__name__)


REQUEST_COUNTER = Counter(
	"parley_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"parley_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SOCKET_CLIENTS = Gauge(
	"parley_socketio_clients",
	"Active Socket.IO clients per namespace",
	["namespace"],
)

SOCKET_EVENTS = Counter(
	"parley_socketio_events_total",
	"Socket.IO events emitted per namespace",
	["namespace", "event"],
)

ACCOUNTS_CREATED = Counter(
	"parley_accounts_created_total",
	"Accounts created",
)

ACCOUNTS_DELETED = Counter(
	"parley_accounts_deleted_total",
	"Accounts deleted with their friendships and messages",
)

LOGINS = Counter(
	"parley_logins_total",
	"Login attempts",
	["result"],
)

FRIEND_REQUESTS_SENT = Counter(
	"parley_friend_requests_sent_total",
	"Friend requests sent",
	["result"],
)

FRIENDSHIPS_ACCEPTED = Counter(
	"parley_friendships_accepted_total",
	"Friendships accepted",
)

FRIENDSHIPS_REFUSED = Counter(
	"parley_friendships_refused_total",
	"Friend requests refused or friendships removed",
)

BLOCKS_TOTAL = Counter(
	"parley_blocks_total",
	"Block operations",
	["action"],
)

CHAT_SEND = Counter(
	"parley_chat_send_total",
	"Chat send attempts",
	["result"],
)

SEARCH_QUERIES = Counter(
	"parley_search_queries_total",
	"User directory searches",
)

LIVE_SUBSCRIPTIONS = Gauge(
	"parley_live_subscriptions",
	"Active live query subscriptions",
)

LIVE_PUSHES = Counter(
	"parley_live_pushes_total",
	"Live query refreshes pushed to subscribers",
	["query"],
)

STORE_CONFLICTS = Counter(
	"parley_store_conflicts_total",
	"Transactions aborted by the store",
	["kind"],
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def socket_connected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).inc()


def socket_disconnected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).dec()


def socket_event(namespace: str, event: str) -> None:
	SOCKET_EVENTS.labels(namespace=namespace, event=event).inc()


def inc_account_created() -> None:
	ACCOUNTS_CREATED.inc()


def inc_account_deleted() -> None:
	ACCOUNTS_DELETED.inc()


def inc_login(result: str) -> None:
	LOGINS.labels(result=result).inc()


def inc_friend_request(result: str) -> None:
	FRIEND_REQUESTS_SENT.labels(result=result).inc()


def inc_friendship_accept() -> None:
	FRIENDSHIPS_ACCEPTED.inc()


def inc_friendship_refuse() -> None:
	FRIENDSHIPS_REFUSED.inc()


def inc_block(action: str) -> None:
	BLOCKS_TOTAL.labels(action=action).inc()


def inc_chat_send(result: str) -> None:
	CHAT_SEND.labels(result=result).inc()


def inc_search_query() -> None:
	SEARCH_QUERIES.inc()


def live_subscribed() -> None:
	LIVE_SUBSCRIPTIONS.inc()


def live_unsubscribed(count: int = 1) -> None:
	if count:
		LIVE_SUBSCRIPTIONS.dec(count)


def inc_live_push(query: str) -> None:
	LIVE_PUSHES.labels(query=query).inc()


def inc_store_conflict(kind: str) -> None:
	STORE_CONFLICTS.labels(kind=kind).inc()
