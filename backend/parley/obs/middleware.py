"""Per-request instrumentation: request ids, access logs and latency metrics."""

from __future__ import annotations

import time
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from parley.obs import logging as obs_logging
from parley.obs import metrics
from parley.settings import settings

REQUEST_ID_ATTR = "request_id"
REQUEST_ID_HEADER = "X-Request-Id"

# Health checks fire every few seconds; counting them is enough.
_QUIET_PATHS = frozenset({"/health/live", "/health/ready", "/metrics"})


def _route_template(request: Request) -> str:
	"""Path template of the matched route, so `/users/{user_id}` is one series."""
	route = request.scope.get("route")
	return getattr(route, "path", None) or request.url.path


def _request_id(request: Request) -> str:
	rid = getattr(request.state, REQUEST_ID_ATTR, None) or request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
	setattr(request.state, REQUEST_ID_ATTR, rid)
	return rid


class ObservabilityMiddleware(BaseHTTPMiddleware):
	def __init__(self, app, *, enabled: bool = True) -> None:
		super().__init__(app)
		self._enabled = enabled
		self._access_log = obs_logging.get_logger("parley.http")

	async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
		if not (self._enabled and settings.obs_enabled):
			return await call_next(request)

		request_id = _request_id(request)
		token = obs_logging.bind_context(
			request_id=request_id,
			route=_route_template(request),
			user_id=request.headers.get("X-User-Id"),
			client_ip=request.client.host if request.client else None,
		)
		started = time.perf_counter()
		status_code = 500
		try:
			response = await call_next(request)
			status_code = response.status_code
			response.headers.setdefault(REQUEST_ID_HEADER, request_id)
			return response
		except Exception:
			self._access_log.exception("http_request_error", extra={"method": request.method})
			raise
		finally:
			elapsed = time.perf_counter() - started
			route = _route_template(request)
			metrics.observe_request(route, request.method, status_code, elapsed)
			if request.url.path not in _QUIET_PATHS or status_code >= 500:
				self._access_log.info(
					"http_request",
					extra={
						"method": request.method,
						"route": route,
						"status": status_code,
						"latency_ms": round(elapsed * 1000, 3),
					},
				)
			obs_logging.reset_context(token)


def install(app, *, enabled: bool = True) -> None:
	app.add_middleware(ObservabilityMiddleware, enabled=enabled)
