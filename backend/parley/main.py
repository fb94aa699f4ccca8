"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from parley.api import chat, identity, ops, social
from parley.api.errors import install_error_handlers
from parley.domain.live.registry import live_registry
from parley.domain.live.relay import ChangeRelay
from parley.domain.live.sockets import LiveNamespace
from parley.infra.redis import close_redis
from parley.infra.store import close_store, init_store
from parley.obs import init as obs_init
from parley.settings import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	await init_store()
	live_registry.attach()
	relay: ChangeRelay | None = None
	if settings.change_relay_enabled:
		relay = ChangeRelay()
		await relay.start()
	app.state.change_relay = relay
	logger.info("parley started", extra={"store_backend": settings.store_backend})
	try:
		yield
	finally:
		if relay is not None:
			await relay.stop()
		live_registry.detach()
		await close_store()
		await close_redis()


app = FastAPI(title="Parley", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(settings.cors_allow_origins)
if not allow_origins:
	allow_origins = ["http://localhost:3000"] if settings.is_dev() else []

# Starlette disallows wildcard '*' with allow_credentials=True.
if "*" in allow_origins:
	allow_origins = ["http://localhost:3000", "http://127.0.0.1:3000"] if settings.is_dev() else []

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

obs_init(app)

sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=allow_origins)
live_namespace = LiveNamespace()
sio.register_namespace(live_namespace)
socket_app = socketio.ASGIApp(sio, other_asgi_app=app)

app.include_router(identity.router, tags=["identity"])
app.include_router(social.router, tags=["social"])
app.include_router(chat.router, tags=["chat"])
app.include_router(ops.router, tags=["ops"])
