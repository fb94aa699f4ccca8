"""Authentication helpers for FastAPI endpoints.

Session issuance and verification live in the upstream gateway, which forwards
the authenticated user id in the `X-User-Id` header.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException, status


@dataclass(slots=True)
class AuthenticatedUser:
	id: str


def _clean(value: Optional[str]) -> Optional[str]:
	if value is None:
		return None
	value = value.strip()
	return value or None


async def get_current_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> AuthenticatedUser:
	"""Resolve the acting user from the gateway header."""
	user_id = _clean(x_user_id)
	if not user_id:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing_user")
	return AuthenticatedUser(id=user_id)


def user_from_socket(environ: dict, auth: Optional[dict] = None) -> Optional[AuthenticatedUser]:
	"""Resolve the user for a Socket.IO handshake from the auth payload or headers."""
	scope = environ.get("asgi.scope", environ)
	payload = auth or environ.get("auth") or scope.get("auth") or {}
	user_id = _clean(payload.get("userId") if isinstance(payload, dict) else None)
	if not user_id:
		for key, value in scope.get("headers", []):
			if key.lower() == b"x-user-id":
				user_id = _clean(value.decode())
				break
	if not user_id:
		user_id = _clean(environ.get("HTTP_X_USER_ID"))
	return AuthenticatedUser(id=user_id) if user_id else None
