"""REST API surface for accounts, blocking and the user directory."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from parley.api.errors import map_error
from parley.domain.common.errors import DomainError
from parley.domain.common.schemas import CreatedResponse, StatusResponse
from parley.domain.identity import service
from parley.domain.identity.schemas import CreateUserRequest, LoginRequest, UserOut
from parley.domain.search import service as search_service
from parley.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter()


@router.post("/users", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_user(payload: CreateUserRequest) -> CreatedResponse:
	try:
		user = await service.create_user(payload.name, payload.password)
	except DomainError as exc:
		raise map_error(exc) from None
	return CreatedResponse(id=user.id)


@router.post("/auth/login", response_model=Optional[UserOut])
async def login(payload: LoginRequest) -> Optional[UserOut]:
	user = await service.login(payload.name, payload.password)
	return UserOut.from_domain(user) if user else None


# Declared before /users/{user_id} so "search" is not taken for an id.
@router.get("/users/search", response_model=List[UserOut])
async def search_users(
	term: str = Query(default=""),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[UserOut]:
	users = await search_service.search_users(term, auth_user.id)
	return [UserOut.from_domain(user) for user in users]


@router.delete("/users/me", response_model=StatusResponse)
async def delete_account(auth_user: AuthenticatedUser = Depends(get_current_user)) -> StatusResponse:
	try:
		await service.delete_account(auth_user.id)
	except DomainError as exc:
		raise map_error(exc) from None
	return StatusResponse()


@router.get("/users/{user_id}", response_model=UserOut)
async def get_user(user_id: str) -> UserOut:
	try:
		user = await service.get_user(user_id)
	except DomainError as exc:
		raise map_error(exc) from None
	return UserOut.from_domain(user)


@router.post("/users/{target_id}/block", response_model=StatusResponse)
async def block_user(
	target_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> StatusResponse:
	try:
		await service.block_user(auth_user.id, target_id)
	except DomainError as exc:
		raise map_error(exc) from None
	return StatusResponse()


@router.post("/users/{target_id}/unblock", response_model=StatusResponse)
async def unblock_user(
	target_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> StatusResponse:
	try:
		await service.unblock_user(auth_user.id, target_id)
	except DomainError as exc:
		raise map_error(exc) from None
	return StatusResponse()
