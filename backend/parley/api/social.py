"""REST API surface for friend requests and friendships."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from parley.api.errors import map_error
from parley.domain.common.errors import DomainError
from parley.domain.common.schemas import CreatedResponse, StatusResponse
from parley.domain.identity.schemas import UserOut
from parley.domain.social import service
from parley.domain.social.schemas import FriendRequestCreate, FriendRequestOut
from parley.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter()


@router.post("/friends/requests", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def send_friend_request(
	payload: FriendRequestCreate,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> CreatedResponse:
	try:
		friendship = await service.send_friend_request(auth_user.id, payload.to_user_id)
	except DomainError as exc:
		raise map_error(exc) from None
	return CreatedResponse(id=friendship.id)


@router.get("/friends/requests", response_model=List[FriendRequestOut])
async def list_friend_requests(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[FriendRequestOut]:
	requests = await service.get_friend_requests(auth_user.id)
	return [FriendRequestOut.from_request(request) for request in requests]


@router.post("/friends/requests/{friendship_id}/accept", response_model=StatusResponse)
async def accept_friend_request(
	friendship_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> StatusResponse:
	try:
		await service.accept_friend_request(friendship_id)
	except DomainError as exc:
		raise map_error(exc) from None
	return StatusResponse()


@router.post("/friends/requests/{friendship_id}/refuse", response_model=StatusResponse)
async def refuse_friend_request(
	friendship_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> StatusResponse:
	try:
		await service.refuse_friend_request(friendship_id)
	except DomainError as exc:
		raise map_error(exc) from None
	return StatusResponse()


@router.get("/friends", response_model=List[UserOut])
async def list_friends(auth_user: AuthenticatedUser = Depends(get_current_user)) -> List[UserOut]:
	friends = await service.get_friends(auth_user.id)
	return [UserOut.from_domain(user) for user in friends]
