"""REST API surface for direct messages."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from parley.api.errors import map_error
from parley.domain.chat import service
from parley.domain.chat.schemas import MessageOut, SendMessageRequest
from parley.domain.common.errors import DomainError
from parley.domain.common.schemas import CreatedResponse
from parley.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter()


@router.post("/chat/messages", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
	payload: SendMessageRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> CreatedResponse:
	try:
		message = await service.send_message(payload.content, auth_user.id, payload.to_user_id)
	except DomainError as exc:
		raise map_error(exc) from None
	return CreatedResponse(id=message.id)


@router.get("/chat/conversations/{user_id}/messages", response_model=List[MessageOut])
async def list_messages(
	user_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[MessageOut]:
	messages = await service.get_messages(auth_user.id, user_id)
	return [MessageOut.from_domain(message) for message in messages]
