from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter

from messaging_service.api.deps import CurrentPrincipal, RouterDep, StoreDep
from messaging_service.api.v1.schemas.message import (
    MessageResponse,
    SendMessageRequest,
    SendMessageResponse,
    UnreadCountResponse,
)
from messaging_service.services import message_service

router = APIRouter(prefix="/api/v1/messages", tags=["messages"])


@router.post("", response_model=SendMessageResponse, status_code=201)
async def send_message(
    body: SendMessageRequest,
    principal: CurrentPrincipal,
    store: StoreDep,
    delivery: RouterDep,
) -> SendMessageResponse:
    sent = await message_service.send_message(
        principal, body.receiver_id, body.content, store, delivery,
    )
    return SendMessageResponse.model_validate(sent, from_attributes=True)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    principal: CurrentPrincipal,
    store: StoreDep,
) -> UnreadCountResponse:
    return UnreadCountResponse(unread=await message_service.unread_count(principal, store))


@router.get("/{with_user}", response_model=list[MessageResponse])
async def get_conversation(
    with_user: str,
    principal: CurrentPrincipal,
    store: StoreDep,
) -> list[MessageResponse]:
    messages = await message_service.get_conversation(principal, with_user, store)
    return [MessageResponse.model_validate(m, from_attributes=True) for m in messages]


@router.put("/{message_id}/read", response_model=MessageResponse)
async def mark_read(
    message_id: UUID,
    # Authentication only; any user may mark a message read.
    _principal: CurrentPrincipal,
    store: StoreDep,
    delivery: RouterDep,
) -> MessageResponse:
    msg = await message_service.mark_message_read(message_id, store, delivery)
    return MessageResponse.model_validate(msg, from_attributes=True)


@router.delete("/{message_id}", response_model=MessageResponse)
async def delete_message(
    message_id: UUID,
    principal: CurrentPrincipal,
    store: StoreDep,
    delivery: RouterDep,
) -> MessageResponse:
    msg = await message_service.delete_message(principal, message_id, store, delivery)
    return MessageResponse.model_validate(msg, from_attributes=True)
