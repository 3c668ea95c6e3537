from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from messaging_service.domain.value_objects.enums import DeliveryStatus


class SendMessageRequest(BaseModel):
    receiver_id: str = Field(min_length=1, max_length=64)
    content: str


class MessageResponse(BaseModel):
    id: UUID
    sender_id: str
    receiver_id: str
    conversation_key: str
    content: str
    created_at: datetime
    is_read: bool
    read_at: datetime | None
    is_deleted: bool
    deleted_by: str | None
    deleted_at: datetime | None

    model_config = {"from_attributes": True}


class DeliveryResponse(BaseModel):
    status: DeliveryStatus
    delivered: int
    abandoned: int

    model_config = {"from_attributes": True}


class SendMessageResponse(BaseModel):
    message: MessageResponse
    delivery: DeliveryResponse

    model_config = {"from_attributes": True}


class UnreadCountResponse(BaseModel):
    unread: int
