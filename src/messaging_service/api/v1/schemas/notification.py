from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from messaging_service.domain.value_objects.enums import NotificationType


class NotificationResponse(BaseModel):
    id: UUID
    user_id: str
    type: str
    payload: dict[str, Any]
    delivered: bool
    created_at: datetime
    delivered_at: datetime | None

    model_config = {"from_attributes": True}


class AcknowledgeRequest(BaseModel):
    ids: list[UUID] = Field(min_length=1, max_length=500)


class AcknowledgeResponse(BaseModel):
    acknowledged: int


class FanoutRequest(BaseModel):
    user_ids: list[str] = Field(min_length=1, max_length=10_000)
    type: NotificationType
    payload: dict[str, Any] = {}


class FanoutResponse(BaseModel):
    accepted: int
