from __future__ import annotations

from fastapi import APIRouter, Query

from messaging_service.api.deps import CurrentAdmin, CurrentPrincipal, FanoutDep
from messaging_service.api.v1.schemas.notification import (
    AcknowledgeRequest,
    AcknowledgeResponse,
    FanoutRequest,
    FanoutResponse,
    NotificationResponse,
)

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse])
async def list_notifications(
    principal: CurrentPrincipal,
    fanout: FanoutDep,
    pending: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
) -> list[NotificationResponse]:
    items = await fanout.list_for(principal.user_id, pending_only=pending, limit=limit)
    return [NotificationResponse.model_validate(n, from_attributes=True) for n in items]


@router.post("/ack", response_model=AcknowledgeResponse)
async def acknowledge(
    body: AcknowledgeRequest,
    principal: CurrentPrincipal,
    fanout: FanoutDep,
) -> AcknowledgeResponse:
    count = await fanout.acknowledge(principal.user_id, body.ids)
    return AcknowledgeResponse(acknowledged=count)


@router.post("/fanout", response_model=FanoutResponse, status_code=202)
async def fanout_event(
    body: FanoutRequest,
    admin: CurrentAdmin,
    fanout: FanoutDep,
) -> FanoutResponse:
    """Store one notification per user and push them without waiting."""
    notifications = await fanout.notify_many(body.user_ids, body.type, body.payload)
    return FanoutResponse(accepted=len(notifications))
