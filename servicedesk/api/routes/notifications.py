from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict

from servicedesk.dependencies import CurrentActor, NotificationStoreDep

router = APIRouter(prefix="/notifications", tags=["notifications"])


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    message: str
    link_url: str | None
    is_read: bool
    created_at: datetime
    read_at: datetime | None


class UnreadCountResponse(BaseModel):
    unread: int


class ReadAllResponse(BaseModel):
    updated: int


@router.get("", response_model=list[NotificationResponse])
async def list_notifications(
    store: NotificationStoreDep, actor: CurrentActor, unread: bool = False
) -> list[NotificationResponse]:
    notifications = await store.list_for_user(actor.id, unread_only=unread)
    return [NotificationResponse.model_validate(item) for item in notifications]


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(store: NotificationStoreDep, actor: CurrentActor) -> UnreadCountResponse:
    return UnreadCountResponse(unread=await store.count_unread(actor.id))


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: int, store: NotificationStoreDep, actor: CurrentActor
) -> NotificationResponse:
    notification = await store.mark_read(notification_id, actor.id)
    if notification is None:
        raise HTTPException(status_code=404, detail="Notification not found")
    return NotificationResponse.model_validate(notification)


@router.post("/read-all", response_model=ReadAllResponse)
async def mark_all_notifications_read(store: NotificationStoreDep, actor: CurrentActor) -> ReadAllResponse:
    return ReadAllResponse(updated=await store.mark_all_read(actor.id))
