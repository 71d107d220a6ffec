from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.database import get_db
from taskboard.core.deps import SessionContext, get_session
from taskboard.schemas.base import ResponseEnvelope
from taskboard.schemas.notification import NotificationResponse, UnreadCountResponse
from taskboard.services import notification_service

router = APIRouter()


@router.get("", response_model=ResponseEnvelope)
async def list_notifications(
    limit: int = Query(50, ge=1, le=200),
    session: SessionContext = Depends(get_session),
    db: AsyncSession = Depends(get_db),
):
    notifications = await notification_service.list_notifications(db, session.user_id, limit=limit)
    data = [NotificationResponse.model_validate(item).model_dump(mode="json") for item in notifications]
    return ResponseEnvelope(success=True, code="NTF_000", message="Notifications", data=data)


@router.get("/unread-count", response_model=ResponseEnvelope)
async def get_unread_count(
    session: SessionContext = Depends(get_session),
    db: AsyncSession = Depends(get_db),
):
    count = await notification_service.count_unread(db, session.user_id)
    return ResponseEnvelope(
        success=True, code="NTF_001", message="Unread count", data=UnreadCountResponse(unread_count=count).model_dump()
    )


@router.patch("/{notification_id}/read", response_model=ResponseEnvelope)
async def mark_notification_read(
    notification_id: str,
    session: SessionContext = Depends(get_session),
    db: AsyncSession = Depends(get_db),
):
    notification = await notification_service.mark_read(db, session.user_id, notification_id)
    return ResponseEnvelope(
        success=True,
        code="NTF_002",
        message="Notification read",
        data=NotificationResponse.model_validate(notification).model_dump(mode="json"),
    )
