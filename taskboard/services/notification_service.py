import logging
import uuid
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.exceptions import BusinessException, ErrorCode
from taskboard.models.notification import Notification
from taskboard.models.task import Task
from taskboard.repositories.notification_repository import NotificationRepository
from taskboard.utils.timezone import now_utc

logger = logging.getLogger(__name__)

ASSIGNMENT_TITLE = "New Task Assigned"


def build_assignment_notification(task: Task) -> Notification:
    """작업 생성 시 담당자에게 보내는 알림"""
    return Notification(
        id=str(uuid.uuid4()),
        user_id=task.assigned_to,
        task_id=task.id,
        title=ASSIGNMENT_TITLE,
        message=f'Task #{task.task_number} "{task.title}" has been assigned to you.',
        read=False,
        created_at=now_utc(),
    )


async def list_notifications(db: AsyncSession, user_id: str, limit: int = 50) -> List[Notification]:
    return await NotificationRepository(db).list_for_user(user_id, limit=limit)


async def count_unread(db: AsyncSession, user_id: str) -> int:
    return await NotificationRepository(db).count_unread(user_id)


async def mark_read(db: AsyncSession, user_id: str, notification_id: str) -> Notification:
    repo = NotificationRepository(db)
    notification = await repo.get(notification_id)
    # 다른 사용자의 알림은 존재 여부도 노출하지 않는다
    if notification is None or notification.user_id != user_id:
        raise BusinessException(ErrorCode.NOTIFICATION_NOT_FOUND)

    if notification.read:
        return notification

    notification.read = True
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"알림 읽음 처리 실패: notification_id={notification_id}, error={e}")
        raise BusinessException(ErrorCode.DATABASE_ERROR, str(getattr(e, "orig", None) or e)) from e
    return notification
