from typing import List, Optional

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.models.notification import Notification


class NotificationRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    def add(self, notification: Notification) -> Notification:
        self.session.add(notification)
        return notification

    async def get(self, notification_id: str) -> Optional[Notification]:
        result = await self.session.execute(select(Notification).where(Notification.id == notification_id))
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: str, limit: int = 50) -> List[Notification]:
        result = await self.session.execute(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(desc(Notification.created_at))
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_unread(self, user_id: str) -> int:
        result = await self.session.execute(
            select(func.count(Notification.id))
            .where(Notification.user_id == user_id)
            .where(Notification.read.is_(False))
        )
        return result.scalar() or 0

    async def list_for_task(self, task_id: str) -> List[Notification]:
        result = await self.session.execute(select(Notification).where(Notification.task_id == task_id))
        return list(result.scalars().all())
