from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.models.task import Task, TaskScreenshot, TaskStatusHistory
from taskboard.models.user import Profile


class TaskRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def next_task_number(self) -> int:
        result = await self.session.execute(select(func.coalesce(func.max(Task.task_number), 0)))
        return int(result.scalar() or 0) + 1

    def add(self, task: Task) -> Task:
        self.session.add(task)
        return task

    async def get(self, task_id: str) -> Optional[Task]:
        result = await self.session.execute(select(Task).where(Task.id == task_id))
        return result.scalar_one_or_none()

    async def get_with_assignee(self, task_id: str) -> Optional[Tuple[Task, Optional[str]]]:
        result = await self.session.execute(
            select(Task, Profile.username)
            .outerjoin(Profile, Profile.id == Task.assigned_to)
            .where(Task.id == task_id)
        )
        row = result.first()
        if row is None:
            return None
        return row[0], row[1]

    async def list_tasks(
        self,
        statuses: Optional[Iterable[str]] = None,
        assigned_to: Optional[str] = None,
        visible_at: Optional[datetime] = None,
    ) -> List[Tuple[Task, Optional[str]]]:
        """
        상태 / 담당자 / 시작일 조건으로 작업 목록 조회 (최신순, 페이지네이션 없음)
        """
        query = select(Task, Profile.username).outerjoin(Profile, Profile.id == Task.assigned_to)
        if statuses is not None:
            query = query.where(Task.status.in_(list(statuses)))
        if assigned_to is not None:
            query = query.where(Task.assigned_to == assigned_to)
        if visible_at is not None:
            query = query.where(Task.start_date <= visible_at)
        query = query.order_by(desc(Task.created_at), desc(Task.task_number))

        result = await self.session.execute(query)
        return [(row[0], row[1]) for row in result.all()]

    def add_history(self, entry: TaskStatusHistory) -> TaskStatusHistory:
        self.session.add(entry)
        return entry

    async def list_history(self, task_id: str) -> List[TaskStatusHistory]:
        result = await self.session.execute(
            select(TaskStatusHistory)
            .where(TaskStatusHistory.task_id == task_id)
            .order_by(TaskStatusHistory.changed_at)
        )
        return list(result.scalars().all())


class ScreenshotRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    def add_all(self, screenshots: List[TaskScreenshot]) -> None:
        self.session.add_all(screenshots)

    async def list_for_task(self, task_id: str) -> List[TaskScreenshot]:
        result = await self.session.execute(
            select(TaskScreenshot)
            .where(TaskScreenshot.task_id == task_id)
            .order_by(desc(TaskScreenshot.uploaded_at))
        )
        return list(result.scalars().all())

    async def count_for_task(self, task_id: str) -> int:
        result = await self.session.execute(
            select(func.count(TaskScreenshot.id)).where(TaskScreenshot.task_id == task_id)
        )
        return result.scalar() or 0
