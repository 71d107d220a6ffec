"""
실시간 작업 목록 화면 상태

patch 모드: 변경된 행만 id로 다시 읽어 upsert/remove diff 전송
refetch 모드: 변경 이벤트마다 전체 목록 재조회 후 snapshot 전송
"""
from datetime import datetime
from typing import Any, Dict, Optional, Set

from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.realtime import TaskChangeEvent
from taskboard.models.enums import ChangeType
from taskboard.schemas.task import TaskResponse
from taskboard.services.task_service import TaskQuery, TaskService, task_service
from taskboard.utils.timezone import now_utc

PATCH = "patch"
REFETCH = "refetch"
VIEW_MODES = (PATCH, REFETCH)


class TaskListView:
    def __init__(self, query: TaskQuery, mode: str = PATCH, service: TaskService = task_service):
        if mode not in VIEW_MODES:
            raise ValueError(f"unknown view mode: {mode}")
        self.query = query
        self.mode = mode
        self.service = service
        self.visible_ids: Set[str] = set()

    async def snapshot(self, db: AsyncSession) -> Dict[str, Any]:
        tasks = await self.service.list_tasks(db, self.query)
        self.visible_ids = {task.id for task in tasks}
        return {"type": "snapshot", "tasks": [task.model_dump(mode="json") for task in tasks]}

    def diff(self, task_id: str, task: Optional[TaskResponse], now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
        """행 하나의 현재 상태를 화면에 반영할 메시지 (변화 없으면 None)"""
        if task is not None and self.query.matches(task, now):
            self.visible_ids.add(task_id)
            return {"type": "upsert", "task": task.model_dump(mode="json")}
        if task_id in self.visible_ids:
            self.visible_ids.discard(task_id)
            return {"type": "remove", "id": task_id}
        return None

    async def handle(self, db: AsyncSession, event: TaskChangeEvent) -> Optional[Dict[str, Any]]:
        if self.mode == REFETCH:
            return await self.snapshot(db)

        task = None
        if event.event_type != ChangeType.DELETE:
            task = await self.service.find_task(db, event.record_id)
        return self.diff(event.record_id, task, now_utc())
