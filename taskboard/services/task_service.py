"""
작업 생명주기 서비스

pending -> awaiting_approval -> completed
               (reject) -> pending
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import FrozenSet, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.deps import SessionContext
from taskboard.core.exceptions import BusinessException, ErrorCode
from taskboard.core.realtime import ChangeFeed, TaskChangeEvent, task_change_feed
from taskboard.models.enums import ChangeType, TaskStatus, UserRole
from taskboard.models.notification import Notification
from taskboard.models.task import Task, TaskStatusHistory
from taskboard.repositories.notification_repository import NotificationRepository
from taskboard.repositories.task_repository import TaskRepository
from taskboard.repositories.user_repository import UserRepository
from taskboard.schemas.task import TaskCreateRequest, TaskHistoryResponse, TaskResponse
from taskboard.services.notification_service import build_assignment_notification
from taskboard.utils.timezone import now_utc

logger = logging.getLogger(__name__)

TASKS_TABLE = "tasks"
NOTIFICATIONS_TABLE = "notifications"

# 화면별 필터 -> 상태 집합 (None = 전체)
ADMIN_FILTERS = {
    "all": None,
    "pending": frozenset({TaskStatus.PENDING.value}),
    "awaiting_approval": frozenset({TaskStatus.AWAITING_APPROVAL.value}),
    "completed": frozenset({TaskStatus.COMPLETED.value}),
    "rejected": frozenset({TaskStatus.REJECTED.value}),
}

USER_FILTERS = {
    "all": None,
    "pending": frozenset({
        TaskStatus.PENDING.value,
        TaskStatus.AWAITING_APPROVAL.value,
        TaskStatus.REJECTED.value,
    }),
    "completed": frozenset({TaskStatus.COMPLETED.value}),
}

SUBMITTABLE_STATUSES = frozenset({TaskStatus.PENDING.value, TaskStatus.REJECTED.value})


def status_value(status) -> str:
    return getattr(status, "value", status)


def _db_error_message(exc: SQLAlchemyError) -> str:
    return str(getattr(exc, "orig", None) or exc)


@dataclass(frozen=True)
class TaskQuery:
    """목록 조회 조건. DB 조회와 단일 행 매칭에 같은 규칙을 쓴다."""

    statuses: Optional[FrozenSet[str]] = None
    assigned_to: Optional[str] = None
    gate_start_date: bool = False

    @classmethod
    def for_admin(cls, status_filter: str = "all") -> "TaskQuery":
        if status_filter not in ADMIN_FILTERS:
            raise BusinessException(ErrorCode.INVALID_INPUT, f"Unknown status filter: {status_filter}")
        return cls(statuses=ADMIN_FILTERS[status_filter])

    @classmethod
    def for_user(cls, user_id: str, status_filter: str = "all") -> "TaskQuery":
        if status_filter not in USER_FILTERS:
            raise BusinessException(ErrorCode.INVALID_INPUT, f"Unknown status filter: {status_filter}")
        return cls(statuses=USER_FILTERS[status_filter], assigned_to=user_id, gate_start_date=True)

    def matches(self, task, now: Optional[datetime] = None) -> bool:
        """Task 모델 / TaskResponse 모두 사용 가능"""
        if self.statuses is not None and status_value(task.status) not in self.statuses:
            return False
        if self.assigned_to is not None and task.assigned_to != self.assigned_to:
            return False
        if self.gate_start_date:
            if task.start_date is None or task.start_date > (now or now_utc()):
                return False
        return True


class TaskService:
    def __init__(self, feed: ChangeFeed = task_change_feed):
        self.feed = feed

    def _publish(self, event_type: ChangeType, table: str, record_id: str) -> None:
        self.feed.publish(TaskChangeEvent(event_type=event_type, table=table, record_id=record_id))

    def _transition(
        self,
        repo: TaskRepository,
        task: Task,
        to_status: TaskStatus,
        session: SessionContext,
        now: datetime,
    ) -> None:
        repo.add_history(TaskStatusHistory(
            id=str(uuid.uuid4()),
            task_id=task.id,
            from_status=task.status,
            to_status=to_status.value,
            changed_by=session.user_id,
            changed_at=now,
        ))
        task.status = to_status.value
        task.updated_at = now

    async def _commit(self, db: AsyncSession, action: str, task_id: str) -> None:
        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"{action} 실패: task_id={task_id}, error={e}")
            raise BusinessException(ErrorCode.DATABASE_ERROR, _db_error_message(e)) from e

    async def _respond(self, db: AsyncSession, task: Task, now: Optional[datetime] = None) -> TaskResponse:
        """목록/단건 조회와 같은 모양 (담당자 이름 포함)"""
        assignee = await UserRepository(db).get_profile(task.assigned_to)
        return TaskResponse.from_task(task, assignee.username if assignee else None, now)

    async def _load(self, repo: TaskRepository, task_id: str) -> Task:
        task = await repo.get(task_id)
        if task is None:
            raise BusinessException(ErrorCode.TASK_NOT_FOUND)
        return task

    # =========================================================
    # 생성
    # =========================================================
    async def create_task(
        self,
        db: AsyncSession,
        session: SessionContext,
        request: TaskCreateRequest,
    ) -> Tuple[TaskResponse, Notification]:
        """작업 생성 + 담당자 알림 (한 트랜잭션)"""
        # 담당자는 user 역할을 가진 프로필만 가능 (GET /users 목록과 동일)
        users = UserRepository(db)
        assignee = await users.get_profile(request.assigned_to)
        if assignee is None or UserRole.USER.value not in await users.get_roles(assignee.id):
            raise BusinessException(
                ErrorCode.VALIDATION_ERROR, "Please select a valid user", data={"field": "assigned_to"}
            )

        now = now_utc()
        repo = TaskRepository(db)
        task = Task(
            id=str(uuid.uuid4()),
            task_number=await repo.next_task_number(),
            title=request.title,
            description=request.description,
            status=TaskStatus.PENDING.value,
            assigned_to=request.assigned_to,
            created_by=session.user_id,
            deadline=request.deadline,
            start_date=request.start_date or now,
            created_at=now,
            updated_at=now,
        )
        repo.add(task)
        repo.add_history(TaskStatusHistory(
            id=str(uuid.uuid4()),
            task_id=task.id,
            from_status=None,
            to_status=TaskStatus.PENDING.value,
            changed_by=session.user_id,
            changed_at=now,
        ))
        notification = NotificationRepository(db).add(build_assignment_notification(task))

        await self._commit(db, "작업 생성", task.id)
        logger.info(f"작업 생성: #{task.task_number} -> {assignee.username} (by {session.user_id})")

        self._publish(ChangeType.INSERT, TASKS_TABLE, task.id)
        self._publish(ChangeType.INSERT, NOTIFICATIONS_TABLE, notification.id)
        return TaskResponse.from_task(task, assignee.username, now), notification

    # =========================================================
    # 승인 / 반려
    # =========================================================
    async def approve_task(self, db: AsyncSession, session: SessionContext, task_id: str) -> TaskResponse:
        repo = TaskRepository(db)
        task = await self._load(repo, task_id)

        if task.status == TaskStatus.COMPLETED.value:
            # 이미 완료된 작업은 완료 시각을 다시 찍지 않는다
            return await self._respond(db, task)
        if task.status != TaskStatus.AWAITING_APPROVAL.value:
            raise BusinessException(
                ErrorCode.INVALID_STATUS_TRANSITION,
                f"Task #{task.task_number} is {task.status}, not awaiting approval",
            )

        now = now_utc()
        self._transition(repo, task, TaskStatus.COMPLETED, session, now)
        task.completed_at = now
        await self._commit(db, "작업 승인", task.id)
        logger.info(f"작업 승인: #{task.task_number} (by {session.user_id})")

        self._publish(ChangeType.UPDATE, TASKS_TABLE, task.id)
        return await self._respond(db, task, now)

    async def reject_task(self, db: AsyncSession, session: SessionContext, task_id: str) -> TaskResponse:
        """반려: 이전 상태와 무관하게 pending 으로 되돌려 재제출을 받는다"""
        repo = TaskRepository(db)
        task = await self._load(repo, task_id)

        now = now_utc()
        self._transition(repo, task, TaskStatus.PENDING, session, now)
        task.completed_at = None
        task.rejected_at = now
        await self._commit(db, "작업 반려", task.id)
        logger.info(f"작업 반려: #{task.task_number} (by {session.user_id})")

        self._publish(ChangeType.UPDATE, TASKS_TABLE, task.id)
        return await self._respond(db, task, now)

    # =========================================================
    # 조회
    # =========================================================
    async def list_tasks(self, db: AsyncSession, query: TaskQuery, now: Optional[datetime] = None) -> List[TaskResponse]:
        now = now or now_utc()
        rows = await TaskRepository(db).list_tasks(
            statuses=query.statuses,
            assigned_to=query.assigned_to,
            visible_at=now if query.gate_start_date else None,
        )
        return [TaskResponse.from_task(task, username, now) for task, username in rows]

    async def find_task(self, db: AsyncSession, task_id: str) -> Optional[TaskResponse]:
        """단일 행 조회 (없으면 None)"""
        row = await TaskRepository(db).get_with_assignee(task_id)
        if row is None:
            return None
        task, username = row
        return TaskResponse.from_task(task, username)

    async def get_task(self, db: AsyncSession, session: SessionContext, task_id: str) -> TaskResponse:
        task = await self.find_task(db, task_id)
        if task is None:
            raise BusinessException(ErrorCode.TASK_NOT_FOUND)
        if not session.is_admin:
            visible = TaskQuery.for_user(session.user_id).matches(task)
            if not visible:
                raise BusinessException(ErrorCode.TASK_NOT_FOUND)
        return task

    async def get_history(self, db: AsyncSession, task_id: str) -> List[TaskHistoryResponse]:
        repo = TaskRepository(db)
        await self._load(repo, task_id)
        return [TaskHistoryResponse.model_validate(entry) for entry in await repo.list_history(task_id)]


task_service = TaskService()
