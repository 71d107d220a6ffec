"""
Task 모델 정의
작업 할당 / 증빙 / 상태 이력
"""
import uuid

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, String, Text

from taskboard.core.database import Base
from taskboard.models.enums import TaskStatus
from taskboard.utils.timezone import now_utc


def _uuid() -> str:
    return str(uuid.uuid4())


class Task(Base):
    """작업 모델"""
    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=_uuid)
    task_number = Column(BigInteger, nullable=False, unique=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default=TaskStatus.PENDING.value, index=True)
    assigned_to = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    created_by = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    deadline = Column(DateTime, nullable=False)
    start_date = Column(DateTime, nullable=False, default=now_utc)
    completed_at = Column(DateTime)
    rejected_at = Column(DateTime)
    created_at = Column(DateTime, nullable=False, default=now_utc)
    updated_at = Column(DateTime, nullable=False, default=now_utc, onupdate=now_utc)

    def __repr__(self):
        return f"<Task(id={self.id}, task_number={self.task_number}, status='{self.status}')>"


class TaskScreenshot(Base):
    """작업 증빙 파일 (추가만 가능)"""
    __tablename__ = "task_screenshots"

    id = Column(String(36), primary_key=True, default=_uuid)
    task_id = Column(String(36), ForeignKey("tasks.id"), nullable=False, index=True)
    user_id = Column(String(36), nullable=False)  # 업로드한 사용자
    file_path = Column(String(1024), nullable=False)
    content_type = Column(String(100))
    file_size = Column(BigInteger)
    uploaded_at = Column(DateTime, nullable=False, default=now_utc)


class TaskStatusHistory(Base):
    __tablename__ = "task_status_history"

    id = Column(String(36), primary_key=True, default=_uuid)
    task_id = Column(String(36), ForeignKey("tasks.id"), nullable=False, index=True)
    from_status = Column(String(20))  # 생성 시 None
    to_status = Column(String(20), nullable=False)
    changed_by = Column(String(36), nullable=False)
    changed_at = Column(DateTime, nullable=False, default=now_utc)
