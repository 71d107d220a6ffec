import uuid
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from taskboard.models.enums import TaskStatus
from taskboard.utils.timezone import now_utc, to_naive_utc

TITLE_MIN, TITLE_MAX = 3, 200
DESCRIPTION_MIN, DESCRIPTION_MAX = 5, 2000


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError("must be a string")
    return value


# --- Request Schemas ---
class TaskCreateRequest(BaseModel):
    """작업 생성 요청 (필드 순서대로 검사, 첫 번째 실패 필드를 보고)"""

    model_config = ConfigDict(validate_default=True)

    title: str = ""
    description: str = ""
    assigned_to: str = ""
    deadline: Optional[datetime] = None
    start_date: Optional[datetime] = None

    @field_validator("title", mode="before")
    @classmethod
    def check_title(cls, value):
        value = _as_text(value)
        if len(value) < TITLE_MIN:
            raise ValueError(f"Title must be at least {TITLE_MIN} characters")
        if len(value) > TITLE_MAX:
            raise ValueError(f"Title must be at most {TITLE_MAX} characters")
        return value

    @field_validator("description", mode="before")
    @classmethod
    def check_description(cls, value):
        value = _as_text(value)
        if len(value) < DESCRIPTION_MIN:
            raise ValueError(f"Description must be at least {DESCRIPTION_MIN} characters")
        if len(value) > DESCRIPTION_MAX:
            raise ValueError(f"Description must be at most {DESCRIPTION_MAX} characters")
        return value

    @field_validator("assigned_to", mode="before")
    @classmethod
    def check_assignee(cls, value):
        try:
            return str(uuid.UUID(str(value)))
        except (TypeError, ValueError):
            raise ValueError("Please select a valid user") from None

    @field_validator("deadline", mode="before")
    @classmethod
    def check_deadline(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValueError("Deadline is required")
        return value

    @field_validator("deadline", "start_date")
    @classmethod
    def normalize_datetime(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value) if value is not None else None


# --- Response Schemas ---
class TaskResponse(BaseModel):
    id: str
    task_number: int
    title: str
    description: str
    status: TaskStatus
    assigned_to: str
    assignee_username: Optional[str] = None
    created_by: str
    deadline: datetime
    start_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    is_overdue: bool = False

    @classmethod
    def from_task(cls, task, assignee_username: Optional[str] = None, now: Optional[datetime] = None) -> "TaskResponse":
        now = now or now_utc()
        return cls(
            id=task.id,
            task_number=task.task_number,
            title=task.title,
            description=task.description,
            status=task.status,
            assigned_to=task.assigned_to,
            assignee_username=assignee_username,
            created_by=task.created_by,
            deadline=task.deadline,
            start_date=task.start_date,
            completed_at=task.completed_at,
            rejected_at=task.rejected_at,
            created_at=task.created_at,
            updated_at=task.updated_at,
            is_overdue=task.deadline < now and task.status == TaskStatus.PENDING.value,
        )


class TaskHistoryResponse(BaseModel):
    id: str
    task_id: str
    from_status: Optional[TaskStatus] = None
    to_status: TaskStatus
    changed_by: str
    changed_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProofMediaResponse(BaseModel):
    id: str
    file_path: str
    uploaded_at: datetime
    media_type: str  # image | video
    url: Optional[str] = None
    error: Optional[str] = None


class RejectedFile(BaseModel):
    file_name: Optional[str] = None
    reason: str


class ProofSubmissionResponse(BaseModel):
    task: TaskResponse
    attachments: List[str]
    rejected_files: List[RejectedFile] = []


class UserSummary(BaseModel):
    id: str
    username: str

    model_config = ConfigDict(from_attributes=True)
