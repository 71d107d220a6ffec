import logging
from typing import List

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.database import get_db
from taskboard.core.deps import SessionContext, get_session, require_admin, require_member
from taskboard.core.s3 import ProofStorage, get_storage
from taskboard.schemas.base import ResponseEnvelope
from taskboard.schemas.notification import NotificationResponse
from taskboard.schemas.task import TaskCreateRequest
from taskboard.services.proof_service import ProofUpload, proof_service
from taskboard.services.task_service import TaskQuery, task_service

router = APIRouter()
logger = logging.getLogger(__name__)


def _to_proof_upload(file: UploadFile) -> ProofUpload:
    # 파일 크기 체크용
    file.file.seek(0, 2)
    file_size = file.file.tell()
    file.file.seek(0)
    return ProofUpload(
        file_name=file.filename,
        content_type=file.content_type or "",
        size=file_size,
        fileobj=file.file,
    )


# =================================================================
# 관리자: 작업 생성 / 목록 / 승인 / 반려
# =================================================================
@router.post("/tasks", response_model=ResponseEnvelope, status_code=201)
async def create_task(
    payload: TaskCreateRequest,
    session: SessionContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """작업 생성 + 담당자 알림"""
    task, notification = await task_service.create_task(db, session, payload)
    data = {
        "task": task.model_dump(mode="json"),
        "notification": NotificationResponse.model_validate(notification).model_dump(mode="json"),
    }
    return ResponseEnvelope(
        success=True,
        code="TSK_001",
        message=f"Task #{task.task_number} assigned to {task.assignee_username or 'user'}",
        data=data,
    )


@router.get("/tasks", response_model=ResponseEnvelope)
async def list_tasks(
    status: str = Query("all"),
    session: SessionContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """전체 작업 목록 (상태 필터, 담당자 이름 포함)"""
    tasks = await task_service.list_tasks(db, TaskQuery.for_admin(status))
    return ResponseEnvelope(
        success=True, code="TSK_000", message="Tasks", data=[task.model_dump(mode="json") for task in tasks]
    )


@router.get("/tasks/{task_id}", response_model=ResponseEnvelope)
async def get_task(
    task_id: str,
    session: SessionContext = Depends(get_session),
    db: AsyncSession = Depends(get_db),
):
    task = await task_service.get_task(db, session, task_id)
    return ResponseEnvelope(success=True, code="TSK_000", message="Task", data=task.model_dump(mode="json"))


@router.post("/tasks/{task_id}/approve", response_model=ResponseEnvelope)
async def approve_task(
    task_id: str,
    session: SessionContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    task = await task_service.approve_task(db, session, task_id)
    return ResponseEnvelope(
        success=True,
        code="TSK_002",
        message=f"Task #{task.task_number} has been marked as completed.",
        data=task.model_dump(mode="json"),
    )


@router.post("/tasks/{task_id}/reject", response_model=ResponseEnvelope)
async def reject_task(
    task_id: str,
    session: SessionContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    task = await task_service.reject_task(db, session, task_id)
    return ResponseEnvelope(
        success=True,
        code="TSK_003",
        message=f"Task #{task.task_number} has been sent back for revision.",
        data=task.model_dump(mode="json"),
    )


@router.get("/tasks/{task_id}/history", response_model=ResponseEnvelope)
async def get_task_history(
    task_id: str,
    session: SessionContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    history = await task_service.get_history(db, task_id)
    return ResponseEnvelope(
        success=True, code="TSK_004", message="Task history", data=[item.model_dump(mode="json") for item in history]
    )


# =================================================================
# 사용자: 내 작업 / 증빙 제출
# =================================================================
@router.get("/my/tasks", response_model=ResponseEnvelope)
async def list_my_tasks(
    filter: str = Query("all"),
    session: SessionContext = Depends(require_member),
    db: AsyncSession = Depends(get_db),
):
    """내게 할당되고 시작일이 지난 작업 목록"""
    tasks = await task_service.list_tasks(db, TaskQuery.for_user(session.user_id, filter))
    return ResponseEnvelope(
        success=True, code="TSK_000", message="My tasks", data=[task.model_dump(mode="json") for task in tasks]
    )


@router.post("/tasks/{task_id}/proofs", response_model=ResponseEnvelope, status_code=201)
async def submit_proof(
    task_id: str,
    files: List[UploadFile] = File(default=[]),
    session: SessionContext = Depends(require_member),
    db: AsyncSession = Depends(get_db),
    storage: ProofStorage = Depends(get_storage),
):
    """증빙 파일 업로드 후 승인 대기로 전환"""
    uploads = [_to_proof_upload(file) for file in files]
    result = await proof_service.submit_proof(db, storage, session, task_id, uploads)
    return ResponseEnvelope(
        success=True,
        code="PRF_001",
        message="Task submitted for approval",
        data=result.model_dump(mode="json"),
    )


@router.get("/tasks/{task_id}/proofs", response_model=ResponseEnvelope)
async def list_proofs(
    task_id: str,
    session: SessionContext = Depends(get_session),
    db: AsyncSession = Depends(get_db),
    storage: ProofStorage = Depends(get_storage),
):
    """증빙 목록 + 서명 URL (1시간)"""
    proofs = await proof_service.list_proofs(db, storage, session, task_id)
    return ResponseEnvelope(
        success=True, code="PRF_000", message="Proofs", data=[proof.model_dump(mode="json") for proof in proofs]
    )
