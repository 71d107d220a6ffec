"""
작업 증빙 서비스 (업로드 제출 / 서명 URL 조회)
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import BinaryIO, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.config import settings
from taskboard.core.deps import SessionContext
from taskboard.core.exceptions import BusinessException, ErrorCode
from taskboard.core.realtime import ChangeFeed, TaskChangeEvent, task_change_feed
from taskboard.core.s3 import ProofStorage, StorageError
from taskboard.models.enums import ChangeType, TaskStatus
from taskboard.models.task import TaskScreenshot, TaskStatusHistory
from taskboard.repositories.task_repository import ScreenshotRepository, TaskRepository
from taskboard.schemas.task import ProofMediaResponse, ProofSubmissionResponse, RejectedFile, TaskResponse
from taskboard.services.task_service import SUBMITTABLE_STATUSES, TASKS_TABLE, TaskQuery
from taskboard.utils.s3_paths import media_type_for, proof_path_manager
from taskboard.utils.timezone import now_utc

logger = logging.getLogger(__name__)

UNABLE_TO_LOAD = "Unable to load file"


@dataclass
class ProofUpload:
    file_name: Optional[str]
    content_type: str
    size: int
    fileobj: BinaryIO


def screen_files(
    files: Sequence[ProofUpload],
    max_size: Optional[int] = None,
    allowed_prefixes: Optional[Sequence[str]] = None,
) -> Tuple[List[ProofUpload], List[RejectedFile]]:
    """
    업로드 전 파일 검사 (크기 / 미디어 타입)

    Returns:
        (통과한 파일, 거부된 파일과 사유)
    """
    max_size = max_size if max_size is not None else settings.PROOF_MAX_FILE_SIZE
    allowed_prefixes = list(allowed_prefixes if allowed_prefixes is not None else settings.allowed_type_prefixes)

    accepted: List[ProofUpload] = []
    rejected: List[RejectedFile] = []
    for upload in files:
        if upload.size > max_size:
            limit_mb = max_size / (1024 * 1024)
            rejected.append(RejectedFile(
                file_name=upload.file_name,
                reason=f"File too large: please select a file smaller than {limit_mb:g}MB",
            ))
        elif not any((upload.content_type or "").startswith(prefix) for prefix in allowed_prefixes):
            rejected.append(RejectedFile(
                file_name=upload.file_name,
                reason="Invalid file type: please select an image or video file",
            ))
        else:
            accepted.append(upload)
    return accepted, rejected


class ProofService:
    def __init__(self, feed: ChangeFeed = task_change_feed):
        self.feed = feed

    async def _cleanup(self, storage: ProofStorage, keys: Sequence[str]) -> None:
        """실패한 제출에서 이미 올라간 파일 삭제"""
        if not keys:
            return
        results = await asyncio.gather(*(storage.delete(key) for key in keys), return_exceptions=True)
        for key, result in zip(keys, results):
            if isinstance(result, Exception):
                logger.error(f"고아 파일 삭제 실패 (수동 정리 필요): key={key}, error={result}")

    async def submit_proof(
        self,
        db: AsyncSession,
        storage: ProofStorage,
        session: SessionContext,
        task_id: str,
        files: Sequence[ProofUpload],
    ) -> ProofSubmissionResponse:
        """
        증빙 제출: 파일 검사 -> 동시 업로드 -> 첨부 기록 + awaiting_approval (한 트랜잭션)

        업로드나 DB 기록이 하나라도 실패하면 이번 시도에서 올린 파일을 모두 지운다.
        """
        repo = TaskRepository(db)
        task = await repo.get(task_id)
        if task is None:
            raise BusinessException(ErrorCode.TASK_NOT_FOUND)
        if task.assigned_to != session.user_id:
            raise BusinessException(ErrorCode.TASK_NOT_ASSIGNED)

        now = now_utc()
        if task.start_date is not None and task.start_date > now:
            raise BusinessException(ErrorCode.TASK_NOT_STARTED)
        if task.status not in SUBMITTABLE_STATUSES:
            raise BusinessException(
                ErrorCode.INVALID_STATUS_TRANSITION,
                f"Task #{task.task_number} is {task.status} and cannot be submitted",
            )

        accepted, rejected = screen_files(files)
        if not accepted:
            raise BusinessException(
                ErrorCode.NO_VALID_FILES,
                rejected[0].reason if rejected else "Please select a file to upload",
                data={"rejected_files": [item.model_dump() for item in rejected]},
            )

        keys = [proof_path_manager.proof_file(session.user_id, task.id, upload.file_name) for upload in accepted]
        results = await asyncio.gather(
            *(storage.upload(key, upload.fileobj, upload.content_type) for key, upload in zip(keys, accepted)),
            return_exceptions=True,
        )

        failed = []
        uploaded_keys = []
        for key, upload, result in zip(keys, accepted, results):
            if isinstance(result, Exception):
                reason = str(result) if isinstance(result, StorageError) else f"{type(result).__name__}: {result}"
                failed.append({"file_name": upload.file_name, "reason": reason})
            else:
                uploaded_keys.append(key)

        if failed:
            logger.error(f"증빙 업로드 실패: task_id={task.id}, failed={len(failed)}/{len(accepted)}")
            await self._cleanup(storage, uploaded_keys)
            first = failed[0]
            raise BusinessException(
                ErrorCode.UPLOAD_FAILED,
                f"{first['file_name'] or 'file'}: {first['reason']}",
                data={"failed_files": failed},
            )

        screenshots = [
            TaskScreenshot(
                id=str(uuid.uuid4()),
                task_id=task.id,
                user_id=session.user_id,
                file_path=key,
                content_type=upload.content_type,
                file_size=upload.size,
                uploaded_at=now,
            )
            for key, upload in zip(keys, accepted)
        ]
        ScreenshotRepository(db).add_all(screenshots)
        repo.add_history(TaskStatusHistory(
            id=str(uuid.uuid4()),
            task_id=task.id,
            from_status=task.status,
            to_status=TaskStatus.AWAITING_APPROVAL.value,
            changed_by=session.user_id,
            changed_at=now,
        ))
        task.status = TaskStatus.AWAITING_APPROVAL.value
        task.updated_at = now

        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"증빙 기록 실패: task_id={task_id}, error={e}")
            await self._cleanup(storage, keys)
            raise BusinessException(ErrorCode.DATABASE_ERROR, str(getattr(e, "orig", None) or e)) from e

        logger.info(f"증빙 제출: #{task.task_number}, files={len(keys)}, rejected={len(rejected)}")
        self.feed.publish(TaskChangeEvent(event_type=ChangeType.UPDATE, table=TASKS_TABLE, record_id=task.id))

        return ProofSubmissionResponse(
            task=TaskResponse.from_task(task, session.username, now),
            attachments=keys,
            rejected_files=rejected,
        )

    async def _sign(self, storage: ProofStorage, file_path: str) -> Tuple[Optional[str], Optional[str]]:
        try:
            return await storage.create_signed_url(file_path, settings.SIGNED_URL_EXPIRES), None
        except StorageError as e:
            logger.error(f"서명 URL 생성 실패: {file_path}, error={e}")
            return None, UNABLE_TO_LOAD

    async def list_proofs(
        self,
        db: AsyncSession,
        storage: ProofStorage,
        session: SessionContext,
        task_id: str,
    ) -> List[ProofMediaResponse]:
        """증빙 목록 + 파일별 서명 URL (병렬 생성, 실패한 항목만 placeholder)"""
        task = await TaskRepository(db).get(task_id)
        if task is None:
            raise BusinessException(ErrorCode.TASK_NOT_FOUND)
        if not session.is_admin and not TaskQuery.for_user(session.user_id).matches(task):
            raise BusinessException(ErrorCode.TASK_NOT_FOUND)

        screenshots = await ScreenshotRepository(db).list_for_task(task_id)
        signed = await asyncio.gather(*(self._sign(storage, item.file_path) for item in screenshots))

        return [
            ProofMediaResponse(
                id=item.id,
                file_path=item.file_path,
                uploaded_at=item.uploaded_at,
                media_type=media_type_for(item.file_path),
                url=url,
                error=error,
            )
            for item, (url, error) in zip(screenshots, signed)
        ]


proof_service = ProofService()
