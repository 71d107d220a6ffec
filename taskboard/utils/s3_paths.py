"""
증빙 파일 S3 경로 관리

task-screenshots 버킷 경로 구조:
- {uploader_id}/
    - {task_id}-{epoch_ms}-{suffix}.{ext}     # 작업 증빙 (이미지/영상)
"""
import os
import uuid
from typing import Optional

from taskboard.utils.timezone import epoch_millis

VIDEO_EXTENSIONS = {"mp4", "webm", "mov", "avi", "mkv"}


class ProofPathManager:
    """증빙 파일 경로 생성 관리자"""

    def proof_file(self, uploader_id: str, task_id: str, filename: Optional[str], suffix: Optional[str] = None) -> str:
        """
        증빙 파일 경로

        같은 밀리초에 여러 파일이 올라가도 겹치지 않도록 suffix를 붙인다.
        """
        extension = file_extension(filename)
        suffix = suffix or uuid.uuid4().hex[:8]
        name = f"{task_id}-{epoch_millis()}-{suffix}"
        if extension:
            name = f"{name}.{extension}"
        return f"{uploader_id}/{name}"


def file_extension(filename: Optional[str]) -> str:
    if not filename:
        return ""
    return os.path.splitext(filename)[1].lstrip(".").lower()


def is_video_path(file_path: str) -> bool:
    """확장자로 영상 여부 판단 (그 외는 이미지)"""
    return file_extension(file_path) in VIDEO_EXTENSIONS


def media_type_for(file_path: str) -> str:
    return "video" if is_video_path(file_path) else "image"


# 싱글톤 인스턴스
proof_path_manager = ProofPathManager()
