import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import BinaryIO

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from taskboard.core.config import settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """스토리지 작업 실패 (S3 메시지를 그대로 담는다)"""


def _error_message(exc: Exception) -> str:
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        return error.get("Message") or error.get("Code") or str(exc)
    return str(exc)


class ProofStorage:
    """task-screenshots 버킷 클라이언트 (boto3 동기 호출을 스레드풀에서 실행)"""

    def __init__(self, bucket_name: str | None = None):
        self.bucket_name = bucket_name or settings.S3_BUCKET_PROOFS
        self.executor = ThreadPoolExecutor(max_workers=settings.STORAGE_MAX_WORKERS)

        self.client = boto3.client(
            "s3",
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
            region_name=settings.AWS_REGION,
            endpoint_url=settings.S3_ENDPOINT_URL or None,
            config=Config(signature_version="s3v4"),
        )

        logger.info(f"ProofStorage 초기화: bucket={self.bucket_name}, region={settings.AWS_REGION}")

    async def _run(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, func, *args)

    def _upload_sync(self, key: str, fileobj: BinaryIO, content_type: str) -> None:
        try:
            self.client.upload_fileobj(
                fileobj,
                self.bucket_name,
                key,
                ExtraArgs={"ContentType": content_type or "application/octet-stream"},
            )
            logger.info(f"파일 업로드 성공: {key}")
        except (ClientError, BotoCoreError) as e:
            logger.error(f"S3 업로드 실패: key={key}, error={e}")
            raise StorageError(_error_message(e)) from e

    async def upload(self, key: str, fileobj: BinaryIO, content_type: str) -> str:
        await self._run(self._upload_sync, key, fileobj, content_type)
        return key

    def _delete_sync(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket_name, Key=key)
            logger.info(f"파일 삭제 성공: {key}")
        except (ClientError, BotoCoreError) as e:
            logger.error(f"S3 삭제 실패: key={key}, error={e}")
            raise StorageError(_error_message(e)) from e

    async def delete(self, key: str) -> None:
        await self._run(self._delete_sync, key)

    def _signed_url_sync(self, key: str, expires: int) -> str:
        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket_name, "Key": key},
                ExpiresIn=expires,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"서명 URL 생성 실패: key={key}, error={e}")
            raise StorageError(_error_message(e)) from e

    async def create_signed_url(self, key: str, expires: int | None = None) -> str:
        """Presigned GET URL (기본 1시간)"""
        return await self._run(self._signed_url_sync, key, expires or settings.SIGNED_URL_EXPIRES)


proof_storage = ProofStorage()


def get_storage() -> ProofStorage:
    return proof_storage
