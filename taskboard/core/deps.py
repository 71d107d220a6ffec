import base64
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.database import get_db
from taskboard.core.exceptions import BusinessException, ErrorCode
from taskboard.models.enums import UserRole
from taskboard.repositories.user_repository import UserRepository
from taskboard.utils.timezone import now_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionContext:
    """요청 단위로 한 번 확정되는 사용자 컨텍스트"""

    user_id: str
    username: Optional[str]
    role: UserRole
    expires_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or now_utc())


def decode_token_payload(token: str) -> Dict[str, Any]:
    """
    JWT 페이로드 추출 (서명 검증은 상위 인증 게이트웨이에서 수행)
    """
    parts = token.split(".")
    if len(parts) < 2:
        raise BusinessException(ErrorCode.UNAUTHORIZED, "Malformed token")

    payload_b64 = parts[1]
    # 패딩 추가
    padding = 4 - len(payload_b64) % 4
    if padding != 4:
        payload_b64 += "=" * padding
    try:
        payload = json.loads(base64.urlsafe_b64decode(payload_b64))
    except (ValueError, json.JSONDecodeError) as e:
        logger.warning(f"⚠️ 토큰 파싱 실패: {e}")
        raise BusinessException(ErrorCode.UNAUTHORIZED, "Malformed token") from e

    if not isinstance(payload, dict) or not payload.get("sub"):
        raise BusinessException(ErrorCode.UNAUTHORIZED, "Token has no subject")
    return payload


def _expiry_from_payload(payload: Dict[str, Any]) -> Optional[datetime]:
    exp = payload.get("exp")
    if exp is None:
        return None
    try:
        return datetime.fromtimestamp(float(exp), tz=timezone.utc).replace(tzinfo=None)
    except (TypeError, ValueError, OverflowError) as e:
        raise BusinessException(ErrorCode.UNAUTHORIZED, "Invalid token expiry") from e


async def resolve_session(token: Optional[str], db: AsyncSession) -> SessionContext:
    """토큰 -> 프로필/역할 조회 -> SessionContext"""
    if not token:
        raise BusinessException(ErrorCode.UNAUTHORIZED)

    payload = decode_token_payload(token)
    expires_at = _expiry_from_payload(payload)
    if expires_at is not None and expires_at <= now_utc():
        raise BusinessException(ErrorCode.SESSION_EXPIRED)

    user_id = str(payload["sub"])
    repo = UserRepository(db)
    profile = await repo.get_profile(user_id)
    if profile is None:
        logger.warning(f"⚠️ 프로필 없음: user_id={user_id}")
        raise BusinessException(ErrorCode.UNAUTHORIZED, "Unknown user")

    roles = await repo.get_roles(user_id)
    if UserRole.ADMIN.value in roles:
        role = UserRole.ADMIN
    elif UserRole.USER.value in roles:
        role = UserRole.USER
    else:
        raise BusinessException(ErrorCode.FORBIDDEN, "No role assigned")

    return SessionContext(user_id=user_id, username=profile.username, role=role, expires_at=expires_at)


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.startswith("Bearer "):
        return authorization[len("Bearer "):].strip() or None
    return None


async def get_session(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> SessionContext:
    """Authorization: Bearer <token> 헤더에서 SessionContext 생성"""
    return await resolve_session(bearer_token(authorization), db)


async def require_admin(session: SessionContext = Depends(get_session)) -> SessionContext:
    if not session.is_admin:
        raise BusinessException(ErrorCode.FORBIDDEN, "Admin credentials required")
    return session


async def require_member(session: SessionContext = Depends(get_session)) -> SessionContext:
    if session.role != UserRole.USER:
        raise BusinessException(ErrorCode.FORBIDDEN, "User account required")
    return session
