from typing import Literal

from fastapi import APIRouter, Depends, Query

from taskboard.core.deps import SessionContext, get_session
from taskboard.core.exceptions import BusinessException, ErrorCode
from taskboard.models.enums import UserRole
from taskboard.schemas.auth import SessionResponse
from taskboard.schemas.base import ResponseEnvelope

router = APIRouter()


@router.get("/session", response_model=ResponseEnvelope)
async def get_current_session(
    portal: Literal["admin", "user"] = Query("user"),
    session: SessionContext = Depends(get_session),
):
    """로그인 직후 대시보드 진입 가능 여부 확인 (역할이 다르면 403, 클라이언트는 로그아웃 처리)"""
    if portal == "admin" and session.role != UserRole.ADMIN:
        raise BusinessException(ErrorCode.FORBIDDEN, "Access denied. Admin credentials required.")
    if portal == "user" and session.role != UserRole.USER:
        raise BusinessException(ErrorCode.FORBIDDEN, "Access denied. User account required.")

    data = SessionResponse(
        user_id=session.user_id,
        username=session.username,
        role=session.role,
        expires_at=session.expires_at,
    )
    return ResponseEnvelope(success=True, code="AUTH_000", message="Session", data=data.model_dump(mode="json"))
