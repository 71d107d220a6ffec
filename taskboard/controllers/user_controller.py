from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.database import get_db
from taskboard.core.deps import SessionContext, require_admin
from taskboard.models.enums import UserRole
from taskboard.repositories.user_repository import UserRepository
from taskboard.schemas.base import ResponseEnvelope
from taskboard.schemas.task import UserSummary

router = APIRouter()


@router.get("", response_model=ResponseEnvelope)
async def list_assignable_users(
    session: SessionContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """작업 담당자로 지정 가능한 사용자 목록 (이름순)"""
    profiles = await UserRepository(db).list_profiles(role=UserRole.USER)
    users = [UserSummary.model_validate(profile).model_dump() for profile in profiles]
    return ResponseEnvelope(success=True, code="USR_000", message="Users", data=users)
