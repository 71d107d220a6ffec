from fastapi import APIRouter

from taskboard.core.config import settings

router = APIRouter()


@router.get("")
async def health_check():
    return {"status": "healthy", "service": settings.PROJECT_NAME}
