from typing import List, Optional, Set

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.models.enums import UserRole
from taskboard.models.user import Profile, UserRoleAssignment


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        result = await self.session.execute(select(Profile).where(Profile.id == user_id))
        return result.scalar_one_or_none()

    async def get_roles(self, user_id: str) -> Set[str]:
        result = await self.session.execute(
            select(UserRoleAssignment.role).where(UserRoleAssignment.user_id == user_id)
        )
        return set(result.scalars().all())

    async def list_profiles(self, role: Optional[UserRole] = None) -> List[Profile]:
        query = select(Profile)
        if role is not None:
            query = query.join(UserRoleAssignment, UserRoleAssignment.user_id == Profile.id).where(
                UserRoleAssignment.role == role.value
            )
        query = query.order_by(Profile.username)
        result = await self.session.execute(query)
        return list(result.scalars().all())
