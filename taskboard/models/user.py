from sqlalchemy import Column, DateTime, ForeignKey, String

from taskboard.core.database import Base
from taskboard.utils.timezone import now_utc


class Profile(Base):
    """외부 인증 서비스가 관리하는 사용자 프로필 (읽기 전용)"""
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True)
    username = Column(String(50), nullable=False, unique=True)
    created_at = Column(DateTime, nullable=False, default=now_utc)

    def __repr__(self):
        return f"<Profile(id={self.id}, username='{self.username}')>"


class UserRoleAssignment(Base):
    __tablename__ = "user_roles"

    user_id = Column(String(36), ForeignKey("profiles.id"), primary_key=True)
    role = Column(String(20), primary_key=True)  # admin | user
    created_at = Column(DateTime, nullable=False, default=now_utc)
