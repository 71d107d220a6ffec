from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from taskboard.models.enums import UserRole


class SessionResponse(BaseModel):
    user_id: str
    username: Optional[str] = None
    role: UserRole
    expires_at: Optional[datetime] = None
