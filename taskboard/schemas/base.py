from typing import Any, Optional

from pydantic import BaseModel


class ResponseEnvelope(BaseModel):
    success: bool
    code: str
    message: str
    data: Optional[Any] = None
