from enum import Enum
from typing import Any, Optional


class ErrorCode(Enum):
    """(HTTP 상태, 비즈니스 코드, 기본 메시지)"""

    VALIDATION_ERROR = (422, "COM_422", "Validation error")
    INVALID_INPUT = (400, "COM_400", "Invalid input")
    INTERNAL_SERVER_ERROR = (500, "COM_500", "Internal server error")
    DATABASE_ERROR = (500, "COM_501", "Database operation failed")

    UNAUTHORIZED = (401, "AUTH_401", "Not authenticated")
    SESSION_EXPIRED = (401, "AUTH_402", "Session expired")
    FORBIDDEN = (403, "AUTH_403", "Access denied")

    TASK_NOT_FOUND = (404, "TSK_404", "Task not found")
    TASK_NOT_ASSIGNED = (403, "TSK_403", "Task is not assigned to you")
    TASK_NOT_STARTED = (403, "TSK_405", "Task is not available yet")
    INVALID_STATUS_TRANSITION = (409, "TSK_409", "Invalid status transition")

    NO_VALID_FILES = (400, "PRF_400", "No valid proof files")
    UPLOAD_FAILED = (502, "PRF_502", "Upload failed")

    NOTIFICATION_NOT_FOUND = (404, "NTF_404", "Notification not found")

    def __init__(self, http_status: int, biz_code: str, default_message: str):
        self.http_status = http_status
        self.biz_code = biz_code
        self.default_message = default_message


class BusinessException(Exception):
    def __init__(self, error_code: ErrorCode, message: Optional[str] = None, data: Any = None):
        self.error_code = error_code
        self.message = message or error_code.default_message
        self.data = data
        super().__init__(self.message)
