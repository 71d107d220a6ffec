import enum


# 사용자 역할
class UserRole(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"


# 작업 상태
class TaskStatus(str, enum.Enum):
    PENDING = "pending"
    AWAITING_APPROVAL = "awaiting_approval"
    COMPLETED = "completed"
    REJECTED = "rejected"


# 변경 이벤트 타입
class ChangeType(str, enum.Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
