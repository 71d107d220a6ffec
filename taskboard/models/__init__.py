from taskboard.models.enums import ChangeType, TaskStatus, UserRole
from taskboard.models.notification import Notification
from taskboard.models.task import Task, TaskScreenshot, TaskStatusHistory
from taskboard.models.user import Profile, UserRoleAssignment

__all__ = [
    "ChangeType",
    "TaskStatus",
    "UserRole",
    "Notification",
    "Task",
    "TaskScreenshot",
    "TaskStatusHistory",
    "Profile",
    "UserRoleAssignment",
]
