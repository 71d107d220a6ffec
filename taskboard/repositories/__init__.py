from taskboard.repositories.notification_repository import NotificationRepository
from taskboard.repositories.task_repository import ScreenshotRepository, TaskRepository
from taskboard.repositories.user_repository import UserRepository

__all__ = [
    "NotificationRepository",
    "ScreenshotRepository",
    "TaskRepository",
    "UserRepository",
]
