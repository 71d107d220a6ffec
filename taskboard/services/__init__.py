from . import notification_service
from . import proof_service
from . import task_list_view
from . import task_service

__all__ = [
    "notification_service",
    "proof_service",
    "task_list_view",
    "task_service",
]
