from .health_controller import router as health_router
from .auth_controller import router as auth_router
from .user_controller import router as user_router
from .task_controller import router as task_router
from .notification_controller import router as notifications_router
from .realtime_controller import router as realtime_router

# 모든 라우터를 튜플로 묶어 관리합니다.
# (router, prefix, tags) 순서로 정의
all_routers = [
    (health_router, "/health", "Health"),
    (auth_router, "/auth", "Auth"),
    (user_router, "/users", "Users"),
    (task_router, "", "Tasks"),            # /tasks, /my/tasks
    (notifications_router, "/notifications", "Notifications"),
    (realtime_router, "", "Realtime"),     # /ws/tasks
]
