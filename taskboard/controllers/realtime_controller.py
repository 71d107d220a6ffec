import asyncio
import contextlib
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect

from taskboard.core.database import get_session_factory
from taskboard.core.deps import SessionContext, resolve_session
from taskboard.core.exceptions import BusinessException, ErrorCode
from taskboard.core.realtime import Subscription, task_change_feed
from taskboard.models.enums import UserRole
from taskboard.services.task_list_view import PATCH, TaskListView
from taskboard.services.task_service import TASKS_TABLE, TaskQuery

router = APIRouter()
logger = logging.getLogger(__name__)

CLOSE_UNAUTHORIZED = 4401
CLOSE_FORBIDDEN = 4403
CLOSE_BAD_REQUEST = 4400


def _build_query(session: SessionContext, view: str, status_filter: str) -> TaskQuery:
    if view == "admin":
        if session.role != UserRole.ADMIN:
            raise BusinessException(ErrorCode.FORBIDDEN, "Admin credentials required")
        return TaskQuery.for_admin(status_filter)
    if view == "user":
        if session.role != UserRole.USER:
            raise BusinessException(ErrorCode.FORBIDDEN, "User account required")
        return TaskQuery.for_user(session.user_id, status_filter)
    raise BusinessException(ErrorCode.INVALID_INPUT, f"Unknown view: {view}")


def _close_code(error: BusinessException) -> int:
    if error.error_code.http_status == 401:
        return CLOSE_UNAUTHORIZED
    if error.error_code.http_status == 403:
        return CLOSE_FORBIDDEN
    return CLOSE_BAD_REQUEST


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    # 클라이언트 메시지는 사용하지 않는다. 연결 종료만 감지.
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


async def _pump_changes(
    websocket: WebSocket,
    subscription: Subscription,
    list_view: TaskListView,
    session_factory,
    session: SessionContext,
) -> None:
    async for event in subscription:
        if session.is_expired():
            await websocket.close(code=CLOSE_UNAUTHORIZED, reason="Session expired")
            return

        async with session_factory() as db:
            if subscription.stale:
                subscription.drain()
                message = await list_view.snapshot(db)
            else:
                message = await list_view.handle(db, event)

        if message is not None:
            try:
                await websocket.send_json(message)
            except WebSocketDisconnect:
                return


@router.websocket("/ws/tasks")
async def task_list_socket(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    view: str = Query("user"),
    status_filter: str = Query("all", alias="status"),
    mode: str = Query(PATCH),
    session_factory=Depends(get_session_factory),
):
    """
    작업 목록 실시간 구독

    연결 시 snapshot 1회, 이후 tasks 테이블 변경마다 upsert/remove (patch) 또는 snapshot (refetch).
    """
    try:
        async with session_factory() as db:
            session = await resolve_session(token, db)
        list_view = TaskListView(_build_query(session, view, status_filter), mode=mode)
    except BusinessException as e:
        logger.warning(f"⚠️ 실시간 구독 거부: {e.message}")
        await websocket.close(code=_close_code(e), reason=e.message)
        return
    except ValueError as e:
        await websocket.close(code=CLOSE_BAD_REQUEST, reason=str(e))
        return

    await websocket.accept()
    # snapshot 전에 구독해서 그 사이 변경을 놓치지 않는다
    async with task_change_feed.subscribe(TASKS_TABLE) as subscription:
        async with session_factory() as db:
            await websocket.send_json(await list_view.snapshot(db))

        receiver = asyncio.create_task(_wait_for_disconnect(websocket))
        pump = asyncio.create_task(_pump_changes(websocket, subscription, list_view, session_factory, session))
        done, pending = await asyncio.wait({receiver, pump}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        for task in pending:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        for task in done:
            task.result()

    logger.info(f"실시간 구독 종료: user_id={session.user_id}, view={view}")
