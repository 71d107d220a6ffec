"""
테이블 단위 변경 알림 (in-process pub/sub)

쓰기 경로가 커밋 후 publish 하고, 목록 화면(WebSocket)이 subscribe 한다.
단일 프로세스 내에서만 전달된다.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, Dict, Set

from taskboard.core.config import settings
from taskboard.models.enums import ChangeType
from taskboard.utils.timezone import now_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskChangeEvent:
    event_type: ChangeType
    table: str
    record_id: str
    occurred_at: datetime = field(default_factory=now_utc)


class Subscription:
    def __init__(self, table: str, maxsize: int):
        self.table = table
        self.queue: asyncio.Queue[TaskChangeEvent] = asyncio.Queue(maxsize=maxsize)
        # 큐가 넘치면 개별 이벤트 대신 전체 재조회가 필요하다
        self.stale = False

    def offer(self, event: TaskChangeEvent) -> None:
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            if not self.stale:
                logger.warning(f"구독 큐 초과: table={self.table}, 전체 재조회로 전환")
            self.stale = True

    async def get(self) -> TaskChangeEvent:
        return await self.queue.get()

    def drain(self) -> None:
        while not self.queue.empty():
            self.queue.get_nowait()
        self.stale = False

    def __aiter__(self):
        return self

    async def __anext__(self) -> TaskChangeEvent:
        return await self.get()


class ChangeFeed:
    def __init__(self, queue_size: int | None = None):
        self.queue_size = queue_size or settings.FEED_QUEUE_SIZE
        self._subscribers: Dict[str, Set[Subscription]] = {}

    def subscriber_count(self, table: str) -> int:
        return len(self._subscribers.get(table, ()))

    @asynccontextmanager
    async def subscribe(self, table: str) -> AsyncIterator[Subscription]:
        subscription = Subscription(table, self.queue_size)
        self._subscribers.setdefault(table, set()).add(subscription)
        logger.info(f"구독 시작: table={table}, subscribers={self.subscriber_count(table)}")
        try:
            yield subscription
        finally:
            subscribers = self._subscribers.get(table)
            if subscribers is not None:
                subscribers.discard(subscription)
                if not subscribers:
                    del self._subscribers[table]
            logger.info(f"구독 해제: table={table}, subscribers={self.subscriber_count(table)}")

    def publish(self, event: TaskChangeEvent) -> int:
        """이벤트를 해당 테이블 구독자 모두에게 전달, 전달된 구독자 수 반환"""
        subscribers = list(self._subscribers.get(event.table, ()))
        for subscription in subscribers:
            subscription.offer(event)
        logger.debug(f"변경 이벤트: {event.event_type.value} {event.table}/{event.record_id} -> {len(subscribers)}")
        return len(subscribers)


task_change_feed = ChangeFeed()
