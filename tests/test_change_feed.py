import asyncio

from taskboard.core.realtime import ChangeFeed, TaskChangeEvent
from taskboard.models.enums import ChangeType


def _event(record_id="t-1", table="tasks", event_type=ChangeType.UPDATE):
    return TaskChangeEvent(event_type=event_type, table=table, record_id=record_id)


async def test_publish_reaches_only_subscribers_of_the_table():
    feed = ChangeFeed(queue_size=5)
    async with feed.subscribe("tasks") as tasks_sub, feed.subscribe("notifications") as notes_sub:
        assert feed.publish(_event()) == 1
        assert (await asyncio.wait_for(tasks_sub.get(), timeout=1)).record_id == "t-1"
        assert notes_sub.queue.empty()


async def test_publish_without_subscribers_is_dropped():
    assert ChangeFeed(queue_size=5).publish(_event()) == 0


async def test_every_subscriber_receives_the_event():
    feed = ChangeFeed(queue_size=5)
    async with feed.subscribe("tasks") as first, feed.subscribe("tasks") as second:
        assert feed.subscriber_count("tasks") == 2
        feed.publish(_event(event_type=ChangeType.INSERT))
        assert first.queue.get_nowait().event_type == ChangeType.INSERT
        assert second.queue.get_nowait().event_type == ChangeType.INSERT


async def test_leaving_the_context_unsubscribes():
    feed = ChangeFeed(queue_size=5)
    async with feed.subscribe("tasks"):
        assert feed.subscriber_count("tasks") == 1
    assert feed.subscriber_count("tasks") == 0
    assert feed.publish(_event()) == 0


async def test_overflow_marks_subscription_stale_until_drained():
    feed = ChangeFeed(queue_size=2)
    async with feed.subscribe("tasks") as subscription:
        for index in range(3):
            feed.publish(_event(record_id=f"t-{index}"))

        assert subscription.stale is True
        assert subscription.queue.qsize() == 2

        subscription.drain()
        assert subscription.stale is False
        assert subscription.queue.empty()


async def test_subscription_iterates_in_publish_order():
    feed = ChangeFeed(queue_size=5)
    async with feed.subscribe("tasks") as subscription:
        feed.publish(_event(record_id="a"))
        feed.publish(_event(record_id="b"))

        received = []
        async for event in subscription:
            received.append(event.record_id)
            if len(received) == 2:
                break

    assert received == ["a", "b"]
