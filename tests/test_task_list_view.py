from datetime import timedelta

import pytest

from taskboard.core.realtime import TaskChangeEvent
from taskboard.models import Task
from taskboard.models.enums import ChangeType, TaskStatus
from taskboard.schemas.task import TaskCreateRequest
from taskboard.services.task_list_view import PATCH, REFETCH, TaskListView
from taskboard.services.task_service import TaskQuery, TaskService
from taskboard.utils.timezone import now_utc

from tests.conftest import ADMIN_ID, ALICE_ID, BOB_ID, session_for


async def _create(service, db, title="Water the plants", assigned_to=ALICE_ID, **kwargs):
    request = TaskCreateRequest(
        title=title,
        description="Every pot on the balcony",
        assigned_to=assigned_to,
        deadline=now_utc() + timedelta(days=1),
        **kwargs,
    )
    task, _ = await service.create_task(db, session_for(ADMIN_ID), request)
    return task


def _updated(task_id):
    return TaskChangeEvent(event_type=ChangeType.UPDATE, table="tasks", record_id=task_id)


def test_unknown_mode_is_rejected():
    with pytest.raises(ValueError):
        TaskListView(TaskQuery.for_admin(), mode="poll")


async def test_snapshot_lists_matching_tasks(db, feed):
    service = TaskService(feed)
    mine = await _create(service, db)
    await _create(service, db, title="Bob's plants", assigned_to=BOB_ID)

    view = TaskListView(TaskQuery.for_user(ALICE_ID), service=service)
    message = await view.snapshot(db)

    assert message["type"] == "snapshot"
    assert [task["id"] for task in message["tasks"]] == [mine.id]
    assert view.visible_ids == {mine.id}


async def test_new_task_for_viewer_is_upserted(db, feed):
    service = TaskService(feed)
    view = TaskListView(TaskQuery.for_user(ALICE_ID), service=service)
    await view.snapshot(db)

    task = await _create(service, db)
    message = await view.handle(db, TaskChangeEvent(ChangeType.INSERT, "tasks", task.id))

    assert message["type"] == "upsert"
    assert message["task"]["id"] == task.id
    assert message["task"]["assignee_username"] == "alice"


async def test_task_for_someone_else_is_ignored(db, feed):
    service = TaskService(feed)
    view = TaskListView(TaskQuery.for_user(ALICE_ID), service=service)
    await view.snapshot(db)

    task = await _create(service, db, assigned_to=BOB_ID)

    assert await view.handle(db, TaskChangeEvent(ChangeType.INSERT, "tasks", task.id)) is None


async def test_task_leaving_the_filter_is_removed(db, feed):
    service = TaskService(feed)
    task = await _create(service, db)
    view = TaskListView(TaskQuery.for_admin("pending"), service=service)
    await view.snapshot(db)

    row = await db.get(Task, task.id)
    row.status = TaskStatus.AWAITING_APPROVAL.value
    await db.commit()

    assert await view.handle(db, _updated(task.id)) == {"type": "remove", "id": task.id}
    assert await view.handle(db, _updated(task.id)) is None


async def test_deleted_task_is_removed(db, feed):
    service = TaskService(feed)
    task = await _create(service, db)
    view = TaskListView(TaskQuery.for_admin(), service=service)
    await view.snapshot(db)

    message = await view.handle(db, TaskChangeEvent(ChangeType.DELETE, "tasks", task.id))

    assert message == {"type": "remove", "id": task.id}


async def test_refetch_mode_sends_full_snapshot(db, feed):
    service = TaskService(feed)
    first = await _create(service, db)
    view = TaskListView(TaskQuery.for_admin(), mode=REFETCH, service=service)
    await view.snapshot(db)

    second = await _create(service, db, title="Feed the cat")
    message = await view.handle(db, _updated(second.id))

    assert message["type"] == "snapshot"
    assert [task["id"] for task in message["tasks"]] == [second.id, first.id]


def test_diff_respects_start_date():
    view = TaskListView(TaskQuery.for_user(ALICE_ID), mode=PATCH)

    class _Future:
        status = TaskStatus.PENDING
        assigned_to = ALICE_ID
        start_date = now_utc() + timedelta(days=1)

    assert view.diff("t-1", _Future()) is None
