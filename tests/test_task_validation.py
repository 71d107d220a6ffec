from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from taskboard.schemas.task import TaskCreateRequest, TaskResponse
from taskboard.utils.timezone import now_utc

from tests.conftest import ALICE_ID


def _payload(**overrides):
    data = {
        "title": "Fix login page",
        "description": "The submit button does nothing",
        "assigned_to": ALICE_ID,
        "deadline": "2030-01-01T09:00:00Z",
    }
    data.update(overrides)
    return data


def _first_error(data) -> str:
    with pytest.raises(ValidationError) as exc:
        TaskCreateRequest(**data)
    return exc.value.errors()[0]["msg"]


def test_valid_request_normalizes_deadline_to_naive_utc():
    request = TaskCreateRequest(**_payload(deadline="2030-01-01T18:00:00+09:00"))
    assert request.deadline == datetime(2030, 1, 1, 9, 0)
    assert request.deadline.tzinfo is None
    assert request.start_date is None


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"title": "ab"}, "Title must be at least 3 characters"),
        ({"title": "x" * 201}, "Title must be at most 200 characters"),
        ({"description": "four"}, "Description must be at least 5 characters"),
        ({"description": "x" * 2001}, "Description must be at most 2000 characters"),
        ({"assigned_to": "not-a-user"}, "Please select a valid user"),
        ({"assigned_to": ""}, "Please select a valid user"),
        ({"deadline": None}, "Deadline is required"),
        ({"deadline": ""}, "Deadline is required"),
    ],
)
def test_field_rules(overrides, message):
    assert _first_error(_payload(**overrides)).endswith(message)


def test_boundary_lengths_are_accepted():
    request = TaskCreateRequest(**_payload(title="abc", description="x" * 2000))
    assert request.title == "abc"
    assert len(request.description) == 2000

    request = TaskCreateRequest(**_payload(title="x" * 200, description="fives"))
    assert len(request.title) == 200
    assert request.description == "fives"


def test_first_failing_field_is_reported_first():
    data = _payload(title="", description="", assigned_to="bad")
    data.pop("deadline")
    assert _first_error(data).endswith("Title must be at least 3 characters")


def test_missing_deadline_is_reported():
    data = _payload()
    data.pop("deadline")
    assert _first_error(data).endswith("Deadline is required")


class _Row:
    def __init__(self, **kwargs):
        self.__dict__.update(kwargs)


def _row(status="pending", deadline=None):
    now = now_utc()
    return _Row(
        id="t-1",
        task_number=1,
        title="Fix login page",
        description="The submit button does nothing",
        status=status,
        assigned_to=ALICE_ID,
        created_by=ALICE_ID,
        deadline=deadline or now - timedelta(hours=1),
        start_date=now,
        completed_at=None,
        rejected_at=None,
        created_at=now,
        updated_at=now,
    )


@pytest.mark.parametrize(
    "status, overdue",
    [("pending", True), ("awaiting_approval", False), ("completed", False)],
)
def test_overdue_only_for_pending_tasks_past_deadline(status, overdue):
    assert TaskResponse.from_task(_row(status=status)).is_overdue is overdue


def test_future_deadline_is_not_overdue():
    row = _row(deadline=datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(days=1))
    assert TaskResponse.from_task(row).is_overdue is False
