# tests/test_serializers.py
from datetime import date

import pytest

from apps.tasks.domain.entities import TaskEntity, TaskStatus
from apps.tasks.domain.exceptions import ValidationError
from apps.tasks.domain.naming import camel_to_snake, snake_to_camel
from apps.tasks.domain.services.reconciler import CommitFailure, CommitSummary
from apps.tasks.serializers import create_input_from_wire, summary_to_dict, task_to_dict


@pytest.mark.parametrize(
    "camel, snake",
    [
        ("followUpAssignee", "follow_up_assignee"),
        ("isFollowUpTask", "is_follow_up_task"),
        ("workDate", "work_date"),
        ("title", "title"),
    ],
)
def test_name_mapping(camel, snake):
    assert camel_to_snake(camel) == snake
    assert snake_to_camel(snake) == camel


def test_snake_case_input_passes_through():
    assert camel_to_snake("follow_up_memo") == "follow_up_memo"


def test_task_to_dict():
    task = TaskEntity(id=3, title="t", status=TaskStatus.POSTPONED, work_date=date(2025, 1, 6))
    data = task_to_dict(task)

    assert data["status"] == "postponed"
    assert data["workDate"] == "2025-01-06"
    assert data["priority"] == "medium"
    assert data["parentTaskId"] is None
    assert "work_date" not in data


def test_summary_to_dict():
    summary = CommitSummary(
        succeeded=[1],
        failures=[CommitFailure(task_id=2, fields=["work_date"], kind="transient", message="timeout")],
    )
    data = summary_to_dict(summary)

    assert data["allSaved"] is False
    assert data["failures"] == [{"taskId": 2, "fields": ["workDate"], "kind": "transient", "message": "timeout"}]
    assert data["message"] == "1 succeeded, 1 failed"


def test_create_input_accepts_start_date():
    dto = create_input_from_wire(
        {"title": "x", "startDate": "2025-03-01", "isRecurring": True, "recurringDays": ["월"]},
        created_by="alice",
    )
    assert dto.work_date == date(2025, 3, 1)
    assert dto.is_recurring
    assert dto.recurring_days == ["월"]


def test_create_input_rejects_non_list_days():
    with pytest.raises(ValidationError):
        create_input_from_wire({"title": "x", "recurringDays": "월"}, created_by="alice")
