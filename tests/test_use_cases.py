# tests/test_use_cases.py
from datetime import date

import pytest

from apps.tasks.application.use_cases import (
    BatchSaveUseCase, BulkDeleteUseCase, BulkUploadUseCase, CreateTaskInput, CreateTaskUseCase,
    UpdateTaskUseCase, parse_upload_date
)
from apps.tasks.domain.entities import TaskPriority, TaskStatus
from apps.tasks.domain.exceptions import NotFoundError, ValidationError
from apps.tasks.domain.services.delegation import DelegationSpawner
from apps.tasks.domain.services.recurrence import RecurrenceService

from .fakes import FlakyRepository


@pytest.fixture()
def create(repo, spawner):
    return CreateTaskUseCase(repo, spawner, RecurrenceService(repo))


def test_create_plain_task(repo, create):
    result = create.execute(CreateTaskInput(
        title="  예산 검토 ", created_by="alice", progress=30, work_date=date(2025, 1, 6)
    ))

    assert result.task.title == "예산 검토"
    assert result.task.status == TaskStatus.IN_PROGRESS
    assert result.task.assigned_to == "alice"
    assert result.task.due_date == date(2025, 1, 6)
    assert result.recurring_tasks == []
    assert result.follow_up_tasks == []


def test_create_rejects_empty_title(repo, create):
    with pytest.raises(ValidationError):
        create.execute(CreateTaskInput(title="  ", created_by="alice"))
    assert repo.all_tasks() == []


def test_delegation_end_to_end(repo, create, notifier):
    result = create.execute(CreateTaskInput(
        title="계약서 검토", created_by="alice", assigned_to="alice",
        follow_up_assignee="bob", work_date=date(2025, 1, 6),
    ))

    assert len(result.follow_up_tasks) == 1
    follow_up = result.follow_up_tasks[0]
    assert follow_up.assigned_to == "bob"
    assert follow_up.parent_task_id == result.task.id
    assert follow_up.status == TaskStatus.PENDING
    assert [d for d, _ in notifier.delegations] == ["bob"]
    assert len(repo.all_tasks()) == 2


def test_daily_series_end_to_end(repo, create):
    result = create.execute(CreateTaskInput(
        title="일일 점검", created_by="alice", category="안전", priority="high",
        work_date=date(2025, 1, 1), is_recurring=True, recurring_type="daily",
        recurring_end_date=date(2025, 1, 5),
    ))

    series = result.recurring_tasks
    assert len(series) == 5
    assert [t.recurring_sequence for t in series] == [1, 2, 3, 4, 5]
    assert series[0].title == "일일 점검"
    assert series[4].title == "일일 점검 (5회차)"
    assert {t.category for t in series} == {"안전"}
    assert {t.priority for t in series} == {TaskPriority.HIGH}
    assert result.task.id == series[0].id


def test_invalid_rule_leaves_no_template(repo, create):
    with pytest.raises(ValidationError):
        create.execute(CreateTaskInput(
            title="주간 회의", created_by="alice", work_date=date(2025, 1, 6),
            is_recurring=True, recurring_type="weekly", recurring_days=[],
            recurring_end_date=date(2025, 2, 1),
        ))
    assert repo.all_tasks() == []


def test_recurring_delegated_task_gets_follow_up_per_instance(repo, create):
    result = create.execute(CreateTaskInput(
        title="주간 회의", created_by="alice", follow_up_assignee="bob",
        work_date=date(2025, 1, 6), is_recurring=True, recurring_type="weekly",
        recurring_days=["월"], recurring_end_date=date(2025, 1, 20),
    ))

    assert len(result.recurring_tasks) == 3
    assert sorted(f.parent_task_id for f in result.follow_up_tasks) == sorted(t.id for t in result.recurring_tasks)


def test_update_spawns_once(repo, spawner, make_task):
    task = make_task()
    use_case = UpdateTaskUseCase(repo, spawner)

    _, first = use_case.execute(task.id, {"followUpAssignee": "bob"})
    _, second = use_case.execute(task.id, {"followUpAssignee": "bob", "progress": 50})

    assert first.id == second.id
    assert len(repo.list_follow_ups(task.id)) == 1
    assert repo.find_task(task.id).status == TaskStatus.IN_PROGRESS


def test_update_missing_task(repo, spawner):
    with pytest.raises(NotFoundError):
        UpdateTaskUseCase(repo, spawner).execute(12345, {"title": "x"})


def test_batch_save_partial_failure_and_delegation():
    repo = FlakyRepository()
    spawner = DelegationSpawner(repo)
    make = CreateTaskUseCase(repo, spawner)
    ok = make.execute(CreateTaskInput(title="ok", created_by="alice")).task
    broken = make.execute(CreateTaskInput(title="broken", created_by="alice")).task
    repo.fail_updates(broken.id)

    result = BatchSaveUseCase(repo, spawner).execute([
        {"taskId": ok.id, "fields": {"followUpAssignee": "bob", "progress": 100}},
        {"taskId": broken.id, "fields": {"title": "fixed"}},
        {"taskId": ok.id, "fields": {"status": "completed"}},
        {"taskId": "7", "fields": {"title": "bad id"}},
    ])

    assert result.summary.succeeded == [ok.id]
    assert not result.summary.all_saved
    kinds = sorted(f.kind for f in result.summary.failures)
    assert kinds == ["transient", "validation", "validation"]
    assert result.dirty_ids == [broken.id]
    assert [f.parent_task_id for f in result.follow_up_tasks] == [ok.id]
    assert repo.find_task(ok.id).status == TaskStatus.COMPLETED


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2025-03-04", date(2025, 3, 4)),
        ("3/4/25", date(2025, 3, 4)),
        ("3/4/99", date(1999, 3, 4)),
        ("12/31/2024", date(2024, 12, 31)),
        (45658, date(2025, 1, 1)),
        ("", None),
        (None, None),
    ],
)
def test_parse_upload_date(value, expected):
    assert parse_upload_date(value) == expected


@pytest.mark.parametrize("value", ["13/45/2024", "tomorrow", True])
def test_parse_upload_date_rejects_garbage(value):
    with pytest.raises(ValidationError):
        parse_upload_date(value)


def test_bulk_upload_rows(repo, spawner):
    rows = [
        {"title": "업무명", "workDate": "업무일"},
        {"title": "번호"},
        {"title": ""},
        {"title": "보고서 제출", "workDate": "1/6/25", "progress": 100, "followUpAssignee": "bob"},
        {"title": "회의 준비", "workDate": 45663, "status": "postponed", "progress": 40},
        {"title": "잘못된 날짜", "workDate": "someday"},
        {"title": "우선순위 오류", "priority": "critical"},
    ]

    result = BulkUploadUseCase(repo, spawner).execute(rows, uploaded_by="alice")

    assert [r.index for r in result.skipped] == [1, 2]
    assert [r.index for r in result.failed] == [3, 6, 7]
    assert [t.title for t in result.created] == ["보고서 제출", "회의 준비"]

    report, meeting = result.created
    assert report.status == TaskStatus.COMPLETED
    assert report.work_date == date(2025, 1, 6)
    assert meeting.status == TaskStatus.POSTPONED
    assert meeting.progress == 0
    assert meeting.work_date == date(2025, 1, 6)
    assert [f.parent_task_id for f in result.follow_up_tasks] == [report.id]


def test_bulk_upload_requires_rows(repo, spawner):
    with pytest.raises(ValidationError):
        BulkUploadUseCase(repo, spawner).execute([], uploaded_by="alice")


def test_bulk_delete_reports_missing(repo, make_task):
    a = make_task()
    b = make_task()

    result = BulkDeleteUseCase(repo).execute([a.id, b.id, 999, "x"])

    assert result.deleted == [a.id, b.id]
    assert result.missing == [999]
    assert repo.all_tasks() == []


@pytest.mark.parametrize("task_ids", [[], None, ["1", True]])
def test_bulk_delete_rejects_bad_ids(repo, task_ids):
    with pytest.raises(ValidationError):
        BulkDeleteUseCase(repo).execute(task_ids)


def test_batch_save_rejects_non_mapping_fields(repo, spawner, make_task):
    task = make_task()

    result = BatchSaveUseCase(repo, spawner).execute([
        {"taskId": task.id, "fields": ["followUpAssignee"]},
        {"taskId": [task.id], "fields": {"followUpAssignee": "bob"}},
    ])

    assert result.summary.succeeded == []
    assert [f.kind for f in result.summary.failures] == ["validation", "validation"]
    assert result.follow_up_tasks == []
    assert repo.list_follow_ups(task.id) == []


def test_update_rejects_non_mapping_fields(repo, spawner, make_task):
    with pytest.raises(ValidationError):
        UpdateTaskUseCase(repo, spawner).execute(make_task().id, ["title"])
