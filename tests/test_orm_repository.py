# tests/test_orm_repository.py
from datetime import date

import pytest

from apps.notifications.models import Notification
from apps.tasks.adapters.notification_sinks import DjangoNotificationSink
from apps.tasks.adapters.orm_repositories import DjangoTaskRepository
from apps.tasks.domain.entities import (
    RecurrenceRuleEntity, RecurrenceType, TaskEntity, TaskPriority, TaskStatus
)
from apps.tasks.domain.exceptions import ConflictError, NotFoundError, ValidationError
from apps.tasks.domain.services.delegation import ConfirmationService, DelegationSpawner
from apps.tasks.models import RecurrenceRule, Task

pytestmark = pytest.mark.django_db


@pytest.fixture()
def orm_repo():
    return DjangoTaskRepository()


def new_task(**overrides):
    values = dict(id=None, title="분기 결산", assigned_to="alice", created_by="alice", work_date=date(2025, 1, 6))
    values.update(overrides)
    return TaskEntity(**values)


def test_insert_and_find_round_trip(orm_repo):
    created = orm_repo.insert_task(new_task(priority=TaskPriority.URGENT, progress=20, status=TaskStatus.IN_PROGRESS))

    found = orm_repo.find_task(created.id)

    assert found.priority == TaskPriority.URGENT
    assert found.status == TaskStatus.IN_PROGRESS
    assert found.created_at is not None
    assert Task.objects.get(id=created.id).priority == "urgent"


def test_find_missing_returns_none(orm_repo):
    assert orm_repo.find_task(9999) is None


def test_update_fields_converts_enums(orm_repo):
    created = orm_repo.insert_task(new_task())

    updated = orm_repo.update_task_fields(created.id, {"status": TaskStatus.POSTPONED, "progress": 0})

    assert updated.status == TaskStatus.POSTPONED
    assert updated.updated_at >= created.updated_at
    assert Task.objects.get(id=created.id).status == "postponed"


def test_update_missing_raises_not_found(orm_repo):
    with pytest.raises(NotFoundError):
        orm_repo.update_task_fields(9999, {"title": "x"})


def test_update_rejects_read_only_fields(orm_repo):
    created = orm_repo.insert_task(new_task())
    with pytest.raises(ValidationError):
        orm_repo.update_task_fields(created.id, {"created_at": None})


def test_delete(orm_repo):
    created = orm_repo.insert_task(new_task())
    orm_repo.delete_task(created.id)

    assert orm_repo.find_task(created.id) is None
    with pytest.raises(NotFoundError):
        orm_repo.delete_task(created.id)


def test_duplicate_follow_up_is_a_conflict(orm_repo):
    parent = orm_repo.insert_task(new_task(follow_up_assignee="bob"))
    follow_up = DelegationSpawner(orm_repo).build_follow_up(parent)
    orm_repo.insert_task(follow_up)

    with pytest.raises(ConflictError):
        orm_repo.insert_task(follow_up)
    assert len(orm_repo.list_follow_ups(parent.id)) == 1


def test_duplicate_recurring_date_is_a_conflict(orm_repo):
    template = orm_repo.insert_task(new_task())
    instance = new_task(recurring_parent_id=template.id, recurring_sequence=2, work_date=date(2025, 1, 7))
    orm_repo.insert_task(instance)

    with pytest.raises(ConflictError):
        orm_repo.insert_task(instance)
    assert orm_repo.list_recurring_dates(template.id) == [date(2025, 1, 7)]


def test_last_recurring_instance(orm_repo):
    template = orm_repo.insert_task(new_task())
    for seq, day in [(2, 7), (3, 8)]:
        orm_repo.insert_task(new_task(recurring_parent_id=template.id, recurring_sequence=seq, work_date=date(2025, 1, day)))

    assert orm_repo.last_recurring_instance(template.id).recurring_sequence == 3
    assert orm_repo.last_recurring_instance(9999) is None


def test_recurrence_rules(orm_repo):
    template = orm_repo.insert_task(new_task())
    orm_repo.save_recurrence_rule(RecurrenceRuleEntity(
        type=RecurrenceType.WEEKLY, days_of_week=["월", "수"], indefinite=True, task_id=template.id
    ))
    other = orm_repo.insert_task(new_task())
    orm_repo.save_recurrence_rule(RecurrenceRuleEntity(
        type=RecurrenceType.DAILY, end_date=date(2025, 2, 1), task_id=other.id
    ))

    rules = orm_repo.list_indefinite_rules()

    assert [(r.task_id, r.type, r.days_of_week) for r in rules] == [(template.id, RecurrenceType.WEEKLY, ["월", "수"])]
    assert RecurrenceRule.objects.get(task_id=other.id).end_date == date(2025, 2, 1)


def test_spawn_and_resolve_with_notifications(orm_repo):
    sink = DjangoNotificationSink()
    parent = orm_repo.insert_task(new_task(follow_up_assignee="bob"))

    follow_up = DelegationSpawner(orm_repo, notifier=sink).maybe_spawn_follow_up(parent)
    ConfirmationService(orm_repo, notifier=sink).reject(follow_up.id, "중복 업무")

    assert orm_repo.list_pending_confirmations("bob") == []
    delegated = Notification.objects.get(user_id="bob")
    assert delegated.type == Notification.NotificationType.FOLLOW_UP_ASSIGNED
    assert delegated.title == "새로운 확인요청 업무"
    assert delegated.task_id == follow_up.id
    assert Notification.objects.get(user_id="alice").type == Notification.NotificationType.FOLLOW_UP_REJECTED
