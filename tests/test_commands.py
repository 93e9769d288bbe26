# tests/test_commands.py
from datetime import date, timedelta
from io import StringIO

import pytest
from django.core.management import call_command

from apps.tasks.adapters.orm_repositories import DjangoTaskRepository
from apps.tasks.domain.entities import RecurrenceRuleEntity, RecurrenceType, TaskEntity
from apps.tasks.domain.services.recurrence import RecurrenceExpander, RecurrenceService
from apps.tasks.models import Task

pytestmark = pytest.mark.django_db


def seed_indefinite_series(start: date, per_batch: int = 3):
    repo = DjangoTaskRepository()
    template = repo.insert_task(TaskEntity(
        id=None, title="일일 스탠드업", assigned_to="alice", created_by="alice", work_date=start, due_date=start
    ))
    rule = repo.save_recurrence_rule(RecurrenceRuleEntity(
        type=RecurrenceType.DAILY, indefinite=True, task_id=template.id
    ))
    RecurrenceService(repo, RecurrenceExpander(max_instances=per_batch)).materialize(template, rule)
    return template


def test_extends_series_near_horizon(settings):
    settings.TASK_ENGINE = {'RECURRENCE_MAX_INSTANCES': 3}
    template = seed_indefinite_series(date.today() - timedelta(days=10))
    out = StringIO()

    call_command('extend_recurrences', stdout=out)

    sequences = sorted(Task.objects.filter(recurring_parent_id=template.id).values_list('recurring_sequence', flat=True))
    assert sequences == [2, 3, 4, 5, 6]
    assert "3" in out.getvalue()


def test_skips_series_far_ahead(settings):
    settings.TASK_ENGINE = {'RECURRENCE_MAX_INSTANCES': 3}
    seed_indefinite_series(date.today() + timedelta(days=400))

    call_command('extend_recurrences', stdout=StringIO())

    assert Task.objects.count() == 3


def test_dry_run_writes_nothing(settings):
    settings.TASK_ENGINE = {'RECURRENCE_MAX_INSTANCES': 3}
    seed_indefinite_series(date.today())
    out = StringIO()

    call_command('extend_recurrences', '--dry-run', stdout=out)

    assert Task.objects.count() == 3
    assert "일일 스탠드업" in out.getvalue()
