# tests/conftest.py
from datetime import date, datetime, timezone

import pytest

from apps.tasks.adapters.memory_repositories import InMemoryTaskRepository
from apps.tasks.domain.entities import TaskEntity, TaskPriority
from apps.tasks.domain.services.delegation import ConfirmationService, DelegationSpawner

from .fakes import RecordingNotifier

FIXED_NOW = datetime(2025, 1, 6, 9, 0, tzinfo=timezone.utc)


@pytest.fixture()
def repo() -> InMemoryTaskRepository:
    return InMemoryTaskRepository()


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def spawner(repo, notifier) -> DelegationSpawner:
    return DelegationSpawner(repo, notifier=notifier, clock=lambda: FIXED_NOW)


@pytest.fixture()
def confirmations(repo, notifier) -> ConfirmationService:
    return ConfirmationService(repo, notifier=notifier, clock=lambda: FIXED_NOW)


@pytest.fixture()
def make_task(repo):
    """Insert a task into the in-memory store with sensible defaults."""
    def _make(**overrides) -> TaskEntity:
        values = dict(
            id=None,
            title="주간 보고서",
            description="팀 주간 보고",
            category="경영일반",
            priority=TaskPriority.HIGH,
            assigned_to="alice",
            created_by="alice",
            work_date=date(2025, 1, 6),
            due_date=date(2025, 1, 6),
        )
        values.update(overrides)
        return repo.insert_task(TaskEntity(**values))
    return _make
