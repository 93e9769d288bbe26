# apps/tasks/adapters/memory_repositories.py
import itertools
import threading
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional
from apps.tasks.domain.entities import RecurrenceRuleEntity, TASK_FIELDS, TaskEntity, TaskStatus
from apps.tasks.domain.exceptions import ConflictError, NotFoundError, ValidationError
from apps.tasks.ports.repositories import ITaskRepository


class InMemoryTaskRepository(ITaskRepository):
    """
    Repozytorium w pamięci (testy, narzędzia lokalne).
    Egzekwuje te same ograniczenia unikalności co baza.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._tasks: Dict[int, TaskEntity] = {}
        self._rules: Dict[int, RecurrenceRuleEntity] = {}
        self._ids = itertools.count(1)
        self._rule_ids = itertools.count(1)

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    def find_task(self, task_id: int) -> Optional[TaskEntity]:
        with self._lock:
            task = self._tasks.get(task_id)
            return replace(task) if task else None

    def find_follow_up(self, parent_task_id: int, assignee: str) -> Optional[TaskEntity]:
        with self._lock:
            found = self._find_follow_up(parent_task_id, assignee)
            return replace(found) if found else None

    def _find_follow_up(self, parent_task_id: int, assignee: str) -> Optional[TaskEntity]:
        for task in self._tasks.values():
            if task.is_follow_up_task and task.parent_task_id == parent_task_id and task.assigned_to == assignee:
                return task
        return None

    def insert_task(self, task: TaskEntity) -> TaskEntity:
        with self._lock:
            if task.is_follow_up_task and self._find_follow_up(task.parent_task_id, task.assigned_to):
                raise ConflictError(
                    f"Follow-up for task {task.parent_task_id} and {task.assigned_to} already exists",
                    task_id=task.parent_task_id
                )
            if task.recurring_parent_id is not None and task.work_date in self._recurring_dates(task.recurring_parent_id):
                raise ConflictError(
                    f"Instance of task {task.recurring_parent_id} on {task.work_date} already exists",
                    task_id=task.recurring_parent_id
                )
            now = self._now()
            stored = replace(task, id=next(self._ids), created_at=now, updated_at=now)
            self._tasks[stored.id] = stored
            return replace(stored)

    def update_task_fields(self, task_id: int, fields: Dict[str, Any]) -> TaskEntity:
        unknown = set(fields) - set(TASK_FIELDS) | (set(fields) & {'id', 'created_at', 'updated_at'})
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}", task_id=task_id)
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                raise NotFoundError(f"Task {task_id} not found", task_id=task_id)
            updated = replace(task, updated_at=self._now(), **fields)
            self._tasks[task_id] = updated
            return replace(updated)

    def delete_task(self, task_id: int) -> None:
        with self._lock:
            if self._tasks.pop(task_id, None) is None:
                raise NotFoundError(f"Task {task_id} not found", task_id=task_id)
            self._rules.pop(task_id, None)

    def list_follow_ups(self, parent_task_id: int) -> List[TaskEntity]:
        with self._lock:
            return [
                replace(t) for t in sorted(self._tasks.values(), key=lambda t: t.id)
                if t.is_follow_up_task and t.parent_task_id == parent_task_id
            ]

    def list_pending_confirmations(self, assignee: str) -> List[TaskEntity]:
        with self._lock:
            return [
                replace(t) for t in self._tasks.values()
                if t.is_follow_up_task and t.assigned_to == assignee and t.status == TaskStatus.PENDING
            ]

    def _recurring_dates(self, recurring_parent_id: int) -> List[date]:
        return [t.work_date for t in self._tasks.values() if t.recurring_parent_id == recurring_parent_id]

    def list_recurring_dates(self, recurring_parent_id: int) -> List[date]:
        with self._lock:
            return self._recurring_dates(recurring_parent_id)

    def last_recurring_instance(self, recurring_parent_id: int) -> Optional[TaskEntity]:
        with self._lock:
            instances = [t for t in self._tasks.values() if t.recurring_parent_id == recurring_parent_id]
            if not instances:
                return None
            return replace(max(instances, key=lambda t: t.recurring_sequence or 0))

    def save_recurrence_rule(self, rule: RecurrenceRuleEntity) -> RecurrenceRuleEntity:
        with self._lock:
            stored = replace(rule, id=next(self._rule_ids))
            self._rules[rule.task_id] = stored
            return replace(stored)

    def list_indefinite_rules(self) -> List[RecurrenceRuleEntity]:
        with self._lock:
            return [replace(r) for r in self._rules.values() if r.indefinite]

    def all_tasks(self) -> List[TaskEntity]:
        with self._lock:
            return [replace(t) for t in sorted(self._tasks.values(), key=lambda t: t.id)]
