# apps/tasks/domain/services/reconciler.py
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional
from dateutil.parser import isoparse
from apps.tasks.domain.entities import TaskPriority
from apps.tasks.domain.exceptions import TaskEngineError, ValidationError
from apps.tasks.domain.naming import camel_to_snake
from apps.tasks.domain.services.status import apply_explicit_status, status_fields_for_progress
from apps.tasks.ports.repositories import ITaskRepository

logger = logging.getLogger(__name__)


# ---- walidacja pojedynczego pola ----

def _text(name: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"'{name}' must be a non-empty string", field=name)
    return value.strip()


def _optional_text(name: str, value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return _text(name, value)


def _free_text(name: str, value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"'{name}' must be a string", field=name)
    return value


def _priority(name: str, value: Any) -> TaskPriority:
    try:
        return TaskPriority(value)
    except ValueError:
        raise ValidationError(f"Unknown priority: {value!r}", field=name)


def parse_date(name: str, value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return isoparse(value).date()
        except ValueError:
            pass
    raise ValidationError(f"'{name}' is not a valid date: {value!r}", field=name)


def _required_date(name: str, value: Any) -> date:
    parsed = parse_date(name, value)
    if parsed is None:
        raise ValidationError(f"'{name}' is required", field=name)
    return parsed


FIELD_VALIDATORS: Dict[str, Callable[[str, Any], Any]] = {
    'title': _text,
    'description': _free_text,
    'category': _text,
    'priority': _priority,
    'assigned_to': _text,
    'follow_up_assignee': _optional_text,
    'follow_up_memo': _free_text,
    'work_date': _required_date,
    'due_date': parse_date,
}

# Ustawiane przez repozytorium albo niezmienne po utworzeniu
IMMUTABLE_FIELDS = {
    'id', 'created_at', 'updated_at', 'created_by',
    'is_follow_up_task', 'parent_task_id', 'follow_up_type',
    'recurring_parent_id', 'recurring_sequence',
}


def normalize_edit(field_name: str, value: Any) -> Dict[str, Any]:
    """
    Zamienia (pole, wartość) na mapę pól do zapisu.
    progress ciągnie za sobą status; postponed/cancelled zerują postęp.
    """
    name = camel_to_snake(field_name)

    if name in IMMUTABLE_FIELDS:
        raise ValidationError(f"Field '{name}' cannot be edited", field=name)
    if name == 'progress':
        return status_fields_for_progress(value)
    if name == 'status':
        status, progress = apply_explicit_status(value)
        return {'status': status, 'progress': progress}

    validator = FIELD_VALIDATORS.get(name)
    if validator is None:
        raise ValidationError(f"Unknown field '{field_name}'", field=name)
    return {name: validator(name, value)}


def normalize_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    if not isinstance(fields, dict):
        raise ValidationError("Expected a mapping of field -> value", field='fields')
    merged = {}
    for name, value in fields.items():
        merged.update(normalize_edit(name, value))
    return merged


# ---- stan sesji ----

@dataclass
class PendingEdit:
    task_id: int
    fields: Dict[str, Any] = field(default_factory=dict)
    # Numer zmiany per pole: po udanym zapisie czyścimy tylko to, co zostało wysłane
    revisions: Dict[str, int] = field(default_factory=dict)

    def merge(self, values: Dict[str, Any], revision: int):
        for name, value in values.items():
            self.fields[name] = value
            self.revisions[name] = revision


@dataclass
class CommitFailure:
    task_id: int
    fields: List[str]
    kind: str
    message: str


@dataclass
class CommitSummary:
    succeeded: List[int] = field(default_factory=list)
    failures: List[CommitFailure] = field(default_factory=list)

    @property
    def succeeded_count(self) -> int:
        return len(self.succeeded)

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    @property
    def all_saved(self) -> bool:
        return not self.failures

    def describe(self) -> str:
        return f"{self.succeeded_count} succeeded, {self.failed_count} failed"


class TaskState:
    CLEAN = 'clean'
    DIRTY = 'dirty'
    COMMITTING = 'committing'


class ChangeReconciler:
    """
    Kolejka niezapisanych zmian jednej sesji klienta.

    Zmiany dla tego samego zadania są scalane (ostatni zapis wygrywa per pole)
    i wysyłane jednym wywołaniem update_task_fields. Zadania są niezależne:
    błąd jednego nie cofa pozostałych, a zadanie z błędem zostaje w kolejce.
    """

    def __init__(self, repository: ITaskRepository, max_workers: int = 1):
        self.repository = repository
        self.max_workers = max(1, max_workers)
        self._lock = threading.Lock()
        self._pending: Dict[int, PendingEdit] = {}
        self._committing = set()
        self._revision = 0

    # ---- kolejkowanie ----

    def queue_edit(self, task_id: int, field_name: str, value: Any):
        self.queue_edits(task_id, {field_name: value})

    def queue_edits(self, task_id: int, fields: Dict[str, Any]):
        if not fields:
            return
        # Walidacja przed zmianą stanu: błędna zmiana nic nie dodaje do kolejki
        values = normalize_fields(fields)
        with self._lock:
            self._revision += 1
            edit = self._pending.get(task_id)
            if edit is None:
                edit = self._pending[task_id] = PendingEdit(task_id=task_id)
            edit.merge(values, self._revision)

    def discard(self, task_id: int):
        with self._lock:
            self._pending.pop(task_id, None)

    # ---- odczyt stanu ----

    def state(self, task_id: int) -> str:
        with self._lock:
            if task_id in self._committing:
                return TaskState.COMMITTING
            if task_id in self._pending:
                return TaskState.DIRTY
            return TaskState.CLEAN

    def is_dirty(self, task_id: int) -> bool:
        with self._lock:
            return task_id in self._pending

    def dirty_ids(self) -> List[int]:
        with self._lock:
            return list(self._pending)

    def pending_for(self, task_id: int) -> Dict[str, Any]:
        with self._lock:
            edit = self._pending.get(task_id)
            return dict(edit.fields) if edit else {}

    # ---- zapis ----

    def commit_all(self) -> CommitSummary:
        # 1. Migawka: zmiany dodane w trakcie trafią do następnej rundy
        with self._lock:
            snapshot = [
                (task_id, dict(edit.fields), dict(edit.revisions))
                for task_id, edit in self._pending.items()
                if task_id not in self._committing
            ]
            self._committing.update(task_id for task_id, _, _ in snapshot)

        summary = CommitSummary()
        if not snapshot:
            return summary

        # 2. Jedno żądanie na zadanie
        if self.max_workers > 1 and len(snapshot) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                results = list(pool.map(self._commit_one, snapshot))
        else:
            results = [self._commit_one(item) for item in snapshot]

        # 3. Wyniki per zadanie
        for (task_id, fields, revisions), error in zip(snapshot, results):
            with self._lock:
                self._committing.discard(task_id)
                if error is None:
                    self._clear_committed(task_id, revisions)
            if error is None:
                summary.succeeded.append(task_id)
            else:
                summary.failures.append(CommitFailure(
                    task_id=task_id,
                    fields=sorted(fields),
                    kind=getattr(error, 'kind', 'error'),
                    message=str(error),
                ))

        level = logging.INFO if summary.all_saved else logging.WARNING
        logger.log(level, "Commit finished: %s", summary.describe())
        return summary

    def _commit_one(self, item) -> Optional[Exception]:
        task_id, fields, _ = item
        try:
            self.repository.update_task_fields(task_id, fields)
        except TaskEngineError as e:
            logger.warning("Commit failed task=%s kind=%s: %s", task_id, e.kind, e.message)
            return e
        except Exception as e:
            logger.exception("Commit failed task=%s with unexpected error", task_id)
            return e
        return None

    def _clear_committed(self, task_id: int, revisions: Dict[str, int]):
        edit = self._pending.get(task_id)
        if edit is None:
            return
        for name, revision in revisions.items():
            if edit.revisions.get(name) == revision:
                edit.fields.pop(name, None)
                edit.revisions.pop(name, None)
        if not edit.fields:
            del self._pending[task_id]
