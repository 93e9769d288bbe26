# apps/tasks/application/use_cases.py
import logging
import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, List, Optional
from apps.tasks.domain.entities import (
    DEFAULT_CATEGORY, EXPLICIT_STATUSES, RecurrenceRuleEntity, RecurrenceType, TaskEntity, TaskPriority
)
from apps.tasks.domain.exceptions import NotFoundError, TaskEngineError, ValidationError
from apps.tasks.domain.naming import camel_to_snake
from apps.tasks.domain.services.delegation import DelegationSpawner
from apps.tasks.domain.services.reconciler import (
    ChangeReconciler, CommitFailure, CommitSummary, normalize_fields, parse_date
)
from apps.tasks.domain.services.recurrence import RecurrenceService
from apps.tasks.domain.services.status import apply_explicit_status, derive_status, validate_progress
from apps.tasks.ports.repositories import ITaskRepository

logger = logging.getLogger(__name__)


@dataclass
class CreateTaskInput:
    title: str
    created_by: str
    assigned_to: Optional[str] = None
    description: str = ""
    category: str = DEFAULT_CATEGORY
    priority: str = TaskPriority.MEDIUM.value
    progress: int = 0
    work_date: Optional[date] = None
    due_date: Optional[date] = None
    follow_up_assignee: Optional[str] = None
    follow_up_memo: str = ""

    # Powtarzanie
    is_recurring: bool = False
    recurring_type: Optional[str] = None
    recurring_days: Optional[List[str]] = None
    recurring_end_date: Optional[date] = None
    is_indefinite: bool = False


@dataclass
class CreateTaskResult:
    task: TaskEntity
    recurring_tasks: List[TaskEntity] = field(default_factory=list)
    follow_up_tasks: List[TaskEntity] = field(default_factory=list)


class CreateTaskUseCase:
    def __init__(
        self,
        repository: ITaskRepository,
        spawner: DelegationSpawner,
        recurrence: Optional[RecurrenceService] = None,
    ):
        self.repository = repository
        self.spawner = spawner
        self.recurrence = recurrence or RecurrenceService(repository)

    def execute(self, input_dto: CreateTaskInput) -> CreateTaskResult:
        if not isinstance(input_dto.title, str) or not input_dto.title.strip():
            raise ValidationError("Task title cannot be empty", field='title')

        progress = validate_progress(input_dto.progress)
        try:
            priority = TaskPriority(input_dto.priority)
        except ValueError:
            raise ValidationError(f"Unknown priority: {input_dto.priority!r}", field='priority')

        rule = self._build_rule(input_dto)

        task = TaskEntity(
            id=None,
            title=input_dto.title.strip(),
            description=input_dto.description or "",
            category=input_dto.category or DEFAULT_CATEGORY,
            status=derive_status(progress),
            progress=progress,
            priority=priority,
            assigned_to=input_dto.assigned_to or input_dto.created_by,
            created_by=input_dto.created_by,
            follow_up_assignee=input_dto.follow_up_assignee or None,
            follow_up_memo=input_dto.follow_up_memo or "",
            work_date=input_dto.work_date or input_dto.due_date,
            due_date=input_dto.due_date or input_dto.work_date,
        )

        # Regułę sprawdzamy przed zapisem, żeby nie zostawić osieroconego szablonu
        if rule is not None:
            if task.work_date is None:
                raise ValidationError("Recurring task needs a work_date or due_date", field='work_date')
            self.recurrence.expander.validate(rule, task.work_date)

        task = self.repository.insert_task(task)
        result = CreateTaskResult(task=task)

        if rule is not None:
            rule.task_id = task.id
            self.repository.save_recurrence_rule(rule)
            result.recurring_tasks = self.recurrence.materialize(task, rule)
            if result.recurring_tasks:
                result.task = result.recurring_tasks[0]

        # Każde wystąpienie dostaje własne zadanie potwierdzające
        for created in result.recurring_tasks or [result.task]:
            follow_up = self.spawner.maybe_spawn_follow_up(created)
            if follow_up is not None:
                result.follow_up_tasks.append(follow_up)

        logger.info(
            "Task created id=%s recurring=%s follow_ups=%s",
            task.id, len(result.recurring_tasks), len(result.follow_up_tasks)
        )
        return result

    @staticmethod
    def _build_rule(input_dto: CreateTaskInput) -> Optional[RecurrenceRuleEntity]:
        if not input_dto.is_recurring:
            return None
        try:
            rule_type = RecurrenceType(input_dto.recurring_type or RecurrenceType.DAILY.value)
        except ValueError:
            raise ValidationError(f"Unknown recurrence type: {input_dto.recurring_type!r}", field='recurring_type')
        return RecurrenceRuleEntity(
            type=rule_type,
            days_of_week=input_dto.recurring_days,
            end_date=input_dto.recurring_end_date,
            indefinite=input_dto.is_indefinite,
        )


class UpdateTaskUseCase:
    """PATCH jednego zadania: walidacja, jeden zapis, ewentualne delegowanie."""

    def __init__(self, repository: ITaskRepository, spawner: DelegationSpawner):
        self.repository = repository
        self.spawner = spawner

    def execute(self, task_id: int, fields: Dict[str, Any]):
        if not fields:
            raise ValidationError("No fields to update")
        values = normalize_fields(fields)
        task = self.repository.update_task_fields(task_id, values)
        # Deduplikacja w spawnerze: ponowny PATCH z tym samym delegatem nic nie tworzy
        follow_up = self.spawner.maybe_spawn_follow_up(task)
        return task, follow_up


@dataclass
class BatchSaveResult:
    summary: CommitSummary
    dirty_ids: List[int]
    follow_up_tasks: List[TaskEntity] = field(default_factory=list)


class BatchSaveUseCase:
    """"Zapisz wszystko": zmiany wielu zadań przez ChangeReconciler."""

    def __init__(self, repository: ITaskRepository, spawner: DelegationSpawner, max_workers: int = 1):
        self.repository = repository
        self.spawner = spawner
        self.max_workers = max_workers

    def execute(self, edits: List[Dict[str, Any]], reconciler: Optional[ChangeReconciler] = None) -> BatchSaveResult:
        reconciler = reconciler or ChangeReconciler(self.repository, max_workers=self.max_workers)
        rejected = []
        delegated = set()

        for edit in edits:
            if not isinstance(edit, dict):
                edit = {}
            task_id = edit.get('task_id', edit.get('taskId'))
            fields = edit.get('fields') or {}
            try:
                if isinstance(task_id, bool) or not isinstance(task_id, int):
                    raise ValidationError(f"Invalid task id: {task_id!r}", field='task_id')
                if not isinstance(fields, dict):
                    raise ValidationError("fields must be an object of field -> value", field='fields', task_id=task_id)
                reconciler.queue_edits(task_id, fields)
            except ValidationError as e:
                rejected.append(CommitFailure(
                    task_id=task_id,
                    fields=sorted(fields) if isinstance(fields, dict) else [],
                    kind=e.kind,
                    message=e.message,
                ))
                continue
            if any(camel_to_snake(name) == 'follow_up_assignee' for name in fields):
                delegated.add(task_id)

        summary = reconciler.commit_all()
        summary.failures = rejected + summary.failures

        follow_ups = []
        for task_id in summary.succeeded:
            if task_id not in delegated:
                continue
            task = self.repository.find_task(task_id)
            if task is None:
                continue
            try:
                follow_up = self.spawner.maybe_spawn_follow_up(task)
            except TaskEngineError as e:
                logger.warning("Follow-up spawn failed for task=%s: %s", task_id, e.message)
                continue
            if follow_up is not None:
                follow_ups.append(follow_up)

        return BatchSaveResult(summary=summary, dirty_ids=reconciler.dirty_ids(), follow_up_tasks=follow_ups)


# ---- import wielu zadań (wiersze z arkusza już sparsowane) ----

HEADER_TITLES = {'업무명', 'title'}
EXCEL_EPOCH = date(1899, 12, 30)
_US_DATE = re.compile(r'^(\d{1,2})/(\d{1,2})/(\d{2,4})$')


def parse_upload_date(value: Any) -> Optional[date]:
    """YYYY-MM-DD, M/D/YY(YY) albo numer seryjny daty z Excela."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"Invalid date: {value!r}", field='work_date')
    if isinstance(value, (int, float)):
        return EXCEL_EPOCH + timedelta(days=int(value))
    if isinstance(value, str):
        match = _US_DATE.match(value.strip())
        if match:
            month, day, year = match.groups()
            if len(year) == 2:
                year = ('19' if int(year) > 50 else '20') + year
            try:
                return date(int(year), int(month), int(day))
            except ValueError:
                raise ValidationError(f"Invalid date: {value!r}", field='work_date')
    return parse_date('work_date', value)


@dataclass
class RowOutcome:
    index: int
    reason: str


@dataclass
class BulkUploadResult:
    created: List[TaskEntity] = field(default_factory=list)
    failed: List[RowOutcome] = field(default_factory=list)
    skipped: List[RowOutcome] = field(default_factory=list)
    follow_up_tasks: List[TaskEntity] = field(default_factory=list)


class BulkUploadUseCase:
    def __init__(self, repository: ITaskRepository, spawner: DelegationSpawner):
        self.repository = repository
        self.spawner = spawner

    def execute(self, rows: List[Dict[str, Any]], uploaded_by: str) -> BulkUploadResult:
        if not rows:
            raise ValidationError("No task rows to upload", field='tasks')

        result = BulkUploadResult()
        for index, raw in enumerate(rows, start=1):
            if raw is not None and not isinstance(raw, dict):
                result.failed.append(RowOutcome(index, "Row must be an object"))
                continue
            row = {camel_to_snake(k): v for k, v in (raw or {}).items()}
            title = str(row.get('title') or '').strip()

            if not title:
                result.failed.append(RowOutcome(index, "Title is missing"))
                continue
            if title in HEADER_TITLES or '번호' in title:
                result.skipped.append(RowOutcome(index, "Header or empty row"))
                continue

            try:
                task = self._build_task(row, title, uploaded_by)
                task = self.repository.insert_task(task)
            except TaskEngineError as e:
                result.failed.append(RowOutcome(index, e.message))
                continue
            result.created.append(task)

            # Każdy wiersz z delegatem przechodzi przez spawner; błąd nie zatrzymuje importu
            try:
                follow_up = self.spawner.maybe_spawn_follow_up(task)
            except TaskEngineError as e:
                logger.warning("Follow-up spawn failed for uploaded row %s: %s", index, e.message)
                continue
            if follow_up is not None:
                result.follow_up_tasks.append(follow_up)

        logger.info(
            "Bulk upload by %s: created=%s failed=%s skipped=%s",
            uploaded_by, len(result.created), len(result.failed), len(result.skipped)
        )
        return result

    @staticmethod
    def _build_task(row: Dict[str, Any], title: str, uploaded_by: str) -> TaskEntity:
        work_date = parse_upload_date(row.get('work_date'))
        due_date = parse_upload_date(row.get('due_date')) or work_date
        progress = validate_progress(row.get('progress') or 0)

        priority = row.get('priority') or TaskPriority.MEDIUM.value
        try:
            priority = TaskPriority(priority)
        except ValueError:
            raise ValidationError(f"Unknown priority: {priority!r}", field='priority')

        # Z arkusza bierzemy tylko postponed/cancelled, resztę wyznacza postęp
        if row.get('status') in [s.value for s in EXPLICIT_STATUSES]:
            status, progress = apply_explicit_status(row['status'])
        else:
            status = derive_status(progress)

        return TaskEntity(
            id=None,
            title=title,
            description=str(row.get('description') or ''),
            category=str(row.get('category') or DEFAULT_CATEGORY),
            status=status,
            progress=progress,
            priority=priority,
            assigned_to=str(row.get('assigned_to') or uploaded_by),
            created_by=uploaded_by,
            follow_up_assignee=row.get('follow_up_assignee') or None,
            follow_up_memo=str(row.get('follow_up_memo') or ''),
            work_date=work_date or due_date,
            due_date=due_date,
        )


@dataclass
class BulkDeleteResult:
    deleted: List[int] = field(default_factory=list)
    missing: List[int] = field(default_factory=list)


class BulkDeleteUseCase:
    def __init__(self, repository: ITaskRepository):
        self.repository = repository

    def execute(self, task_ids: List[Any]) -> BulkDeleteResult:
        if not isinstance(task_ids, list) or not task_ids:
            raise ValidationError("A list of task ids is required", field='task_ids')

        valid_ids = [i for i in task_ids if isinstance(i, int) and not isinstance(i, bool)]
        if not valid_ids:
            raise ValidationError("No valid task ids", field='task_ids')

        result = BulkDeleteResult()
        for task_id in valid_ids:
            try:
                self.repository.delete_task(task_id)
            except NotFoundError:
                result.missing.append(task_id)
                continue
            result.deleted.append(task_id)

        logger.info("Bulk delete: deleted=%s missing=%s", len(result.deleted), len(result.missing))
        return result
