# apps/tasks/adapters/orm_repositories.py
import logging
from contextlib import contextmanager
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional
from django.db import IntegrityError, OperationalError, transaction
from django.utils import timezone
from apps.tasks.domain.entities import (
    RecurrenceRuleEntity, RecurrenceType, TASK_FIELDS, TaskEntity, TaskPriority, TaskStatus
)
from apps.tasks.domain.exceptions import ConflictError, NotFoundError, TransientError, ValidationError
from apps.tasks.ports.repositories import ITaskRepository
from apps.tasks.models import RecurrenceRule as RecurrenceRuleModel, Task as TaskModel

logger = logging.getLogger(__name__)

# Pola, których repozytorium nie przyjmuje z zewnątrz
READ_ONLY_FIELDS = {'id', 'created_at', 'updated_at'}
WRITABLE_FIELDS = [name for name in TASK_FIELDS if name not in READ_ONLY_FIELDS]


def _to_db(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


@contextmanager
def _db_errors(task_id: Optional[int] = None):
    """Tłumaczy błędy bazy na taksonomię silnika."""
    try:
        yield
    except IntegrityError as e:
        raise ConflictError(f"Integrity violation: {e}", task_id=task_id)
    except OperationalError as e:
        # Timeout / zablokowana baza: do ponowienia
        raise TransientError(f"Database unavailable: {e}", task_id=task_id)


class DjangoTaskRepository(ITaskRepository):
    def to_entity(self, model: TaskModel) -> TaskEntity:
        """Konwertuje Model Django -> Czystą Encję."""
        return TaskEntity(
            id=model.id,
            title=model.title,
            description=model.description,
            category=model.category,
            status=TaskStatus(model.status),
            progress=model.progress,
            priority=TaskPriority(model.priority),
            assigned_to=model.assigned_to,
            created_by=model.created_by,
            follow_up_assignee=model.follow_up_assignee,
            follow_up_memo=model.follow_up_memo,
            is_follow_up_task=model.is_follow_up_task,
            parent_task_id=model.parent_task_id,
            follow_up_type=model.follow_up_type,
            confirmation_requested_at=model.confirmation_requested_at,
            confirmation_completed_at=model.confirmation_completed_at,
            work_date=model.work_date,
            due_date=model.due_date,
            recurring_parent_id=model.recurring_parent_id,
            recurring_sequence=model.recurring_sequence,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def find_task(self, task_id: int) -> Optional[TaskEntity]:
        with _db_errors(task_id):
            try:
                task = TaskModel.objects.get(id=task_id)
            except TaskModel.DoesNotExist:
                return None
        return self.to_entity(task)

    def find_follow_up(self, parent_task_id: int, assignee: str) -> Optional[TaskEntity]:
        with _db_errors(parent_task_id):
            task = TaskModel.objects.filter(
                is_follow_up_task=True,
                parent_task_id=parent_task_id,
                assigned_to=assignee
            ).first()
        return self.to_entity(task) if task else None

    def insert_task(self, task: TaskEntity) -> TaskEntity:
        data = {name: _to_db(getattr(task, name)) for name in WRITABLE_FIELDS}
        with _db_errors():
            # Osobna transakcja: naruszenie unikalności nie psuje transakcji wywołującego
            with transaction.atomic():
                obj = TaskModel.objects.create(**data)
        logger.debug("Task inserted id=%s follow_up=%s", obj.id, obj.is_follow_up_task)
        return self.to_entity(obj)

    def update_task_fields(self, task_id: int, fields: Dict[str, Any]) -> TaskEntity:
        unknown = set(fields) - set(WRITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}", task_id=task_id)

        data = {name: _to_db(value) for name, value in fields.items()}
        # update() omija auto_now
        data['updated_at'] = timezone.now()

        with _db_errors(task_id):
            with transaction.atomic():
                updated = TaskModel.objects.filter(id=task_id).update(**data)
                if not updated:
                    raise NotFoundError(f"Task {task_id} not found", task_id=task_id)
                obj = TaskModel.objects.get(id=task_id)
        return self.to_entity(obj)

    def delete_task(self, task_id: int) -> None:
        with _db_errors(task_id):
            deleted, _ = TaskModel.objects.filter(id=task_id).delete()
        if not deleted:
            raise NotFoundError(f"Task {task_id} not found", task_id=task_id)

    def list_follow_ups(self, parent_task_id: int) -> List[TaskEntity]:
        qs = TaskModel.objects.filter(is_follow_up_task=True, parent_task_id=parent_task_id).order_by('id')
        with _db_errors(parent_task_id):
            return [self.to_entity(t) for t in qs]

    def list_pending_confirmations(self, assignee: str) -> List[TaskEntity]:
        qs = TaskModel.objects.filter(
            is_follow_up_task=True,
            assigned_to=assignee,
            status=TaskStatus.PENDING.value
        ).order_by('-confirmation_requested_at', '-id')
        with _db_errors():
            return [self.to_entity(t) for t in qs]

    def list_recurring_dates(self, recurring_parent_id: int) -> List[date]:
        qs = TaskModel.objects.filter(recurring_parent_id=recurring_parent_id).values_list('work_date', flat=True)
        with _db_errors(recurring_parent_id):
            return list(qs)

    def last_recurring_instance(self, recurring_parent_id: int) -> Optional[TaskEntity]:
        with _db_errors(recurring_parent_id):
            task = TaskModel.objects.filter(
                recurring_parent_id=recurring_parent_id
            ).order_by('-recurring_sequence').first()
        return self.to_entity(task) if task else None

    def save_recurrence_rule(self, rule: RecurrenceRuleEntity) -> RecurrenceRuleEntity:
        with _db_errors(rule.task_id):
            with transaction.atomic():
                obj = RecurrenceRuleModel.objects.create(
                    task_id=rule.task_id,
                    type=_to_db(rule.type),
                    days_of_week=rule.days_of_week,
                    end_date=rule.end_date,
                    indefinite=rule.indefinite,
                )
        rule.id = obj.id
        return rule

    def list_indefinite_rules(self) -> List[RecurrenceRuleEntity]:
        qs = RecurrenceRuleModel.objects.filter(indefinite=True).order_by('id')
        with _db_errors():
            return [
                RecurrenceRuleEntity(
                    id=r.id,
                    task_id=r.task_id,
                    type=RecurrenceType(r.type),
                    days_of_week=r.days_of_week,
                    end_date=r.end_date,
                    indefinite=r.indefinite,
                )
                for r in qs
            ]
