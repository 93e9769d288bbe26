# apps/tasks/domain/entities.py
from dataclasses import dataclass, fields, replace
from datetime import date, datetime
from typing import List, Optional
from enum import Enum


class TaskStatus(str, Enum):
    SCHEDULED = 'scheduled'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'
    POSTPONED = 'postponed'
    CANCELLED = 'cancelled'
    # Zadanie potwierdzające czeka na reakcję delegata (poza normalnym cyklem)
    PENDING = 'pending'


# Statusy wybierane ręcznie, niezależnie od postępu
EXPLICIT_STATUSES = (TaskStatus.POSTPONED, TaskStatus.CANCELLED)


class TaskPriority(str, Enum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'
    URGENT = 'urgent'


class RecurrenceType(str, Enum):
    DAILY = 'daily'
    WEEKLY = 'weekly'
    MONTHLY = 'monthly'
    YEARLY = 'yearly'
    WEEKDAYS = 'weekdays'


FOLLOW_UP_TYPE = 'unified'
FOLLOW_UP_CATEGORY = '확인요청'
DEFAULT_CATEGORY = '경영일반'


@dataclass
class RecurrenceRuleEntity:
    type: RecurrenceType
    # None = brak ograniczenia dni; [] = ograniczenie zadeklarowane, ale puste
    days_of_week: Optional[List[str]] = None
    end_date: Optional[date] = None
    indefinite: bool = False

    id: Optional[int] = None
    task_id: Optional[int] = None


@dataclass
class TaskEntity:
    id: Optional[int]  # None przed zapisem
    title: str
    description: str = ""
    category: str = DEFAULT_CATEGORY
    status: TaskStatus = TaskStatus.SCHEDULED
    progress: int = 0
    priority: TaskPriority = TaskPriority.MEDIUM

    # Ludzie (identyfikatory, bez relacji do modelu użytkownika)
    assigned_to: Optional[str] = None
    created_by: Optional[str] = None

    # Delegowanie
    follow_up_assignee: Optional[str] = None
    follow_up_memo: str = ""
    is_follow_up_task: bool = False
    parent_task_id: Optional[int] = None
    follow_up_type: Optional[str] = None
    confirmation_requested_at: Optional[datetime] = None
    confirmation_completed_at: Optional[datetime] = None

    # Daty
    work_date: Optional[date] = None
    due_date: Optional[date] = None

    # Powtarzanie
    recurring_parent_id: Optional[int] = None
    recurring_sequence: Optional[int] = None

    # Ustawiane wyłącznie przez repozytorium
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.is_follow_up_task and self.parent_task_id is None:
            raise ValueError("Follow-up task requires parent_task_id")

    @property
    def awaiting_confirmation(self) -> bool:
        return self.is_follow_up_task and self.status == TaskStatus.PENDING

    def is_active(self) -> bool:
        return self.status in [TaskStatus.SCHEDULED, TaskStatus.IN_PROGRESS]

    def copy(self, **changes) -> 'TaskEntity':
        return replace(self, **changes)


TASK_FIELDS = tuple(f.name for f in fields(TaskEntity))
