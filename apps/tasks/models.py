# apps/tasks/models.py
from django.db import models
from django.db.models import Q
from apps.tasks.domain.entities import (
    DEFAULT_CATEGORY, RecurrenceType, TaskPriority, TaskStatus
)


class Task(models.Model):
    # TextChoices dla Admina, wartości zgodne z Enumem domenowym
    class StatusChoices(models.TextChoices):
        SCHEDULED = TaskStatus.SCHEDULED.value, 'Scheduled'
        IN_PROGRESS = TaskStatus.IN_PROGRESS.value, 'In progress'
        COMPLETED = TaskStatus.COMPLETED.value, 'Completed'
        POSTPONED = TaskStatus.POSTPONED.value, 'Postponed'
        CANCELLED = TaskStatus.CANCELLED.value, 'Cancelled'
        PENDING = TaskStatus.PENDING.value, 'Awaiting confirmation'

    class PriorityChoices(models.TextChoices):
        LOW = TaskPriority.LOW.value, 'Low'
        MEDIUM = TaskPriority.MEDIUM.value, 'Medium'
        HIGH = TaskPriority.HIGH.value, 'High'
        URGENT = TaskPriority.URGENT.value, 'Urgent'

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=50, default=DEFAULT_CATEGORY)

    status = models.CharField(
        max_length=20,
        choices=StatusChoices.choices,
        default=StatusChoices.SCHEDULED
    )
    progress = models.PositiveSmallIntegerField(default=0)
    priority = models.CharField(
        max_length=10,
        choices=PriorityChoices.choices,
        default=PriorityChoices.MEDIUM
    )

    # Identyfikatory osób (login), bez FK do modelu użytkownika
    assigned_to = models.CharField(max_length=150, db_index=True)
    created_by = models.CharField(max_length=150)

    # Delegowanie
    follow_up_assignee = models.CharField(max_length=150, null=True, blank=True)
    follow_up_memo = models.TextField(blank=True)
    is_follow_up_task = models.BooleanField(default=False)
    # Słabe odwołanie: tylko do wyszukiwania, bez kaskad
    parent_task_id = models.IntegerField(null=True, blank=True, db_index=True)
    follow_up_type = models.CharField(max_length=20, null=True, blank=True)
    confirmation_requested_at = models.DateTimeField(null=True, blank=True)
    confirmation_completed_at = models.DateTimeField(null=True, blank=True)

    work_date = models.DateField(null=True, blank=True)
    due_date = models.DateField(null=True, blank=True)

    # Instancje serii cyklicznej
    recurring_parent_id = models.IntegerField(null=True, blank=True, db_index=True)
    recurring_sequence = models.PositiveIntegerField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-work_date', '-created_at']
        indexes = [
            models.Index(fields=['assigned_to', 'status'], name='task_assignee_status_idx'),
        ]
        constraints = [
            # Co najwyżej jedno zadanie potwierdzające na parę (rodzic, delegat)
            models.UniqueConstraint(
                fields=['parent_task_id', 'assigned_to'],
                condition=Q(is_follow_up_task=True),
                name='unique_follow_up_per_assignee',
            ),
            models.UniqueConstraint(
                fields=['recurring_parent_id', 'work_date'],
                condition=Q(recurring_parent_id__isnull=False),
                name='unique_recurring_instance_date',
            ),
            models.CheckConstraint(
                condition=Q(is_follow_up_task=False) | Q(parent_task_id__isnull=False),
                name='follow_up_has_parent',
            ),
            models.CheckConstraint(
                condition=Q(progress__lte=100),
                name='progress_within_range',
            ),
        ]

    def __str__(self):
        return self.title


class RecurrenceRule(models.Model):
    """Reguła powtarzania zapisana razem z szablonem. Tylko do odczytu po utworzeniu."""
    task = models.OneToOneField(Task, on_delete=models.CASCADE, related_name='recurrence_rule')

    class TypeChoices(models.TextChoices):
        DAILY = RecurrenceType.DAILY.value, 'Daily'
        WEEKLY = RecurrenceType.WEEKLY.value, 'Weekly'
        MONTHLY = RecurrenceType.MONTHLY.value, 'Monthly'
        YEARLY = RecurrenceType.YEARLY.value, 'Yearly'
        WEEKDAYS = RecurrenceType.WEEKDAYS.value, 'Weekdays'

    type = models.CharField(max_length=20, choices=TypeChoices.choices)
    # Np. ['월', '수']; null = bez ograniczenia dni
    days_of_week = models.JSONField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    indefinite = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"Rule: {self.task.title} ({self.get_type_display()})"
