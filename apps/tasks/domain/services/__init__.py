# apps/tasks/domain/services/__init__.py
from apps.tasks.domain.services.status import apply_explicit_status, derive_status, validate_progress
from apps.tasks.domain.services.recurrence import RecurrenceExpander, RecurrenceService, build_instances
from apps.tasks.domain.services.delegation import ConfirmationService, DelegationSpawner
from apps.tasks.domain.services.reconciler import ChangeReconciler, CommitSummary

__all__ = [
    'apply_explicit_status', 'derive_status', 'validate_progress',
    'RecurrenceExpander', 'RecurrenceService', 'build_instances',
    'ConfirmationService', 'DelegationSpawner',
    'ChangeReconciler', 'CommitSummary',
]
