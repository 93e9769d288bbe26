# apps/tasks/domain/services/status.py
from typing import Any, Tuple
from apps.tasks.domain.entities import EXPLICIT_STATUSES, TaskStatus
from apps.tasks.domain.exceptions import ValidationError


def derive_status(progress: int) -> TaskStatus:
    """Status wynika z postępu. Zakłada poprawną wartość 0-100 (patrz validate_progress)."""
    if progress == 0:
        return TaskStatus.SCHEDULED
    if progress == 100:
        return TaskStatus.COMPLETED
    return TaskStatus.IN_PROGRESS


def validate_progress(value: Any) -> int:
    # bool to podklasa int, ale True jako postęp to błąd wywołującego
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"Progress must be an integer, got {value!r}", field='progress')
    if value < 0 or value > 100:
        raise ValidationError(f"Progress must be within 0-100, got {value}", field='progress')
    return value


def apply_explicit_status(status: Any) -> Tuple[TaskStatus, int]:
    """
    Ręczny wybór statusu przez użytkownika.
    Tylko postponed/cancelled są niezależne od postępu i zerują go.
    """
    try:
        status = TaskStatus(status)
    except ValueError:
        raise ValidationError(f"Unknown status: {status!r}", field='status')

    if status not in EXPLICIT_STATUSES:
        raise ValidationError(
            f"Status '{status.value}' follows progress and cannot be set directly",
            field='status'
        )
    return status, 0


def status_fields_for_progress(progress: Any) -> dict:
    """Para pól do zapisania razem przy zmianie postępu."""
    progress = validate_progress(progress)
    return {'progress': progress, 'status': derive_status(progress)}
