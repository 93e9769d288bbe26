# apps/tasks/serializers.py
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict
from apps.tasks.application.use_cases import (
    BatchSaveResult, BulkDeleteResult, BulkUploadResult, CreateTaskInput, CreateTaskResult
)
from apps.tasks.domain.entities import TASK_FIELDS, TaskEntity
from apps.tasks.domain.exceptions import ValidationError
from apps.tasks.domain.naming import camel_to_snake, snake_to_camel
from apps.tasks.domain.services.reconciler import CommitSummary, parse_date


def _wire_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def task_to_dict(task: TaskEntity) -> Dict[str, Any]:
    """Encja -> JSON (camelCase, jak oczekuje frontend)."""
    data = {snake_to_camel(name): _wire_value(getattr(task, name)) for name in TASK_FIELDS}
    data['awaitingConfirmation'] = task.awaiting_confirmation
    return data


def summary_to_dict(summary: CommitSummary) -> Dict[str, Any]:
    return {
        'succeeded': summary.succeeded,
        'succeededCount': summary.succeeded_count,
        'failedCount': summary.failed_count,
        'allSaved': summary.all_saved,
        'message': summary.describe(),
        'failures': [
            {
                'taskId': f.task_id,
                'fields': [snake_to_camel(name) for name in f.fields],
                'kind': f.kind,
                'message': f.message,
            }
            for f in summary.failures
        ],
    }


def batch_result_to_dict(result: BatchSaveResult) -> Dict[str, Any]:
    data = summary_to_dict(result.summary)
    data['dirtyTaskIds'] = result.dirty_ids
    data['followUpTasks'] = [task_to_dict(t) for t in result.follow_up_tasks]
    data['success'] = result.summary.all_saved
    return data


def create_result_to_dict(result: CreateTaskResult) -> Dict[str, Any]:
    return {
        'success': True,
        'task': task_to_dict(result.task),
        'recurringTasks': [task_to_dict(t) for t in result.recurring_tasks],
        'followUpTasks': [task_to_dict(t) for t in result.follow_up_tasks],
    }


def upload_result_to_dict(result: BulkUploadResult) -> Dict[str, Any]:
    return {
        'success': True,
        'created': [task_to_dict(t) for t in result.created],
        'failed': [{'index': r.index, 'reason': r.reason} for r in result.failed],
        'skipped': [{'index': r.index, 'reason': r.reason} for r in result.skipped],
        'followUpTasks': [task_to_dict(t) for t in result.follow_up_tasks],
        'message': f"{len(result.created)} created, {len(result.failed)} failed, {len(result.skipped)} skipped",
    }


def delete_result_to_dict(result: BulkDeleteResult) -> Dict[str, Any]:
    return {
        'success': True,
        'deletedIds': result.deleted,
        'missingIds': result.missing,
        'message': f"{len(result.deleted)} deleted, {len(result.missing)} not found",
    }


def fields_from_wire(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Klucze camelCase -> snake_case; wartości walidowane dalej, w silniku."""
    if not isinstance(payload, dict):
        raise ValidationError("Expected a JSON object")
    return {camel_to_snake(key): value for key, value in payload.items()}


def create_input_from_wire(payload: Dict[str, Any], created_by: str) -> CreateTaskInput:
    data = fields_from_wire(payload)

    recurring_days = data.get('recurring_days')
    if recurring_days is not None and not isinstance(recurring_days, list):
        raise ValidationError("recurringDays must be a list", field='recurring_days')

    progress = data.get('progress', 0)
    if progress is None:
        progress = 0

    return CreateTaskInput(
        title=data.get('title') or "",
        created_by=created_by,
        assigned_to=data.get('assigned_to') or None,
        description=data.get('description') or "",
        category=data.get('category') or None,
        priority=data.get('priority') or 'medium',
        progress=progress,
        work_date=parse_date('work_date', data.get('work_date') or data.get('start_date')),
        due_date=parse_date('due_date', data.get('due_date')),
        follow_up_assignee=data.get('follow_up_assignee') or None,
        follow_up_memo=data.get('follow_up_memo') or "",
        is_recurring=bool(data.get('is_recurring')),
        recurring_type=data.get('recurring_type'),
        recurring_days=recurring_days,
        recurring_end_date=parse_date('recurring_end_date', data.get('recurring_end_date')),
        is_indefinite=bool(data.get('is_indefinite')),
    )
