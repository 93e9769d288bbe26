# apps/tasks/views.py
import json
import logging
from functools import wraps
from django.conf import settings
from django.contrib.auth.decorators import login_required
from django.db.models import Q
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods
from .adapters.notification_sinks import DjangoNotificationSink
from .adapters.orm_repositories import DjangoTaskRepository
from .application.use_cases import (
    BatchSaveUseCase, BulkDeleteUseCase, BulkUploadUseCase, CreateTaskUseCase, UpdateTaskUseCase
)
from .domain.entities import TaskStatus
from .domain.exceptions import (
    ConflictError, NotFoundError, TaskEngineError, TransientError, ValidationError
)
from .domain.services.delegation import ConfirmationService, DelegationSpawner
from .domain.services.recurrence import RecurrenceExpander, RecurrenceService
from .filters import TaskFilter
from .models import Task
from .serializers import (
    batch_result_to_dict, create_result_to_dict, create_input_from_wire, delete_result_to_dict,
    fields_from_wire, task_to_dict, upload_result_to_dict
)

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ValidationError: 400,
    NotFoundError: 404,
    ConflictError: 409,
    TransientError: 503,
}


def engine_setting(name, default):
    return getattr(settings, 'TASK_ENGINE', {}).get(name, default)


def _error_response(error: TaskEngineError) -> JsonResponse:
    status = ERROR_STATUS.get(type(error), 500)
    body = {'success': False, 'message': error.message, 'kind': error.kind}
    if getattr(error, 'field', None):
        body['field'] = error.field
    return JsonResponse(body, status=status)


def engine_errors(view):
    """Błędy silnika -> JSON z odpowiednim kodem HTTP."""
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except TaskEngineError as e:
            logger.info("Request %s %s rejected: %s (%s)", request.method, request.path, e.message, e.kind)
            return _error_response(e)
    return wrapper


def _json_body(request) -> dict:
    try:
        payload = json.loads(request.body or b'{}')
    except ValueError:
        raise ValidationError("Malformed JSON body")
    if not isinstance(payload, dict):
        raise ValidationError("Expected a JSON object")
    return payload


# Manual Dependency Injection
def _repository():
    return DjangoTaskRepository()


def _spawner(repo):
    return DelegationSpawner(repo, notifier=DjangoNotificationSink())


@login_required
@require_http_methods(["GET", "POST"])
@engine_errors
def task_collection_view(request):
    """GET: lista zadań (z filtrem). POST: nowe zadanie (+ seria, + potwierdzenia)."""
    if request.method == "POST":
        input_dto = create_input_from_wire(_json_body(request), created_by=request.user.get_username())

        repo = _repository()
        expander = RecurrenceExpander(max_instances=engine_setting('RECURRENCE_MAX_INSTANCES', 365))
        use_case = CreateTaskUseCase(
            repository=repo,
            spawner=_spawner(repo),
            recurrence=RecurrenceService(repo, expander),
        )
        result = use_case.execute(input_dto)
        return JsonResponse(create_result_to_dict(result), status=201)

    # Oczekujące potwierdzenia mają osobną sekcję
    qs = Task.objects.exclude(is_follow_up_task=True, status=TaskStatus.PENDING.value)
    if not request.user.is_staff:
        username = request.user.get_username()
        qs = qs.filter(Q(assigned_to=username) | Q(created_by=username))

    f = TaskFilter(request.GET, queryset=qs)
    if not f.is_valid():
        return JsonResponse({'success': False, 'message': 'Invalid filter', 'errors': f.errors.get_json_data()}, status=400)

    repo = _repository()
    tasks = [task_to_dict(repo.to_entity(t)) for t in f.qs]
    return JsonResponse({'success': True, 'tasks': tasks, 'meta': {'total': len(tasks)}})


@login_required
@require_http_methods(["GET", "PATCH"])
@engine_errors
def task_detail_view(request, pk):
    repo = _repository()

    if request.method == "PATCH":
        use_case = UpdateTaskUseCase(repo, _spawner(repo))
        task, follow_up = use_case.execute(pk, fields_from_wire(_json_body(request)))
        return JsonResponse({
            'success': True,
            'task': task_to_dict(task),
            'followUpTask': task_to_dict(follow_up) if follow_up else None,
        })

    task = repo.find_task(pk)
    if task is None:
        raise NotFoundError(f"Task {pk} not found", task_id=pk)
    return JsonResponse(task_to_dict(task))


@login_required
@require_http_methods(["POST"])
@engine_errors
def task_batch_view(request):
    """"Zapisz wszystko": {edits: [{taskId, fields}]}."""
    edits = _json_body(request).get('edits')
    if not isinstance(edits, list) or not edits:
        raise ValidationError("A non-empty list of edits is required", field='edits')

    repo = _repository()
    use_case = BatchSaveUseCase(
        repo, _spawner(repo), max_workers=engine_setting('RECONCILER_MAX_WORKERS', 1)
    )
    result = use_case.execute([e if isinstance(e, dict) else {} for e in edits])
    # Częściowy sukces to nadal 200; klient patrzy na allSaved / failures
    return JsonResponse(batch_result_to_dict(result))


@login_required
@require_http_methods(["POST"])
@engine_errors
def task_bulk_upload_view(request):
    rows = _json_body(request).get('tasks')
    if not isinstance(rows, list):
        raise ValidationError("tasks must be a list", field='tasks')

    repo = _repository()
    result = BulkUploadUseCase(repo, _spawner(repo)).execute(rows, uploaded_by=request.user.get_username())
    return JsonResponse(upload_result_to_dict(result))


@login_required
@require_http_methods(["DELETE"])
@engine_errors
def task_bulk_delete_view(request):
    task_ids = _json_body(request).get('taskIds')
    result = BulkDeleteUseCase(_repository()).execute(task_ids)
    return JsonResponse(delete_result_to_dict(result))


@login_required
@require_http_methods(["GET"])
@engine_errors
def follow_up_list_view(request):
    """Skrzynka potwierdzeń zalogowanego użytkownika (tylko pending)."""
    service = ConfirmationService(_repository())
    tasks = service.pending_confirmations(request.user.get_username())
    return JsonResponse({'success': True, 'followUpTasks': [task_to_dict(t) for t in tasks]})


@login_required
@require_http_methods(["PATCH"])
@engine_errors
def follow_up_confirm_view(request, pk):
    service = ConfirmationService(_repository(), notifier=DjangoNotificationSink())
    task = service.confirm(pk)
    return JsonResponse({'success': True, 'task': task_to_dict(task)})


@login_required
@require_http_methods(["PATCH"])
@engine_errors
def follow_up_reject_view(request, pk):
    reason = _json_body(request).get('reason') or ""
    service = ConfirmationService(_repository(), notifier=DjangoNotificationSink())
    task = service.reject(pk, reason)
    return JsonResponse({'success': True, 'task': task_to_dict(task)})


@login_required
@require_http_methods(["GET"])
@engine_errors
def follow_up_status_view(request, pk):
    repo = _repository()
    if repo.find_task(pk) is None:
        raise NotFoundError(f"Task {pk} not found", task_id=pk)
    resolution = ConfirmationService(repo).resolution_for(pk)
    return JsonResponse({'success': True, 'taskId': pk, 'followUps': resolution})
