# apps/tasks/domain/services/delegation.py
import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple
from apps.tasks.domain.entities import (
    FOLLOW_UP_CATEGORY, FOLLOW_UP_TYPE, TaskEntity, TaskStatus
)
from apps.tasks.domain.exceptions import ConflictError, NotFoundError, ValidationError
from apps.tasks.ports.notifications import INotificationSink
from apps.tasks.ports.repositories import ITaskRepository

logger = logging.getLogger(__name__)

CONFIRMATION_PREFIX = '[확인요청]'


class ResolutionState:
    CONFIRMED = 'confirmed'
    REJECTED = 'rejected'
    PENDING = 'pending'


def follow_up_title(parent: TaskEntity) -> str:
    return f"{CONFIRMATION_PREFIX} {parent.title}"


def follow_up_description(parent: TaskEntity) -> str:
    lines = [
        f"원본 업무: {parent.title}",
        f"카테고리: {parent.category}",
        f"요청자: {parent.created_by or ''}",
        f"내용: {parent.description or ''}",
    ]
    text = "\n".join(lines)
    if parent.follow_up_memo:
        text += f"\n\n전달 메모:\n{parent.follow_up_memo}"
    return text


class _KeyedLocks:
    """
    Osobny lock na każdą parę (rodzic, delegat).
    Wpis żyje tylko, dopóki ktoś go trzyma lub na niego czeka.
    """

    def __init__(self):
        self._guard = threading.Lock()
        # klucz -> [lock, liczba użytkowników]
        self._locks: Dict[Tuple[int, str], list] = {}

    @contextmanager
    def hold(self, key: Tuple[int, str]):
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


# Wspólne dla procesu: spawner tworzony jest per żądanie
_SPAWN_LOCKS = _KeyedLocks()


class DelegationSpawner:
    def __init__(
        self,
        repository: ITaskRepository,
        notifier: Optional[INotificationSink] = None,
        clock: Callable[[], datetime] = None,
    ):
        self.repository = repository
        self.notifier = notifier
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self._locks = _SPAWN_LOCKS

    @staticmethod
    def should_spawn(task: TaskEntity) -> bool:
        if not task.follow_up_assignee:
            return False
        # Delegowanie do samego siebie to no-op
        if task.follow_up_assignee == task.assigned_to:
            return False
        # Zadanie potwierdzające nie tworzy kolejnych
        return not task.is_follow_up_task

    def maybe_spawn_follow_up(self, task: TaskEntity) -> Optional[TaskEntity]:
        """
        Zwraca zadanie potwierdzające dla delegata (nowe lub już istniejące)
        albo None, gdy delegowanie nie ma zastosowania.
        """
        if not self.should_spawn(task):
            return None
        if task.id is None:
            raise ValidationError("Cannot delegate a task that has not been saved", field='id')

        assignee = task.follow_up_assignee
        with self._locks.hold((task.id, assignee)):
            existing = self.repository.find_follow_up(task.id, assignee)
            if existing:
                logger.info(
                    "Follow-up already exists parent=%s assignee=%s follow_up=%s",
                    task.id, assignee, existing.id
                )
                return existing

            try:
                created = self.repository.insert_task(self.build_follow_up(task))
            except ConflictError:
                # Przegrany wyścig: zwracamy rekord zwycięzcy
                winner = self.repository.find_follow_up(task.id, assignee)
                if winner is None:
                    raise
                logger.warning(
                    "Follow-up insert lost a race parent=%s assignee=%s, returning %s",
                    task.id, assignee, winner.id
                )
                return winner

        logger.info("Follow-up spawned parent=%s assignee=%s follow_up=%s", task.id, assignee, created.id)
        self._notify(assignee, created)
        return created

    def build_follow_up(self, parent: TaskEntity) -> TaskEntity:
        return TaskEntity(
            id=None,
            title=follow_up_title(parent),
            description=follow_up_description(parent),
            category=FOLLOW_UP_CATEGORY,
            status=TaskStatus.PENDING,
            progress=0,
            priority=parent.priority,
            assigned_to=parent.follow_up_assignee,
            created_by=parent.created_by,
            follow_up_memo=parent.follow_up_memo or "",
            is_follow_up_task=True,
            parent_task_id=parent.id,
            follow_up_type=FOLLOW_UP_TYPE,
            confirmation_requested_at=self.clock(),
            work_date=parent.work_date,
            due_date=parent.due_date,
        )

    def _notify(self, delegate_id: str, task: TaskEntity):
        if self.notifier is None:
            return
        try:
            self.notifier.notify_delegation(delegate_id, task)
        except Exception:
            logger.exception("Delegation notification failed delegate=%s task=%s", delegate_id, task.id)


class ConfirmationService:
    """Reakcja delegata na zadanie potwierdzające oraz odczyt stanu dla rodzica."""

    def __init__(
        self,
        repository: ITaskRepository,
        notifier: Optional[INotificationSink] = None,
        clock: Callable[[], datetime] = None,
    ):
        self.repository = repository
        self.notifier = notifier
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def _notify(self, task: TaskEntity):
        if self.notifier is None or not task.created_by:
            return
        try:
            self.notifier.notify_resolution(task.created_by, task)
        except Exception:
            logger.exception("Resolution notification failed task=%s", task.id)

    def _get_pending(self, task_id: int) -> TaskEntity:
        task = self.repository.find_task(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found", task_id=task_id)
        if not task.is_follow_up_task:
            raise ValidationError("Task is not a confirmation request", field='is_follow_up_task', task_id=task_id)
        if task.status != TaskStatus.PENDING:
            raise ValidationError(
                f"Confirmation request already resolved ({task.status.value})",
                field='status', task_id=task_id
            )
        return task

    def confirm(self, task_id: int) -> TaskEntity:
        self._get_pending(task_id)
        task = self.repository.update_task_fields(task_id, {
            'status': TaskStatus.SCHEDULED,
            'progress': 0,
            'confirmation_completed_at': self.clock(),
        })
        logger.info("Follow-up confirmed task=%s parent=%s", task.id, task.parent_task_id)
        self._notify(task)
        return task

    def reject(self, task_id: int, reason: str = "") -> TaskEntity:
        self._get_pending(task_id)
        task = self.repository.update_task_fields(task_id, {
            'status': TaskStatus.CANCELLED,
            'progress': 0,
            'follow_up_memo': f"반려사유: {reason or '사유 없음'}",
        })
        logger.info("Follow-up rejected task=%s parent=%s", task.id, task.parent_task_id)
        self._notify(task)
        return task

    def pending_confirmations(self, assignee: str) -> List[TaskEntity]:
        return self.repository.list_pending_confirmations(assignee)

    def resolution_for(self, parent_task_id: int) -> Dict[str, str]:
        """Widok: delegat -> confirmed / rejected / pending. Nie zmienia rodzica."""
        result = {}
        for follow_up in self.repository.list_follow_ups(parent_task_id):
            if follow_up.status == TaskStatus.PENDING:
                state = ResolutionState.PENDING
            elif follow_up.status == TaskStatus.CANCELLED:
                state = ResolutionState.REJECTED
            else:
                state = ResolutionState.CONFIRMED
            result[follow_up.assigned_to] = state
        return result
