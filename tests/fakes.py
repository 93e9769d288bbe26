# tests/fakes.py
import threading
from typing import Any, Dict, List, Set, Tuple

from apps.tasks.adapters.memory_repositories import InMemoryTaskRepository
from apps.tasks.domain.entities import TaskEntity
from apps.tasks.domain.exceptions import NotFoundError, TaskEngineError, TransientError
from apps.tasks.ports.notifications import INotificationSink


class RecordingNotifier(INotificationSink):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.delegations: List[Tuple[str, TaskEntity]] = []
        self.resolutions: List[Tuple[str, TaskEntity]] = []

    def notify_delegation(self, delegate_id: str, task: TaskEntity) -> None:
        if self.fail:
            raise RuntimeError("notification backend down")
        self.delegations.append((delegate_id, task))

    def notify_resolution(self, requester_id: str, task: TaskEntity) -> None:
        if self.fail:
            raise RuntimeError("notification backend down")
        self.resolutions.append((requester_id, task))


class FlakyRepository(InMemoryTaskRepository):
    """In-memory store whose updates fail for chosen task ids."""

    def __init__(self):
        super().__init__()
        self.failing: Dict[int, TaskEngineError] = {}
        self.update_calls: List[Tuple[int, Dict[str, Any]]] = []
        self._calls_lock = threading.Lock()

    def fail_updates(self, task_id: int, error: TaskEngineError = None):
        self.failing[task_id] = error or TransientError("timeout", task_id=task_id)

    def heal(self, task_id: int):
        self.failing.pop(task_id, None)

    def update_task_fields(self, task_id: int, fields: Dict[str, Any]) -> TaskEntity:
        with self._calls_lock:
            self.update_calls.append((task_id, dict(fields)))
        error = self.failing.get(task_id)
        if error is not None:
            raise error
        return super().update_task_fields(task_id, fields)


class RacingRepository(InMemoryTaskRepository):
    """
    find_follow_up misses the first time for selected parents, simulating
    a concurrent writer that inserted between the lookup and our insert.
    """

    def __init__(self):
        super().__init__()
        self.blind_once: Set[int] = set()

    def find_follow_up(self, parent_task_id: int, assignee: str):
        if parent_task_id in self.blind_once:
            self.blind_once.discard(parent_task_id)
            return None
        return super().find_follow_up(parent_task_id, assignee)


def missing(task_id: int) -> NotFoundError:
    return NotFoundError(f"Task {task_id} not found", task_id=task_id)
