# apps/tasks/ports/notifications.py
from abc import ABC, abstractmethod
from apps.tasks.domain.entities import TaskEntity


class INotificationSink(ABC):
    """Fire-and-forget. Silnik nie sprawdza wyniku, a błędy tylko loguje."""

    @abstractmethod
    def notify_delegation(self, delegate_id: str, task: TaskEntity) -> None:
        pass

    @abstractmethod
    def notify_resolution(self, requester_id: str, task: TaskEntity) -> None:
        """Delegat potwierdził albo odrzucił zadanie (task.status mówi które)."""
        pass
