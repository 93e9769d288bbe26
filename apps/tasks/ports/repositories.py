# apps/tasks/ports/repositories.py
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, List, Optional
from apps.tasks.domain.entities import RecurrenceRuleEntity, TaskEntity


class ITaskRepository(ABC):
    @abstractmethod
    def find_task(self, task_id: int) -> Optional[TaskEntity]:
        pass

    @abstractmethod
    def find_follow_up(self, parent_task_id: int, assignee: str) -> Optional[TaskEntity]:
        """Zwraca zadanie potwierdzające dla pary (rodzic, delegat) albo None."""
        pass

    @abstractmethod
    def insert_task(self, task: TaskEntity) -> TaskEntity:
        """
        Zapisuje nowe zadanie i zwraca encję z id, created_at, updated_at.
        Rzuca ConflictError, gdy naruszono unikalność (follow-up / instancja cykliczna).
        """
        pass

    @abstractmethod
    def update_task_fields(self, task_id: int, fields: Dict[str, Any]) -> TaskEntity:
        """Częściowa aktualizacja: tylko podane pola. NotFoundError, gdy zadania brak."""
        pass

    @abstractmethod
    def delete_task(self, task_id: int) -> None:
        pass

    @abstractmethod
    def list_follow_ups(self, parent_task_id: int) -> List[TaskEntity]:
        pass

    @abstractmethod
    def list_pending_confirmations(self, assignee: str) -> List[TaskEntity]:
        """Zadania potwierdzające w stanie pending przypisane do delegata."""
        pass

    @abstractmethod
    def list_recurring_dates(self, recurring_parent_id: int) -> List[date]:
        pass

    @abstractmethod
    def last_recurring_instance(self, recurring_parent_id: int) -> Optional[TaskEntity]:
        """Instancja o najwyższym numerze sekwencji."""
        pass

    @abstractmethod
    def save_recurrence_rule(self, rule: RecurrenceRuleEntity) -> RecurrenceRuleEntity:
        pass

    @abstractmethod
    def list_indefinite_rules(self) -> List[RecurrenceRuleEntity]:
        pass
