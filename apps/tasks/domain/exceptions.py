# apps/tasks/domain/exceptions.py
from typing import Optional


class TaskEngineError(Exception):
    """Bazowy błąd silnika zadań."""
    kind = 'error'

    def __init__(self, message: str, task_id: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.task_id = task_id


class ValidationError(TaskEngineError):
    """Błędne dane wejściowe, odrzucone przed jakimkolwiek I/O. Nie ponawiamy."""
    kind = 'validation'

    def __init__(self, message: str, field: Optional[str] = None, task_id: Optional[int] = None):
        super().__init__(message, task_id=task_id)
        self.field = field


class ConflictError(TaskEngineError):
    """Repozytorium odrzuciło duplikat (np. drugie zadanie potwierdzające dla tej samej pary)."""
    kind = 'conflict'


class NotFoundError(TaskEngineError):
    kind = 'not_found'


class TransientError(TaskEngineError):
    """Timeout / problem z połączeniem. Warto ponowić później."""
    kind = 'transient'
