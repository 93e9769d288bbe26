# apps/tasks/domain/naming.py
import re

_CAMEL_BOUNDARY = re.compile(r'(?<=[a-z0-9])([A-Z])')


def camel_to_snake(name: str) -> str:
    """followUpAssignee -> follow_up_assignee (snake_case zostaje bez zmian)."""
    return _CAMEL_BOUNDARY.sub(r'_\1', name).lower()


def snake_to_camel(name: str) -> str:
    head, *rest = name.split('_')
    return head + ''.join(part.capitalize() for part in rest)
