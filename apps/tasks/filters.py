import django_filters
from .models import Task


class TaskFilter(django_filters.FilterSet):
    title = django_filters.CharFilter(
        lookup_expr='icontains',
        label="Title contains"
    )
    status = django_filters.ChoiceFilter(
        choices=Task.StatusChoices.choices,
        label="Status"
    )
    priority = django_filters.ChoiceFilter(
        choices=Task.PriorityChoices.choices,
        label="Priority"
    )
    # Parametry z frontendu przychodzą w camelCase
    assignedTo = django_filters.CharFilter(field_name='assigned_to', label="Assignee")
    workDateFrom = django_filters.DateFilter(
        field_name='work_date',
        lookup_expr='gte',
        label="Work date from"
    )
    workDateTo = django_filters.DateFilter(
        field_name='work_date',
        lookup_expr='lte',
        label="Work date to"
    )

    class Meta:
        model = Task
        fields = ['category', 'is_follow_up_task']
