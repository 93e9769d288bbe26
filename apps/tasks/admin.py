from django.contrib import admin
from .models import Task, RecurrenceRule


class RecurrenceRuleInline(admin.StackedInline):
    model = RecurrenceRule
    extra = 0
    can_delete = False
    readonly_fields = ('type', 'days_of_week', 'end_date', 'indefinite', 'created_at')


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ('title', 'status', 'progress', 'priority', 'assigned_to', 'work_date', 'is_follow_up_task')
    list_filter = ('status', 'priority', 'category', 'is_follow_up_task')
    search_fields = ('title', 'assigned_to', 'created_by')
    readonly_fields = ('parent_task_id', 'recurring_parent_id', 'recurring_sequence', 'created_at', 'updated_at')
    inlines = [RecurrenceRuleInline]


# Reguły są tylko do odczytu po utworzeniu serii
@admin.register(RecurrenceRule)
class RecurrenceRuleAdmin(admin.ModelAdmin):
    list_display = ('task', 'type', 'end_date', 'indefinite', 'created_at')
    list_filter = ('type', 'indefinite')
    readonly_fields = ('task', 'type', 'days_of_week', 'end_date', 'indefinite', 'created_at')
