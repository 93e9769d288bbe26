import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Task',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True)),
                ('category', models.CharField(default='경영일반', max_length=50)),
                ('status', models.CharField(choices=[('scheduled', 'Scheduled'), ('in_progress', 'In progress'), ('completed', 'Completed'), ('postponed', 'Postponed'), ('cancelled', 'Cancelled'), ('pending', 'Awaiting confirmation')], default='scheduled', max_length=20)),
                ('progress', models.PositiveSmallIntegerField(default=0)),
                ('priority', models.CharField(choices=[('low', 'Low'), ('medium', 'Medium'), ('high', 'High'), ('urgent', 'Urgent')], default='medium', max_length=10)),
                ('assigned_to', models.CharField(db_index=True, max_length=150)),
                ('created_by', models.CharField(max_length=150)),
                ('follow_up_assignee', models.CharField(blank=True, max_length=150, null=True)),
                ('follow_up_memo', models.TextField(blank=True)),
                ('is_follow_up_task', models.BooleanField(default=False)),
                ('parent_task_id', models.IntegerField(blank=True, db_index=True, null=True)),
                ('follow_up_type', models.CharField(blank=True, max_length=20, null=True)),
                ('confirmation_requested_at', models.DateTimeField(blank=True, null=True)),
                ('confirmation_completed_at', models.DateTimeField(blank=True, null=True)),
                ('work_date', models.DateField(blank=True, null=True)),
                ('due_date', models.DateField(blank=True, null=True)),
                ('recurring_parent_id', models.IntegerField(blank=True, db_index=True, null=True)),
                ('recurring_sequence', models.PositiveIntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['-work_date', '-created_at'],
                'indexes': [models.Index(fields=['assigned_to', 'status'], name='task_assignee_status_idx')],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('is_follow_up_task', True)), fields=('parent_task_id', 'assigned_to'), name='unique_follow_up_per_assignee'),
                    models.UniqueConstraint(condition=models.Q(('recurring_parent_id__isnull', False)), fields=('recurring_parent_id', 'work_date'), name='unique_recurring_instance_date'),
                    models.CheckConstraint(condition=models.Q(('is_follow_up_task', False), ('parent_task_id__isnull', False), _connector='OR'), name='follow_up_has_parent'),
                    models.CheckConstraint(condition=models.Q(('progress__lte', 100)), name='progress_within_range'),
                ],
            },
        ),
        migrations.CreateModel(
            name='RecurrenceRule',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('type', models.CharField(choices=[('daily', 'Daily'), ('weekly', 'Weekly'), ('monthly', 'Monthly'), ('yearly', 'Yearly'), ('weekdays', 'Weekdays')], max_length=20)),
                ('days_of_week', models.JSONField(blank=True, null=True)),
                ('end_date', models.DateField(blank=True, null=True)),
                ('indefinite', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('task', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='recurrence_rule', to='tasks.task')),
            ],
        ),
    ]
