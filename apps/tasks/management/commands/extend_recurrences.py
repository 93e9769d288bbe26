import logging
from datetime import datetime, timedelta
import pytz
from django.conf import settings
from django.core.management.base import BaseCommand
from apps.tasks.adapters.orm_repositories import DjangoTaskRepository
from apps.tasks.domain.exceptions import TaskEngineError
from apps.tasks.domain.services.recurrence import RecurrenceExpander, RecurrenceService

logger = logging.getLogger(__name__)


def local_today(tz_name: str):
    return datetime.now(pytz.timezone(tz_name)).date()


class Command(BaseCommand):
    help = 'Dokłada kolejne instancje dla bezterminowych serii zadań'

    def add_arguments(self, parser):
        parser.add_argument(
            '--horizon-days', type=int, default=30,
            help='Przedłużaj serie, których ostatnia instancja wypada w tym horyzoncie od dziś'
        )
        parser.add_argument('--dry-run', action='store_true', help='Tylko wypisz serie, nic nie zapisuj')

    def handle(self, *args, **options):
        repo = DjangoTaskRepository()
        max_instances = getattr(settings, 'TASK_ENGINE', {}).get('RECURRENCE_MAX_INSTANCES', 365)
        service = RecurrenceService(repo, RecurrenceExpander(max_instances=max_instances))

        horizon = local_today(settings.TIME_ZONE) + timedelta(days=options['horizon_days'])

        generated = []
        failed = 0
        for rule in repo.list_indefinite_rules():
            template = repo.find_task(rule.task_id)
            if template is None or template.work_date is None:
                logger.warning("Skipping recurrence rule=%s: template task %s unusable", rule.id, rule.task_id)
                continue

            last = repo.last_recurring_instance(template.id) or template
            if last.work_date and last.work_date > horizon:
                continue

            if options['dry_run']:
                self.stdout.write(f"- {template.title} ({rule.type.value}, ostatnia: {last.work_date})")
                continue

            try:
                generated.extend(service.extend(template, rule))
            except TaskEngineError as e:
                failed += 1
                logger.error("Extending series task=%s failed: %s (%s)", template.id, e.message, e.kind)
                self.stderr.write(f"! {template.title}: {e.message}")

        self.stdout.write(self.style.SUCCESS(f'Wygenerowano {len(generated)} nowych zadań cyklicznych.'))
        for t in generated:
            self.stdout.write(f"- {t.title} ({t.work_date})")
        if failed:
            self.stdout.write(self.style.WARNING(f'Nieudane serie: {failed}'))
