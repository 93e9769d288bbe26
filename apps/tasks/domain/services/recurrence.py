#apps/tasks/domain/services/recurrence.py
import logging
from datetime import date, datetime, timedelta
from typing import Iterator, List, Optional
from dateutil.relativedelta import relativedelta
from dateutil.rrule import rrule, DAILY, WEEKLY, MO, TU, WE, TH, FR, SA, SU
from apps.tasks.domain.entities import RecurrenceRuleEntity, RecurrenceType, TaskEntity
from apps.tasks.domain.exceptions import ConflictError, ValidationError
from apps.tasks.ports.repositories import ITaskRepository

logger = logging.getLogger(__name__)

MAX_INSTANCES = 365

# Nazwy dni: koreańskie (jak w formularzu), skróty RFC 5545 i pełne angielskie
DAY_MAP = {
    '월': MO, '화': TU, '수': WE, '목': TH, '금': FR, '토': SA, '일': SU,
    'MO': MO, 'TU': TU, 'WE': WE, 'TH': TH, 'FR': FR, 'SA': SA, 'SU': SU,
    'MONDAY': MO, 'TUESDAY': TU, 'WEDNESDAY': WE, 'THURSDAY': TH,
    'FRIDAY': FR, 'SATURDAY': SA, 'SUNDAY': SU,
}


def parse_weekdays(days: List[str]) -> tuple:
    parsed = []
    for day in days:
        key = str(day).strip()
        weekday = DAY_MAP.get(key) or DAY_MAP.get(key.upper())
        if weekday is None:
            raise ValidationError(f"Unknown day of week: {day!r}", field='days_of_week')
        if weekday not in parsed:
            parsed.append(weekday)
    return tuple(parsed)


class RecurrenceExpander:
    """
    Rozwija regułę w skończoną listę dat.
    Czysta logika: bez I/O, ten sam wynik dla tych samych argumentów.
    """

    def __init__(self, max_instances: int = MAX_INSTANCES):
        self.max_instances = max_instances

    def validate(self, rule: RecurrenceRuleEntity, start_date: date):
        try:
            rule_type = RecurrenceType(rule.type)
        except ValueError:
            raise ValidationError(f"Unknown recurrence type: {rule.type!r}", field='type')

        if rule_type == RecurrenceType.WEEKLY and rule.days_of_week is not None:
            if len(rule.days_of_week) == 0:
                raise ValidationError(
                    "Weekly rule declares a day restriction but lists no days",
                    field='days_of_week'
                )
            parse_weekdays(rule.days_of_week)

        if not rule.indefinite:
            if rule.end_date is None:
                raise ValidationError("end_date is required unless the rule is indefinite", field='end_date')
            if rule.end_date < start_date:
                raise ValidationError("end_date is before the start date", field='end_date')

    def expand(self, rule: RecurrenceRuleEntity, start_date: date, after: Optional[date] = None) -> List[date]:
        """
        Zwraca daty wystąpień od start_date.
        `after` pozwala wznowić serię: daty <= after są pomijane i nie liczą się do limitu.
        """
        self.validate(rule, start_date)

        result = []
        for current in self._walk(rule, start_date):
            if not rule.indefinite and current > rule.end_date:
                break
            if after is not None and current <= after:
                continue
            result.append(current)
            if len(result) >= self.max_instances:
                break
        return result

    def _walk(self, rule: RecurrenceRuleEntity, start_date: date) -> Iterator[date]:
        rule_type = RecurrenceType(rule.type)
        dtstart = datetime.combine(start_date, datetime.min.time())

        if rule_type == RecurrenceType.DAILY:
            dates = rrule(DAILY, dtstart=dtstart)
        elif rule_type == RecurrenceType.WEEKLY:
            if rule.days_of_week:
                dates = rrule(DAILY, dtstart=dtstart, byweekday=parse_weekdays(rule.days_of_week))
            else:
                dates = rrule(WEEKLY, dtstart=dtstart)
        elif rule_type == RecurrenceType.WEEKDAYS:
            dates = rrule(DAILY, dtstart=dtstart, byweekday=(MO, TU, WE, TH, FR))
        else:
            # Miesiące/lata liczymy od startu (start + n), żeby skrócenie do
            # końca miesiąca nie przesuwało kolejnych terminów
            return self._walk_calendar(rule_type, start_date)

        return (d.date() for d in dates)

    @staticmethod
    def _walk_calendar(rule_type: RecurrenceType, start_date: date) -> Iterator[date]:
        n = 0
        while True:
            if rule_type == RecurrenceType.MONTHLY:
                yield start_date + relativedelta(months=n)
            else:
                yield start_date + relativedelta(years=n)
            n += 1


def instance_title(title: str, sequence: int) -> str:
    if sequence == 1:
        return title
    return f"{title} ({sequence}회차)"


def build_instances(template: TaskEntity, dates: List[date], first_sequence: int = 1) -> List[TaskEntity]:
    """Kopie szablonu przesunięte na podane daty."""
    # Termin zachowuje odstęp od daty pracy z szablonu
    offset = timedelta(0)
    if template.work_date and template.due_date:
        offset = template.due_date - template.work_date

    instances = []
    for i, day in enumerate(dates):
        sequence = first_sequence + i
        instances.append(template.copy(
            id=None,
            title=instance_title(template.title, sequence),
            work_date=day,
            due_date=day + offset,
            recurring_parent_id=template.id,
            recurring_sequence=sequence,
            created_at=None,
            updated_at=None,
        ))
    return instances


class RecurrenceService:
    """Zapisuje instancje serii przez repozytorium, bez duplikowania istniejących dat."""

    def __init__(self, repository: ITaskRepository, expander: Optional[RecurrenceExpander] = None):
        self.repository = repository
        self.expander = expander or RecurrenceExpander()

    def materialize(self, template: TaskEntity, rule: RecurrenceRuleEntity) -> List[TaskEntity]:
        """
        Szablon staje się wystąpieniem nr 1 (przesuniętym na pierwszą datę),
        kolejne daty tworzą nowe zadania z recurring_parent_id = szablon.
        """
        start = template.work_date or template.due_date
        if start is None:
            raise ValidationError("Recurring task needs a work_date or due_date", field='work_date')

        dates = self.expander.expand(rule, start)
        if not dates:
            return []

        head = build_instances(template, dates[:1])[0]
        template = self.repository.update_task_fields(template.id, {
            'work_date': head.work_date,
            'due_date': head.due_date,
            'recurring_sequence': 1,
        })

        created = [template]
        created.extend(self._insert_missing(template, dates[1:], first_sequence=2))

        logger.info(
            "Recurrence materialized task=%s type=%s instances=%s",
            template.id, rule.type, len(created)
        )
        return created

    def extend(self, template: TaskEntity, rule: RecurrenceRuleEntity) -> List[TaskEntity]:
        """Dokłada kolejną porcję serii (reguły bezterminowe) od ostatniej zapisanej instancji."""
        last = self.repository.last_recurring_instance(template.id) or template
        last_sequence = last.recurring_sequence or 1

        dates = self.expander.expand(rule, template.work_date, after=last.work_date)
        created = self._insert_missing(template, dates, first_sequence=last_sequence + 1)

        logger.info("Recurrence extended task=%s new_instances=%s", template.id, len(created))
        return created

    def _insert_missing(self, template: TaskEntity, dates: List[date], first_sequence: int) -> List[TaskEntity]:
        existing = set(self.repository.list_recurring_dates(template.id))
        if template.work_date:
            existing.add(template.work_date)

        # Numer wystąpienia wynika z pozycji daty w serii, nie z liczby nowych rekordów
        created = []
        for instance in build_instances(template, dates, first_sequence=first_sequence):
            if instance.work_date in existing:
                continue
            try:
                created.append(self.repository.insert_task(instance))
            except ConflictError:
                # Ktoś równolegle zapisał tę datę
                logger.info("Recurring instance already exists task=%s date=%s", template.id, instance.work_date)
        return created
