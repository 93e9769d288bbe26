# apps/tasks/adapters/notification_sinks.py
import logging
from apps.notifications.models import Notification
from apps.tasks.domain.entities import TaskEntity, TaskStatus
from apps.tasks.ports.notifications import INotificationSink

logger = logging.getLogger(__name__)


class DjangoNotificationSink(INotificationSink):
    """Zapisuje powiadomienia w skrzynce użytkownika (model Notification)."""

    def notify_delegation(self, delegate_id: str, task: TaskEntity) -> None:
        Notification.objects.create(
            user_id=delegate_id,
            type=Notification.NotificationType.FOLLOW_UP_ASSIGNED,
            title='새로운 확인요청 업무',
            message=f'{task.created_by}님이 "{task.title}" 업무의 확인을 요청했습니다.',
            task_id=task.id,
        )
        logger.info("Delegation notification stored for %s task=%s", delegate_id, task.id)

    def notify_resolution(self, requester_id: str, task: TaskEntity) -> None:
        if task.status == TaskStatus.CANCELLED:
            kind = Notification.NotificationType.FOLLOW_UP_REJECTED
            title = '확인요청 반려'
        else:
            kind = Notification.NotificationType.FOLLOW_UP_CONFIRMED
            title = '확인요청 완료'

        Notification.objects.create(
            user_id=requester_id,
            type=kind,
            title=title,
            message=f'{task.assigned_to}: "{task.title}"',
            task_id=task.id,
        )
