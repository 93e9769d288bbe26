# apps/notifications/models.py
from django.db import models


class Notification(models.Model):
    # Komu? (identyfikator delegata)
    user_id = models.CharField(max_length=150, db_index=True)

    class NotificationType(models.TextChoices):
        FOLLOW_UP_ASSIGNED = 'follow_up_assigned', 'Nowe zadanie potwierdzające'
        FOLLOW_UP_CONFIRMED = 'follow_up_confirmed', 'Potwierdzono'
        FOLLOW_UP_REJECTED = 'follow_up_rejected', 'Odrzucono'

    type = models.CharField(max_length=30, choices=NotificationType.choices)
    title = models.CharField(max_length=200)
    message = models.TextField(blank=True)

    # Słabe odwołanie do zadania
    task_id = models.IntegerField(null=True, blank=True)

    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user_id', 'is_read'], name='notif_user_read_idx'),
        ]

    def __str__(self):
        return f"{self.user_id} - {self.type} - {self.created_at}"
