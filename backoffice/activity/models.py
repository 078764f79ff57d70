import uuid

from django.conf import settings
from django.db import models


class ActivityLog(models.Model):
    """One user-visible action in the back office, shown on the activity page."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='activity_logs',
    )
    action = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    ip_address = models.CharField(max_length=64, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ['-created_at']
        db_table = 'activity_activitylog'

    def __str__(self):
        return f"{self.action} ({self.created_at:%Y-%m-%d %H:%M})" if self.created_at else self.action

    def to_dict(self):
        return {
            'id': str(self.pk),
            'user_id': str(self.user_id) if self.user_id else None,
            'user': self.user.to_dict() if self.user_id else None,
            'action': self.action,
            'description': self.description,
            'ip_address': self.ip_address,
            'created_at': self.created_at,
        }
