import uuid

from django.db import models


class PropertyDraft(models.Model):
    """Unsaved property listing form state, kept per user until published or discarded."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user_id = models.CharField(max_length=64, db_index=True)
    original_property_id = models.CharField(max_length=64, blank=True, null=True)
    data = models.JSONField(default=dict)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-updated_at']
        db_table = 'properties_propertydraft'

    def __str__(self):
        return f"Draft {self.pk} ({self.user_id})"

    def to_dict(self):
        return {
            'id': str(self.pk),
            'user_id': self.user_id,
            'original_property_id': self.original_property_id,
            'data': self.data,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }
