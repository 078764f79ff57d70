import uuid

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class Watermark(models.Model):
    """Overlay applied to property photos. At most one is active at a time."""

    class Type(models.TextChoices):
        IMAGE = 'image', 'Image'
        TEXT = 'text', 'Text'

    DEFAULT_TEXT_COLOR = '#FFFFFF'
    DEFAULT_POSITION = 'bottom-right'
    DEFAULT_OPACITY = 0.8
    DEFAULT_SCALE = 0.15
    DEFAULT_ROTATION = 0.0
    DEFAULT_BLEND_MODE = 'Normal'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    type = models.CharField(max_length=10, choices=Type.choices, default=Type.IMAGE)
    image_url = models.URLField(max_length=500, blank=True, null=True)
    text = models.TextField(blank=True, null=True)
    text_color = models.CharField(max_length=32, default=DEFAULT_TEXT_COLOR)
    position = models.CharField(max_length=32, default=DEFAULT_POSITION)
    opacity = models.FloatField(
        default=DEFAULT_OPACITY, validators=[MinValueValidator(0.0), MaxValueValidator(1.0)]
    )
    scale = models.FloatField(
        default=DEFAULT_SCALE, validators=[MinValueValidator(0.0), MaxValueValidator(1.0)]
    )
    rotation = models.FloatField(default=DEFAULT_ROTATION)
    blend_mode = models.CharField(max_length=32, default=DEFAULT_BLEND_MODE)
    is_active = models.BooleanField(default=False, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        db_table = 'watermarks_watermark'

    def __str__(self):
        return f"{self.name} ({self.type})"

    def to_dict(self):
        return {
            'id': str(self.pk),
            'name': self.name,
            'type': self.type,
            'image_url': self.image_url,
            'text': self.text,
            'text_color': self.text_color,
            'position': self.position,
            'opacity': self.opacity,
            'scale': self.scale,
            'rotation': self.rotation,
            'blend_mode': self.blend_mode,
            'is_active': self.is_active,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }
