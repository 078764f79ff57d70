"""Watermark catalogue and the single active watermark used for photo exports."""

from typing import Any, Dict, List, Optional

from django.db import transaction

from core.exceptions import BadRequest, UpstreamError
from core.logging_utils import get_logger
from core.shortcuts import get_object_or_not_found
from uploads.storage import S3BlobStore, get_blob_store
from watermarks.models import Watermark

logger = get_logger('watermarks')

NOT_FOUND_MESSAGE = 'Watermark not found'

# Model defaults, applied only when the caller leaves the field out
STYLE_DEFAULTS = {
    'position': Watermark.DEFAULT_POSITION,
    'opacity': Watermark.DEFAULT_OPACITY,
    'scale': Watermark.DEFAULT_SCALE,
    'rotation': Watermark.DEFAULT_ROTATION,
    'blend_mode': Watermark.DEFAULT_BLEND_MODE,
}


def _with_defaults(data: Dict[str, Any], defaults: Dict[str, Any]) -> Dict[str, Any]:
    values = {}
    for name, default in defaults.items():
        value = data.get(name)
        values[name] = default if value is None or value == '' else value
    return values


class WatermarkService:
    UPDATABLE_FIELDS = ('name', 'text', 'text_color', 'position', 'opacity', 'scale', 'rotation', 'blend_mode')

    def __init__(self, blob_store: S3BlobStore):
        self.blob_store = blob_store

    def find_all(self) -> List[Watermark]:
        return list(Watermark.objects.order_by('-created_at'))

    def get_active(self) -> Optional[Watermark]:
        return Watermark.objects.filter(is_active=True).first()

    def create_image(self, data: Dict[str, Any], uploaded) -> Watermark:
        """Upload the watermark image, then create the record pointing at it."""
        image_url = self.blob_store.upload_file(uploaded)
        if not image_url:
            raise UpstreamError('Failed to upload watermark image')

        watermark = Watermark.objects.create(
            name=data['name'],
            type=Watermark.Type.IMAGE,
            image_url=image_url,
            **_with_defaults(data, STYLE_DEFAULTS),
        )
        logger.info(f"Image watermark {watermark.id} created")
        return watermark

    def create_text(self, data: Dict[str, Any]) -> Watermark:
        if not data.get('text'):
            raise BadRequest('Text is required for text watermarks', errors={'text': ['This field is required.']})

        watermark = Watermark.objects.create(
            name=data['name'],
            type=Watermark.Type.TEXT,
            text=data['text'],
            **_with_defaults(data, dict(STYLE_DEFAULTS, text_color=Watermark.DEFAULT_TEXT_COLOR)),
        )
        logger.info(f"Text watermark {watermark.id} created")
        return watermark

    def update(self, watermark_id: Any, changes: Dict[str, Any]) -> Watermark:
        watermark = get_object_or_not_found(Watermark, watermark_id, NOT_FOUND_MESSAGE)

        changed = []
        for name in self.UPDATABLE_FIELDS:
            if name not in changes or changes[name] is None:
                continue
            setattr(watermark, name, changes[name])
            changed.append(name)

        if changed:
            watermark.save(update_fields=changed + ['updated_at'])
        return watermark

    @transaction.atomic
    def activate(self, watermark_id: Any) -> Watermark:
        """Make ``watermark_id`` the only active watermark."""
        watermark = get_object_or_not_found(Watermark.objects.select_for_update(), watermark_id, NOT_FOUND_MESSAGE)
        Watermark.objects.filter(is_active=True).exclude(pk=watermark.pk).update(is_active=False)
        if not watermark.is_active:
            watermark.is_active = True
            watermark.save(update_fields=['is_active', 'updated_at'])
        logger.info(f"Watermark {watermark.id} activated")
        return watermark

    def deactivate_all(self) -> int:
        count = Watermark.objects.filter(is_active=True).update(is_active=False)
        logger.info("All watermarks deactivated", extra_data={'count': count})
        return count

    def delete(self, watermark_id: Any) -> None:
        watermark = get_object_or_not_found(Watermark, watermark_id, NOT_FOUND_MESSAGE)
        if watermark.type == Watermark.Type.IMAGE and watermark.image_url:
            self.blob_store.delete(watermark.image_url)
        watermark.delete()
        logger.info(f"Watermark {watermark_id} deleted")


def get_watermark_service() -> WatermarkService:
    return WatermarkService(get_blob_store())
