from typing import Any, Dict, List, Optional

from django.db.models import QuerySet

from core.logging_utils import get_logger
from core.shortcuts import get_object_or_not_found, parse_uuid
from properties.models import PropertyDraft

logger = get_logger('properties')

NOT_FOUND_MESSAGE = 'Draft not found'


def _drafts(user_id: Optional[Any]) -> QuerySet:
    queryset = PropertyDraft.objects.all()
    if user_id is not None:
        queryset = queryset.filter(user_id=str(user_id))
    return queryset


def create_or_update(payload: Dict[str, Any], user_id: Any) -> PropertyDraft:
    """
    Save listing form state for ``user_id``.

    ``id`` and ``original_property_id`` are taken out of the payload; the rest
    is stored as the draft data. An ``id`` naming one of the user's drafts
    replaces that draft's data, anything else starts a new draft.
    """
    data = dict(payload)
    draft_id = data.pop('id', None)
    original_property_id = data.pop('original_property_id', None)

    if draft_id:
        parsed = parse_uuid(draft_id)
        existing = _drafts(user_id).filter(pk=parsed).first() if parsed else None
        if existing is not None:
            existing.data = data
            existing.save(update_fields=['data', 'updated_at'])
            logger.debug(f"Draft {existing.id} updated")
            return existing

    draft = PropertyDraft.objects.create(
        user_id=str(user_id),
        original_property_id=str(original_property_id) if original_property_id else None,
        data=data,
    )
    logger.debug(f"Draft {draft.id} created")
    return draft


def find_all(user_id: Optional[Any] = None) -> List[PropertyDraft]:
    return list(_drafts(user_id).order_by('-updated_at'))


def find_one(draft_id: Any, user_id: Optional[Any] = None) -> PropertyDraft:
    """Fetch a draft, limited to ``user_id``'s drafts when given. Others' drafts are NotFound."""
    return get_object_or_not_found(_drafts(user_id), draft_id, NOT_FOUND_MESSAGE)


def delete(draft_id: Any, user_id: Optional[Any] = None) -> None:
    find_one(draft_id, user_id).delete()
