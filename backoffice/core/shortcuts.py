import uuid
from typing import Optional

from django.db.models import Model, QuerySet

from core.exceptions import NotFound


def parse_uuid(value) -> Optional[uuid.UUID]:
    """Return ``value`` as a UUID, or None when it is not one."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None


def get_object_or_not_found(source, pk, message: str = 'Not found'):
    """
    Fetch one row by UUID primary key or raise NotFound.

    ``source`` is a model class or a queryset. A malformed id is reported as
    NotFound, the same as a missing row.
    """
    queryset = source if isinstance(source, QuerySet) else source._default_manager.all()
    parsed = parse_uuid(pk)
    if parsed is None:
        raise NotFound(message)
    obj: Optional[Model] = queryset.filter(pk=parsed).first()
    if obj is None:
        raise NotFound(message)
    return obj
