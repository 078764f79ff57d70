"""Activity log: what back-office users did, searchable from the activity page."""

from datetime import datetime, time
from typing import Any, Dict, Optional

from django.db.models import Q
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from activity.models import ActivityLog
from core.exceptions import BadRequest
from core.logging_utils import get_activity_logger
from core.middleware import get_client_ip

logger = get_activity_logger()


def record_activity(action: str, user: Optional[Any] = None, description: str = '',
                    ip_address: Optional[str] = None) -> ActivityLog:
    """Persist one activity entry. ``user`` may be None for system actions."""
    if user is not None and not getattr(user, 'is_authenticated', False):
        user = None
    entry = ActivityLog.objects.create(
        user=user,
        action=action,
        description=description or '',
        ip_address=ip_address or '',
    )
    logger.debug(f"Activity recorded: {action}", user)
    return entry


def record_request_activity(request, action: str, description: str = '') -> ActivityLog:
    """Record an activity for the request's actor and client IP."""
    return record_activity(
        action,
        user=getattr(request, 'user', None),
        description=description,
        ip_address=get_client_ip(request),
    )


def _parse_bound(value: str, name: str, *, end_of_day: bool) -> datetime:
    parsed = parse_datetime(value)
    if parsed is None:
        day = parse_date(value)
        if day is None:
            raise BadRequest(f'"{name}" must be an ISO date or datetime')
        # A bare date covers the whole day
        parsed = datetime.combine(day, time.max if end_of_day else time.min)
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def search(skip: int = 0, take: Optional[int] = None, search: Optional[str] = None,
           start_date: Optional[str] = None, end_date: Optional[str] = None) -> Dict[str, Any]:
    """
    Page through activity entries, newest first.

    Args:
        skip: Number of entries to skip
        take: Page size, or None for everything after ``skip``
        search: Case-insensitive match on action, user full name or user email
        start_date: Lower bound on created_at, applied only with ``end_date``
        end_date: Upper bound on created_at, applied only with ``start_date``

    Returns:
        ``{"items": [...], "total": <matching entries>}``
    """
    queryset = ActivityLog.objects.select_related('user')

    if search:
        queryset = queryset.filter(
            Q(action__icontains=search)
            | Q(user__full_name__icontains=search)
            | Q(user__email__icontains=search)
        )

    if start_date and end_date:
        queryset = queryset.filter(
            created_at__gte=_parse_bound(start_date, 'start_date', end_of_day=False),
            created_at__lte=_parse_bound(end_date, 'end_date', end_of_day=True),
        )

    total = queryset.count()
    queryset = queryset.order_by('-created_at')
    page = queryset[skip:skip + take] if take is not None else queryset[skip:]
    return {'items': [entry.to_dict() for entry in page], 'total': total}
