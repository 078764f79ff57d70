import logging
import uuid
from contextvars import ContextVar
from ipaddress import ip_address

# Per-request logging context, bound by LoggingMiddleware
_request_context: ContextVar[dict] = ContextVar('request_context', default={})

REQUEST_ID_HEADER = 'X-Request-ID'


def _normalize_ip(candidate):
    """Return a cleaned IP address string or ``None`` if invalid."""
    if not candidate:
        return None

    value = candidate.strip().strip('"')

    if value.startswith('[') and ']' in value:
        value = value[1:value.index(']')]

    # IPv6-mapped IPv4, e.g. ::ffff:192.168.1.1
    if value.lower().startswith('::ffff:') and '.' in value:
        value = value[7:]

    # IPv4 host:port
    if value.count(':') == 1 and '.' in value:
        value = value.partition(':')[0]

    try:
        return str(ip_address(value))
    except ValueError:
        return None


def get_client_ip(request):
    """
    Resolve the client IP for a request behind a reverse proxy.

    Order: first valid X-Forwarded-For entry, then X-Real-IP, then the socket
    address. Returns ``'unknown'`` when nothing usable is present.
    """
    meta = getattr(request, 'META', {}) or {}

    forwarded_for = meta.get('HTTP_X_FORWARDED_FOR')
    if forwarded_for:
        for part in forwarded_for.split(','):
            cleaned = _normalize_ip(part)
            if cleaned:
                return cleaned

    cleaned = _normalize_ip(meta.get('HTTP_X_REAL_IP'))
    if cleaned:
        return cleaned

    cleaned = _normalize_ip(meta.get('REMOTE_ADDR'))
    if cleaned:
        return cleaned

    return 'unknown'


def get_request_context():
    return _request_context.get()


class RequestContextFilter(logging.Filter):
    """Copy the bound request context onto every log record."""

    def filter(self, record):
        context = _request_context.get()
        record.request_id = context.get('request_id', '-')
        record.user_id = context.get('user_id', 'anonymous')
        record.ip = context.get('ip', 'unknown')
        if context.get('method'):
            record.http_method = context['method']
        if context.get('path'):
            record.path = context['path']
        return True


class LoggingMiddleware:
    """Bind request id, actor and client IP for the duration of a request."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.request_id = request_id

        user = getattr(request, 'user', None)
        if getattr(user, 'is_authenticated', False):
            user_id = str(user.pk)
        else:
            user_id = 'anonymous'

        token = _request_context.set({
            'request_id': request_id,
            'user_id': user_id,
            'ip': get_client_ip(request),
            'method': request.method,
            'path': request.get_full_path(),
        })
        try:
            response = self.get_response(request)
        finally:
            _request_context.reset(token)

        response[REQUEST_ID_HEADER] = request_id
        return response
