"""Request-level errors shared by every app.

Services raise these; ``core.http.api_view`` turns them into JSON responses.
"""

from typing import Any, Optional


class ServiceError(Exception):
    """Base exception carrying the HTTP status it maps to."""

    status_code = 500
    default_detail = 'Internal server error'

    def __init__(self, detail: Optional[str] = None, *, errors: Optional[Any] = None):
        self.detail = detail or self.default_detail
        self.errors = errors
        super().__init__(self.detail)


class BadRequest(ServiceError):
    status_code = 400
    default_detail = 'Bad request'


class NotAuthenticated(ServiceError):
    status_code = 401
    default_detail = 'Authentication credentials were not provided'


class Forbidden(ServiceError):
    status_code = 403
    default_detail = 'You do not have permission to perform this action'


class NotFound(ServiceError):
    status_code = 404
    default_detail = 'Not found'


class Conflict(ServiceError):
    status_code = 409
    default_detail = 'Conflict'


class UpstreamError(ServiceError):
    status_code = 502
    default_detail = 'Upstream service failed'
