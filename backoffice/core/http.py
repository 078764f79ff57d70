"""JSON request/response plumbing shared by the API views."""

import json
from functools import wraps
from typing import Any, Dict, Iterable, Optional, Type

from django import forms
from django.http import JsonResponse

from core.exceptions import BadRequest, Forbidden, NotAuthenticated, ServiceError
from core.logging_utils import get_security_logger

security_logger = get_security_logger()


def error_response(exc: ServiceError) -> JsonResponse:
    payload: Dict[str, Any] = {'detail': exc.detail}
    if exc.errors:
        payload['errors'] = exc.errors
    return JsonResponse(payload, status=exc.status_code)


def api_view(methods: Iterable[str], *, login_required: bool = True, permission: Optional[str] = None):
    """
    Wrap a function view as a JSON endpoint.

    Rejects other HTTP methods with 405, unauthenticated callers with 401 and
    callers lacking ``permission`` with 403, and renders any ServiceError raised
    by the view as ``{"detail": ...}`` with its status code.
    """
    allowed = tuple(method.upper() for method in methods)

    def decorator(view):
        @wraps(view)
        def wrapper(request, *args, **kwargs):
            if request.method not in allowed:
                response = JsonResponse({'detail': f'Method "{request.method}" not allowed'}, status=405)
                response['Allow'] = ', '.join(allowed)
                return response

            try:
                user = getattr(request, 'user', None)
                if login_required and not getattr(user, 'is_authenticated', False):
                    raise NotAuthenticated()
                if permission and not user.has_perm(permission):
                    security_logger.security_event(
                        "Permission denied", user, extra_data={'permission': permission, 'path': request.path}
                    )
                    raise Forbidden()
                return view(request, *args, **kwargs)
            except ServiceError as exc:
                return error_response(exc)

        return wrapper

    return decorator


def request_data(request) -> Dict[str, Any]:
    """Return the request payload as a dict, from a JSON body or form fields."""
    content_type = request.content_type or ''
    if content_type.startswith('application/json'):
        if not request.body:
            return {}
        try:
            payload = json.loads(request.body)
        except (TypeError, ValueError):
            raise BadRequest('Request body is not valid JSON')
        if not isinstance(payload, dict):
            raise BadRequest('Request body must be a JSON object')
        return payload
    if request.method == 'POST':
        return {key: request.POST.get(key) for key in request.POST.keys()}
    return {}


def form_errors(form: forms.BaseForm) -> Dict[str, list]:
    return {field: [str(message) for message in messages] for field, messages in form.errors.items()}


def validate(form_class: Type[forms.Form], data: Dict[str, Any], *, partial: bool = False,
             files=None) -> Dict[str, Any]:
    """
    Validate ``data`` with a Django form and return its cleaned data.

    With ``partial=True`` only the fields present in ``data`` are validated and
    returned, so omitted fields stay distinguishable from explicit values.
    """
    form = form_class(data=data, files=files)
    if partial:
        for name in list(form.fields):
            if name not in data:
                del form.fields[name]
    if not form.is_valid():
        raise BadRequest('Validation failed', errors=form_errors(form))
    return form.cleaned_data


def parse_int(value: Optional[str], name: str, *, default: Optional[int] = None,
              minimum: int = 0) -> Optional[int]:
    """Parse an optional integer query parameter."""
    if value in (None, ''):
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise BadRequest(f'"{name}" must be an integer')
    if parsed < minimum:
        raise BadRequest(f'"{name}" must be at least {minimum}')
    return parsed


class StringListField(forms.Field):
    """Form field accepting a JSON array (or comma separated string) of identifiers."""

    default_error_messages = {
        'invalid': 'Enter a list of identifiers.',
    }

    def to_python(self, value):
        if value in self.empty_values:
            return []
        if isinstance(value, str):
            value = [part for part in value.split(',')]
        if not isinstance(value, (list, tuple)):
            raise forms.ValidationError(self.error_messages['invalid'], code='invalid')

        cleaned = []
        for item in value:
            if not isinstance(item, (str, int)) or isinstance(item, bool):
                raise forms.ValidationError(self.error_messages['invalid'], code='invalid')
            item = str(item).strip()
            if item and item not in cleaned:
                cleaned.append(item)
        return cleaned
