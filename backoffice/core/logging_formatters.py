"""JSON log output for the back office, one object per line."""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

# Set on the record by RequestContextFilter; "-" means outside a request.
REQUEST_ATTRIBUTES = ('request_id', 'user_id', 'ip', 'http_method', 'path')

SECRET_MARKERS = ('password', 'secret', 'token', 'authorization')
MASK = '***'


def mask_secrets(data: Dict[str, Any]) -> Dict[str, Any]:
    """Copy ``data`` with the values of secret-looking keys replaced by a mask."""
    masked: Dict[str, Any] = {}
    for key, value in data.items():
        if any(marker in str(key).lower() for marker in SECRET_MARKERS):
            masked[key] = MASK
        elif isinstance(value, dict):
            masked[key] = mask_secrets(value)
        else:
            masked[key] = value
    return masked


class StructuredJSONFormatter(logging.Formatter):
    """
    Render a record as ``{"timestamp", "level", "logger", "message", ...}``.

    Request attributes go under ``"request"`` and AppLogger context under
    ``"context"``, so neither can shadow the fixed keys.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        request = {}
        for attr in REQUEST_ATTRIBUTES:
            value = getattr(record, attr, None)
            if value not in (None, '', '-'):
                request[attr] = value
        if request:
            entry['request'] = request

        context = getattr(record, 'context', None)
        if isinstance(context, dict) and context:
            entry['context'] = mask_secrets(context)

        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)
