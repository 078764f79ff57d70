"""
Centralized logging utilities for the back-office API.
Every app gets a named AppLogger so log lines share one format and context shape.
"""

import logging
from typing import Optional, Dict, Any

from core.logging_formatters import mask_secrets


class AppLogger:
    """Thin wrapper over a named logger plus the shared security and alerts loggers."""

    def __init__(self, logger_name: str):
        """
        Initialize the app logger.

        Args:
            logger_name: Name of the logger (e.g., 'vault', 'noc', 'uploads')
        """
        self.logger = logging.getLogger(logger_name)
        self.security_logger = logging.getLogger('django.security')
        self.alerts_logger = logging.getLogger('alerts')

    def debug(self, message: str, user: Optional[Any] = None, extra_data: Optional[Dict[str, Any]] = None):
        self._log('debug', message, user, extra_data)

    def info(self, message: str, user: Optional[Any] = None, extra_data: Optional[Dict[str, Any]] = None):
        self._log('info', message, user, extra_data)

    def warning(self, message: str, user: Optional[Any] = None, extra_data: Optional[Dict[str, Any]] = None):
        self._log('warning', message, user, extra_data)

    def error(self, message: str, user: Optional[Any] = None, extra_data: Optional[Dict[str, Any]] = None,
              exc_info: bool = False):
        self._log('error', message, user, extra_data, exc_info=exc_info)

    def critical(self, message: str, user: Optional[Any] = None, extra_data: Optional[Dict[str, Any]] = None):
        """Log a critical message on the app logger and mirror it to the alerts logger."""
        self._log('critical', message, user, extra_data)
        formatted_message, context = self._prepare_message(f"CRITICAL: {message}", user, extra_data)
        self.alerts_logger.error(formatted_message, **context)

    def security_event(self, message: str, user: Optional[Any] = None, extra_data: Optional[Dict[str, Any]] = None):
        """Log a security-relevant event (denied access, failed login) on the security logger."""
        formatted_message, context = self._prepare_message(f"SECURITY EVENT: {message}", user, extra_data)
        self.security_logger.warning(formatted_message, **context)

    def user_activity(self, action: str, user: Any, details: Optional[str] = None):
        """Log an action performed by an authenticated actor."""
        message = f"User {_user_label(user)} performed action: {action}"
        if details:
            message += f" - {details}"
        self.info(message, user)

    def encryption_event(self, event: str, user: Optional[Any] = None, success: bool = True):
        status = "SUCCESS" if success else "FAILURE"
        message = f"ENCRYPTION {status}: {event}"
        if success:
            self.info(message, user)
        else:
            self.error(message, user)

    def upstream_failure(self, service: str, message: str, extra_data: Optional[Dict[str, Any]] = None,
                         exc_info: bool = True):
        """Log a failed call to an external collaborator (S3, remote image host, renderer)."""
        data = {'service': service}
        if extra_data:
            data.update(extra_data)
        self.error(f"UPSTREAM FAILURE: {message}", extra_data=data, exc_info=exc_info)

    def _log(self, level: str, message: str, user: Optional[Any] = None,
             extra_data: Optional[Dict[str, Any]] = None, exc_info: bool = False):
        formatted_message, context = self._prepare_message(message, user, extra_data)
        getattr(self.logger, level)(formatted_message, exc_info=exc_info, **context)

    def _prepare_message(self, message: str, user: Optional[Any], extra_data: Optional[Dict[str, Any]]):
        """Return the formatted message and the keyword arguments for the logging call."""
        formatted_message = message
        if user is not None:
            formatted_message = f"[User: {_user_label(user)}] {message}"
        if extra_data:
            extra_data = mask_secrets(extra_data)
            extra_info = ", ".join(f"{key}: {value}" for key, value in extra_data.items())
            formatted_message += f" | Extra: {extra_info}"

        context: Dict[str, Any] = {}
        if user is not None:
            context['user_email'] = getattr(user, 'email', None)
            user_pk = getattr(user, 'pk', None)
            if user_pk is not None:
                context['user_pk'] = str(user_pk)
        if extra_data:
            context.update(extra_data)
        if context:
            return formatted_message, {'extra': {'context': context}}
        return formatted_message, {}


def _user_label(user: Any) -> str:
    return getattr(user, 'email', None) or str(getattr(user, 'pk', 'unknown'))


def get_logger(name: str) -> AppLogger:
    return AppLogger(name)


def get_core_logger():
    return AppLogger('core')


def get_accounts_logger():
    return AppLogger('accounts')


def get_vault_logger():
    return AppLogger('vault')


def get_noc_logger():
    return AppLogger('noc')


def get_uploads_logger():
    return AppLogger('uploads')


def get_activity_logger():
    return AppLogger('activity')


def get_security_logger():
    """Get a logger specifically for security events."""
    return AppLogger('django.security')
