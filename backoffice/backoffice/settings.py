"""
Django settings for the back-office API.

Every deployment-specific value is read from the environment; the defaults are
only suitable for local development and the test suite.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def env_list(name, default=''):
    return [item.strip() for item in os.environ.get(name, default).split(',') if item.strip()]


SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'insecure-development-key-change-me')

DEBUG = env_bool('DJANGO_DEBUG', False)

ALLOWED_HOSTS = env_list('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver')

CSRF_TRUSTED_ORIGINS = env_list('DJANGO_CSRF_TRUSTED_ORIGINS')


INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'django_prometheus',
    'core',
    'accounts',
    'vault',
    'noc',
    'uploads',
    'watermarks',
    'activity',
    'properties',
]

MIDDLEWARE = [
    'django_prometheus.middleware.PrometheusBeforeMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'core.middleware.LoggingMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
    'django_prometheus.middleware.PrometheusAfterMiddleware',
]

ROOT_URLCONF = 'backoffice.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'backoffice.wsgi.application'


# Database
if os.environ.get('POSTGRES_DB'):
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': os.environ['POSTGRES_DB'],
            'USER': os.environ.get('POSTGRES_USER', ''),
            'PASSWORD': os.environ.get('POSTGRES_PASSWORD', ''),
            'HOST': os.environ.get('POSTGRES_HOST', 'localhost'),
            'PORT': os.environ.get('POSTGRES_PORT', '5432'),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': os.environ.get('SQLITE_PATH', str(BASE_DIR / 'db.sqlite3')),
        }
    }

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

AUTH_USER_MODEL = 'accounts.CustomUser'

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.environ.get('DJANGO_TIME_ZONE', 'Asia/Dubai')
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

# Multipart uploads (signatures, watermark images)
DATA_UPLOAD_MAX_MEMORY_SIZE = int(os.environ.get('DATA_UPLOAD_MAX_MEMORY_SIZE', 10 * 1024 * 1024))
FILE_UPLOAD_MAX_MEMORY_SIZE = DATA_UPLOAD_MAX_MEMORY_SIZE

SESSION_COOKIE_HTTPONLY = True
SESSION_COOKIE_SECURE = env_bool('DJANGO_SECURE_COOKIES', not DEBUG)
CSRF_COOKIE_SECURE = SESSION_COOKIE_SECURE


# Vault field encryption: base64 encoded 32-byte key. Derived from SECRET_KEY when unset.
VAULT_FIELD_KEY = os.environ.get('VAULT_FIELD_KEY')

# Blob storage (S3). Uploads are skipped when any of these is missing.
AWS_REGION = os.environ.get('AWS_REGION', '')
AWS_ACCESS_KEY_ID = os.environ.get('AWS_ACCESS_KEY_ID', '')
AWS_SECRET_ACCESS_KEY = os.environ.get('AWS_SECRET_ACCESS_KEY', '')
AWS_BUCKET_NAME = os.environ.get('AWS_BUCKET_NAME', '')

# Seconds to wait on remote image fetches (signatures, thumbnails)
REMOTE_FETCH_TIMEOUT = float(os.environ.get('REMOTE_FETCH_TIMEOUT', '10'))

# NOC rendering
NOC_LOGO_PATH = os.environ.get('NOC_LOGO_PATH', str(BASE_DIR / 'noc' / 'assets' / 'logo.png'))
NOC_COMPANY_NAME = os.environ.get('NOC_COMPANY_NAME', 'Mateluxy Real Estate Broker L.L.C')


# Logging
LOG_DIR = Path(os.environ.get('LOG_DIR', BASE_DIR / 'logs'))
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
LOG_TO_FILE = env_bool('LOG_TO_FILE', False)

_log_handlers = ['console']
if LOG_TO_FILE:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    _log_handlers.append('file')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'filters': {
        'request_context': {
            '()': 'core.middleware.RequestContextFilter',
        },
    },
    'formatters': {
        'json': {
            '()': 'core.logging_formatters.StructuredJSONFormatter',
        },
        'verbose': {
            'format': '{asctime} {levelname} {name} [{request_id}] {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'filters': ['request_context'],
            'formatter': 'json' if not DEBUG else 'verbose',
        },
        'file': {
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': str(LOG_DIR / 'backoffice.log'),
            'maxBytes': 10 * 1024 * 1024,
            'backupCount': 5,
            'filters': ['request_context'],
            'formatter': 'json',
            'delay': True,
        },
    },
    'root': {
        'handlers': _log_handlers,
        'level': 'WARNING',
    },
    'loggers': {
        'django': {'handlers': _log_handlers, 'level': 'INFO', 'propagate': False},
        'django.security': {'handlers': _log_handlers, 'level': 'INFO', 'propagate': False},
        'alerts': {'handlers': _log_handlers, 'level': 'ERROR', 'propagate': False},
        'core': {'handlers': _log_handlers, 'level': LOG_LEVEL, 'propagate': False},
        'accounts': {'handlers': _log_handlers, 'level': LOG_LEVEL, 'propagate': False},
        'vault': {'handlers': _log_handlers, 'level': LOG_LEVEL, 'propagate': False},
        'noc': {'handlers': _log_handlers, 'level': LOG_LEVEL, 'propagate': False},
        'uploads': {'handlers': _log_handlers, 'level': LOG_LEVEL, 'propagate': False},
        'watermarks': {'handlers': _log_handlers, 'level': LOG_LEVEL, 'propagate': False},
        'activity': {'handlers': _log_handlers, 'level': LOG_LEVEL, 'propagate': False},
        'properties': {'handlers': _log_handlers, 'level': LOG_LEVEL, 'propagate': False},
    },
}
