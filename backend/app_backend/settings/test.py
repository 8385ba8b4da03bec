"""Settings for the test suite: in-memory channels, eager Celery, no external HTTP."""

from .settings import *  # noqa: F401,F403
import os

SECRET_KEY = "test-secret-key"
DEBUG = False
ALLOWED_HOSTS = ["*"]

# PostgreSQL when TEST_DB_NAME is set (enables the threaded race test)
if os.getenv("TEST_DB_NAME"):
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': os.getenv("TEST_DB_NAME"),
            'USER': os.getenv("DB_USER", "postgres"),
            'PASSWORD': os.getenv("DB_PASSWORD", ""),
            'HOST': os.getenv("DB_HOST", "localhost"),
            'PORT': os.getenv("DB_PORT", "5432"),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': ':memory:',
        }
    }

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

CHANNEL_LAYERS = {
    "default": {"BACKEND": "channels.layers.InMemoryChannelLayer"}
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = False
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

JOB_DISPATCH = {
    **JOB_DISPATCH,
    'GEO_QUERY_RADIUS_KM': 10,
    'FINAL_DISTANCE_LIMIT_KM': 8,
    'INBOX_ENTRY_TTL_MINUTES': 30,
    'DISTANCE_MATRIX_API_KEY': '',
}

PUSH_NOTIFICATIONS = {
    **PUSH_NOTIFICATIONS,
    'SERVER_KEY': '',
}

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {'null': {'class': 'logging.NullHandler'}},
    'root': {'handlers': ['null'], 'level': 'CRITICAL'},
}
