"""
Django settings for the odds_keeper project.

Values that differ between deployments are read from the environment;
the defaults suit local development and the test suite.
"""

import os
from pathlib import Path

from celery_config import CELERY_TASK_QUEUES, CELERY_TASK_ROUTES

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name, default=False):
    return os.environ.get(name, str(default)).lower() in ('1', 'true', 'yes')


SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'django-insecure-odds-keeper-development-key')
DEBUG = _env_bool('DJANGO_DEBUG', True)
ALLOWED_HOSTS = [host for host in os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',') if host]

INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'django.contrib.auth',
    'rest_framework',
    'drf_spectacular',
    'odds_keeper.apps.OddsKeeperConfig',
    'api',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'odds_keeper.urls'
WSGI_APPLICATION = 'odds_keeper.wsgi.application'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {'context_processors': ['django.template.context_processors.request']},
    },
]

# History and favourites live in the client; nothing is persisted server-side.
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'db.sqlite3',
    }
}

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_TZ = True
STATIC_URL = 'static/'
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': ['rest_framework.permissions.AllowAny'],
    'UNAUTHENTICATED_USER': None,
    'DEFAULT_RENDERER_CLASSES': ['rest_framework.renderers.JSONRenderer'],
    'DEFAULT_PARSER_CLASSES': ['rest_framework.parsers.JSONParser'],
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
}

SPECTACULAR_SETTINGS = {
    'TITLE': 'Odds Keeper API',
    'DESCRIPTION': 'Roll dice formulas and estimate their distributions.',
    'VERSION': '1.0.0',
}

DICE_ENGINE = {
    'DEFAULT_ITERATIONS': int(os.environ.get('DICE_DEFAULT_ITERATIONS', 100000)),
    'MAX_ITERATIONS': int(os.environ.get('DICE_MAX_ITERATIONS', 1000000)),
    'MAX_FORMULA_LENGTH': 512,
    'MAX_ENUMERATION_OUTCOMES': int(os.environ.get('DICE_MAX_ENUMERATION_OUTCOMES', 1000000)),
    'MAX_DICE_PER_FORMULA': int(os.environ.get('DICE_MAX_DICE_PER_FORMULA', 200)),
    'MAX_DIE_SIDES': int(os.environ.get('DICE_MAX_DIE_SIDES', 1000)),
}

CELERY_BROKER_URL = os.environ.get('CELERY_BROKER_URL', 'redis://localhost:6379/0')
CELERY_RESULT_BACKEND = os.environ.get('CELERY_RESULT_BACKEND', 'redis://localhost:6379/1')
CELERY_TASK_ALWAYS_EAGER = _env_bool('CELERY_TASK_ALWAYS_EAGER', False)
CELERY_TASK_STORE_EAGER_RESULT = True
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_DEFAULT_QUEUE = 'default'

LOG_LEVEL = os.environ.get('DJANGO_LOG_LEVEL', 'INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '[{asctime}] [{levelname}] [{name}] - {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'api': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
        'celery': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
    },
}
