"""
Pytest configuration file for setting up the Django environment.

This module initializes Django settings and the application context
before tests run, and provides fixtures shared by the API and task tests.
"""

import os
import sys
from pathlib import Path

import django
import pytest
from django.conf import settings
from rest_framework.test import APIClient

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.append(str(PROJECT_ROOT))

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'odds_keeper.test_settings')


def pytest_configure(config):
    """
    Pytest hook that runs once at the start of the test session.
    It performs the full Django setup.
    """
    if not settings.configured:
        django.setup()


@pytest.fixture
def client():
    """A standard API client; the API needs no authentication."""
    return APIClient()


@pytest.fixture
def eager_celery():
    """Runs Celery tasks in-process and keeps their results for status lookups."""
    from odds_keeper.celery import app

    # Settings are loaded under the CELERY_ namespace, so the prefixed keys
    # take precedence over the plain ones.
    previous = (app.conf.CELERY_TASK_ALWAYS_EAGER, app.conf.CELERY_TASK_STORE_EAGER_RESULT)
    app.conf.CELERY_TASK_ALWAYS_EAGER = True
    app.conf.CELERY_TASK_STORE_EAGER_RESULT = True
    yield app
    app.conf.CELERY_TASK_ALWAYS_EAGER, app.conf.CELERY_TASK_STORE_EAGER_RESULT = previous
