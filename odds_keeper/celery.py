"""
Celery application for Odds Keeper.

Workers pick up statistics runs queued by the API. Start one that listens on
the statistics queue with:

    celery -A odds_keeper worker -Q default,stats_queue
"""

import os

from celery import Celery
from celery.signals import setup_logging

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'odds_keeper.settings')

app = Celery('odds_keeper')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks(['api'])


@setup_logging.connect
def configure_worker_logging(*args, **kwargs):
    """Workers log through the same LOGGING dictConfig as the web process."""
    from logging.config import dictConfig
    from django.conf import settings
    dictConfig(settings.LOGGING)


if __name__ == '__main__':
    app.start()
