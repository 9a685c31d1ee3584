CELERY_TASK_ROUTES = {
    'api.tasks.compute_distribution_task': {
        'queue': 'stats_queue',
    },
}

CELERY_TASK_QUEUES = {
    'default': {
        'exchange': 'default',
        'routing_key': 'default',
    },
    'stats_queue': {
        'exchange': 'stats_queue',
        'routing_key': 'stats_queue',
    },
}
