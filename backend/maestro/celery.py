"""
Celery configuration for the maestro project
"""

import os
from celery import Celery

# Set the default Django settings module for the 'celery' program.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'maestro.settings')

app = Celery('maestro')

# Using a string here means the worker doesn't have to serialize
# the configuration object to child processes.
app.config_from_object('django.conf:settings', namespace='CELERY')

# Load task modules from all registered Django apps.
app.autodiscover_tasks()

app.conf.update(
    task_routes={
        'clients.tasks.*': {'queue': 'workflow'},
    },

    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,

    result_expires=3600,  # 1 hour

    worker_prefetch_multiplier=1,
    task_acks_late=True,

    beat_schedule={
        'mark-overdue-clients': {
            'task': 'clients.tasks.mark_overdue_clients_task',
            'schedule': 3600.0,  # Run every hour
            'options': {'queue': 'workflow'}
        },
    },
)
