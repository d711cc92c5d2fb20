"""
Get Me a Chai Celery Configuration
Notification delivery runs on its own queue so a slow sink never backs up
reconciliation work.
"""

import os
from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('chai')
app.config_from_object('django.conf:settings', namespace='CELERY')

# Queue definitions
app.conf.task_default_queue = 'default'

app.conf.task_routes = {
    'notifications.*': {'queue': 'notifications'},
}

app.conf.task_queues = {
    'default': {
        'exchange': 'default',
        'routing_key': 'default',
    },
    'notifications': {
        'exchange': 'notifications',
        'routing_key': 'notifications',
    },
}

app.autodiscover_tasks()
