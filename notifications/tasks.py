"""
Celery tasks for the notification sink.
"""

import logging
from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(name='notifications.tasks.task_create_notification', ignore_result=True)
def task_create_notification(user_id, notification_type, title, message, link=''):
    """Persist a notification for a creator."""
    from notifications.models import Notification

    notification = Notification.objects.create(
        user_id=user_id,
        type=notification_type,
        title=title,
        message=message,
        link=link,
    )
    logger.info(f'Notification {notification.id} created: {notification_type} -> user {user_id}')
    return notification.id
