"""
Best-effort notification sink used by payment reconciliation.
"""

import logging

logger = logging.getLogger(__name__)


def notify(user_id, notification_type, title, message, link=''):
    """
    Queue a notification for a user. Fire-and-forget: any failure is logged
    and swallowed so it never fails the caller's state transition.
    """
    from notifications.tasks import task_create_notification

    try:
        task_create_notification.delay(user_id, notification_type, title, message, link)
        return True
    except Exception as e:
        logger.error(f'Notification dispatch failed for user {user_id} ({notification_type}): {e}')
        return False
