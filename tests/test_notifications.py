import pytest

from notifications.models import Notification
from notifications.services import notify
from notifications.tasks import task_create_notification

pytestmark = pytest.mark.django_db


def test_task_persists_notification(creator):
    notification_id = task_create_notification(creator.id, 'system', 'Hello', 'Welcome aboard', '/dashboard')

    notification = Notification.objects.get(pk=notification_id)
    assert notification.user_id == creator.id
    assert notification.link == '/dashboard'
    assert notification.read is False


def test_notify_runs_task(creator):
    assert notify(creator.id, 'new_support', 'New Support Received!', 'Asha supported you') is True
    assert Notification.objects.filter(user=creator, type='new_support').exists()


def test_notify_swallows_dispatch_errors(creator, mocker):
    task = mocker.patch('notifications.tasks.task_create_notification')
    task.delay.side_effect = ConnectionError('broker unreachable')

    assert notify(creator.id, 'system', 'Hi', 'msg') is False
    assert not Notification.objects.exists()
