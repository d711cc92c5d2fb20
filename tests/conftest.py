import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from tests.helpers import sign_webhook


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def creator(django_user_model):
    return django_user_model.objects.create_user(
        username='chaiwala', email='chaiwala@example.com', password='pass1234', display_name='Chai Wala',
    )


@pytest.fixture
def supporter(django_user_model):
    return django_user_model.objects.create_user(
        username='supporter', email='supporter@example.com', password='pass1234',
    )


@pytest.fixture
def campaign(creator):
    from campaigns.models import Campaign
    return Campaign.objects.create(creator=creator, title='Morning Chai Fund', goal_amount=1_000_000)


@pytest.fixture
def reward_tier(campaign):
    from campaigns.models import RewardTier
    return RewardTier.objects.create(campaign=campaign, title='Sticker', minimum_amount=10_000)


@pytest.fixture
def make_payment(campaign, creator):
    from payments.models import Payment

    def _make(order_id='order_A', amount=50_000, **kwargs):
        fields = {
            'supporter_name': 'Asha',
            'supporter_email': 'asha@example.com',
            'recipient_username': creator.username,
            'campaign': campaign,
            'order_id': order_id,
            'amount': amount,
            'currency': 'INR',
            'status': 'pending',
            'settled': False,
        }
        fields.update(kwargs)
        return Payment.objects.create(**fields)
    return _make


@pytest.fixture
def pending_payment(make_payment):
    return make_payment()


@pytest.fixture
def make_subscription(campaign, creator, supporter):
    from payments.models import Subscription

    def _make(gateway_subscription_id='sub_1', status='pending', amount=20_000, frequency='monthly', **kwargs):
        return Subscription.objects.create(
            subscriber=supporter,
            creator=creator,
            campaign=campaign,
            gateway_subscription_id=gateway_subscription_id,
            gateway_plan_id='plan_1',
            amount=amount,
            frequency=frequency,
            status=status,
            **kwargs,
        )
    return _make


@pytest.fixture
def post_webhook(client):
    """POST a signed JSON webhook to the root receiver."""
    def _post(body, signature=None, event_id=None, path='/webhook'):
        headers = {'HTTP_X_RAZORPAY_SIGNATURE': sign_webhook(body) if signature is None else signature}
        if event_id:
            headers['HTTP_X_RAZORPAY_EVENT_ID'] = event_id
        return client.post(path, data=body, content_type='application/json', **headers)
    return _post
