from datetime import datetime, timezone as dt_timezone

import pytest

from notifications.models import Notification
from payments.events import SubscriptionCharged
from payments.models import Payment, Subscription
from payments.services import Outcome, apply_event, record_subscription_charge, transition_subscription

pytestmark = pytest.mark.django_db


class TestTransitions:
    def test_activate_pending(self, make_subscription, creator):
        make_subscription()
        started = datetime(2026, 1, 31, 9, 0, tzinfo=dt_timezone.utc)

        outcome, subscription = transition_subscription('sub_1', 'activate', started_at=started)

        assert outcome == Outcome.APPLIED
        subscription.refresh_from_db()
        assert subscription.status == 'active'
        assert subscription.start_date == started
        assert Notification.objects.get(user=creator).type == 'new_subscription'

    def test_activate_defaults_start_to_now(self, make_subscription):
        make_subscription()
        _, subscription = transition_subscription('sub_1', 'activate')
        assert subscription.start_date is not None

    def test_pause_then_resume(self, make_subscription):
        make_subscription(status='active')
        assert transition_subscription('sub_1', 'pause')[0] == Outcome.APPLIED
        assert Subscription.objects.get(gateway_subscription_id='sub_1').status == 'paused'
        assert transition_subscription('sub_1', 'resume')[0] == Outcome.APPLIED
        assert Subscription.objects.get(gateway_subscription_id='sub_1').status == 'active'

    def test_cancel_sets_end_date_and_notifies(self, make_subscription, creator):
        make_subscription(status='active')
        outcome, subscription = transition_subscription('sub_1', 'cancel')

        assert outcome == Outcome.APPLIED
        assert subscription.status == 'cancelled'
        assert subscription.end_date is not None
        assert Notification.objects.get(user=creator).type == 'subscription_cancelled'

    def test_complete_moves_to_expired(self, make_subscription):
        make_subscription(status='active')
        _, subscription = transition_subscription('sub_1', 'complete')
        assert subscription.status == 'expired'
        assert subscription.end_date is not None

    @pytest.mark.parametrize('status,action', [
        ('cancelled', 'activate'),
        ('cancelled', 'resume'),
        ('expired', 'cancel'),
        ('pending', 'pause'),
        ('active', 'resume'),
    ])
    def test_disallowed_transition_is_skipped(self, make_subscription, status, action):
        make_subscription(status=status)
        outcome, subscription = transition_subscription('sub_1', action)
        assert outcome == Outcome.SKIPPED
        assert subscription.status == status

    def test_repeated_cancel_notifies_once(self, make_subscription, creator):
        make_subscription(status='active')
        transition_subscription('sub_1', 'cancel')
        transition_subscription('sub_1', 'cancel')
        assert Notification.objects.filter(user=creator).count() == 1

    def test_unknown_subscription(self, db):
        assert transition_subscription('sub_missing', 'cancel') == (Outcome.NOT_FOUND, None)


class TestRecordCharge:
    def test_records_settled_payment_and_credits_amount(self, make_subscription, campaign, creator, supporter):
        subscription = make_subscription(status='active')

        outcome, payment = record_subscription_charge('sub_1', 'pay_9')

        assert outcome == Outcome.SETTLED
        assert payment.order_id == 'pay_9'
        assert payment.payment_id == 'pay_9'
        assert payment.kind == 'subscription'
        assert payment.subscription_id == subscription.id
        assert payment.supporter_id == supporter.id
        assert payment.settled is True
        assert payment.status == 'success'
        assert payment.amount == 20000

        campaign.refresh_from_db()
        creator.refresh_from_db()
        assert campaign.current_amount == 20000
        assert campaign.supporters_count == 0
        assert creator.total_raised == 20000
        assert creator.total_supporters == 0

    def test_redelivered_charge_is_a_no_op(self, make_subscription, campaign):
        make_subscription(status='active')
        record_subscription_charge('sub_1', 'pay_9')
        outcome, _ = record_subscription_charge('sub_1', 'pay_9')

        assert outcome == Outcome.ALREADY_PROCESSED
        assert Payment.objects.filter(order_id='pay_9').count() == 1
        campaign.refresh_from_db()
        assert campaign.current_amount == 20000

    def test_each_charge_counts(self, make_subscription, campaign):
        make_subscription(status='active')
        record_subscription_charge('sub_1', 'pay_1')
        record_subscription_charge('sub_1', 'pay_2')
        campaign.refresh_from_db()
        assert campaign.current_amount == 40000

    def test_advances_next_billing_date_one_month(self, make_subscription, mocker):
        make_subscription(status='active')
        now = datetime(2026, 1, 31, 12, 0, tzinfo=dt_timezone.utc)
        mocker.patch('payments.services.timezone.now', return_value=now)

        record_subscription_charge('sub_1', 'pay_9')

        subscription = Subscription.objects.get(gateway_subscription_id='sub_1')
        assert subscription.next_billing_date == datetime(2026, 2, 28, 12, 0, tzinfo=dt_timezone.utc)

    def test_yearly_frequency(self, make_subscription, mocker):
        make_subscription(status='active', frequency='yearly')
        now = datetime(2026, 3, 15, 8, 30, tzinfo=dt_timezone.utc)
        mocker.patch('payments.services.timezone.now', return_value=now)

        record_subscription_charge('sub_1', 'pay_9')

        subscription = Subscription.objects.get(gateway_subscription_id='sub_1')
        assert subscription.next_billing_date == datetime(2027, 3, 15, 8, 30, tzinfo=dt_timezone.utc)

    def test_unknown_subscription(self, db):
        assert record_subscription_charge('sub_missing', 'pay_9') == (Outcome.NOT_FOUND, None)
        assert not Payment.objects.exists()

    def test_amount_mismatch_uses_subscription_amount(self, make_subscription):
        make_subscription(status='active')
        _, payment = record_subscription_charge('sub_1', 'pay_9', charged_amount=99999)
        assert payment.amount == 20000

    def test_dispatch_from_event(self, make_subscription):
        make_subscription(status='active')
        event = SubscriptionCharged(subscription_id='sub_1', payment_id='pay_9', amount=20000)
        assert apply_event(event) == Outcome.SETTLED
