"""
Aggregate mutators for campaign and creator funding totals.

Every mutation is a single `UPDATE ... SET col = col + n` via F() expressions,
never a read-modify-write, so concurrent settlements for the same campaign
cannot lose increments. Callers run these inside store_operation() so they
commit or roll back together with the settlement that triggered them.
"""

import logging
from contextlib import contextmanager

from django.conf import settings
from django.db import DatabaseError, connection, transaction
from django.db.models import F

from payments.exceptions import StoreError

logger = logging.getLogger(__name__)


@contextmanager
def store_operation(label):
    """
    One atomic unit of reconciliation work with a bounded statement timeout.
    Database failures surface as StoreError so the gateway retries the delivery.
    """
    try:
        with transaction.atomic():
            _apply_statement_timeout()
            yield
    except DatabaseError as e:
        logger.error(f'Store operation failed ({label}): {e}')
        raise StoreError(f'Store operation failed: {label}') from e


def _apply_statement_timeout():
    if connection.vendor != 'postgresql':
        return
    timeout_ms = int(settings.STORE_TIMEOUT_SECONDS * 1000)
    with connection.cursor() as cursor:
        cursor.execute('SET LOCAL statement_timeout = %s', [timeout_ms])


def increment_campaign_funding(campaign_id, amount, supporters=1):
    """Add a settled amount (and supporter count) to a campaign's totals."""
    from campaigns.models import Campaign

    if not campaign_id:
        return False

    updated = Campaign.objects.filter(pk=campaign_id).update(
        current_amount=F('current_amount') + amount,
        supporters_count=F('supporters_count') + supporters,
    )
    if not updated:
        logger.warning(f'Campaign {campaign_id} not found for funding increment of {amount}')
    return bool(updated)


def increment_creator_stats(username, amount, supporters=1):
    """Add a settled amount (and supporter count) to a creator's lifetime stats."""
    from accounts.models import User

    if not username:
        return False

    updated = User.objects.filter(username=username).update(
        total_raised=F('total_raised') + amount,
        total_supporters=F('total_supporters') + supporters,
    )
    if not updated:
        logger.warning(f'Creator {username} not found for stats increment of {amount}')
    return bool(updated)


def increment_reward_claims(reward_tier_id):
    from campaigns.models import RewardTier

    if not reward_tier_id:
        return False
    return bool(RewardTier.objects.filter(pk=reward_tier_id).update(claimed_count=F('claimed_count') + 1))
