import uuid

from django.conf import settings
from django.db import models


class Payment(models.Model):
    """
    One funding transaction: a one-time checkout or a single subscription charge.
    Created pending at checkout; reconciliation owns status and settlement.
    `settled` flips False -> True at most once per order_id.
    """
    KIND_CHOICES = [
        ('one-time', 'One-time'),
        ('subscription', 'Subscription'),
    ]

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('success', 'Success'),
        ('failed', 'Failed'),
        ('refunded', 'Refunded'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Supporter
    supporter_name = models.CharField(max_length=200)
    supporter_email = models.EmailField(blank=True, default='')
    supporter = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='payments_made'
    )
    message = models.CharField(max_length=500, blank=True, default='')
    anonymous = models.BooleanField(default=False)

    # Recipient
    recipient_username = models.CharField(max_length=150, db_index=True)
    campaign = models.ForeignKey(
        'campaigns.Campaign', on_delete=models.SET_NULL, null=True, blank=True, related_name='payments'
    )
    reward_tier = models.ForeignKey(
        'campaigns.RewardTier', on_delete=models.SET_NULL, null=True, blank=True, related_name='payments'
    )

    # Gateway
    order_id = models.CharField(max_length=100, unique=True, help_text='Razorpay order id (payment id for subscription charges)')
    payment_id = models.CharField(max_length=100, blank=True, default='', db_index=True)
    amount = models.BigIntegerField(help_text='Amount in paise')
    currency = models.CharField(max_length=5, default='INR')
    kind = models.CharField(max_length=15, choices=KIND_CHOICES, default='one-time')
    subscription = models.ForeignKey(
        'payments.Subscription', on_delete=models.SET_NULL, null=True, blank=True, related_name='charges'
    )

    status = models.CharField(max_length=15, choices=STATUS_CHOICES, default='pending', db_index=True)
    settled = models.BooleanField(default=False)
    failure_reason = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    settled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['recipient_username', 'settled']),
            models.Index(fields=['campaign', 'settled']),
        ]

    def __str__(self):
        return f'Payment {self.order_id} {self.amount} {self.currency} - {self.status}'

    @property
    def display_name(self):
        return 'Someone' if self.anonymous else self.supporter_name


class Subscription(models.Model):
    """Recurring support agreement mirrored from a Razorpay subscription."""
    FREQUENCY_CHOICES = [
        ('monthly', 'Monthly'),
        ('quarterly', 'Quarterly'),
        ('yearly', 'Yearly'),
    ]

    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('active', 'Active'),
        ('paused', 'Paused'),
        ('cancelled', 'Cancelled'),
        ('expired', 'Expired'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    subscriber = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='subscriptions')
    creator = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='subscribers')
    campaign = models.ForeignKey(
        'campaigns.Campaign', on_delete=models.SET_NULL, null=True, blank=True, related_name='subscriptions'
    )

    gateway_subscription_id = models.CharField(max_length=100, unique=True)
    gateway_plan_id = models.CharField(max_length=100, blank=True, default='')
    amount = models.BigIntegerField(help_text='Amount per charge in paise')
    frequency = models.CharField(max_length=15, choices=FREQUENCY_CHOICES, default='monthly')
    status = models.CharField(max_length=15, choices=STATUS_CHOICES, default='pending', db_index=True)

    start_date = models.DateTimeField(null=True, blank=True)
    end_date = models.DateTimeField(null=True, blank=True)
    next_billing_date = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['subscriber', 'status']),
        ]

    def __str__(self):
        return f'{self.frequency} {self.amount} -> {self.creator} ({self.status})'


class WebhookEvent(models.Model):
    """Log of gateway webhook deliveries, keyed by Razorpay's event id."""
    STATUS_CHOICES = [
        ('received', 'Received'),
        ('processed', 'Processed'),
        ('failed', 'Failed'),
    ]

    event_id = models.CharField(max_length=100, unique=True)
    event = models.CharField(max_length=60, db_index=True)
    payload = models.JSONField(default=dict, blank=True)
    status = models.CharField(max_length=15, choices=STATUS_CHOICES, default='received', db_index=True)
    outcome = models.CharField(max_length=30, blank=True, default='')
    error_message = models.TextField(blank=True, default='')
    attempts = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    processed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f'{self.event} {self.event_id} - {self.status}'
