from django.conf import settings
from django.db import models


class Campaign(models.Model):
    """
    Fundraising campaign owned by a creator.
    current_amount and supporters_count are funding aggregates: payment
    reconciliation only increments them, never rewrites them.
    """
    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('active', 'Active'),
        ('paused', 'Paused'),
        ('completed', 'Completed'),
    ]

    creator = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='campaigns')
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True, default='')
    goal_amount = models.BigIntegerField(default=0, help_text='Target in paise')
    current_amount = models.BigIntegerField(default=0, help_text='Raised so far, in paise')
    supporters_count = models.PositiveIntegerField(default=0)
    status = models.CharField(max_length=15, choices=STATUS_CHOICES, default='active', db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.title


class RewardTier(models.Model):
    campaign = models.ForeignKey(Campaign, on_delete=models.CASCADE, related_name='rewards')
    title = models.CharField(max_length=100)
    description = models.TextField(blank=True, default='')
    minimum_amount = models.BigIntegerField(default=0, help_text='Minimum support in paise')
    claimed_count = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['minimum_amount']

    def __str__(self):
        return f'{self.title} ({self.campaign})'
