from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """
    Creator or supporter account.
    total_raised / total_supporters are denormalized creator stats, only ever
    moved by atomic increments from payment reconciliation.
    """
    display_name = models.CharField(max_length=100, blank=True, default='')
    bio = models.TextField(blank=True, default='')
    total_raised = models.BigIntegerField(default=0, help_text='Lifetime funds received, in paise')
    total_supporters = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name = 'User'
        verbose_name_plural = 'Users'

    def __str__(self):
        return self.display_name or self.username
