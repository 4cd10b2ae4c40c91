"""
People models for the KorX platform.

A Person is anyone who takes part in a property record: owners, sellers,
buyers and tenants. A person may optionally be linked to a platform User,
which is how the profile screen stores extended details.
"""

import logging

from django.conf import settings
from django.db import models

logger = logging.getLogger(__name__)


class Person(models.Model):
    """
    Property owner or deal party.

    ``national_id`` is unique when present; blank values are stored as NULL
    so any number of people can omit it.
    """

    full_name = models.CharField(max_length=255)
    phone = models.CharField(max_length=20, blank=True, null=True)
    email = models.EmailField(max_length=255, blank=True, null=True)
    national_id = models.CharField(max_length=50, unique=True, blank=True, null=True)
    id_card_path = models.CharField(max_length=255, blank=True, null=True)
    address = models.TextField(blank=True, null=True)

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='person'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'persons'
        ordering = ['-created_at', '-id']
        verbose_name_plural = 'People'

        indexes = [
            models.Index(fields=['phone'], name='persons_phone_idx'),
            models.Index(fields=['full_name'], name='persons_full_name_idx'),
        ]

    def __str__(self):
        return self.full_name

    def save(self, *args, **kwargs):
        # Empty national ids would collide on the unique index
        if self.national_id is not None:
            self.national_id = self.national_id.strip() or None
        if self.phone is not None:
            self.phone = self.phone.strip() or None
        super().save(*args, **kwargs)
