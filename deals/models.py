"""
Deal model for the KorX platform.

A deal records a sale or a rental of a listing. Seller and buyer names and
phones are copied onto the deal so the record stays readable even if the
Person rows are edited later.
"""

from django.conf import settings
from django.db import models

DEAL_TYPE_CHOICES = [
    ('SALE', 'Sale'),
    ('RENT', 'Rent'),
]

DEAL_STATUS_CHOICES = [
    ('active', 'Active'),
    ('completed', 'Completed'),
    ('canceled', 'Canceled'),
]


class Deal(models.Model):
    property = models.ForeignKey(
        'properties.Property',
        on_delete=models.PROTECT,
        related_name='deals'
    )
    agent = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='deals'
    )
    seller = models.ForeignKey(
        'people.Person',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='deals_as_seller'
    )
    buyer = models.ForeignKey(
        'people.Person',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='deals_as_buyer'
    )

    deal_type = models.CharField(max_length=10, choices=DEAL_TYPE_CHOICES)
    status = models.CharField(max_length=20, choices=DEAL_STATUS_CHOICES, default='active')

    price = models.DecimalField(max_digits=18, decimal_places=2, blank=True, null=True)
    start_date = models.DateField(blank=True, null=True)
    end_date = models.DateField(blank=True, null=True)
    notes = models.TextField(blank=True, null=True)

    # Snapshots taken when the deal is recorded
    seller_name = models.CharField(max_length=255, blank=True, null=True)
    seller_phone = models.CharField(max_length=20, blank=True, null=True)
    buyer_name = models.CharField(max_length=255, blank=True, null=True)
    buyer_phone = models.CharField(max_length=20, blank=True, null=True)

    deal_completed_at = models.DateTimeField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'deals'
        ordering = ['-created_at', '-id']

        indexes = [
            models.Index(fields=['status'], name='deals_status_idx'),
            models.Index(fields=['created_at'], name='deals_created_idx'),
        ]

    def __str__(self):
        return f"{self.deal_type} deal #{self.pk} on property {self.property_id}"
