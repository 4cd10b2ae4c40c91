"""
Properties models for the KorX platform.

This module implements the core real-estate entities:
- Property: one table for three kinds of record
    * standalone listings (category "normal")
    * containers (towers, markets, sharaks) that group units
    * child units, which are listings whose parent is a container
- PropertyHistory: ownership changes recorded when deals close
- NearbyCache: cached Google Places results per property or container

The hierarchy rules themselves (allowed unit types, inherited fields,
container shape) live in services.business_logic so they stay testable
without a database.
"""

import logging
import time

from django.conf import settings
from django.db import models
from django.db.models import Count, Q
from django.utils import timezone

from services.business_logic import format_property_code, name_initial, next_code_sequence

logger = logging.getLogger(__name__)


# =============================================================================
# CHOICES
# =============================================================================

STATUS_CHOICES = [
    ('draft', 'Draft'),
    ('active', 'Active'),
    ('inactive', 'Inactive'),
    ('under_deal', 'Under Deal'),
]

CATEGORY_CHOICES = [
    ('tower', 'Tower'),
    ('market', 'Market'),
    ('sharak', 'Sharak'),
    ('apartment', 'Apartment'),
    ('normal', 'Normal'),
]

RECORD_KIND_CHOICES = [
    ('container', 'Container'),
    ('listing', 'Listing'),
]

PROPERTY_TYPE_CHOICES = [
    ('house', 'House'),
    ('shop', 'Shop'),
    ('office', 'Office'),
    ('plot', 'Plot'),
    ('land', 'Land'),
    ('apartment', 'Apartment'),
    ('tower', 'Tower'),
    ('market', 'Market'),
    ('sharak', 'Sharak'),
]

PURPOSE_CHOICES = [
    ('sale', 'Sale'),
    ('rent', 'Rent'),
]

CHANGE_TYPE_CHOICES = [
    ('CREATED', 'Created'),
    ('TRANSFERRED_SALE', 'Transferred (Sale)'),
    ('RENTED', 'Rented'),
]

ENTITY_TYPE_CHOICES = [
    ('PARENT_CONTAINER', 'Parent Container'),
    ('PROPERTY', 'Property'),
]

PROPERTY_CODE_ATTEMPTS = 10


def default_nearby_types():
    return ['mosque', 'school', 'market', 'square', 'hospital']


# =============================================================================
# PROPERTY QUERYSET
# =============================================================================

class PropertyQuerySet(models.QuerySet):
    """Reusable filters for the property hierarchy."""

    def listings(self):
        return self.filter(record_kind='listing')

    def containers(self):
        return self.filter(record_kind='container')

    def active(self):
        return self.filter(status='active')

    def available(self):
        return self.filter(Q(is_available_for_sale=True) | Q(is_available_for_rent=True))

    def publicly_listed(self):
        """Active and offered for sale or rent."""
        return self.active().available()

    def managed_by(self, user):
        """Records where ``user`` is the agent or the creator."""
        return self.filter(Q(agent=user) | Q(created_by=user))

    def with_unit_counts(self):
        return self.annotate(
            total_children=Count('children', distinct=True),
            available_children=Count(
                'children',
                filter=Q(children__status='active'),
                distinct=True
            ),
        )

    def with_offer_counts(self):
        """Unit counts plus how many units are offered for sale / rent."""
        return self.with_unit_counts().annotate(
            for_sale_children=Count(
                'children',
                filter=Q(children__is_available_for_sale=True),
                distinct=True
            ),
            for_rent_children=Count(
                'children',
                filter=Q(children__is_available_for_rent=True),
                distinct=True
            ),
        )

    def with_related(self):
        return self.select_related(
            'owner', 'agent', 'created_by',
            'province', 'district', 'area', 'parent'
        )

    def latest_property_code(self):
        return (
            self.filter(property_code__contains='-KorX-')
            .order_by('-id')
            .values_list('property_code', flat=True)
            .first()
        )


# =============================================================================
# PROPERTY MODEL
# =============================================================================

class Property(models.Model):
    """
    A listing, a container, or a unit inside a container.

    Record kinds:
    - container: record_kind=container, is_parent=True, never for sale or rent itself
    - standalone listing: category=normal, record_kind=listing, no parent
    - child unit: record_kind=listing with ``parent`` pointing at a container
    """

    # =============================================================================
    # OWNERSHIP
    # =============================================================================

    owner = models.ForeignKey(
        'people.Person',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='owned_properties'
    )
    owner_name = models.CharField(max_length=255, blank=True, null=True)
    property_code = models.CharField(max_length=50, unique=True, blank=True, null=True)

    agent = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='agent_properties'
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_properties'
    )

    # =============================================================================
    # CLASSIFICATION
    # =============================================================================

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    property_category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default='normal')
    record_kind = models.CharField(max_length=20, choices=RECORD_KIND_CHOICES, default='listing')
    property_type = models.CharField(max_length=20, choices=PROPERTY_TYPE_CHOICES, blank=True, null=True)

    parent = models.ForeignKey(
        'self',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='children'
    )

    # =============================================================================
    # DESCRIPTION
    # =============================================================================

    title = models.CharField(max_length=255, blank=True, null=True)
    description = models.TextField(blank=True, null=True)
    details = models.JSONField(default=dict, blank=True)

    # =============================================================================
    # PRICING
    # =============================================================================

    purpose = models.CharField(max_length=10, choices=PURPOSE_CHOICES, blank=True, null=True)
    sale_price = models.DecimalField(max_digits=18, decimal_places=2, blank=True, null=True)
    rent_price = models.DecimalField(max_digits=18, decimal_places=2, blank=True, null=True)

    # =============================================================================
    # LOCATION
    # =============================================================================

    province = models.ForeignKey(
        'locations.Province',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='properties'
    )
    district = models.ForeignKey(
        'locations.District',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='properties'
    )
    area = models.ForeignKey(
        'locations.Area',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='properties'
    )
    address = models.TextField(blank=True, null=True)
    city = models.CharField(max_length=100, blank=True, null=True)
    latitude = models.DecimalField(max_digits=10, decimal_places=8, blank=True, null=True)
    longitude = models.DecimalField(max_digits=11, decimal_places=8, blank=True, null=True)

    # =============================================================================
    # SIZE, MEDIA AND AVAILABILITY
    # =============================================================================

    area_size = models.CharField(max_length=50, blank=True, null=True)
    bedrooms = models.IntegerField(blank=True, null=True)
    bathrooms = models.IntegerField(blank=True, null=True)

    facilities = models.JSONField(blank=True, null=True)
    photos = models.JSONField(default=list, blank=True)
    attachments = models.JSONField(default=list, blank=True)
    videos = models.JSONField(default=list, blank=True)

    is_available_for_sale = models.BooleanField(default=False)
    is_available_for_rent = models.BooleanField(default=False)

    # =============================================================================
    # STRUCTURE
    # =============================================================================

    is_parent = models.BooleanField(default=False)
    unit_number = models.CharField(max_length=50, blank=True, null=True)
    floor = models.CharField(max_length=20, blank=True, null=True)
    total_floors = models.IntegerField(blank=True, null=True)
    total_units = models.IntegerField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = PropertyQuerySet.as_manager()

    class Meta:
        db_table = 'properties'
        ordering = ['-created_at', '-id']
        verbose_name_plural = 'Properties'

        indexes = [
            models.Index(fields=['record_kind', 'status'], name='properties_kind_status_idx'),
            models.Index(fields=['property_category'], name='properties_category_idx'),
            models.Index(fields=['created_at'], name='properties_created_idx'),
        ]

    def __str__(self):
        label = self.title or self.property_code or f"Property {self.pk}"
        return f"{label} ({self.record_kind})"

    def __repr__(self):
        return f"<Property: {self.pk} {self.property_category}/{self.record_kind}>"

    @property
    def is_container(self):
        return self.record_kind == 'container'

    @property
    def is_listing(self):
        return self.record_kind == 'listing'

    @property
    def is_child_unit(self):
        return self.parent_id is not None

    def is_managed_by(self, user):
        """True when ``user`` is the agent or the creator."""
        return user.pk is not None and user.pk in (self.agent_id, self.created_by_id)

    def can_edit(self, user):
        """Creators and admins may edit or delete a record."""
        return user.is_admin_role or (user.pk is not None and user.pk == self.created_by_id)

    @classmethod
    def generate_property_code(cls, owner_name, agent_name):
        """
        Next free code in the ``{Owner}{Agent}-KorX-{NNNNNN}`` sequence.

        Falls back to a millisecond timestamp after repeated collisions.
        """
        for _ in range(PROPERTY_CODE_ATTEMPTS):
            sequence = next_code_sequence(cls.objects.latest_property_code())
            code = format_property_code(owner_name, agent_name, sequence)
            if not cls.objects.filter(property_code=code).exists():
                return code

        logger.warning("Property code sequence exhausted retries, using timestamp fallback")
        prefix = f"{name_initial(owner_name)}{name_initial(agent_name)}"
        return f"{prefix}-KorX-{int(time.time() * 1000)}"


# =============================================================================
# PROPERTY HISTORY
# =============================================================================

class PropertyHistory(models.Model):
    """Ownership and tenancy changes recorded against a property."""

    property = models.ForeignKey(
        Property,
        on_delete=models.CASCADE,
        related_name='history'
    )
    previous_owner = models.ForeignKey(
        'people.Person',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='previous_ownerships'
    )
    new_owner = models.ForeignKey(
        'people.Person',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='new_ownerships'
    )
    change_type = models.CharField(max_length=20, choices=CHANGE_TYPE_CHOICES)
    change_date = models.DateTimeField(default=timezone.now)
    details = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'property_history'
        ordering = ['-change_date', '-id']
        verbose_name_plural = 'Property history'

    def __str__(self):
        return f"{self.change_type} for property {self.property_id}"


# =============================================================================
# NEARBY PLACES CACHE
# =============================================================================

class NearbyCache(models.Model):
    """Google Places results cached per container or standalone property."""

    entity_type = models.CharField(max_length=20, choices=ENTITY_TYPE_CHOICES)
    entity_id = models.PositiveBigIntegerField()
    radius_m = models.PositiveIntegerField(default=1000)
    types = models.JSONField(default=default_nearby_types)
    data_json = models.JSONField(default=dict)
    expires_at = models.DateTimeField()

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'nearby_cache'
        ordering = ['-updated_at']

        constraints = [
            models.UniqueConstraint(
                fields=['entity_type', 'entity_id'],
                name='unique_nearby_cache_entity'
            )
        ]

    def __str__(self):
        return f"{self.entity_type}:{self.entity_id}"

    @property
    def is_expired(self):
        return self.expires_at <= timezone.now()
