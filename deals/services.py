"""
Deal workflow for the KorX platform.

Closing a deal touches three tables (deals, properties, property_history),
so the whole workflow runs inside a single database transaction. Any rule
violation raises BusinessRuleError and rolls everything back.
"""

import logging

from django.db import transaction
from django.utils import timezone

from people.models import Person
from properties.models import Property, PropertyHistory
from services import BusinessRuleError

from .models import Deal

logger = logging.getLogger(__name__)

CHANGE_TYPES = {
    'SALE': 'TRANSFERRED_SALE',
    'RENT': 'RENTED',
}


def close_deal(user, property_id, deal_type, buyer_id, seller_id=None,
               price=None, start_date=None, end_date=None, notes=None):
    """
    Record a completed sale or rental and update the property.

    Steps:
    1. Lock the property and check it is on offer
    2. Check the caller is an admin, or an agent managing the property
    3. Resolve seller (defaults to the current owner) and buyer
    4. Create the deal with name / phone snapshots
    5. Take the property off the market; on a sale the buyer becomes owner
    6. Write a PropertyHistory row

    Returns:
        Deal: the new deal

    Raises:
        BusinessRuleError: with the HTTP status the view should answer with
    """
    with transaction.atomic():
        prop = Property.objects.select_for_update().filter(pk=property_id).first()
        if prop is None:
            raise BusinessRuleError('Property not found', 404)

        if not (prop.is_available_for_sale or prop.is_available_for_rent):
            raise BusinessRuleError(
                'Deal creation is allowed only if the property is available for sale or rent.'
            )

        if not (user.is_admin_role or user.is_agent_role):
            raise BusinessRuleError('Only agents and admins can create deals', 403)
        if user.is_agent_role and not prop.is_managed_by(user):
            raise BusinessRuleError('You are not authorized to create a deal for this property.', 403)

        seller_key = seller_id or prop.owner_id
        seller = Person.objects.filter(pk=seller_key).first() if seller_key else None
        if seller is None:
            raise BusinessRuleError('Seller (Person) not found')

        buyer = Person.objects.filter(pk=buyer_id).first()
        if buyer is None:
            raise BusinessRuleError('Buyer/Tenant (Person) not found')

        deal = Deal.objects.create(
            property=prop,
            agent=user,
            seller=seller,
            buyer=buyer,
            deal_type=deal_type,
            status='completed',
            price=price,
            start_date=start_date,
            end_date=end_date,
            notes=notes,
            seller_name=seller.full_name,
            seller_phone=seller.phone,
            buyer_name=buyer.full_name,
            buyer_phone=buyer.phone,
            deal_completed_at=timezone.now(),
        )

        previous_owner = prop.owner
        prop.status = 'under_deal'
        prop.is_available_for_sale = False
        prop.is_available_for_rent = False
        if deal_type == 'SALE':
            prop.owner = buyer
            prop.owner_name = buyer.full_name
        prop.save()

        is_sale = deal_type == 'SALE'
        PropertyHistory.objects.create(
            property=prop,
            previous_owner=previous_owner if is_sale else None,
            new_owner=buyer if is_sale else None,
            change_type=CHANGE_TYPES[deal_type],
            details={
                'deal_id': deal.id,
                'price': str(price) if price is not None else None,
                'seller': seller.full_name,
                'buyer': buyer.full_name,
            },
        )

    logger.info(f"{deal_type} deal {deal.id} closed on property {prop.id} by user {user.id}")
    return deal
