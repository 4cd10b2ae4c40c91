# ===== DEALS APP TEST SUITE =====
"""
Tests for the deals app: the close_deal workflow and /api/deals/.
"""

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APITestCase

from accounts.models import UserPermission
from people.models import Person
from properties.models import Property, PropertyHistory
from services import BusinessRuleError

from .models import Deal
from .services import close_deal

User = get_user_model()


class DealFixtures:
    """Agent, admin, people and one listing on offer"""

    def create_fixtures(self):
        self.admin = User.objects.create_user(
            username='admin1', password='secret123', phone='0700500001', role='admin', full_name='Admin'
        )
        self.agent = User.objects.create_user(
            username='agent1', password='secret123', phone='0700500002', role='agent', full_name='Zarif'
        )
        self.stranger = User.objects.create_user(
            username='agent2', password='secret123', phone='0700500003', role='agent', full_name='Other'
        )
        self.visitor = User.objects.create_user(
            username='visitor', password='secret123', phone='0700500004'
        )
        for user in (self.agent, self.stranger):
            UserPermission.objects.create(user=user, permission_key='TRANSACTION_HISTORY')

        self.owner = Person.objects.create(full_name='Habib Rahimi', phone='0788000111')
        self.buyer = Person.objects.create(full_name='Nadia Karimi', phone='0788000222')

        self.prop = Property.objects.create(
            title='Sunny flat',
            owner=self.owner,
            owner_name='Habib Rahimi',
            agent=self.agent,
            status='active',
            is_available_for_sale=True,
            is_available_for_rent=True,
        )


# =============================================================================
# WORKFLOW TESTS
# =============================================================================

class CloseDealTest(DealFixtures, TestCase):

    def setUp(self):
        self.create_fixtures()

    def test_sale_transfers_ownership(self):
        deal = close_deal(self.agent, self.prop.id, 'SALE', self.buyer.id, price=Decimal('150000'))

        self.assertEqual(deal.status, 'completed')
        self.assertEqual(deal.seller, self.owner)
        self.assertEqual(deal.seller_name, 'Habib Rahimi')
        self.assertEqual(deal.buyer_phone, '0788000222')
        self.assertIsNotNone(deal.deal_completed_at)

        self.prop.refresh_from_db()
        self.assertEqual(self.prop.status, 'under_deal')
        self.assertEqual(self.prop.owner, self.buyer)
        self.assertEqual(self.prop.owner_name, 'Nadia Karimi')
        self.assertFalse(self.prop.is_available_for_sale)
        self.assertFalse(self.prop.is_available_for_rent)

        history = PropertyHistory.objects.get(property=self.prop)
        self.assertEqual(history.change_type, 'TRANSFERRED_SALE')
        self.assertEqual(history.previous_owner, self.owner)
        self.assertEqual(history.new_owner, self.buyer)
        self.assertEqual(history.details['deal_id'], deal.id)
        self.assertEqual(history.details['price'], '150000')

    def test_rent_keeps_owner(self):
        close_deal(self.admin, self.prop.id, 'RENT', self.buyer.id)

        self.prop.refresh_from_db()
        self.assertEqual(self.prop.owner, self.owner)
        self.assertEqual(self.prop.status, 'under_deal')

        history = PropertyHistory.objects.get(property=self.prop)
        self.assertEqual(history.change_type, 'RENTED')
        self.assertIsNone(history.new_owner)
        self.assertIsNone(history.details['price'])

    def test_explicit_seller(self):
        seller = Person.objects.create(full_name='Proxy Seller')
        deal = close_deal(self.agent, self.prop.id, 'SALE', self.buyer.id, seller_id=seller.id)
        self.assertEqual(deal.seller, seller)

    def test_property_must_be_on_offer(self):
        self.prop.is_available_for_sale = False
        self.prop.is_available_for_rent = False
        self.prop.save()

        with self.assertRaises(BusinessRuleError) as ctx:
            close_deal(self.agent, self.prop.id, 'SALE', self.buyer.id)
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertFalse(Deal.objects.exists())

    def test_agent_must_manage_property(self):
        with self.assertRaises(BusinessRuleError) as ctx:
            close_deal(self.stranger, self.prop.id, 'SALE', self.buyer.id)
        self.assertEqual(ctx.exception.status_code, 403)

    def test_plain_user_refused(self):
        with self.assertRaises(BusinessRuleError) as ctx:
            close_deal(self.visitor, self.prop.id, 'SALE', self.buyer.id)
        self.assertEqual(ctx.exception.status_code, 403)

    def test_missing_people(self):
        self.prop.owner = None
        self.prop.save()

        with self.assertRaises(BusinessRuleError) as ctx:
            close_deal(self.agent, self.prop.id, 'SALE', self.buyer.id)
        self.assertEqual(ctx.exception.message, 'Seller (Person) not found')

        with self.assertRaises(BusinessRuleError) as ctx:
            close_deal(self.agent, self.prop.id, 'SALE', 999999, seller_id=self.buyer.id)
        self.assertEqual(ctx.exception.message, 'Buyer/Tenant (Person) not found')

        self.prop.refresh_from_db()
        self.assertEqual(self.prop.status, 'active')
        self.assertFalse(PropertyHistory.objects.exists())

    def test_unknown_property(self):
        with self.assertRaises(BusinessRuleError) as ctx:
            close_deal(self.agent, 999999, 'SALE', self.buyer.id)
        self.assertEqual(ctx.exception.status_code, 404)


# =============================================================================
# API TESTS
# =============================================================================

class DealAPITest(DealFixtures, APITestCase):
    """Test /api/deals/"""

    def setUp(self):
        self.create_fixtures()
        self.client.force_authenticate(self.agent)

    def test_create_deal(self):
        response = self.client.post('/api/deals/', {
            'property_id': self.prop.id,
            'deal_type': 'SALE',
            'buyer_person_id': self.buyer.id,
            'price': '150000',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['message'], 'SALE deal created successfully')
        self.assertTrue(Deal.objects.filter(pk=response.data['deal_id']).exists())

    def test_create_validation(self):
        response = self.client.post('/api/deals/', {
            'property_id': self.prop.id,
            'deal_type': 'SWAP',
            'price': '-5',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        errors = response.data['errors']
        self.assertEqual(errors['deal_type'], ['deal_type must be SALE or RENT'])
        self.assertEqual(errors['buyer_person_id'], ['buyer_person_id is required'])
        self.assertEqual(errors['price'], ['price must be greater than or equal to 0'])

    def test_create_rule_error(self):
        self.client.force_authenticate(self.stranger)
        response = self.client.post('/api/deals/', {
            'property_id': self.prop.id,
            'deal_type': 'RENT',
            'buyer_person_id': self.buyer.id,
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'You are not authorized to create a deal for this property.')

    def test_permission_required(self):
        self.client.force_authenticate(self.visitor)
        response = self.client.get('/api/deals/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(None)
        response = self.client.get('/api/deals/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_list_and_retrieve_own_deals(self):
        own = close_deal(self.agent, self.prop.id, 'RENT', self.buyer.id)
        other_prop = Property.objects.create(
            title='Shop', owner=self.owner, agent=self.stranger, is_available_for_sale=True
        )
        other = close_deal(self.stranger, other_prop.id, 'SALE', self.buyer.id)

        response = self.client.get('/api/deals/')
        self.assertEqual([row['deal_id'] for row in response.data], [own.id])
        self.assertEqual(response.data[0]['property']['title'], 'Sunny flat')
        self.assertEqual(response.data[0]['buyer']['full_name'], 'Nadia Karimi')

        response = self.client.get(f'/api/deals/{own.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.get(f'/api/deals/{other.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        self.client.force_authenticate(self.admin)
        response = self.client.get(f'/api/deals/{other.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
