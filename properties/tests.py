# ===== PROPERTIES APP TEST SUITE =====
"""
Comprehensive test suite for properties app functionality
File: properties/tests.py

Test Coverage:
- Standalone listing CRUD with property codes
- Status, availability and photo management
- Containers (towers, markets, sharaks) and their limits
- Child units and the rules they inherit from their container
- Marketplace reads and search
- Nearby places through the cache
- Management commands
"""

import shutil
import tempfile
from datetime import timedelta
from decimal import Decimal
from io import StringIO
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from accounts.models import AgentContainerLimit, UserPermission
from deals.models import Deal
from locations.models import District, Province
from people.models import Person

from .models import NearbyCache, Property

User = get_user_model()


def make_listing(**fields):
    values = {'status': 'active', 'record_kind': 'listing', 'property_category': 'normal'}
    values.update(fields)
    return Property.objects.create(**values)


def make_container(category='tower', **fields):
    values = {
        'status': 'active',
        'record_kind': 'container',
        'is_parent': True,
        'property_category': category,
        'property_type': category,
    }
    values.update(fields)
    return Property.objects.create(**values)


# =============================================================================
# SHARED FIXTURES
# =============================================================================

class PropertyAPITestCase(APITestCase):
    """Users, locations and an owner shared by the property API tests"""

    def setUp(self):
        self.admin = User.objects.create_user(
            username='admin1', password='secret123', phone='0700000001', role='admin', full_name='Admin'
        )
        self.agent = User.objects.create_user(
            username='agent1', password='secret123', phone='0700000002', role='agent', full_name='Zarif Agent'
        )
        self.other_agent = User.objects.create_user(
            username='agent2', password='secret123', phone='0700000003', role='agent', full_name='Other Agent'
        )
        self.visitor = User.objects.create_user(
            username='visitor', password='secret123', phone='0700000004', full_name='Visitor'
        )

        for key in ('ADD_PROPERTY', 'MY_PROPERTIES', 'MY_TOWERS', 'MY_MARKETS', 'TRANSACTION_HISTORY'):
            UserPermission.objects.create(user=self.agent, permission_key=key)
        UserPermission.objects.create(user=self.other_agent, permission_key='MY_PROPERTIES')

        self.province = Province.objects.create(name='Kabul')
        self.district = District.objects.create(province=self.province, name='Kabul City')
        self.owner = Person.objects.create(full_name='Habib Rahimi', phone='0788000111')

        self.client.force_authenticate(self.agent)


# =============================================================================
# STANDALONE LISTING TESTS
# =============================================================================

class ListingCreateTest(PropertyAPITestCase):
    """Test POST /api/properties/"""

    def payload(self, **overrides):
        data = {
            'title': 'Sunny flat',
            'property_type': 'apartment',
            'purpose': 'sale',
            'sale_price': '150000',
            'owner_person_id': self.owner.id,
            'province_id': self.province.id,
            'district_id': self.district.id,
            'address': 'Street 4, Shahr-e Naw',
            'bedrooms': '3',
            'is_available_for_sale': True,
        }
        data.update(overrides)
        return data

    def test_create_listing_with_code(self):
        response = self.client.post('/api/properties/', self.payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['message'], 'Property created successfully')

        prop = Property.objects.get(pk=response.data['property_id'])
        self.assertEqual(prop.property_code, 'HZ-KorX-000001')
        self.assertEqual(prop.property_category, 'normal')
        self.assertEqual(prop.record_kind, 'listing')
        self.assertFalse(prop.is_parent)
        self.assertIsNone(prop.parent)
        self.assertEqual(prop.sale_price, Decimal('150000.00'))
        self.assertEqual(prop.bedrooms, 3)
        self.assertEqual(prop.created_by, self.agent)

    def test_codes_follow_the_sequence(self):
        self.client.post('/api/properties/', self.payload(), format='json')
        response = self.client.post('/api/properties/', self.payload(owner_name='Mina'), format='json')

        prop = Property.objects.get(pk=response.data['id'])
        self.assertEqual(prop.property_code, 'MZ-KorX-000002')

    def test_lenient_form_values(self):
        response = self.client.post('/api/properties/', self.payload(
            bedrooms='', bathrooms='undefined', sale_price='null', photos='["/uploads/a.jpg"]'
        ), format='json')

        prop = Property.objects.get(pk=response.data['id'])
        self.assertIsNone(prop.bedrooms)
        self.assertIsNone(prop.bathrooms)
        self.assertIsNone(prop.sale_price)
        self.assertEqual(prop.photos, ['/uploads/a.jpg'])

    def test_location_is_required(self):
        response = self.client.post('/api/properties/', self.payload(address=''), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(
            response.data['error'],
            'Province, District, and Address are required for standalone properties'
        )

    def test_unknown_owner(self):
        response = self.client.post('/api/properties/', self.payload(owner_person_id=999999), format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Owner (Person) not found')

    def test_unknown_province(self):
        response = self.client.post('/api/properties/', self.payload(province_id=999999), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Province not found')

    def test_permission_required(self):
        self.client.force_authenticate(self.other_agent)
        response = self.client.post('/api/properties/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['required'], ['ADD_PROPERTY'])

        self.client.force_authenticate(self.visitor)
        response = self.client.post('/api/properties/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(Property.objects.exists())


class ListingReadTest(PropertyAPITestCase):
    """Test listing reads for the signed-in agent"""

    def setUp(self):
        super().setUp()
        self.own = make_listing(title='Own', agent=self.agent)
        self.created = make_listing(title='Created', created_by=self.agent, status='draft')
        self.foreign = make_listing(title='Foreign', created_by=self.other_agent, status='inactive')
        make_container(created_by=self.agent)

    def test_list_returns_managed_listings(self):
        for url in ('/api/properties/', '/api/properties/my-properties/'):
            response = self.client.get(url)
            self.assertEqual(response.status_code, status.HTTP_200_OK)
            self.assertEqual({row['title'] for row in response.data}, {'Own', 'Created'})

    def test_list_window(self):
        response = self.client.get('/api/properties/', {'limit': 1, 'offset': 1})
        self.assertEqual(len(response.data), 1)

    def test_list_requires_permission(self):
        self.client.force_authenticate(self.visitor)
        response = self.client.get('/api/properties/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_retrieve_rules(self):
        response = self.client.get(f'/api/properties/{self.created.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['creator']['user_id'], self.agent.id)

        response = self.client.get(f'/api/properties/{self.foreign.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        response = self.client.get(f'/api/properties/{self.foreign.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.get('/api/properties/999999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_dashboard_stats(self):
        self.own.is_available_for_sale = True
        self.own.save()

        response = self.client.get('/api/properties/dashboard/stats/')
        self.assertEqual(response.data['total_managed'], 3)
        self.assertEqual(response.data['total_listed'], 2)
        self.assertEqual(response.data['public_listings'], 1)

    def test_by_owner_and_tenant(self):
        make_listing(title='Owned', owner=self.owner)

        for url in (f'/api/properties/owner/{self.owner.id}/', f'/api/properties/tenant/{self.owner.id}/'):
            response = self.client.get(url)
            self.assertEqual([row['title'] for row in response.data], ['Owned'])


class ListingUpdateTest(PropertyAPITestCase):
    """Test update, delete, status and availability"""

    def setUp(self):
        super().setUp()
        self.prop = make_listing(
            title='Flat', created_by=self.agent, bedrooms=2, address='Street 1',
            province=self.province, district=self.district
        )

    def test_partial_update_keeps_other_fields(self):
        response = self.client.put(f'/api/properties/{self.prop.id}/', {'title': 'Bright flat'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['property']['title'], 'Bright flat')
        self.prop.refresh_from_db()
        self.assertEqual(self.prop.bedrooms, 2)
        self.assertEqual(self.prop.address, 'Street 1')

    def test_patch_is_also_partial(self):
        response = self.client.patch(f'/api/properties/{self.prop.id}/', {'rent_price': '300'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.prop.refresh_from_db()
        self.assertEqual(self.prop.rent_price, Decimal('300.00'))
        self.assertEqual(self.prop.title, 'Flat')

    def test_only_creator_or_admin_may_edit(self):
        self.client.force_authenticate(self.other_agent)
        response = self.client.put(f'/api/properties/{self.prop.id}/', {'title': 'Mine now'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        response = self.client.put(f'/api/properties/{self.prop.id}/', {'title': 'Fixed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_update_unknown_owner(self):
        response = self.client.put(
            f'/api/properties/{self.prop.id}/', {'owner_person_id': 999999, 'title': 'Taken'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Owner (Person) not found')
        self.prop.refresh_from_db()
        self.assertEqual(self.prop.title, 'Flat')
        self.assertIsNone(self.prop.owner)

    def test_containers_are_not_listings(self):
        tower = make_container(created_by=self.agent)
        response = self.client.put(f'/api/properties/{tower.id}/', {'title': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Listing not found')

    def test_delete(self):
        response = self.client.delete(f'/api/properties/{self.prop.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Property.objects.filter(pk=self.prop.id).exists())

    def test_delete_refused_with_deals(self):
        Deal.objects.create(property=self.prop, deal_type='SALE')
        response = self.client.delete(f'/api/properties/{self.prop.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Cannot delete property with existing deals')

    def test_status_change(self):
        url = f'/api/properties/{self.prop.id}/status/'

        response = self.client.patch(url, {'status': 'inactive'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.prop.refresh_from_db()
        self.assertEqual(self.prop.status, 'inactive')

        response = self.client.patch(url, {'status': 'sold'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_status_change_requires_manager(self):
        self.client.force_authenticate(self.other_agent)
        response = self.client.patch(f'/api/properties/{self.prop.id}/status/', {'status': 'draft'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_availability_from_form_values(self):
        response = self.client.put(f'/api/properties/{self.prop.id}/availability/', {
            'is_available_for_sale': 'true',
            'is_available_for_rent': 'false',
        })

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.prop.refresh_from_db()
        self.assertTrue(self.prop.is_available_for_sale)
        self.assertFalse(self.prop.is_available_for_rent)


class ListingPhotoTest(PropertyAPITestCase):
    """Test photo upload and removal"""

    def setUp(self):
        super().setUp()
        self.media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.media_root, ignore_errors=True)
        self.prop = make_listing(title='Flat', created_by=self.agent)

    def image(self, name):
        return SimpleUploadedFile(name, b'\xff\xd8\xff\xe0fakejpeg', content_type='image/jpeg')

    def test_upload_and_delete(self):
        with override_settings(MEDIA_ROOT=self.media_root):
            response = self.client.post(
                f'/api/properties/{self.prop.id}/upload/',
                {'files': [self.image('a.jpg'), self.image('b.jpg')]},
            )
            self.assertEqual(response.status_code, status.HTTP_200_OK)
            photos = response.data['photos']
            self.assertEqual(len(photos), 2)
            self.assertTrue(all(photo.startswith('/uploads/') for photo in photos))

            response = self.client.delete(
                f'/api/properties/{self.prop.id}/file/', {'fileUrl': photos[0]}, format='json'
            )
            self.assertEqual(response.data['photos'], [photos[1]])

        self.prop.refresh_from_db()
        self.assertEqual(self.prop.photos, [photos[1]])

    def test_upload_without_files(self):
        response = self.client.post(f'/api/properties/{self.prop.id}/upload/', {}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'No files uploaded')

    def test_delete_requires_file_url(self):
        response = self.client.delete(f'/api/properties/{self.prop.id}/file/', {}, format='json')
        self.assertEqual(response.data['error'], 'fileUrl is required')


# =============================================================================
# CONTAINER TESTS
# =============================================================================

class ContainerAPITest(PropertyAPITestCase):
    """Test /api/parents/"""

    def payload(self, **overrides):
        data = {
            'property_category': 'tower',
            'title': 'Sky Tower',
            'province_id': self.province.id,
            'district_id': self.district.id,
            'address': 'Airport Road',
            'planned_units': '40',
            'total_floors': 12,
            'details': '{"parking": true}',
        }
        data.update(overrides)
        return data

    def test_create_tower(self):
        response = self.client.post('/api/parents/', self.payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['message'], 'Parent container created successfully')

        tower = Property.objects.get(pk=response.data['id'])
        self.assertEqual(tower.record_kind, 'container')
        self.assertTrue(tower.is_parent)
        self.assertEqual(tower.property_type, 'tower')
        self.assertEqual(tower.total_units, 40)
        self.assertEqual(tower.total_floors, 12)
        self.assertEqual(tower.details, {'parking': True, 'planned_units': 40})
        self.assertFalse(tower.is_available_for_sale)
        self.assertIsNone(tower.sale_price)

    def test_apartment_category_becomes_tower(self):
        response = self.client.post('/api/parents/', self.payload(property_category=' Apartment '), format='json')
        tower = Property.objects.get(pk=response.data['id'])
        self.assertEqual(tower.property_category, 'tower')

    def test_invalid_category(self):
        response = self.client.post('/api/parents/', self.payload(property_category='normal'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(
            response.data['error'],
            'Invalid parent category. Must be one of: tower, market, sharak'
        )

    def test_category_permission(self):
        response = self.client.post('/api/parents/', self.payload(property_category='sharak'), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['required'], ['MY_SHARAKS'])

    def test_container_limit(self):
        AgentContainerLimit.objects.create(user=self.agent, container_type='tower', max_count=1)

        response = self.client.post('/api/parents/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.post('/api/parents/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['limit'], 1)
        self.assertEqual(response.data['current'], 1)

        response = self.client.post('/api/parents/', self.payload(property_category='market'), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_limit_does_not_apply_to_admin(self):
        AgentContainerLimit.objects.create(user=self.admin, container_type='tower', max_count=1)
        self.client.force_authenticate(self.admin)
        for _ in range(2):
            response = self.client.post('/api/parents/', self.payload(), format='json')
            self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_retrieve_is_public(self):
        tower = make_container(title='Sky Tower', created_by=self.agent)
        make_listing(parent=tower, property_category='tower', property_type='shop')

        self.client.force_authenticate(None)
        response = self.client.get(f'/api/parents/{tower.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_children'], 1)

        response = self.client.get(f'/api/parents/{tower.id}/children/')
        self.assertEqual(len(response.data), 1)

        listing = make_listing()
        response = self.client.get(f'/api/parents/{listing.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_update_mirrors_planned_units(self):
        tower = make_container(created_by=self.agent, details={'parking': True})

        response = self.client.put(f'/api/parents/{tower.id}/', {'planned_units': 50}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        tower.refresh_from_db()
        self.assertEqual(tower.total_units, 50)
        self.assertEqual(tower.details, {'parking': True, 'planned_units': 50})

    def test_update_requires_creator(self):
        tower = make_container(created_by=self.admin)
        response = self.client.put(f'/api/parents/{tower.id}/', {'title': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_unknown_owner(self):
        response = self.client.post('/api/parents/', self.payload(owner_person_id=999999), format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Owner (Person) not found')
        self.assertFalse(Property.objects.exists())

    def test_update_unknown_owner(self):
        tower = make_container(created_by=self.agent, title='Sky Tower')
        response = self.client.put(
            f'/api/parents/{tower.id}/', {'owner_person_id': 999999, 'title': 'x'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Owner (Person) not found')
        tower.refresh_from_db()
        self.assertEqual(tower.title, 'Sky Tower')

    def test_delete_with_units_marks_inactive(self):
        tower = make_container(created_by=self.agent)
        make_listing(parent=tower, property_category='tower', property_type='shop')

        response = self.client.delete(f'/api/parents/{tower.id}/')
        self.assertEqual(response.data['message'], 'Container marked as inactive because it has units')
        tower.refresh_from_db()
        self.assertEqual(tower.status, 'inactive')

    def test_delete_empty_container(self):
        tower = make_container(created_by=self.agent)
        response = self.client.delete(f'/api/parents/{tower.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Property.objects.filter(pk=tower.id).exists())


class ChildUnitTest(PropertyAPITestCase):
    """Test units created inside containers"""

    def setUp(self):
        super().setUp()
        self.tower = make_container(
            title='Sky Tower',
            created_by=self.agent,
            province=self.province,
            district=self.district,
            address='Airport Road',
            city='Kabul',
            latitude=Decimal('34.55550000'),
            longitude=Decimal('69.20750000'),
            facilities=['elevator', 'generator'],
        )

    def test_unit_inherits_from_container(self):
        response = self.client.post(f'/api/parents/{self.tower.id}/children/', {
            'property_type': 'Apartment',
            'unit_number': '12B',
            'bedrooms': 3,
            'sale_price': '90000',
            'is_available_for_sale': True,
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['message'], 'Unit created successfully')

        unit = Property.objects.get(pk=response.data['id'])
        self.assertEqual(unit.parent, self.tower)
        self.assertEqual(unit.property_category, 'tower')
        self.assertEqual(unit.record_kind, 'listing')
        self.assertEqual(unit.property_type, 'apartment')
        self.assertEqual(unit.purpose, 'sale')
        self.assertEqual(unit.area_size, '0')
        self.assertEqual(unit.province, self.province)
        self.assertEqual(unit.address, 'Airport Road')
        self.assertEqual(unit.latitude, self.tower.latitude)
        self.assertEqual(unit.facilities, ['elevator', 'generator'])
        self.assertEqual(unit.bedrooms, 3)
        self.assertEqual(response.data['property']['parent']['id'], self.tower.id)

    def test_unit_with_unknown_owner(self):
        response = self.client.post(f'/api/parents/{self.tower.id}/children/', {
            'property_type': 'apartment',
            'owner_person_id': 999999,
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Owner (Person) not found')
        self.assertFalse(self.tower.children.exists())

    def test_tower_shop_has_no_rooms(self):
        response = self.client.post(f'/api/properties/{self.tower.id}/children/', {
            'property_type': 'shop',
            'bedrooms': 2,
            'bathrooms': 1,
            'amenities': ['shutter'],
        }, format='json')

        unit = Property.objects.get(pk=response.data['id'])
        self.assertIsNone(unit.bedrooms)
        self.assertIsNone(unit.bathrooms)
        self.assertEqual(unit.facilities, ['shutter'])

    def test_unit_type_must_fit_container(self):
        response = self.client.post(f'/api/parents/{self.tower.id}/children/', {
            'property_type': 'land',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Invalid unit type for tower. Allowed: apartment, shop, office')

    def test_sharak_accepts_houses(self):
        sharak = make_container('sharak', created_by=self.agent)
        response = self.client.post(f'/api/parents/{sharak.id}/children/', {
            'property_type': 'house',
            'bedrooms': 4,
        }, format='json')

        unit = Property.objects.get(pk=response.data['id'])
        self.assertEqual(unit.property_category, 'sharak')
        self.assertEqual(unit.bedrooms, 4)

    def test_parent_must_be_container(self):
        listing = make_listing()
        response = self.client.post(f'/api/parents/{listing.id}/children/', {'property_type': 'shop'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Parent container not found')

    def test_unit_requires_add_property(self):
        self.client.force_authenticate(self.other_agent)
        response = self.client.post(f'/api/parents/{self.tower.id}/children/', {'property_type': 'shop'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_update_keeps_container_location(self):
        unit = make_listing(
            parent=self.tower, property_category='tower', property_type='office',
            created_by=self.agent, address='Airport Road'
        )

        response = self.client.put(f'/api/properties/{unit.id}/', {
            'address': 'Somewhere else',
            'bedrooms': 2,
            'title': 'Office 3',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        unit.refresh_from_db()
        self.assertEqual(unit.address, 'Airport Road')
        self.assertIsNone(unit.bedrooms)
        self.assertEqual(unit.title, 'Office 3')


class AgentContainerListTest(PropertyAPITestCase):
    """Test /api/agent/parents/ and /api/home/containers/"""

    def setUp(self):
        super().setUp()
        self.own_tower = make_container(title='Own Tower', created_by=self.agent)
        self.other_tower = make_container(title='Other Tower', created_by=self.admin)
        self.market = make_container('market', title='Bazaar', created_by=self.agent)

    def test_category_required(self):
        response = self.client.get('/api/agent/parents/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Category is required')

    def test_agent_sees_own_containers(self):
        response = self.client.get('/api/agent/parents/', {'category': 'apartment'})
        self.assertEqual([row['title'] for row in response.data], ['Own Tower'])

    def test_admin_sees_all_containers(self):
        self.client.force_authenticate(self.admin)
        response = self.client.get('/api/agent/parents/', {'category': 'tower'})
        self.assertEqual(len(response.data), 2)

    def test_requires_container_permission(self):
        self.client.force_authenticate(self.other_agent)
        response = self.client.get('/api/agent/parents/', {'category': 'tower'})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_home_containers(self):
        make_listing(parent=self.own_tower, property_category='tower', property_type='shop',
                     is_available_for_sale=True)
        make_listing(parent=self.own_tower, property_category='tower', property_type='office',
                     status='inactive', is_available_for_rent=True)
        make_container('sharak', title='Closed', status='inactive')

        self.client.force_authenticate(None)
        response = self.client.get('/api/home/containers/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(set(response.data), {'towers', 'markets', 'sharaks', 'apartments'})
        self.assertEqual(response.data['sharaks'], [])
        self.assertEqual(response.data['apartments'], [])

        card = next(row for row in response.data['towers'] if row['id'] == self.own_tower.id)
        self.assertEqual(card['totalUnits'], 2)
        self.assertEqual(card['availableUnits'], 1)
        self.assertEqual(card['forSaleUnits'], 1)
        self.assertEqual(card['forRentUnits'], 1)
        self.assertEqual(len(card['images']), 1)


# =============================================================================
# MARKETPLACE TESTS
# =============================================================================

class MarketplaceTest(PropertyAPITestCase):
    """Test /api/public/properties/ and search"""

    def setUp(self):
        super().setUp()
        self.flat = make_listing(
            title='Sunny flat', city='Kabul', bedrooms=3, sale_price=Decimal('150000'),
            is_available_for_sale=True, agent=self.agent, province=self.province
        )
        self.villa = make_listing(
            title='Garden villa', city='Herat', bedrooms=6, rent_price=Decimal('900'),
            is_available_for_rent=True, agent=self.agent
        )
        self.hidden = make_listing(title='Not offered', agent=self.agent)
        self.inactive = make_listing(title='Old shop', status='inactive', is_available_for_sale=True,
                                     agent=self.agent)
        self.tower = make_container(title='Sky Tower', created_by=self.agent)
        self.client.force_authenticate(None)

    def titles(self, response):
        return sorted(row['title'] for row in response.data)

    def test_anonymous_list_shows_active_listings(self):
        response = self.client.get('/api/public/properties/')
        self.assertEqual(self.titles(response), ['Garden villa', 'Not offered', 'Sunny flat'])

    def test_anonymous_cannot_see_inactive(self):
        response = self.client.get(f'/api/public/properties/{self.inactive.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        self.client.force_authenticate(self.agent)
        response = self.client.get(f'/api/public/properties/{self.inactive.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_search_defaults_to_marketplace(self):
        response = self.client.get('/api/public/properties/search/')
        self.assertEqual(self.titles(response), ['Garden villa', 'Sunny flat'])

    def test_search_filters(self):
        cases = [
            ({'search': 'sunny'}, ['Sunny flat']),
            ({'search': 'kabul'}, ['Sunny flat']),
            ({'bedrooms': '5'}, ['Garden villa']),
            ({'bedrooms': '3'}, ['Sunny flat']),
            ({'is_available_for_rent': 'true'}, ['Garden villa']),
            ({'is_available_for_rent': 'false'}, ['Garden villa', 'Sunny flat']),
            ({'min_sale_price': '100000'}, ['Sunny flat']),
            ({'city': 'her'}, ['Garden villa']),
            ({'province_id': self.province.id}, ['Sunny flat']),
        ]
        for params, expected in cases:
            response = self.client.get('/api/public/properties/search/', params)
            self.assertEqual(self.titles(response), expected, params)

    def test_search_containers(self):
        response = self.client.get('/api/public/properties/search/', {'record_kind': 'container'})
        self.assertEqual(self.titles(response), ['Sky Tower'])

    def test_search_own_records(self):
        self.client.force_authenticate(self.agent)
        response = self.client.get('/api/properties/search/', {'agent_id': self.agent.id})
        self.assertEqual(
            self.titles(response),
            ['Garden villa', 'Not offered', 'Old shop', 'Sunny flat']
        )

    def test_search_window(self):
        response = self.client.get('/api/public/properties/search/', {'limit': 1})
        self.assertEqual(len(response.data), 1)

    def test_latest_and_available(self):
        response = self.client.get('/api/public/properties/public/', {'limit': 2})
        self.assertEqual(len(response.data), 2)

        response = self.client.get('/api/public/properties/available/')
        self.assertEqual(len(response.data), 3)

    def test_by_user(self):
        response = self.client.get(f'/api/public/properties/user/{self.agent.id}/')
        self.assertEqual(
            self.titles(response),
            ['Garden villa', 'Not offered', 'Sky Tower', 'Sunny flat']
        )

    def test_children(self):
        make_listing(title='Unit 1', parent=self.tower, property_category='tower', property_type='shop')
        response = self.client.get(f'/api/public/properties/{self.tower.id}/children/')
        self.assertEqual(self.titles(response), ['Unit 1'])


class NearbyPlacesAPITest(PropertyAPITestCase):
    """Test /api/public/properties/{id}/nearby/"""

    places = {
        'available': True,
        'categories': {
            'mosque': [{'place_id': 'p1', 'name': 'Blue Mosque', 'lat': 34.5, 'lng': 69.2,
                        'distance_m': 120, 'category': 'mosque'}],
            'school': [], 'market': [], 'square': [], 'hospital': [],
        },
    }

    def setUp(self):
        super().setUp()
        self.tower = make_container(latitude=Decimal('34.55550000'), longitude=Decimal('69.20750000'))
        self.unit = make_listing(parent=self.tower, property_category='tower', property_type='shop')
        self.client.force_authenticate(None)

    @patch('services.nearby.search_nearby_places')
    def test_unit_uses_container_and_cache(self, mock_search):
        mock_search.return_value = self.places

        response = self.client.get(f'/api/public/properties/{self.unit.id}/nearby/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['cached'])
        self.assertEqual(response.data['sourceEntity'],
                         {'entity_type': 'PARENT_CONTAINER', 'entity_id': self.tower.id})
        self.assertEqual(response.data['categories']['mosque'][0]['name'], 'Blue Mosque')

        response = self.client.get(f'/api/public/properties/{self.tower.id}/nearby/')
        self.assertEqual(response.data['sourceEntity']['entity_type'], 'PROPERTY')

        response = self.client.get(f'/api/public/properties/{self.unit.id}/nearby/')
        self.assertTrue(response.data['cached'])
        self.assertEqual(mock_search.call_count, 2)

    def test_missing_location(self):
        listing = make_listing()
        response = self.client.get(f'/api/public/properties/{listing.id}/nearby/')
        self.assertFalse(response.data['available'])
        self.assertEqual(response.data['message'], 'Location not set for this property')


# =============================================================================
# MANAGEMENT COMMAND TESTS
# =============================================================================

class PropertyCommandTest(TestCase):

    def setUp(self):
        self.agent = User.objects.create_user(
            username='agent1', password='secret123', phone='0700000002', role='agent', full_name='Zarif'
        )

    def test_backfill_property_codes(self):
        listing = make_listing(owner_name='Habib', agent=self.agent)
        tower = make_container(created_by=self.agent)

        call_command('backfill_property_codes', '--dry-run', stdout=StringIO())
        listing.refresh_from_db()
        self.assertIsNone(listing.property_code)

        call_command('backfill_property_codes', stdout=StringIO())
        listing.refresh_from_db()
        tower.refresh_from_db()
        self.assertEqual(listing.property_code, 'HZ-KorX-000001')
        self.assertEqual(tower.property_code, 'XZ-KorX-000002')

    def test_backfill_listings_only(self):
        tower = make_container(created_by=self.agent)
        call_command('backfill_property_codes', '--listings-only', stdout=StringIO())
        tower.refresh_from_db()
        self.assertIsNone(tower.property_code)

    def test_purge_nearby_cache(self):
        now = timezone.now()
        NearbyCache.objects.create(entity_type='PROPERTY', entity_id=1, expires_at=now - timedelta(days=1))
        NearbyCache.objects.create(entity_type='PROPERTY', entity_id=2, expires_at=now + timedelta(days=1))

        call_command('purge_nearby_cache', stdout=StringIO())
        self.assertEqual(list(NearbyCache.objects.values_list('entity_id', flat=True)), [2])

        call_command('purge_nearby_cache', '--all', stdout=StringIO())
        self.assertFalse(NearbyCache.objects.exists())
