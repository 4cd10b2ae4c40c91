# ===== SERVICES LAYER TEST SUITE =====
"""
Comprehensive test suite for services layer functionality
File: services/tests.py

Test Coverage:
- Property hierarchy rules (categories, unit types, inherited fields)
- Property code formatting and sequencing
- Lenient input cleaning for form-encoded clients
- Google Places client with mocked HTTP responses
- Nearby-places cache behaviour
- Password reset mailer
- Upload storage helpers
"""

import shutil
import tempfile
from datetime import timedelta
from decimal import Decimal
from smtplib import SMTPException
from unittest.mock import Mock, patch

import requests
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.utils import timezone

from properties.models import NearbyCache, Property

from . import BusinessRuleError, PlacesServiceError, ServiceIntegrationError
from .business_logic import (
    allowed_unit_types,
    apply_room_rules,
    derive_child_fields,
    format_property_code,
    generate_otp_code,
    mask_email,
    merge_container_details,
    name_initial,
    next_code_sequence,
    normalize_category,
    parse_bool,
    parse_json_value,
    plan_container,
    sanitize_decimal,
    sanitize_int,
    standalone_listing_fields,
    suppresses_rooms,
    validate_container_category,
    validate_unit_type,
)
from .mailer import send_password_reset_code
from .nearby import get_nearby_for_property, purge_expired, resolve_source
from .places import NEARBY_CATEGORIES, UNAVAILABLE_MESSAGE, PlacesService, haversine_distance_m
from .uploads import build_upload_name, delete_upload, save_upload


# =============================================================================
# CATEGORY AND UNIT RULES
# =============================================================================

class CategoryRulesTest(TestCase):
    """Test category normalization and allowed unit types"""

    def test_normalize_category(self):
        self.assertEqual(normalize_category('  Apartment '), 'tower')
        self.assertEqual(normalize_category('MARKET'), 'market')
        self.assertEqual(normalize_category(None), '')

    def test_validate_container_category(self):
        self.assertEqual(validate_container_category('Sharak'), 'sharak')

        with self.assertRaises(BusinessRuleError) as ctx:
            validate_container_category('normal')
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(ctx.exception.message, 'Invalid parent category. Must be one of: tower, market, sharak')

    def test_allowed_unit_types(self):
        self.assertEqual(allowed_unit_types('apartment'), ['apartment', 'shop', 'office'])
        self.assertEqual(allowed_unit_types('market'), ['shop', 'office'])
        self.assertEqual(allowed_unit_types('normal'), [])

    def test_validate_unit_type(self):
        self.assertEqual(validate_unit_type('sharak', ' House '), 'house')
        self.assertEqual(validate_unit_type('apartment', 'office'), 'office')

        with self.assertRaises(BusinessRuleError) as ctx:
            validate_unit_type('market', 'apartment')
        self.assertEqual(ctx.exception.message, 'Invalid unit type for market. Allowed: shop, office')

        with self.assertRaises(BusinessRuleError):
            validate_unit_type('tower', None)

    def test_room_rules(self):
        self.assertTrue(suppresses_rooms('tower', 'shop'))
        self.assertTrue(suppresses_rooms('market', 'office'))
        self.assertFalse(suppresses_rooms('tower', 'Apartment'))
        self.assertFalse(suppresses_rooms('sharak', 'shop'))

        values = apply_room_rules('market', 'shop', {'bedrooms': 2, 'bathrooms': 1, 'title': 'Shop 4'})
        self.assertEqual(values, {'bedrooms': None, 'bathrooms': None, 'title': 'Shop 4'})


class RecordShapeTest(TestCase):
    """Test container plans, standalone listings and child unit derivation"""

    def setUp(self):
        self.parent = Property(
            record_kind='container',
            is_parent=True,
            property_category='apartment',
            address='Airport Road',
            city='Kabul',
            latitude=Decimal('34.55550000'),
            longitude=Decimal('69.20750000'),
            facilities=['elevator'],
        )

    def test_plan_container(self):
        plan = plan_container(' Tower ', '{"parking": true}', '40 units', '12')

        self.assertEqual(plan.category, 'tower')
        self.assertEqual(plan.details, {'parking': True, 'planned_units': 40})
        self.assertEqual(plan.planned_units, 40)
        self.assertEqual(plan.total_floors, 12)

        fields = plan.as_fields()
        self.assertEqual(fields['record_kind'], 'container')
        self.assertTrue(fields['is_parent'])
        self.assertEqual(fields['property_type'], 'tower')
        self.assertIsNone(fields['sale_price'])
        self.assertEqual(fields['total_units'], 40)

    def test_plan_container_with_bad_details(self):
        plan = plan_container('sharak', 'not json', None, None)
        self.assertEqual(plan.details, {})
        self.assertIsNone(plan.planned_units)

        plan = plan_container('market', '[1, 2]')
        self.assertEqual(plan.details, {})

        with self.assertRaises(BusinessRuleError):
            plan_container('villa')

    def test_merge_container_details(self):
        self.assertEqual(
            merge_container_details({'parking': True}, total_floors=5),
            {'parking': True, 'total_floors': 5}
        )
        self.assertEqual(merge_container_details(None, 10), {'planned_units': 10})

    def test_standalone_listing_fields(self):
        fields = standalone_listing_fields()
        self.assertEqual(fields['property_category'], 'normal')
        self.assertEqual(fields['record_kind'], 'listing')
        self.assertIsNone(fields['parent'])

    def test_derive_child_fields(self):
        fields = derive_child_fields(self.parent, 'Apartment', {
            'title': 'Flat 3A',
            'bedrooms': 3,
            'address': 'Ignored',
        })

        self.assertIs(fields['parent'], self.parent)
        self.assertEqual(fields['property_category'], 'tower')
        self.assertEqual(fields['record_kind'], 'listing')
        self.assertEqual(fields['property_type'], 'apartment')
        self.assertEqual(fields['purpose'], 'sale')
        self.assertEqual(fields['area_size'], '0')
        self.assertEqual(fields['address'], 'Airport Road')
        self.assertEqual(fields['latitude'], Decimal('34.55550000'))
        self.assertEqual(fields['facilities'], ['elevator'])
        self.assertEqual(fields['bedrooms'], 3)

    def test_derive_child_fields_keeps_own_values(self):
        fields = derive_child_fields(self.parent, 'shop', {
            'purpose': 'rent',
            'area_size': '40',
            'facilities': [],
            'bedrooms': 1,
        })

        self.assertEqual(fields['purpose'], 'rent')
        self.assertEqual(fields['area_size'], '40')
        self.assertEqual(fields['facilities'], [])
        self.assertIsNone(fields['bedrooms'])

    def test_derive_child_fields_rejects_wrong_type(self):
        with self.assertRaises(BusinessRuleError):
            derive_child_fields(self.parent, 'land', {})


# =============================================================================
# PROPERTY CODES
# =============================================================================

class PropertyCodeTest(TestCase):

    def test_format_property_code(self):
        self.assertEqual(format_property_code('Habib', 'zarif', 42), 'HZ-KorX-000042')
        self.assertEqual(format_property_code(None, '  ', 7), 'XX-KorX-000007')
        self.assertEqual(name_initial(' nadia'), 'N')

    def test_next_code_sequence(self):
        self.assertEqual(next_code_sequence(None), 1)
        self.assertEqual(next_code_sequence('HZ-KorX-000041'), 42)
        self.assertEqual(next_code_sequence('legacy'), 1)

    def test_generate_follows_latest_code(self):
        Property.objects.create(property_code='AB-KorX-000009')
        Property.objects.create(title='No code')

        self.assertEqual(Property.generate_property_code('Habib', 'Zarif'), 'HZ-KorX-000010')

    def test_generate_falls_back_after_collisions(self):
        Property.objects.create(property_code='HZ-KorX-000004')
        Property.objects.create(property_code='QQ-KorX-000003')

        with self.assertLogs('properties.models', level='WARNING'):
            code = Property.generate_property_code('Habib', 'Zarif')

        self.assertTrue(code.startswith('HZ-KorX-'))
        self.assertNotEqual(code, 'HZ-KorX-000004')


# =============================================================================
# INPUT CLEANING
# =============================================================================

class InputCleaningTest(TestCase):

    def test_sanitize_int(self):
        self.assertEqual(sanitize_int('12'), 12)
        self.assertEqual(sanitize_int('12 floors'), 12)
        self.assertEqual(sanitize_int(3.9), 3)
        self.assertEqual(sanitize_int(' -4'), -4)
        for blank in ('', ' null ', 'undefined', 'abc', None, True):
            self.assertIsNone(sanitize_int(blank), blank)

    def test_sanitize_decimal(self):
        self.assertEqual(sanitize_decimal('12.345'), Decimal('12.35'))
        self.assertEqual(sanitize_decimal(1500), Decimal('1500.00'))
        self.assertEqual(sanitize_decimal('34.5555', 8), Decimal('34.55550000'))
        for blank in ('', 'null', 'abc', 'Infinity', 'NaN', None, False):
            self.assertIsNone(sanitize_decimal(blank), blank)

    def test_parse_json_value(self):
        self.assertEqual(parse_json_value('{"a": 1}'), {'a': 1})
        self.assertEqual(parse_json_value('["x"]'), ['x'])
        self.assertEqual(parse_json_value(['x']), ['x'])
        self.assertIsNone(parse_json_value('{broken'))

    def test_parse_bool(self):
        for value in ('true', 'True', '1', 'yes', 'on', True, 1):
            self.assertTrue(parse_bool(value), value)
        for value in ('false', '0', 'off', '', None, False, 0):
            self.assertFalse(parse_bool(value), value)


class AccountHelpersTest(TestCase):

    def test_mask_email(self):
        self.assertEqual(mask_email('karim@example.com'), 'ka••••m@example.com')
        self.assertEqual(mask_email('ab@example.com'), '**@example.com')
        self.assertEqual(mask_email(None), '')

    def test_generate_otp_code(self):
        for _ in range(20):
            code = generate_otp_code()
            self.assertEqual(len(code), 6)
            self.assertTrue(100000 <= int(code) <= 999999)


# =============================================================================
# PLACES SERVICE TESTS
# =============================================================================

class PlacesServiceTest(TestCase):
    """Test the Google Places client"""

    def setUp(self):
        self.service = PlacesService(api_key='test-key')
        self.latitude = 34.5555
        self.longitude = 69.2075

        self.mock_places_response = {
            'status': 'OK',
            'results': [
                {
                    'place_id': 'far',
                    'name': 'Far Place',
                    'geometry': {'location': {'lat': 34.5655, 'lng': 69.2075}},
                },
                {
                    'place_id': 'near',
                    'name': 'Near Place',
                    'geometry': {'location': {'lat': 34.5565, 'lng': 69.2075}},
                },
            ],
        }

    def mock_response(self, payload):
        mock_response = Mock()
        mock_response.json.return_value = payload
        mock_response.status_code = 200
        return mock_response

    def test_haversine_distance(self):
        self.assertEqual(haversine_distance_m(0, 0, 0, 0), 0)
        self.assertEqual(haversine_distance_m(0, 0, 0, 1), 111195)

    @patch('services.places.requests.get')
    def test_search_nearby_success(self, mock_get):
        mock_get.return_value = self.mock_response(self.mock_places_response)

        result = self.service.search_nearby(self.latitude, self.longitude, 1500)

        self.assertTrue(result['available'])
        self.assertEqual(list(result['categories']), NEARBY_CATEGORIES)
        self.assertEqual(mock_get.call_count, len(NEARBY_CATEGORIES))

        mosques = result['categories']['mosque']
        self.assertEqual([place['place_id'] for place in mosques], ['near', 'far'])
        self.assertEqual(mosques[0]['category'], 'mosque')
        self.assertAlmostEqual(mosques[0]['distance_m'], 111, delta=2)

        types = [call[1]['params']['type'] for call in mock_get.call_args_list]
        self.assertIn('supermarket', types)
        params = mock_get.call_args_list[0][1]['params']
        self.assertEqual(params['radius'], 1500)
        self.assertEqual(params['key'], 'test-key')

    @patch('services.places.requests.get')
    def test_search_category_no_results(self, mock_get):
        mock_get.return_value = self.mock_response({'status': 'ZERO_RESULTS', 'results': []})
        self.assertEqual(self.service.search_category(self.latitude, self.longitude, 1000, 'school'), [])

    @patch('services.places.requests.get')
    def test_search_category_network_error(self, mock_get):
        mock_get.side_effect = requests.Timeout('timed out')

        with self.assertRaises(PlacesServiceError):
            self.service.search_category(self.latitude, self.longitude, 1000, 'school')

    @patch('services.places.requests.get')
    def test_search_category_invalid_json(self, mock_get):
        mock_response = Mock()
        mock_response.json.side_effect = ValueError('not json')
        mock_get.return_value = mock_response

        with self.assertRaises(PlacesServiceError):
            self.service.search_category(self.latitude, self.longitude, 1000, 'hospital')

    @patch('services.places.requests.get')
    def test_failed_categories_are_empty(self, mock_get):
        mock_get.side_effect = requests.ConnectionError('down')

        result = self.service.search_nearby(self.latitude, self.longitude)

        self.assertTrue(result['available'])
        self.assertEqual(result['categories'], {category: [] for category in NEARBY_CATEGORIES})

    @patch('services.places.requests.get')
    def test_malformed_results(self, mock_get):
        mock_get.return_value = self.mock_response({'status': 'OK', 'results': [{'name': 'No geometry'}]})

        result = self.service.search_nearby(self.latitude, self.longitude)
        self.assertEqual(result['categories']['mosque'], [])

    @patch('services.places.requests.get')
    @override_settings(GOOGLE_MAPS_API_KEY='')
    def test_without_api_key(self, mock_get):
        result = PlacesService().search_nearby(self.latitude, self.longitude)

        self.assertEqual(result, {'available': False, 'message': UNAVAILABLE_MESSAGE, 'categories': {}})
        mock_get.assert_not_called()


# =============================================================================
# NEARBY CACHE TESTS
# =============================================================================

class NearbyCacheTest(TestCase):
    """Test cached nearby lookups"""

    def setUp(self):
        self.tower = Property.objects.create(
            record_kind='container', is_parent=True, property_category='tower',
            latitude=Decimal('34.55550000'), longitude=Decimal('69.20750000')
        )
        self.unit = Property.objects.create(parent=self.tower, property_category='tower')
        self.listing = Property.objects.create(
            latitude=Decimal('34.50000000'), longitude=Decimal('69.10000000')
        )

    def test_resolve_source(self):
        self.assertEqual(
            resolve_source(self.unit),
            ('PARENT_CONTAINER', self.tower.id, self.tower.latitude, self.tower.longitude)
        )
        self.assertEqual(resolve_source(self.listing)[:2], ('PROPERTY', self.listing.id))

    @override_settings(GOOGLE_MAPS_API_KEY='')
    def test_unavailable_result_is_cached(self):
        result = get_nearby_for_property(self.listing)
        self.assertFalse(result['available'])
        self.assertEqual(result['message'], UNAVAILABLE_MESSAGE)
        self.assertFalse(result['cached'])

        result = get_nearby_for_property(self.listing)
        self.assertTrue(result['cached'])
        self.assertFalse(result['available'])

    @patch('services.nearby.search_nearby_places')
    def test_expired_cache_is_refreshed(self, mock_search):
        mock_search.return_value = {'available': True, 'categories': {'mosque': []}}
        NearbyCache.objects.create(
            entity_type='PROPERTY',
            entity_id=self.listing.id,
            data_json={'available': True, 'categories': {'stale': []}},
            expires_at=timezone.now() - timedelta(minutes=1),
        )

        result = get_nearby_for_property(self.listing)

        self.assertFalse(result['cached'])
        self.assertEqual(result['categories'], {'mosque': []})
        mock_search.assert_called_once_with(34.5, 69.1, 1000)

        cache = NearbyCache.objects.get(entity_type='PROPERTY', entity_id=self.listing.id)
        self.assertGreater(cache.expires_at, timezone.now() + timedelta(days=29))
        self.assertEqual(cache.types, NEARBY_CATEGORIES)

    @patch('services.nearby.search_nearby_places')
    def test_units_share_container_cache(self, mock_search):
        mock_search.return_value = {'available': True, 'categories': {}}
        sibling = Property.objects.create(parent=self.tower, property_category='tower')

        get_nearby_for_property(self.unit)
        result = get_nearby_for_property(sibling)

        self.assertTrue(result['cached'])
        mock_search.assert_called_once()

    def test_purge_expired(self):
        now = timezone.now()
        NearbyCache.objects.create(entity_type='PROPERTY', entity_id=1, expires_at=now - timedelta(days=1))
        NearbyCache.objects.create(entity_type='PROPERTY', entity_id=2, expires_at=now + timedelta(days=1))

        self.assertEqual(purge_expired(), 1)
        self.assertEqual(NearbyCache.objects.count(), 1)


# =============================================================================
# MAILER TESTS
# =============================================================================

class MailerTest(TestCase):

    def setUp(self):
        self.user = Mock(id=7, email='karim@example.com')

    @override_settings(EMAIL_HOST_USER='')
    @patch('services.mailer.send_mail')
    def test_unconfigured_mail_is_logged(self, mock_send):
        with self.assertLogs('services.mailer', level='INFO') as logs:
            send_password_reset_code(self.user, '123456')

        mock_send.assert_not_called()
        self.assertIn('123456', logs.output[0])

    @override_settings(EMAIL_HOST_USER='mailer@korx.local', DEFAULT_FROM_EMAIL='mailer@korx.local')
    @patch('services.mailer.send_mail')
    def test_sends_code(self, mock_send):
        send_password_reset_code(self.user, '123456')

        args, kwargs = mock_send.call_args
        self.assertEqual(args[0], 'Password Reset Code')
        self.assertIn('123456', args[1])
        self.assertIn('10 minutes', args[1])
        self.assertEqual(args[3], ['karim@example.com'])
        self.assertIn('<strong>123456</strong>', kwargs['html_message'])

    @override_settings(EMAIL_HOST_USER='mailer@korx.local')
    @patch('services.mailer.send_mail')
    def test_smtp_failure(self, mock_send):
        mock_send.side_effect = SMTPException('auth failed')

        with self.assertRaises(ServiceIntegrationError):
            send_password_reset_code(self.user, '123456')


# =============================================================================
# UPLOAD STORAGE TESTS
# =============================================================================

class UploadStorageTest(TestCase):

    def setUp(self):
        self.media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.media_root, ignore_errors=True)

    def test_build_upload_name(self):
        name = build_upload_name('Photo.JPG')
        self.assertTrue(name.endswith('.jpg'))
        self.assertNotEqual(name, build_upload_name('Photo.JPG'))
        self.assertFalse('.' in build_upload_name(None))

    def test_save_and_delete(self):
        upload = SimpleUploadedFile('front.png', b'\x89PNG\r\n\x1a\nfake', content_type='image/png')

        with override_settings(MEDIA_ROOT=self.media_root):
            url = save_upload(upload)
            self.assertTrue(url.startswith('/uploads/'))
            self.assertTrue(url.endswith('.png'))

            self.assertTrue(delete_upload(url))
            self.assertFalse(delete_upload(url))
            self.assertFalse(delete_upload('https://cdn.example.com/front.png'))
