"""
Tests for the locations app: public lookups and the load_locations command.
"""

import json
import os
import tempfile
from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APITestCase

from .models import Area, District, Province


class LocationLookupAPITest(APITestCase):
    """Test the address picker endpoints"""

    def setUp(self):
        self.kabul = Province.objects.create(name='Kabul')
        self.herat = Province.objects.create(name='Herat')
        self.paghman = District.objects.create(province=self.kabul, name='Paghman')
        self.city = District.objects.create(province=self.kabul, name='Kabul City')
        District.objects.create(province=self.herat, name='Injil')
        Area.objects.create(district=self.city, name='Shahr-e Naw')
        Area.objects.create(district=self.city, name='Karte Char')

    def test_provinces_ordered_by_name(self):
        response = self.client.get('/api/locations/provinces/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['name'] for row in response.data], ['Herat', 'Kabul'])

    def test_districts_of_province(self):
        response = self.client.get(f'/api/locations/provinces/{self.kabul.id}/districts/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['name'] for row in response.data], ['Kabul City', 'Paghman'])
        self.assertEqual(response.data[0]['province_id'], self.kabul.id)

    def test_areas_of_district(self):
        response = self.client.get(f'/api/locations/districts/{self.city.id}/areas/')
        self.assertEqual([row['name'] for row in response.data], ['Karte Char', 'Shahr-e Naw'])

        response = self.client.get(f'/api/locations/districts/{self.paghman.id}/areas/')
        self.assertEqual(response.data, [])

    def test_deleting_province_cascades(self):
        self.kabul.delete()
        self.assertEqual(District.objects.count(), 1)
        self.assertFalse(Area.objects.exists())


class LoadLocationsCommandTest(TestCase):
    """Test the JSON tree loader"""

    tree = {
        'Kabul': {'Kabul City': ['Karte Char', 'Shahr-e Naw'], 'Paghman': []},
        'Balkh': {'Mazar-i-Sharif': ['Karte Ariana']},
    }

    def setUp(self):
        handle, self.path = tempfile.mkstemp(suffix='.json')
        with os.fdopen(handle, 'w', encoding='utf-8') as tree_file:
            json.dump(self.tree, tree_file)
        self.addCleanup(os.remove, self.path)

    def test_load_is_idempotent(self):
        out = StringIO()
        call_command('load_locations', self.path, stdout=out)
        self.assertIn('2 provinces, 3 districts, 3 areas created', out.getvalue())

        call_command('load_locations', self.path, stdout=StringIO())
        self.assertEqual(Province.objects.count(), 2)
        self.assertEqual(District.objects.count(), 3)
        self.assertEqual(Area.objects.count(), 3)

    def test_dry_run_saves_nothing(self):
        out = StringIO()
        call_command('load_locations', self.path, '--dry-run', stdout=out)
        self.assertIn('DRY RUN', out.getvalue())
        self.assertFalse(Province.objects.exists())

    def test_missing_file(self):
        with self.assertRaises(CommandError):
            call_command('load_locations', '/nonexistent/locations.json')
