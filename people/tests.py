"""
Tests for the people app: person CRUD, agent list and the profile screen.
"""

import shutil
import tempfile

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import override_settings
from rest_framework import status
from rest_framework.test import APITestCase

from properties.models import Property

from .models import Person

User = get_user_model()


class PersonAPITest(APITestCase):
    """Test /api/persons/"""

    def setUp(self):
        self.user = User.objects.create_user(
            username='agent1', password='secret123', phone='0700100100', role='agent', full_name='Agent One'
        )
        self.client.force_authenticate(self.user)
        self.owner = Person.objects.create(
            full_name='Habib Rahimi', phone='0788000111', national_id='1400-0101-12345'
        )

    def test_requires_authentication(self):
        self.client.force_authenticate(None)
        response = self.client.get('/api/persons/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_create_person(self):
        response = self.client.post('/api/persons/', {
            'full_name': 'Nadia Karimi',
            'phone': '0788000222',
            'national_id': '',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        person = Person.objects.get(pk=response.data['id'])
        self.assertIsNone(person.national_id)

    def test_create_requires_full_name(self):
        response = self.client.post('/api/persons/', {'phone': '0788000333'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Full name is required')

    def test_duplicate_national_id(self):
        response = self.client.post('/api/persons/', {
            'full_name': 'Someone Else',
            'national_id': '1400-0101-12345',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'DUPLICATE_NATIONAL_ID')
        self.assertEqual(response.data['person'], {'id': self.owner.id, 'full_name': 'Habib Rahimi'})

    def test_duplicate_phone(self):
        response = self.client.post('/api/persons/', {
            'full_name': 'Someone Else',
            'phone': '0788000111',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['person']['id'], self.owner.id)

    def test_many_people_without_national_id(self):
        for name in ('A', 'B'):
            response = self.client.post('/api/persons/', {'full_name': name, 'national_id': '  '}, format='json')
            self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_list_search_and_owned_listings(self):
        Person.objects.create(full_name='Unrelated')
        Property.objects.create(title='Flat', owner=self.owner)
        Property.objects.create(title='Tower', owner=self.owner, record_kind='container', is_parent=True)

        response = self.client.get('/api/persons/', {'search': 'habib'})

        self.assertEqual(len(response.data), 1)
        self.assertEqual([row['title'] for row in response.data[0]['properties']], ['Flat'])

    def test_list_is_capped(self):
        Person.objects.bulk_create([Person(full_name=f'Person {index}') for index in range(25)])
        response = self.client.get('/api/persons/')
        self.assertEqual(len(response.data), 20)

    def test_retrieve(self):
        response = self.client.get(f'/api/persons/{self.owner.id}/')
        self.assertEqual(response.data['full_name'], 'Habib Rahimi')

        response = self.client.get('/api/persons/999999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_partial_update(self):
        response = self.client.put(f'/api/persons/{self.owner.id}/', {'address': 'Karte Se'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.owner.refresh_from_db()
        self.assertEqual(self.owner.address, 'Karte Se')
        self.assertEqual(self.owner.full_name, 'Habib Rahimi')

    def test_update_conflict_excludes_self(self):
        other = Person.objects.create(full_name='Other', national_id='9999')

        response = self.client.put(f'/api/persons/{self.owner.id}/', {
            'national_id': '1400-0101-12345',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.put(f'/api/persons/{self.owner.id}/', {'national_id': '9999'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['person']['id'], other.id)

    def test_delete_refused_for_owner(self):
        Property.objects.create(title='Flat', owner=self.owner)

        response = self.client.delete(f'/api/persons/{self.owner.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Cannot delete person who owns properties.')

    def test_delete(self):
        response = self.client.delete(f'/api/persons/{self.owner.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Person.objects.filter(pk=self.owner.id).exists())

    def test_agents_list(self):
        User.objects.create_user(username='admin1', password='secret123', phone='0700100200', role='admin')
        User.objects.create_user(username='plain', password='secret123', phone='0700100300')

        response = self.client.get('/api/persons/agents/list/')
        self.assertEqual(len(response.data), 2)


class PersonUploadTest(APITestCase):
    """Test the id card upload on create"""

    def setUp(self):
        self.media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.media_root, ignore_errors=True)
        self.user = User.objects.create_user(username='agent1', password='secret123', phone='0700100100')
        self.client.force_authenticate(self.user)

    def test_id_card_is_stored(self):
        card = SimpleUploadedFile('card.png', b'\x89PNG\r\n\x1a\nfake', content_type='image/png')

        with override_settings(MEDIA_ROOT=self.media_root):
            response = self.client.post('/api/persons/', {'full_name': 'With Card', 'id_card': card})

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['id_card_path'].startswith('/uploads/'))
        self.assertTrue(response.data['id_card_path'].endswith('.png'))

    def test_disallowed_file_type_is_rejected(self):
        script = SimpleUploadedFile('card.exe', b'MZ', content_type='application/x-msdownload')

        with override_settings(MEDIA_ROOT=self.media_root):
            response = self.client.post('/api/persons/', {'full_name': 'Bad Card', 'id_card': script})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Person.objects.exists())


class ProfileAPITest(APITestCase):
    """Test /api/profile/"""

    def setUp(self):
        self.user = User.objects.create_user(
            username='karim', password='secret123', phone='0700200200',
            email='karim@example.com', full_name='Karim'
        )
        self.client.force_authenticate(self.user)

    def test_get_without_person(self):
        response = self.client.get('/api/profile/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['full_name'], 'Karim')
        self.assertEqual(response.data['User']['user_id'], self.user.id)

    def test_get_prefers_person_fields(self):
        person = Person.objects.create(
            full_name='Karim Person', phone='0799999999', address='Person addr', user=self.user
        )

        response = self.client.get('/api/profile/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], person.id)
        self.assertEqual(response.data['full_name'], 'Karim Person')
        self.assertEqual(response.data['phone'], '0799999999')
        self.assertEqual(response.data['address'], 'Person addr')
        self.assertEqual(response.data['User']['user_id'], self.user.id)
        self.assertEqual(response.data['User']['username'], 'karim')

    def test_put_creates_person_and_syncs_user(self):
        response = self.client.put('/api/profile/', {
            'full_name': 'Karim Jan',
            'address': 'Wazir Akbar Khan',
            'national_id': 'ID-42',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        person = Person.objects.get(user=self.user)
        self.assertEqual(person.full_name, 'Karim Jan')
        self.assertEqual(person.email, 'karim@example.com')

        self.user.refresh_from_db()
        self.assertEqual(self.user.full_name, 'Karim Jan')
        self.assertEqual(self.user.address, 'Wazir Akbar Khan')
        self.assertEqual(self.user.national_id, 'ID-42')

    def test_put_updates_existing_person(self):
        person = Person.objects.create(full_name='Karim', user=self.user)

        self.client.put('/api/profile/', {'address': 'Shahr-e Naw'}, format='json')

        person.refresh_from_db()
        self.assertEqual(person.address, 'Shahr-e Naw')
        self.assertEqual(Person.objects.filter(user=self.user).count(), 1)

    def test_put_phone_conflict(self):
        User.objects.create_user(username='other', password='secret123', phone='0700300300')

        response = self.client.put('/api/profile/', {'phone': '0700300300'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Validation error: value already exists.')
