# ===== ACCOUNTS APP TEST SUITE =====
"""
Test suite for accounts app functionality
File: accounts/tests.py

Test Coverage:
- Role and feature permission checks on the User model
- Registration, login, logout and the JWT cookie
- The three step password reset flow
- Admin user management endpoints
- Public agent profiles
"""

from datetime import timedelta
from itertools import count
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from deals.models import Deal
from people.models import Person
from properties.models import Property
from services import ServiceIntegrationError

from .authentication import issue_tokens
from .models import AgentContainerLimit, PasswordResetCode, UserPermission
from .permissions import (
    ADD_PROPERTY,
    MY_TOWERS,
    check_permissions,
    category_permission,
)

User = get_user_model()

phone_numbers = count(700000001)


def make_user(username, role='user', **extra):
    extra.setdefault('phone', f'0{next(phone_numbers)}')
    return User.objects.create_user(
        username=username,
        password='secret123',
        role=role,
        **extra
    )


# =============================================================================
# MODEL AND PERMISSION TESTS
# =============================================================================

class UserPermissionModelTest(TestCase):
    """Test feature key checks for each role"""

    def setUp(self):
        self.admin = make_user('boss', role='admin')
        self.agent = make_user('agent1', role='agent')
        self.user = make_user('visitor')

    def test_admin_holds_every_key(self):
        self.assertTrue(self.admin.has_app_permission(ADD_PROPERTY))
        self.assertIsNone(check_permissions(self.admin, MY_TOWERS))

    def test_agent_needs_granted_key(self):
        self.assertFalse(self.agent.has_app_permission(ADD_PROPERTY))

        UserPermission.objects.create(user=self.agent, permission_key=ADD_PROPERTY)
        self.assertTrue(self.agent.has_app_permission(ADD_PROPERTY))
        self.assertTrue(self.agent.has_app_permission(MY_TOWERS, ADD_PROPERTY))
        self.assertEqual(self.agent.get_permission_keys(), [ADD_PROPERTY])

    def test_plain_user_is_refused_with_agent_message(self):
        response = check_permissions(self.user, ADD_PROPERTY)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data['message'], 'Access denied. Agent role required for this action.')

    def test_agent_denial_lists_required_keys(self):
        response = check_permissions(self.agent, MY_TOWERS)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data['required'], [MY_TOWERS])

    def test_category_permission_table(self):
        self.assertEqual(category_permission('normal', 'create'), ADD_PROPERTY)
        self.assertEqual(category_permission('tower', 'parent_create'), MY_TOWERS)
        self.assertEqual(category_permission('sharak', 'child_create'), ADD_PROPERTY)
        self.assertIsNone(category_permission('castle', 'create'))

    def test_superuser_gets_admin_role(self):
        root = User.objects.create_superuser('root', 'root@example.com', 'secret123', phone='0799000000')
        self.assertEqual(root.role, 'admin')


# =============================================================================
# AUTHENTICATION API TESTS
# =============================================================================

class AuthenticationAPITest(APITestCase):
    """Test register, login, logout and me"""

    def setUp(self):
        self.user = make_user('ahmad', phone='0700111222', email='ahmad@example.com', full_name='Ahmad')

    def test_register_creates_user_and_sets_cookie(self):
        response = self.client.post('/api/auth/register/', {
            'phone': '0700999888',
            'password': 'secret123',
            'full_name': 'New Person',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['username'], '0700999888')
        self.assertEqual(response.data['role'], 'user')
        self.assertIn('token', response.data)
        self.assertIn('refresh', response.data)
        self.assertIn('jwt', response.cookies)

    def test_register_duplicate_phone(self):
        response = self.client.post('/api/auth/register/', {
            'phone': '0700111222',
            'password': 'secret123',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'User with this phone number already exists')

    def test_register_short_password(self):
        response = self.client.post('/api/auth/register/', {
            'phone': '0700555444',
            'password': '123',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Password must be at least 6 characters long.')

    def test_login_with_phone_and_username(self):
        for identifier in ('0700111222', 'ahmad'):
            response = self.client.post('/api/auth/login/', {
                'phone': identifier,
                'password': 'secret123',
            }, format='json')
            self.assertEqual(response.status_code, status.HTTP_200_OK)
            self.assertEqual(response.data['user_id'], self.user.id)
            self.assertEqual(response.data['permissions'], [])

        self.user.refresh_from_db()
        self.assertIsNotNone(self.user.last_login)

    def test_login_requires_both_fields(self):
        response = self.client.post('/api/auth/login/', {'phone': '0700111222'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Phone number and password are required')

    def test_login_wrong_password(self):
        response = self.client.post('/api/auth/login/', {
            'phone': '0700111222',
            'password': 'wrong-password',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['message'], 'Invalid credentials')

    def test_login_inactive_account(self):
        self.user.is_active = False
        self.user.save()

        response = self.client.post('/api/auth/login/', {
            'phone': '0700111222',
            'password': 'secret123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_me_with_bearer_token(self):
        access, _ = issue_tokens(self.user)
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {access}')

        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user_id'], self.user.id)
        self.assertNotIn('password', response.data)

    def test_me_with_cookie(self):
        access, _ = issue_tokens(self.user)
        self.client.cookies['jwt'] = access

        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['username'], 'ahmad')

    def test_me_requires_authentication(self):
        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_token_issues_new_access(self):
        _, refresh = issue_tokens(self.user)
        response = self.client.post('/api/auth/token/refresh/', {'refresh': refresh}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_logout_clears_cookie(self):
        response = self.client.post('/api/auth/logout/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.cookies['jwt'].value, '')


# =============================================================================
# PASSWORD RESET TESTS
# =============================================================================

class PasswordResetAPITest(APITestCase):
    """Test the forgot / verify / reset sequence"""

    def setUp(self):
        cache.clear()
        self.user = make_user('karim', phone='0700333444', email='karim@example.com')

    def issue_code(self, otp='123456', minutes=10, used=False):
        return PasswordResetCode.objects.create(
            user=self.user,
            otp=otp,
            used=used,
            expires_at=timezone.now() + timedelta(minutes=minutes),
        )

    def test_first_step_returns_masked_email(self):
        response = self.client.post('/api/auth/forgot-password/', {'identifier': 'karim'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['maskedEmail'], 'ka••••m@example.com')

    def test_unknown_user(self):
        response = self.client.post('/api/auth/forgot-password/', {'identifier': 'nobody'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_email_mismatch(self):
        response = self.client.post('/api/auth/forgot-password/', {
            'identifier': 'karim',
            'email': 'other@example.com',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(PasswordResetCode.objects.exists())

    @patch('accounts.views.send_password_reset_code')
    def test_second_step_stores_and_sends_code(self, mock_send):
        response = self.client.post('/api/auth/forgot-password/', {
            'identifier': '0700333444',
            'email': 'KARIM@example.com',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'OTP sent to your email')

        code = PasswordResetCode.objects.get(user=self.user)
        self.assertEqual(len(code.otp), 6)
        mock_send.assert_called_once_with(self.user, code.otp)

    @patch('accounts.views.send_password_reset_code')
    def test_mail_failure_returns_500(self, mock_send):
        mock_send.side_effect = ServiceIntegrationError('smtp down')

        response = self.client.post('/api/auth/forgot-password/', {
            'identifier': 'karim',
            'email': 'karim@example.com',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    def test_verify_code(self):
        self.issue_code()
        response = self.client.post('/api/auth/verify-reset-code/', {
            'identifier': 'karim',
            'otp': '123456',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_verify_expired_code(self):
        self.issue_code(minutes=-1)
        response = self.client.post('/api/auth/verify-reset-code/', {
            'identifier': 'karim',
            'otp': '123456',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Code expired')

    def test_verify_wrong_code(self):
        self.issue_code()
        response = self.client.post('/api/auth/verify-reset-code/', {
            'identifier': 'karim',
            'otp': '000000',
        }, format='json')
        self.assertEqual(response.data['message'], 'Invalid code')

    def test_reset_password(self):
        code = self.issue_code()
        response = self.client.post('/api/auth/reset-password/', {
            'identifier': 'karim',
            'otp': '123456',
            'newPassword': 'brand-new',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('brand-new'))
        code.refresh_from_db()
        self.assertTrue(code.used)

    def test_reset_rejects_used_code_and_short_password(self):
        self.issue_code(used=True)

        response = self.client.post('/api/auth/reset-password/', {
            'identifier': 'karim',
            'otp': '123456',
            'newPassword': 'abc',
        }, format='json')
        self.assertEqual(response.data['message'], 'Password must be at least 6 characters long.')

        response = self.client.post('/api/auth/reset-password/', {
            'identifier': 'karim',
            'otp': '123456',
            'newPassword': 'brand-new',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Invalid or expired code')


# =============================================================================
# ADMIN API TESTS
# =============================================================================

class AdminAPITest(APITestCase):
    """Test the admin dashboard endpoints"""

    def setUp(self):
        self.admin = make_user('admin1', role='admin')
        self.agent = make_user('agent1', role='agent', full_name='Zarif Agent')
        self.user = make_user('user1')
        self.client.force_authenticate(self.admin)

    def test_non_admin_is_refused(self):
        self.client.force_authenticate(self.agent)
        response = self.client.get('/api/admin/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_user_list_with_statistics(self):
        seller = Person.objects.create(full_name='Seller')
        buyer = Person.objects.create(full_name='Buyer')
        prop = Property.objects.create(title='Shop', agent=self.agent, created_by=self.agent)
        Deal.objects.create(property=prop, agent=self.agent, seller=seller, buyer=buyer,
                            deal_type='SALE', status='completed', price='1500.00')

        response = self.client.get('/api/admin/users/', {'role': 'agent'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 1)
        self.assertEqual(response.data['currentPage'], 1)
        row = response.data['users'][0]
        self.assertEqual(row['user_id'], self.agent.id)
        self.assertEqual(row['property_count'], 1)
        self.assertEqual(row['deal_count'], 1)
        self.assertEqual(row['total_volume'], '1500.00')

    def test_user_list_search_and_paging(self):
        response = self.client.get('/api/admin/users/', {'search': 'zarif'})
        self.assertEqual(response.data['total'], 1)

        response = self.client.get('/api/admin/users/', {'limit': 2, 'page': 2})
        self.assertEqual(response.data['pages'], 2)
        self.assertEqual(len(response.data['users']), 1)

    def test_page_past_the_end_is_empty(self):
        response = self.client.get('/api/admin/users/', {'limit': 2, 'page': 99})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['users'], [])
        self.assertEqual(response.data['total'], 3)
        self.assertEqual(response.data['pages'], 2)
        self.assertEqual(response.data['currentPage'], 99)

        response = self.client.get('/api/admin/properties/', {'page': 5})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['properties'], [])
        self.assertEqual(response.data['total'], 0)

    def test_update_role(self):
        response = self.client.put(f'/api/admin/users/{self.user.id}/role/', {'role': 'agent'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.role, 'agent')

        response = self.client.put(f'/api/admin/users/{self.user.id}/role/', {'role': 'king'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Invalid role')

    def test_replace_permissions(self):
        url = f'/api/admin/users/{self.agent.id}/permissions/'

        response = self.client.put(url, {'permissions': ['ADD_PROPERTY', 'MY_TOWERS']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.agent.get_permission_keys(), ['ADD_PROPERTY', 'MY_TOWERS'])

        response = self.client.put(url, {'permissions': ['MY_SHARAKS']}, format='json')
        self.assertEqual(self.agent.get_permission_keys(), ['MY_SHARAKS'])

        response = self.client.get(url)
        self.assertEqual(response.data['permissions'], ['MY_SHARAKS'])
        self.assertIn('TRANSACTION_HISTORY', response.data['availablePermissions'])

    def test_replace_permissions_validation(self):
        url = f'/api/admin/users/{self.agent.id}/permissions/'

        response = self.client.put(url, {'permissions': 'ADD_PROPERTY'}, format='json')
        self.assertEqual(response.data['message'], 'Permissions must be an array')

        response = self.client.put(url, {'permissions': ['ADD_PROPERTY', 'FLY']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['invalid'], ['FLY'])

        response = self.client.put(
            f'/api/admin/users/{self.admin.id}/permissions/', {'permissions': []}, format='json'
        )
        self.assertEqual(response.data['message'], 'Cannot modify permissions for admin users')

    def test_permission_catalog(self):
        response = self.client.get('/api/admin/permissions/')
        keys = [item['key'] for item in response.data['permissions']]
        self.assertEqual(len(keys), 6)
        self.assertIn('MY_MARKETS', keys)

    def test_container_limits(self):
        url = f'/api/admin/users/{self.agent.id}/container-limits/'

        response = self.client.put(url, {'limits': {'tower': 2, 'market': '3'}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['limits'], {'tower': 2, 'market': 3, 'sharak': None})

        response = self.client.put(url, {'limits': {'tower': None}}, format='json')
        self.assertFalse(AgentContainerLimit.objects.filter(user=self.agent, container_type='tower').exists())

        response = self.client.get(url)
        self.assertEqual(response.data['limits'], {'tower': None, 'market': 3, 'sharak': None})

    def test_container_limits_validation(self):
        url = f'/api/admin/users/{self.agent.id}/container-limits/'
        for limits in ({'tower': 0}, {'tower': True}, {'tower': 'many'}, {'castle': 1}):
            response = self.client.put(url, {'limits': limits}, format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, limits)

    def test_delete_user(self):
        response = self.client.delete(f'/api/admin/users/{self.user.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(User.objects.filter(pk=self.user.id).exists())

        response = self.client.delete(f'/api/admin/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.delete('/api/admin/users/999999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_dashboard_stats(self):
        Property.objects.create(title='Flat', is_available_for_sale=True, created_by=self.agent)
        Property.objects.create(record_kind='container', is_parent=True, property_category='tower')

        self.client.force_authenticate(self.user)
        response = self.client.get('/api/admin/stats/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['totalUsers'], 3)
        self.assertEqual(response.data['totalAgents'], 1)
        self.assertEqual(response.data['totalProperties'], 1)
        self.assertEqual(response.data['propertiesForSale'], 1)
        self.assertEqual(len(response.data['recentProperties']), 1)


# =============================================================================
# PUBLIC PROFILE TESTS
# =============================================================================

class PublicUsersAPITest(APITestCase):

    def setUp(self):
        self.agent = make_user('agent1', role='agent', full_name='Agent One')
        self.lister = make_user('lister', full_name='Lister')
        make_user('idle')

    def test_public_agents(self):
        response = self.client.get('/api/public/users/agents/list/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['user_id'] for row in response.data], [self.agent.id])

    def test_public_listers(self):
        Property.objects.create(title='Flat', is_available_for_rent=True, created_by=self.lister)
        response = self.client.get('/api/public/users/listers/list/')
        self.assertEqual([row['user_id'] for row in response.data], [self.lister.id])

    def test_public_profile(self):
        response = self.client.get(f'/api/public/users/{self.agent.id}/')
        self.assertEqual(response.data['full_name'], 'Agent One')

        response = self.client.get('/api/public/users/999999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
