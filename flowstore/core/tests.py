"""
Test suite for Core module
Tests: authentication, users, company, audit logs and shared helpers
"""
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from flowstore.core.cache_utils import cached_query, make_cache_key, invalidate_cache_pattern
from flowstore.core.exceptions import ServiceError, NotFoundError, InsufficientStockError
from flowstore.core.models import AuditLog, Company, get_company
from flowstore.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from flowstore.core.utils import create_audit_log, to_decimal, round_money, round_quantity

STRONG_PASSWORD = 'Inventario-2024!'


class HelperTests(TestCase):

    def test_to_decimal(self):
        self.assertEqual(to_decimal('12.5'), Decimal('12.5'))
        self.assertEqual(to_decimal(3), Decimal('3'))
        self.assertIsNone(to_decimal(''))
        self.assertEqual(to_decimal('abc', Decimal('0')), Decimal('0'))

    def test_rounding(self):
        self.assertEqual(round_money(Decimal('1166.665')), Decimal('1166.67'))
        self.assertEqual(round_quantity(Decimal('0.33333')), Decimal('0.333'))

    def test_error_status_codes(self):
        self.assertEqual(ServiceError('x').status_code, 400)
        self.assertEqual(NotFoundError('x').status_code, 404)
        self.assertIsInstance(InsufficientStockError('x'), ServiceError)

    def test_get_company_creates_placeholder(self):
        company = get_company()
        self.assertEqual(get_company(), company)
        self.assertEqual(Company.objects.count(), 1)

    def test_audit_log_requires_object(self):
        self.assertIsNone(create_audit_log(action='create', model_name='Branch'))
        self.assertEqual(AuditLog.objects.count(), 0)


class CacheTests(TestCase):

    def setUp(self):
        cache.clear()

    def test_cache_key_depends_on_arguments(self):
        self.assertNotEqual(make_cache_key('stock', 1), make_cache_key('stock', 2))
        self.assertTrue(make_cache_key('stock', 1).startswith('stock:'))

    def test_cached_query_and_invalidation(self):
        calls = []

        @cached_query(cache_ttl=60, key_prefix='test_query')
        def expensive(value):
            calls.append(value)
            return value * 2

        self.assertEqual(expensive(2), 4)
        self.assertEqual(expensive(2), 4)
        self.assertEqual(calls, [2])

        invalidate_cache_pattern('test_query:*')
        expensive(2)
        self.assertEqual(calls, [2, 2])
        self.assertEqual(expensive.uncached(5), 10)


class AuthAPITests(TestCase):
    """Test registration, login and the current user endpoint"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_register(self):
        data = {'username': 'cajero1', 'email': 'cajero1@test.com',
                'password': STRONG_PASSWORD, 'password_confirm': STRONG_PASSWORD}
        response = self.client.post('/api/v1/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data)
        self.assertEqual(response.data['user']['username'], 'cajero1')

    def test_register_password_mismatch(self):
        data = {'username': 'cajero1', 'password': STRONG_PASSWORD, 'password_confirm': 'otra-Clave-99'}
        response = self.client.post('/api/v1/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_login_and_refresh(self):
        TestDataFactory.create_user(username='bodeguero', password=STRONG_PASSWORD)
        response = self.client.post('/api/v1/auth/login/', {'username': 'bodeguero', 'password': STRONG_PASSWORD},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': response.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_login_wrong_password(self):
        TestDataFactory.create_user(username='bodeguero', password=STRONG_PASSWORD)
        response = self.client.post('/api/v1/auth/login/', {'username': 'bodeguero', 'password': 'nope'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_flags(self):
        user = TestDataFactory.create_user()
        self.client.authenticate_user(user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_admin'])
        self.assertFalse(response.data['can_access_accounting'])

        admin = TestDataFactory.create_admin()
        self.client.authenticate_user(admin)
        response = self.client.get('/api/v1/auth/me/')
        self.assertTrue(response.data['is_admin'])
        self.assertTrue(response.data['can_access_settings'])


class UserAPITests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_non_admin_cannot_list_users(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete_deactivates(self):
        user = TestDataFactory.create_user()
        response = self.client.delete(f'/api/v1/users/{user.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        user.refresh_from_db()
        self.assertFalse(user.is_active)

    def test_cannot_delete_self(self):
        response = self.client.delete(f'/api/v1/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_search_users(self):
        TestDataFactory.create_user(username='cajera_maria')
        TestDataFactory.create_user(username='bodeguero_luis')
        response = self.client.get('/api/v1/users/', {'search': 'maria'})
        self.assertEqual([row['username'] for row in response.data], ['cajera_maria'])

    def test_setting_key_is_normalized(self):
        response = self.client.post('/api/v1/settings/', {'key': ' Receipt_Footer ', 'value': 'Gracias'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['key'], 'receipt_footer')

    def test_company_currency_code(self):
        response = self.client.patch('/api/v1/company/', {'default_currency': 'pesos'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.patch('/api/v1/company/', {'default_currency': 'usd'}, format='json')
        self.assertEqual(response.data['default_currency'], 'USD')

    def test_company_update_requires_staff(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.patch('/api/v1/company/', {'name': 'Otra'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_company_update(self):
        response = self.client.patch('/api/v1/company/', {'name': 'Comercial Sur'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(get_company().name, 'Comercial Sur')


class AuditLogAPITests(TestCase):
    """Test audit log visibility and filters"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.other = TestDataFactory.create_user()
        self.own = create_audit_log(user=self.user, action='create', model_name='Customer', object_id=1)
        self.foreign = create_audit_log(user=self.other, action='delete', model_name='Supplier', object_id=2,
                                        object_reference='REC-00000001')
        self.client = AuthenticatedAPIClient()

    def test_users_see_their_own_entries(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual([row['id'] for row in response.data['results']], [self.own.id])
        response = self.client.get(f'/api/v1/audit-logs/{self.foreign.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_staff_filters(self):
        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.get('/api/v1/audit-logs/', {'reference': 'REC-00000001'})
        self.assertEqual([row['id'] for row in response.data['results']], [self.foreign.id])
        response = self.client.get('/api/v1/audit-logs/', {'model': 'Customer', 'action': 'create'})
        self.assertEqual([row['id'] for row in response.data['results']], [self.own.id])
