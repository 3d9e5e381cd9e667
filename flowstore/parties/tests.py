"""
Test suite for Parties module
Tests: customers and suppliers
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from flowstore.core.models import AuditLog
from flowstore.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from flowstore.parties.models import Customer, Supplier


class PartyModelTests(TestCase):

    def test_display_name_natural_person(self):
        customer = TestDataFactory.create_customer(first_name='Ana', last_name='Rojas')
        self.assertEqual(customer.display_name, 'Ana Rojas')

    def test_display_name_company(self):
        supplier = TestDataFactory.create_supplier(first_name='Juan', person_type='COMPANY',
                                                   business_name='Distribuidora Sur SpA')
        self.assertEqual(supplier.display_name, 'Distribuidora Sur SpA')


class CustomerAPITests(TestCase):
    """Test customer endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_customer(self):
        data = {'first_name': 'Ana', 'last_name': 'Rojas', 'document_number': '12345678-9', 'credit_limit': '50000'}
        response = self.client.post('/api/v1/customers/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['display_name'], 'Ana Rojas')
        self.assertTrue(AuditLog.objects.filter(action='create', model_name='Customer').exists())

    def test_balance_is_read_only(self):
        data = {'first_name': 'Ana', 'current_balance': '9999'}
        response = self.client.post('/api/v1/customers/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Customer.objects.get(pk=response.data['id']).current_balance, Decimal('0.00'))

    def test_first_name_required(self):
        response = self.client.post('/api/v1/customers/', {'first_name': '   '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_negative_credit_limit(self):
        response = self.client.post('/api/v1/customers/', {'first_name': 'Ana', 'credit_limit': '-1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_company_requires_business_name(self):
        response = self.client.post('/api/v1/customers/', {'first_name': 'Ana', 'person_type': 'COMPANY'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('business_name', response.data)

    def test_duplicate_document_number(self):
        TestDataFactory.create_customer(document_number='11111111-1')
        response = self.client.post('/api/v1/customers/', {'first_name': 'Ana', 'document_number': '11111111-1'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_deleted_customer_frees_document_number(self):
        customer = TestDataFactory.create_customer(document_number='11111111-1')
        self.client.delete(f'/api/v1/customers/{customer.id}/')
        response = self.client.post('/api/v1/customers/', {'first_name': 'Ana', 'document_number': '11111111-1'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_search(self):
        match = TestDataFactory.create_customer(first_name='Valentina')
        TestDataFactory.create_customer(first_name='Pedro')
        response = self.client.get('/api/v1/customers/', {'search': 'valen'})
        self.assertEqual([row['id'] for row in response.data], [match.id])

    def test_soft_delete(self):
        customer = TestDataFactory.create_customer()
        response = self.client.delete(f'/api/v1/customers/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        customer.refresh_from_db()
        self.assertIsNotNone(customer.deleted_at)
        response = self.client.get(f'/api/v1/customers/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_balance(self):
        customer = TestDataFactory.create_customer(credit_limit=Decimal('1000.00'), current_balance=Decimal('250.00'))
        response = self.client.get(f'/api/v1/customers/{customer.id}/balance/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['available_credit'], Decimal('750.00'))

    def test_available_credit_never_negative(self):
        customer = TestDataFactory.create_customer(credit_limit=Decimal('100.00'), current_balance=Decimal('250.00'))
        response = self.client.get(f'/api/v1/customers/{customer.id}/balance/')
        self.assertEqual(response.data['available_credit'], 0)


class SupplierAPITests(TestCase):
    """Test supplier endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_supplier(self):
        data = {'first_name': 'Juan', 'person_type': 'COMPANY', 'business_name': 'Distribuidora Sur SpA',
                'default_payment_term_days': 45, 'bank_name': 'Banco Estado'}
        response = self.client.post('/api/v1/suppliers/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        supplier = Supplier.objects.get(pk=response.data['id'])
        self.assertEqual(supplier.default_payment_term_days, 45)
        self.assertEqual(response.data['display_name'], 'Distribuidora Sur SpA')

    def test_update_supplier(self):
        supplier = TestDataFactory.create_supplier()
        response = self.client.patch(f'/api/v1/suppliers/{supplier.id}/', {'contact_person': 'Marta'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        supplier.refresh_from_db()
        self.assertEqual(supplier.contact_person, 'Marta')

    def test_deleted_suppliers_are_hidden(self):
        supplier = TestDataFactory.create_supplier()
        self.client.delete(f'/api/v1/suppliers/{supplier.id}/')
        response = self.client.get('/api/v1/suppliers/')
        self.assertEqual(response.data, [])
