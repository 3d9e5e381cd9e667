"""
Test suite for Expenses module
Tests: expense categories, cost centers and operating expense documents
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from flowstore.core.exceptions import ServiceError
from flowstore.core.models import AuditLog
from flowstore.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from flowstore.expenses.models import ExpenseCategory, CostCenter
from flowstore.expenses.services import create_operating_expense, list_operating_expenses
from flowstore.transactions.models import TransactionStatus, TransactionType


class OperatingExpenseServiceTests(TestCase):
    """Test create_operating_expense"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.branch = TestDataFactory.create_branch()
        self.category = TestDataFactory.create_expense_category(code='ARR', name='Arriendo')
        self.cost_center = TestDataFactory.create_cost_center(code='ADM', branch=self.branch)

    def test_expense_amounts(self):
        """The amount is gross; the subtotal excludes the tax"""
        expense = create_operating_expense(self.category.id, self.cost_center.id, Decimal('119000'),
                                           tax_amount=Decimal('19000'), payment_method='TRANSFER', user=self.user)
        self.assertEqual(expense.transaction_type, TransactionType.OPERATING_EXPENSE)
        self.assertEqual(expense.status, TransactionStatus.CONFIRMED)
        self.assertEqual(expense.document_number, 'GOP-00000001')
        self.assertEqual(expense.subtotal, Decimal('100000.00'))
        self.assertEqual(expense.tax_amount, Decimal('19000.00'))
        self.assertEqual(expense.total, Decimal('119000.00'))
        self.assertEqual(expense.branch_id, self.branch.id)
        self.assertEqual(expense.metadata['expenseCategoryCode'], 'ARR')
        self.assertTrue(AuditLog.objects.filter(action='expense_create', object_id=str(expense.id)).exists())

    def test_amount_must_be_positive(self):
        with self.assertRaises(ServiceError):
            create_operating_expense(self.category.id, self.cost_center.id, Decimal('0'))

    def test_tax_cannot_exceed_amount(self):
        with self.assertRaises(ServiceError):
            create_operating_expense(self.category.id, self.cost_center.id, Decimal('100'), tax_amount=Decimal('101'))

    def test_category_required(self):
        with self.assertRaises(ServiceError):
            create_operating_expense(None, self.cost_center.id, Decimal('100'))

    def test_deleted_cost_center_is_rejected(self):
        self.cost_center.deleted_at = self.cost_center.created_at
        self.cost_center.save()
        with self.assertRaises(ServiceError):
            create_operating_expense(self.category.id, self.cost_center.id, Decimal('100'))

    def test_unknown_supplier(self):
        with self.assertRaises(ServiceError):
            create_operating_expense(self.category.id, self.cost_center.id, Decimal('100'), supplier_id=999999)

    def test_list_filters_by_category(self):
        other = TestDataFactory.create_expense_category()
        create_operating_expense(self.category.id, self.cost_center.id, Decimal('100'))
        create_operating_expense(other.id, self.cost_center.id, Decimal('200'))
        expenses = list_operating_expenses(category_id=other.id)
        self.assertEqual([expense.total for expense in expenses], [Decimal('200.00')])


class ExpenseAPITests(TestCase):
    """Test expense API endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.category = TestDataFactory.create_expense_category()
        self.cost_center = TestDataFactory.create_cost_center()

    def test_create_category(self):
        response = self.client.post('/api/v1/expense-categories/', {'code': 'LUZ', 'name': 'Electricidad'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(ExpenseCategory.objects.filter(code='LUZ').exists())

    def test_duplicate_category_code(self):
        response = self.client.post('/api/v1/expense-categories/', {'code': self.category.code, 'name': 'Otra'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_category_is_soft(self):
        response = self.client.delete(f'/api/v1/expense-categories/{self.category.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.category.refresh_from_db()
        self.assertIsNotNone(self.category.deleted_at)
        response = self.client.get('/api/v1/expense-categories/')
        self.assertNotIn(self.category.id, [row['id'] for row in response.data])

    def test_cost_center_with_children_cannot_be_deleted(self):
        CostCenter.objects.create(code='ADM-1', name='Sub', parent=self.cost_center)
        response = self.client.delete(f'/api/v1/cost-centers/{self.cost_center.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cost_center_cannot_be_its_own_ancestor(self):
        child = CostCenter.objects.create(code='ADM-2', name='Sub', parent=self.cost_center)
        response = self.client.patch(f'/api/v1/cost-centers/{self.cost_center.id}/', {'parent': child.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_record_expense(self):
        data = {'expense_category': self.category.id, 'cost_center': self.cost_center.id,
                'amount': '59500', 'tax_amount': '9500', 'payment_method': 'CASH', 'notes': 'Agua'}
        response = self.client.post('/api/v1/operating-expenses/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['success'])
        self.assertEqual(Decimal(response.data['transaction']['subtotal']), Decimal('50000.00'))

        response = self.client.get('/api/v1/operating-expenses/', {'category': self.category.id})
        self.assertEqual(response.data['count'], 1)

    def test_record_expense_without_amount(self):
        data = {'expense_category': self.category.id, 'cost_center': self.cost_center.id, 'amount': '0'}
        response = self.client.post('/api/v1/operating-expenses/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])
