"""
Test suite for Reports module
Tests: sales summary and inventory valuation
"""
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from flowstore.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from flowstore.reports.services import get_sales_summary, get_inventory_valuation
from flowstore.transactions.models import TransactionStatus, TransactionType
from flowstore.transactions.services import create_transaction, cancel_transaction


class SalesSummaryTests(TestCase):

    def setUp(self):
        cache.clear()
        self.storage = TestDataFactory.create_storage()
        self.variant = TestDataFactory.create_variant()
        TestDataFactory.stock_variant(self.variant, self.storage, 100)

    def _sale(self, quantity, price, payment_method=None, status=TransactionStatus.CONFIRMED):
        return create_transaction({
            'transaction_type': TransactionType.SALE,
            'status': status,
            'branch': self.storage.branch,
            'storage': self.storage,
            'payment_method': payment_method,
            'lines': [{'variant': self.variant, 'quantity': Decimal(quantity), 'unit_price': Decimal(price)}],
        })

    def test_totals_by_payment_method(self):
        self._sale('1', '1000', 'CASH')
        self._sale('2', '1000', 'CASH')
        self._sale('1', '500')
        summary = get_sales_summary()
        self.assertEqual(summary['totalSales'], Decimal('3500.00'))
        self.assertEqual(summary['totalTransactions'], 3)
        self.assertEqual(summary['averageTicket'], Decimal('1166.67'))
        self.assertEqual(summary['byPaymentMethod']['CASH']['count'], 2)
        self.assertEqual(summary['byPaymentMethod']['UNSPECIFIED']['total'], Decimal('500.00'))

    def test_only_confirmed_sales_count(self):
        sale = self._sale('1', '1000', 'CASH')
        self._sale('1', '700', 'CASH', status=TransactionStatus.DRAFT)
        cancel_transaction(sale.id)
        summary = get_sales_summary()
        self.assertEqual(summary['totalTransactions'], 0)
        self.assertEqual(summary['averageTicket'], Decimal('0.00'))

    def test_branch_filter(self):
        self._sale('1', '1000', 'CASH')
        other_branch = TestDataFactory.create_branch()
        summary = get_sales_summary(branch_id=other_branch.id)
        self.assertEqual(summary['totalTransactions'], 0)


class InventoryValuationTests(TestCase):

    def setUp(self):
        cache.clear()
        self.branch = TestDataFactory.create_branch()
        self.storage = TestDataFactory.create_storage(branch=self.branch, name='Bodega')
        self.variant = TestDataFactory.create_variant(base_cost=Decimal('25.00'))
        TestDataFactory.stock_variant(self.variant, self.storage, 4)

    def test_valuation_uses_base_cost_without_pmp(self):
        valuation = get_inventory_valuation()
        self.assertEqual(valuation['totalValue'], Decimal('100.00'))
        self.assertEqual(valuation['storages'][0]['storageName'], 'Bodega')

    def test_valuation_uses_pmp(self):
        create_transaction({
            'transaction_type': TransactionType.PURCHASE,
            'storage': self.storage,
            'lines': [{'variant': self.variant, 'quantity': Decimal('4'), 'unit_price': Decimal('35.00')}],
        })
        # pmp = (4 * 25 + 4 * 35) / 8 = 30
        self.assertEqual(get_inventory_valuation()['totalValue'], Decimal('240.00'))

    def test_valuation_by_branch(self):
        other = TestDataFactory.create_branch()
        valuation = get_inventory_valuation(branch_id=other.id)
        self.assertEqual(valuation['storages'], [])
        self.assertEqual(valuation['totalValue'], Decimal('0.00'))


class ReportsAPITests(TestCase):

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_sales_summary(self):
        response = self.client.get('/api/v1/reports/sales-summary/', {'date_from': '2020-01-01'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['totalTransactions'], 0)

    def test_inventory_valuation(self):
        response = self.client.get('/api/v1/reports/inventory-valuation/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['storages'], [])
