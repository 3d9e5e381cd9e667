"""
Test suite for Cash module
Tests: opening, booking documents in the open session, summary, closing, reconciliation and the API
"""
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from flowstore.cash.models import CashSession, CashSessionStatus
from flowstore.cash.services import (
    open_cash_session, close_cash_session, reconcile_cash_session, get_cash_session_summary, get_active_session
)
from flowstore.core.exceptions import ServiceError, NotFoundError
from flowstore.core.models import AuditLog
from flowstore.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from flowstore.transactions.models import PaymentMethod, TransactionType
from flowstore.transactions.services import create_transaction, cancel_transaction


class CashSessionTestCase(TestCase):

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.storage = TestDataFactory.create_storage()
        self.point_of_sale = TestDataFactory.create_point_of_sale(branch=self.storage.branch)
        self.variant = TestDataFactory.create_variant(base_cost=Decimal('400.00'), base_price=Decimal('1000.00'))
        TestDataFactory.stock_variant(self.variant, self.storage, 20)

    def _sale(self, quantity, payment_method=PaymentMethod.CASH, **extra):
        data = {
            'transaction_type': TransactionType.SALE,
            'branch': self.storage.branch,
            'storage': self.storage,
            'point_of_sale': self.point_of_sale,
            'payment_method': payment_method,
            'lines': [{'variant': self.variant, 'quantity': Decimal(str(quantity)), 'unit_price': Decimal('1000.00')}],
        }
        data.update(extra)
        return create_transaction(data, user=self.user)

    def _payment(self, transaction_type, amount):
        return create_transaction({
            'transaction_type': transaction_type,
            'point_of_sale': self.point_of_sale,
            'payment_method': PaymentMethod.CASH,
            'subtotal': Decimal(amount),
        }, user=self.user)


class OpenCashSessionTests(CashSessionTestCase):

    def test_open_session(self):
        session = open_cash_session(self.point_of_sale.id, Decimal('10000'), notes='turno mañana', user=self.user)
        self.assertEqual(session.status, CashSessionStatus.OPEN)
        self.assertEqual(session.opening_amount, Decimal('10000.00'))
        self.assertEqual(session.opened_by, self.user)
        self.assertEqual(get_active_session(self.point_of_sale.id), session)
        self.assertTrue(AuditLog.objects.filter(action='cash_session_open', object_id=str(session.id)).exists())

    def test_one_open_session_per_point_of_sale(self):
        open_cash_session(self.point_of_sale.id, 0, user=self.user)
        with self.assertRaises(ServiceError):
            open_cash_session(self.point_of_sale.id, 0, user=self.user)
        other = TestDataFactory.create_point_of_sale(branch=self.storage.branch)
        self.assertEqual(open_cash_session(other.id, 0).status, CashSessionStatus.OPEN)

    def test_negative_opening_amount(self):
        with self.assertRaises(ServiceError):
            open_cash_session(self.point_of_sale.id, Decimal('-1'))

    def test_inactive_point_of_sale(self):
        self.point_of_sale.is_active = False
        self.point_of_sale.save()
        with self.assertRaises(ServiceError):
            open_cash_session(self.point_of_sale.id, 0)

    def test_unknown_point_of_sale(self):
        with self.assertRaises(NotFoundError):
            open_cash_session(999999, 0)


class CashSessionBookingTests(CashSessionTestCase):
    """Documents written at a point of sale land in its open session"""

    def test_sale_is_booked_in_open_session(self):
        session = open_cash_session(self.point_of_sale.id, 0, user=self.user)
        sale = self._sale(1)
        self.assertEqual(sale.cash_session, session)

    def test_sale_without_open_session(self):
        self.assertIsNone(self._sale(1).cash_session)

    def test_closed_session_cannot_take_documents(self):
        session = open_cash_session(self.point_of_sale.id, 0)
        close_cash_session(session.id, 0)
        with self.assertRaises(ServiceError):
            self._sale(1, cash_session=session)

    def test_session_of_another_point_of_sale(self):
        other = TestDataFactory.create_point_of_sale(branch=self.storage.branch)
        session = open_cash_session(other.id, 0)
        with self.assertRaises(ServiceError):
            self._sale(1, cash_session=session)

    def test_refund_after_close_goes_to_current_session(self):
        first = open_cash_session(self.point_of_sale.id, 0)
        sale = self._sale(1)
        close_cash_session(first.id, Decimal('1000'))
        second = open_cash_session(self.point_of_sale.id, Decimal('5000'))
        reversal = cancel_transaction(sale.id, user=self.user)
        self.assertEqual(reversal.cash_session, second)
        self.assertEqual(get_cash_session_summary(second)['expectedBalance'], Decimal('4000.00'))


class CashSessionSummaryTests(CashSessionTestCase):

    def setUp(self):
        super().setUp()
        self.session = open_cash_session(self.point_of_sale.id, Decimal('10000'), user=self.user)

    def test_expected_balance_counts_cash_only(self):
        self._sale(2)
        self._sale(1, payment_method=PaymentMethod.CREDIT_CARD)
        self._payment(TransactionType.PAYMENT_IN, '500')
        self._payment(TransactionType.PAYMENT_OUT, '300')

        summary = get_cash_session_summary(self.session)
        self.assertEqual(summary['totalSales'], Decimal('2000.00'))
        self.assertEqual(summary['cashIn'], Decimal('2500.00'))
        self.assertEqual(summary['cashOut'], Decimal('300.00'))
        self.assertEqual(summary['expectedBalance'], Decimal('12200.00'))
        self.assertEqual(summary['transactionCount'], 3)

    def test_cancelled_sale_nets_to_zero(self):
        sale = self._sale(2)
        reversal = cancel_transaction(sale.id, user=self.user)
        self.assertEqual(reversal.cash_session, self.session)

        summary = get_cash_session_summary(self.session)
        self.assertEqual(summary['totalSales'], Decimal('2000.00'))
        self.assertEqual(summary['totalReturns'], Decimal('2000.00'))
        self.assertEqual(summary['expectedBalance'], Decimal('10000.00'))


class CloseAndReconcileTests(CashSessionTestCase):

    def setUp(self):
        super().setUp()
        self.session = open_cash_session(self.point_of_sale.id, Decimal('10000'), user=self.user)
        self._sale(2)

    def test_close_records_difference(self):
        session, summary = close_cash_session(self.session.id, Decimal('11900'), notes='faltante', user=self.user)
        session.refresh_from_db()
        self.assertEqual(session.status, CashSessionStatus.CLOSED)
        self.assertEqual(session.expected_amount, Decimal('12000.00'))
        self.assertEqual(session.closing_amount, Decimal('11900.00'))
        self.assertEqual(session.difference, Decimal('-100.00'))
        self.assertEqual(session.closed_by, self.user)
        self.assertIsNotNone(session.closed_at)
        self.assertEqual(summary['expectedBalance'], Decimal('12000.00'))
        self.assertIsNone(get_active_session(self.point_of_sale.id))

    def test_close_twice(self):
        close_cash_session(self.session.id, Decimal('12000'))
        with self.assertRaises(ServiceError):
            close_cash_session(self.session.id, Decimal('12000'))

    def test_close_requires_counted_amount(self):
        with self.assertRaises(ServiceError):
            close_cash_session(self.session.id, None)

    def test_sales_after_close_are_not_booked(self):
        close_cash_session(self.session.id, Decimal('12000'))
        self.assertIsNone(self._sale(1).cash_session)

    def test_reconcile_requires_closed_session(self):
        with self.assertRaises(ServiceError):
            reconcile_cash_session(self.session.id)

    def test_reconcile_with_adjusted_balance(self):
        close_cash_session(self.session.id, Decimal('11900'), notes='faltante')
        session = reconcile_cash_session(self.session.id, adjusted_balance=Decimal('12000'), notes='recontado')
        session.refresh_from_db()
        self.assertEqual(session.status, CashSessionStatus.RECONCILED)
        self.assertEqual(session.closing_amount, Decimal('12000.00'))
        self.assertEqual(session.difference, Decimal('0.00'))
        self.assertEqual(session.notes, 'faltante\n[CONCILIACIÓN] recontado')
        self.assertTrue(AuditLog.objects.filter(action='cash_session_reconcile', object_id=str(session.id)).exists())

    def test_reconcile_keeps_difference_without_adjustment(self):
        close_cash_session(self.session.id, Decimal('11950'))
        session = reconcile_cash_session(self.session.id)
        self.assertEqual(session.difference, Decimal('-50.00'))
        with self.assertRaises(ServiceError):
            reconcile_cash_session(self.session.id)


class CashSessionAPITests(CashSessionTestCase):
    """Test cash session endpoints"""

    def setUp(self):
        super().setUp()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_open_close_flow(self):
        response = self.client.post('/api/v1/cash-sessions/',
                                    {'point_of_sale': self.point_of_sale.id, 'opening_amount': '5000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        session_id = response.data['session']['id']

        self._sale(1)
        response = self.client.get('/api/v1/cash-sessions/active/', {'point_of_sale': self.point_of_sale.id})
        self.assertEqual(response.data['session']['id'], session_id)
        self.assertEqual(response.data['summary']['expectedBalance'], Decimal('6000.00'))

        response = self.client.post(f'/api/v1/cash-sessions/{session_id}/close/', {'closing_amount': '6100'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['session']['difference']), Decimal('100.00'))

    def test_second_open_rejected(self):
        TestDataFactory.create_cash_session(self.point_of_sale)
        response = self.client.post('/api/v1/cash-sessions/', {'point_of_sale': self.point_of_sale.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])

    def test_reconcile_requires_admin(self):
        session = TestDataFactory.create_cash_session(self.point_of_sale)
        close_cash_session(session.id, 0)
        response = self.client.post(f'/api/v1/cash-sessions/{session.id}/reconcile/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        admin_client = AuthenticatedAPIClient()
        admin_client.authenticate_user(TestDataFactory.create_admin())
        response = admin_client.post(f'/api/v1/cash-sessions/{session.id}/reconcile/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['session']['status'], CashSessionStatus.RECONCILED)

    def test_list_filters(self):
        closed = TestDataFactory.create_cash_session(self.point_of_sale)
        close_cash_session(closed.id, 0)
        TestDataFactory.create_cash_session(self.point_of_sale)
        TestDataFactory.create_cash_session(TestDataFactory.create_point_of_sale())

        response = self.client.get('/api/v1/cash-sessions/', {'point_of_sale': self.point_of_sale.id})
        self.assertEqual(response.data['count'], 2)
        response = self.client.get('/api/v1/cash-sessions/', {'status': CashSessionStatus.CLOSED})
        self.assertEqual([row['id'] for row in response.data['results']], [closed.id])
        response = self.client.get('/api/v1/cash-sessions/', {'branch': self.storage.branch_id})
        self.assertEqual(response.data['count'], 2)

    def test_detail_includes_summary(self):
        session = TestDataFactory.create_cash_session(self.point_of_sale, opening_amount=Decimal('100.00'))
        response = self.client.get(f'/api/v1/cash-sessions/{session.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['summary']['expectedBalance'], Decimal('100.00'))
        self.assertEqual(self.client.get('/api/v1/cash-sessions/999999/').status_code, status.HTTP_404_NOT_FOUND)

    def test_sale_endpoint_books_in_session(self):
        session = TestDataFactory.create_cash_session(self.point_of_sale)
        data = {
            'transaction_type': 'SALE',
            'storage': self.storage.id,
            'point_of_sale': self.point_of_sale.id,
            'payment_method': 'CASH',
            'lines': [{'variant': self.variant.id, 'quantity': '1', 'unit_price': '1000'}],
        }
        response = self.client.post('/api/v1/transactions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['transaction']['cash_session'], session.id)
        self.assertEqual(CashSession.objects.get(pk=session.id).transactions.count(), 1)
