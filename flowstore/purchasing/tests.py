"""
Test suite for Purchasing module
Tests: purchase orders, receptions against orders, direct receptions, pending payments and cancellations
"""
from datetime import timedelta
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from flowstore.core.exceptions import ServiceError, NotFoundError, InsufficientStockError
from flowstore.core.models import AuditLog
from flowstore.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from flowstore.purchasing.services import (
    create_purchase_order, cancel_purchase_order, create_reception_from_purchase_order,
    create_direct_reception, cancel_reception, list_supplier_payments, pay_supplier_payment
)
from flowstore.transactions.models import Transaction, TransactionStatus, TransactionType, PaymentMethod
from flowstore.transactions.services import create_transaction


class PurchaseOrderTests(TestCase):
    """Test purchase order creation and cancellation"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.supplier = TestDataFactory.create_supplier()
        self.storage = TestDataFactory.create_storage()
        self.variant = TestDataFactory.create_variant()

    def _order(self, quantity='10'):
        return create_purchase_order(
            self.supplier.id,
            [{'variant': self.variant, 'quantity': Decimal(quantity), 'unit_price': Decimal('120.00')}],
            storage_id=self.storage.id, user=self.user,
        )

    def test_order_is_draft_and_moves_nothing(self):
        order = self._order()
        self.assertEqual(order.document_number, 'OC-00000001')
        self.assertEqual(order.status, TransactionStatus.DRAFT)
        self.assertEqual(order.total, Decimal('1200.00'))
        self.assertEqual(order.branch_id, self.storage.branch_id)
        self.assertEqual(TestDataFactory.stock_quantity(self.variant, self.storage), Decimal('0'))

    def test_order_requires_supplier(self):
        with self.assertRaises(ServiceError):
            create_purchase_order(None, [{'variant': self.variant, 'quantity': Decimal('1')}])

    def test_order_unknown_supplier(self):
        with self.assertRaises(ServiceError) as ctx:
            create_purchase_order(999999, [{'variant': self.variant, 'quantity': Decimal('1')}])
        self.assertEqual(ctx.exception.status_code, 404)

    def test_order_requires_lines(self):
        with self.assertRaises(ServiceError):
            create_purchase_order(self.supplier.id, [])

    def test_cancel_order(self):
        order = self._order()
        cancel_purchase_order(order.id, user=self.user, reason='Proveedor sin stock')
        order.refresh_from_db()
        self.assertEqual(order.status, TransactionStatus.CANCELLED)
        self.assertEqual(order.metadata['cancellation']['reason'], 'Proveedor sin stock')
        self.assertTrue(AuditLog.objects.filter(action='purchase_order_cancel', object_id=str(order.id)).exists())

    def test_cancel_order_twice(self):
        order = self._order()
        cancel_purchase_order(order.id)
        with self.assertRaises(ServiceError):
            cancel_purchase_order(order.id)

    def test_cannot_cancel_received_order(self):
        order = self._order()
        create_reception_from_purchase_order(order.id, [{'variant': self.variant, 'quantity': Decimal('10')}])
        with self.assertRaises(ServiceError):
            cancel_purchase_order(order.id)


class ReceptionTests(TestCase):
    """Test receptions against purchase orders and direct receptions"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.supplier = TestDataFactory.create_supplier(default_payment_term_days=30)
        self.storage = TestDataFactory.create_storage()
        self.variant = TestDataFactory.create_variant(base_cost=Decimal('100.00'))
        self.order = create_purchase_order(
            self.supplier.id,
            [{'variant': self.variant, 'quantity': Decimal('10'), 'unit_price': Decimal('120.00')}],
            storage_id=self.storage.id,
        )

    def test_full_reception(self):
        """Receiving what was ordered closes the order and creates a pending payment"""
        reception, payment, discrepancies = create_reception_from_purchase_order(
            self.order.id, [{'variant': self.variant, 'quantity': Decimal('10')}], user=self.user
        )
        self.assertEqual(discrepancies, [])
        self.assertEqual(reception.transaction_type, TransactionType.PURCHASE)
        self.assertEqual(reception.status, TransactionStatus.CONFIRMED)
        self.assertEqual(reception.related_transaction_id, self.order.id)
        # Lines without price take the ordered price
        self.assertEqual(reception.total, Decimal('1200.00'))
        self.assertEqual(TestDataFactory.stock_quantity(self.variant, self.storage), Decimal('10.000'))

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, TransactionStatus.RECEIVED)
        self.assertEqual(self.order.metadata['receptions'], [reception.document_number])

        self.assertEqual(payment.transaction_type, TransactionType.PAYMENT_OUT)
        self.assertEqual(payment.status, TransactionStatus.DRAFT)
        self.assertEqual(payment.payment_method, PaymentMethod.CREDIT)
        self.assertEqual(payment.total, reception.total)
        self.assertEqual(payment.related_transaction_id, reception.id)
        self.assertEqual(payment.payment_due_date, timezone.localdate() + timedelta(days=30))

    def test_reception_updates_pmp(self):
        create_reception_from_purchase_order(self.order.id, [{'variant': self.variant, 'quantity': Decimal('10')}])
        self.variant.refresh_from_db()
        self.assertEqual(self.variant.pmp, Decimal('120.00'))

    def test_partial_reception_reports_discrepancies(self):
        reception, payment, discrepancies = create_reception_from_purchase_order(
            self.order.id, [{'variant': self.variant, 'quantity': Decimal('7'), 'unit_price': Decimal('110.00')}]
        )
        self.assertEqual(len(discrepancies), 1)
        self.assertEqual(discrepancies[0]['expected'], 10.0)
        self.assertEqual(discrepancies[0]['received'], 7.0)
        self.assertEqual(discrepancies[0]['difference'], -3.0)
        self.assertEqual(reception.total, Decimal('770.00'))
        self.assertEqual(reception.metadata['discrepancies'], discrepancies)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, TransactionStatus.PARTIALLY_RECEIVED)

    def test_boxed_variant_is_compared_in_base_units(self):
        """Order and reception lines without a unit are both in the variant's boxes"""
        box = TestDataFactory.create_unit(symbol='CJ12', conversion_factor=Decimal('12'))
        boxed = TestDataFactory.create_variant(unit=box)
        order = create_purchase_order(
            self.supplier.id, [{'variant': boxed, 'quantity': Decimal('3'), 'unit_price': Decimal('240.00')}],
            storage_id=self.storage.id,
        )
        self.assertEqual(order.lines.get().quantity_in_base, Decimal('36.000'))

        reception, _, discrepancies = create_reception_from_purchase_order(
            order.id, [{'variant': boxed, 'quantity': Decimal('2')}]
        )
        self.assertEqual(discrepancies[0]['expected'], 36.0)
        self.assertEqual(discrepancies[0]['received'], 24.0)
        self.assertEqual(reception.total, Decimal('480.00'))
        self.assertEqual(TestDataFactory.stock_quantity(boxed, self.storage), Decimal('24.000'))

    def test_unordered_variant_is_a_discrepancy(self):
        extra = TestDataFactory.create_variant()
        _, _, discrepancies = create_reception_from_purchase_order(self.order.id, [
            {'variant': self.variant, 'quantity': Decimal('10')},
            {'variant': extra, 'quantity': Decimal('2'), 'unit_price': Decimal('50')},
        ])
        self.assertEqual([entry['variantId'] for entry in discrepancies], [extra.id])
        self.assertEqual(discrepancies[0]['expected'], 0.0)

    def test_received_order_cannot_be_received_again(self):
        create_reception_from_purchase_order(self.order.id, [{'variant': self.variant, 'quantity': Decimal('10')}])
        with self.assertRaises(ServiceError):
            create_reception_from_purchase_order(self.order.id, [{'variant': self.variant, 'quantity': Decimal('1')}])

    def test_cancelled_order_cannot_be_received(self):
        cancel_purchase_order(self.order.id)
        with self.assertRaises(ServiceError):
            create_reception_from_purchase_order(self.order.id, [{'variant': self.variant, 'quantity': Decimal('10')}])

    def test_reception_of_missing_order(self):
        with self.assertRaises(ServiceError) as ctx:
            create_reception_from_purchase_order(999999, [{'variant': self.variant, 'quantity': Decimal('1')}])
        self.assertEqual(ctx.exception.status_code, 404)

    def test_direct_reception(self):
        reception, payment = create_direct_reception(
            self.supplier.id, self.storage.id, [{'variant': self.variant, 'quantity': Decimal('5')}]
        )
        # No price and no order: the base cost is used
        self.assertEqual(reception.total, Decimal('500.00'))
        self.assertIsNone(reception.related_transaction_id)
        self.assertEqual(payment.related_transaction_id, reception.id)
        self.assertEqual(TestDataFactory.stock_quantity(self.variant, self.storage), Decimal('5.000'))

    def test_direct_reception_requires_storage(self):
        with self.assertRaises(ServiceError):
            create_direct_reception(self.supplier.id, None, [{'variant': self.variant, 'quantity': Decimal('5')}])

    def test_cancel_reception(self):
        """The purchase is reversed, the pending payment dropped and the order reopened"""
        reception, payment, _ = create_reception_from_purchase_order(
            self.order.id, [{'variant': self.variant, 'quantity': Decimal('10')}]
        )
        reversal = cancel_reception(reception.id, user=self.user, reason='Mercadería dañada')

        self.assertEqual(reversal.transaction_type, TransactionType.PURCHASE_RETURN)
        self.assertEqual(TestDataFactory.stock_quantity(self.variant, self.storage), Decimal('0.000'))
        reception.refresh_from_db()
        payment.refresh_from_db()
        self.order.refresh_from_db()
        self.assertEqual(reception.status, TransactionStatus.CANCELLED)
        self.assertEqual(payment.status, TransactionStatus.CANCELLED)
        self.assertEqual(self.order.status, TransactionStatus.DRAFT)
        self.assertTrue(AuditLog.objects.filter(action='reception_cancel', object_id=str(reception.id)).exists())

    def test_cancel_reception_after_sale(self):
        reception, _ = create_direct_reception(
            self.supplier.id, self.storage.id, [{'variant': self.variant, 'quantity': Decimal('5')}]
        )
        create_transaction({
            'transaction_type': TransactionType.SALE,
            'storage': self.storage,
            'lines': [{'variant': self.variant, 'quantity': Decimal('3'), 'unit_price': Decimal('200')}],
        })
        with self.assertRaises(InsufficientStockError):
            cancel_reception(reception.id)
        reception.refresh_from_db()
        self.assertEqual(reception.status, TransactionStatus.CONFIRMED)


class PurchasingAPITests(TestCase):
    """Test Purchasing API endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.supplier = TestDataFactory.create_supplier()
        self.storage = TestDataFactory.create_storage()
        self.variant = TestDataFactory.create_variant()

    def _create_order(self):
        data = {
            'supplier': self.supplier.id,
            'storage': self.storage.id,
            'expected_date': '2026-01-15',
            'lines': [{'variant': self.variant.id, 'quantity': '4', 'unit_price': '90.00'}],
        }
        return self.client.post('/api/v1/purchase-orders/', data, format='json')

    def test_create_purchase_order(self):
        response = self._create_order()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['transaction']['status'], 'DRAFT')
        self.assertEqual(response.data['transaction']['metadata']['expectedDate'], '2026-01-15')

    def test_purchase_order_line_requires_variant(self):
        data = {'supplier': self.supplier.id,
                'lines': [{'product': self.variant.product_id, 'quantity': '4'}]}
        response = self.client.post('/api/v1/purchase-orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_purchase_orders(self):
        self._create_order()
        response = self.client.get('/api/v1/purchase-orders/', {'status': 'DRAFT'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_receive_purchase_order(self):
        order_id = self._create_order().data['transaction']['id']
        data = {'lines': [{'variant': self.variant.id, 'quantity': '3'}]}
        response = self.client.post(f'/api/v1/purchase-orders/{order_id}/receive/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data['discrepancies']), 1)
        self.assertEqual(len(response.data['documentNumbers']), 2)
        self.assertEqual(Transaction.objects.get(pk=order_id).status, TransactionStatus.PARTIALLY_RECEIVED)

    def test_cancel_purchase_order(self):
        order_id = self._create_order().data['transaction']['id']
        response = self.client.post(f'/api/v1/purchase-orders/{order_id}/cancel/', {'reason': 'duplicada'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['transaction']['status'], 'CANCELLED')

    def test_direct_reception_and_cancel(self):
        data = {'supplier': self.supplier.id, 'storage': self.storage.id,
                'lines': [{'variant': self.variant.id, 'quantity': '6', 'unit_price': '50'}]}
        response = self.client.post('/api/v1/receptions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        reception_id = response.data['reception']['id']

        response = self.client.get('/api/v1/receptions/')
        self.assertEqual(response.data['count'], 1)

        response = self.client.post(f'/api/v1/receptions/{reception_id}/cancel/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['transaction']['transaction_type'], 'PURCHASE_RETURN')
        self.assertEqual(TestDataFactory.stock_quantity(self.variant, self.storage), Decimal('0.000'))

    def test_cancel_unknown_reception(self):
        response = self.client.post('/api/v1/receptions/999999/cancel/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class SupplierPaymentTests(TestCase):
    """Test the supplier payment list and settlement"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.supplier = TestDataFactory.create_supplier(default_payment_term_days=30)
        self.storage = TestDataFactory.create_storage()
        self.variant = TestDataFactory.create_variant()

    def _receive(self, supplier=None, quantity='5'):
        return create_direct_reception(
            (supplier or self.supplier).id, self.storage.id,
            [{'variant': self.variant, 'quantity': Decimal(quantity), 'unit_price': Decimal('100.00')}],
            user=self.user,
        )

    def _overdue_payment(self, days=5):
        return create_transaction({
            'transaction_type': TransactionType.PAYMENT_OUT,
            'status': TransactionStatus.DRAFT,
            'supplier': self.supplier,
            'payment_method': PaymentMethod.CREDIT,
            'payment_due_date': timezone.localdate() - timedelta(days=days),
            'subtotal': Decimal('250.00'),
        })

    def test_pending_payment_is_tagged(self):
        reception, payment = self._receive()
        self.assertEqual(payment.metadata['paymentStatus'], 'PENDING')
        self.assertEqual(payment.metadata['receptionDocumentNumber'], reception.document_number)

    def test_list_excludes_cancelled_and_filters_supplier(self):
        _, kept = self._receive()
        cancelled_reception, _ = self._receive()
        cancel_reception(cancelled_reception.id, user=self.user)
        other_supplier = TestDataFactory.create_supplier()
        self._receive(supplier=other_supplier)

        payments = list_supplier_payments(supplier_id=self.supplier.id)
        self.assertEqual(list(payments), [kept])
        self.assertEqual(list_supplier_payments(supplier_id=self.supplier.id, include_cancelled=True).count(), 2)
        self.assertEqual(list_supplier_payments(status=TransactionStatus.CANCELLED).count(), 1)

    def test_overdue_filter(self):
        self._receive()
        overdue = self._overdue_payment()
        self.assertEqual(list(list_supplier_payments(overdue=True)), [overdue])
        # Soonest due first
        self.assertEqual(list_supplier_payments().first(), overdue)

    def test_pay_pending_payment(self):
        reception, payment = self._receive()
        paid = pay_supplier_payment(payment.id, PaymentMethod.TRANSFER, reference='TRF-881', user=self.user)
        paid.refresh_from_db()
        self.assertEqual(paid.status, TransactionStatus.CONFIRMED)
        self.assertEqual(paid.metadata['paymentStatus'], 'PAID')
        self.assertEqual(paid.metadata['settlement']['method'], PaymentMethod.TRANSFER)
        self.assertEqual(paid.metadata['settlement']['reference'], 'TRF-881')
        self.assertEqual(paid.metadata['receptionDocumentNumber'], reception.document_number)
        self.assertEqual(paid.total, payment.total)
        self.assertTrue(AuditLog.objects.filter(action='supplier_payment_pay', object_id=str(paid.id)).exists())
        self.assertFalse(list_supplier_payments(status=TransactionStatus.DRAFT).exists())

    def test_payment_cannot_be_paid_twice(self):
        _, payment = self._receive()
        pay_supplier_payment(payment.id, PaymentMethod.CASH)
        with self.assertRaises(ServiceError):
            pay_supplier_payment(payment.id, PaymentMethod.CASH)

    def test_cancelled_payment_cannot_be_paid(self):
        reception, payment = self._receive()
        cancel_reception(reception.id)
        with self.assertRaises(ServiceError):
            pay_supplier_payment(payment.id, PaymentMethod.CASH)

    def test_credit_is_not_a_settlement_method(self):
        _, payment = self._receive()
        with self.assertRaises(ServiceError):
            pay_supplier_payment(payment.id, PaymentMethod.CREDIT)

    def test_only_supplier_payments_can_be_paid(self):
        reception, _ = self._receive()
        with self.assertRaises(NotFoundError):
            pay_supplier_payment(reception.id, PaymentMethod.CASH)

    def test_api_list_and_pay(self):
        client = AuthenticatedAPIClient()
        client.authenticate_user(self.user)
        _, payment = self._receive()
        self._overdue_payment()

        response = client.get('/api/v1/supplier-payments/', {'overdue': 'true'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertTrue(response.data['results'][0]['is_overdue'])

        response = client.post(f'/api/v1/supplier-payments/{payment.id}/pay/', {'payment_method': 'CREDIT'},
                               format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = client.post(f'/api/v1/supplier-payments/{payment.id}/pay/',
                               {'payment_method': 'TRANSFER', 'reference': 'TRF-1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['payment']['payment_status'], 'PAID')

        response = client.get('/api/v1/supplier-payments/', {'supplier': self.supplier.id, 'status': 'CONFIRMED'})
        self.assertEqual([row['id'] for row in response.data['results']], [payment.id])
