"""
Test suite for the transaction ledger
Tests: document numbering, totals, stock effects, PMP, cancellation, immutability and the API
"""
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from flowstore.core.exceptions import ServiceError, InsufficientStockError, ImmutableTransactionError
from flowstore.core.models import AuditLog
from flowstore.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from flowstore.transactions.models import Transaction, TransactionStatus, TransactionType
from flowstore.transactions.services import create_transaction, cancel_transaction, next_document_number


class DocumentNumberTests(TestCase):

    def test_numbers_are_sequential_per_type(self):
        """Each type keeps its own counter"""
        self.assertEqual(next_document_number(TransactionType.SALE), 'VTA-00000001')
        self.assertEqual(next_document_number(TransactionType.SALE), 'VTA-00000002')
        self.assertEqual(next_document_number(TransactionType.PURCHASE), 'REC-00000001')

    def test_unknown_type_is_rejected(self):
        with self.assertRaises(ServiceError):
            next_document_number('GIFT')


class CreateTransactionTests(TestCase):
    """Test create_transaction"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.storage = TestDataFactory.create_storage()
        self.tax = TestDataFactory.create_tax(rate=Decimal('19.00'))
        self.variant = TestDataFactory.create_variant(base_cost=Decimal('100.00'), base_price=Decimal('1000.00'))
        TestDataFactory.stock_variant(self.variant, self.storage, 10)

    def _sale(self, quantity, **extra):
        line = {'variant': self.variant, 'quantity': Decimal(str(quantity)), 'unit_price': Decimal('1000.00'),
                'tax': self.tax}
        line.update(extra)
        return create_transaction({
            'transaction_type': TransactionType.SALE,
            'branch': self.storage.branch,
            'storage': self.storage,
            'lines': [line],
        }, user=self.user)

    def test_sale_totals(self):
        """Subtotal, tax and total are computed from the lines"""
        sale = self._sale(2)
        self.assertEqual(sale.subtotal, Decimal('2000.00'))
        self.assertEqual(sale.tax_amount, Decimal('380.00'))
        self.assertEqual(sale.total, Decimal('2380.00'))
        line = sale.lines.get()
        self.assertEqual(line.product_sku, self.variant.sku)
        self.assertEqual(line.unit_cost, Decimal('100.00'))

    def test_line_discount_percentage(self):
        sale = self._sale(1, discount_percentage=Decimal('10'))
        self.assertEqual(sale.subtotal, Decimal('900.00'))
        self.assertEqual(sale.tax_amount, Decimal('171.00'))

    def test_sale_decrements_stock(self):
        self._sale(3)
        self.assertEqual(TestDataFactory.stock_quantity(self.variant, self.storage), Decimal('7.000'))

    def test_insufficient_stock_writes_nothing(self):
        """A rejected sale leaves no document and no stock change"""
        with self.assertRaises(InsufficientStockError):
            self._sale(11)
        self.assertFalse(Transaction.objects.filter(transaction_type=TransactionType.SALE).exists())
        self.assertEqual(TestDataFactory.stock_quantity(self.variant, self.storage), Decimal('10.000'))

    def test_draft_does_not_move_stock(self):
        create_transaction({
            'transaction_type': TransactionType.SALE,
            'status': TransactionStatus.DRAFT,
            'storage': self.storage,
            'lines': [{'variant': self.variant, 'quantity': Decimal('5'), 'unit_price': Decimal('1000')}],
        })
        self.assertEqual(TestDataFactory.stock_quantity(self.variant, self.storage), Decimal('10.000'))

    def test_untracked_variant_does_not_move_stock(self):
        service = TestDataFactory.create_variant(track_inventory=False)
        create_transaction({
            'transaction_type': TransactionType.SALE,
            'storage': self.storage,
            'lines': [{'variant': service, 'quantity': Decimal('4'), 'unit_price': Decimal('50')}],
        })
        self.assertEqual(TestDataFactory.stock_quantity(service, self.storage), Decimal('0'))

    def test_unit_conversion_moves_base_quantity(self):
        box = TestDataFactory.create_unit(conversion_factor=Decimal('6'))
        sale = self._sale(1, unit=box)
        self.assertEqual(sale.lines.get().quantity_in_base, Decimal('6.000'))
        self.assertEqual(TestDataFactory.stock_quantity(self.variant, self.storage), Decimal('4.000'))

    def test_line_defaults_to_variant_unit(self):
        """A variant sold by the box of 12 moves 12 base units per box"""
        box = TestDataFactory.create_unit(symbol='CJ12', conversion_factor=Decimal('12'))
        boxed = TestDataFactory.create_variant(base_cost=Decimal('10.00'), unit=box)
        TestDataFactory.stock_variant(boxed, self.storage, 48)
        self.assertEqual(TestDataFactory.stock_quantity(boxed, self.storage), Decimal('48.000'))

        sale = create_transaction({
            'transaction_type': TransactionType.SALE,
            'storage': self.storage,
            'lines': [{'variant': boxed, 'quantity': Decimal('2'), 'unit_price': Decimal('150.00')}],
        })
        line = sale.lines.get()
        self.assertEqual(line.unit_of_measure, 'CJ12')
        self.assertEqual(line.unit_conversion_factor, Decimal('12'))
        self.assertEqual(line.quantity_in_base, Decimal('24.000'))
        # Cost of one box at 10.00 per base unit
        self.assertEqual(line.unit_cost, Decimal('120.00'))
        self.assertEqual(TestDataFactory.stock_quantity(boxed, self.storage), Decimal('24.000'))

    def test_purchase_in_variant_unit_costs_per_base_unit(self):
        box = TestDataFactory.create_unit(symbol='CJ12', conversion_factor=Decimal('12'))
        boxed = TestDataFactory.create_variant(base_cost=Decimal('10.00'), unit=box)
        create_transaction({
            'transaction_type': TransactionType.PURCHASE,
            'storage': self.storage,
            'lines': [{'variant': boxed, 'quantity': Decimal('1'), 'unit_price': Decimal('144.00')}],
        })
        boxed.refresh_from_db()
        self.assertEqual(boxed.pmp, Decimal('12.00'))
        self.assertEqual(TestDataFactory.stock_quantity(boxed, self.storage), Decimal('12.000'))

    def test_explicit_factor_overrides_variant_unit(self):
        box = TestDataFactory.create_unit(symbol='CJ12', conversion_factor=Decimal('12'))
        boxed = TestDataFactory.create_variant(unit=box)
        TestDataFactory.stock_variant(boxed, self.storage, 5)
        sale = create_transaction({
            'transaction_type': TransactionType.SALE,
            'storage': self.storage,
            'lines': [{'variant': boxed, 'quantity': Decimal('3'), 'unit_conversion_factor': 1,
                       'unit_price': Decimal('20.00')}],
        })
        self.assertEqual(sale.lines.get().quantity_in_base, Decimal('3.000'))
        self.assertEqual(TestDataFactory.stock_quantity(boxed, self.storage), Decimal('2.000'))

    def test_lines_are_required(self):
        with self.assertRaises(ServiceError):
            create_transaction({'transaction_type': TransactionType.SALE, 'storage': self.storage, 'lines': []})

    def test_zero_quantity_is_rejected(self):
        with self.assertRaises(ServiceError):
            self._sale(0)

    def test_payment_without_lines(self):
        payment = create_transaction({
            'transaction_type': TransactionType.PAYMENT_IN,
            'subtotal': Decimal('5000'),
            'amount_paid': Decimal('6000'),
        })
        self.assertEqual(payment.total, Decimal('5000.00'))
        self.assertEqual(payment.change_amount, Decimal('1000.00'))
        self.assertTrue(payment.document_number.startswith('PIE-'))

    def test_purchase_updates_weighted_average_cost(self):
        """10 on hand at 100 plus 10 bought at 200 gives a PMP of 150"""
        create_transaction({
            'transaction_type': TransactionType.PURCHASE,
            'storage': self.storage,
            'lines': [{'variant': self.variant, 'quantity': Decimal('10'), 'unit_price': Decimal('200.00')}],
        })
        self.variant.refresh_from_db()
        self.assertEqual(self.variant.pmp, Decimal('150.00'))
        self.assertEqual(TestDataFactory.stock_quantity(self.variant, self.storage), Decimal('20.000'))

    def test_creation_is_audited(self):
        sale = self._sale(1)
        log = AuditLog.objects.get(action='transaction_create', object_id=str(sale.id))
        self.assertEqual(log.object_name, sale.document_number)
        self.assertEqual(log.user, self.user)


class CancelTransactionTests(TestCase):
    """Test cancel_transaction"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.storage = TestDataFactory.create_storage()
        self.variant = TestDataFactory.create_variant()
        TestDataFactory.stock_variant(self.variant, self.storage, 10)
        self.sale = create_transaction({
            'transaction_type': TransactionType.SALE,
            'storage': self.storage,
            'lines': [{'variant': self.variant, 'quantity': Decimal('4'), 'unit_price': Decimal('150')}],
        }, user=self.user)

    def test_cancel_sale_restores_stock(self):
        reversal = cancel_transaction(self.sale.id, user=self.user, reason='Cliente desistió')
        self.assertEqual(reversal.transaction_type, TransactionType.SALE_RETURN)
        self.assertEqual(reversal.related_transaction_id, self.sale.id)
        self.assertEqual(reversal.total, self.sale.total)
        self.assertEqual(TestDataFactory.stock_quantity(self.variant, self.storage), Decimal('10.000'))

        self.sale.refresh_from_db()
        self.assertEqual(self.sale.status, TransactionStatus.CANCELLED)
        cancellation = self.sale.metadata['cancellation']
        self.assertEqual(cancellation['reason'], 'Cliente desistió')
        self.assertEqual(cancellation['returnDocumentNumber'], reversal.document_number)

    def test_cannot_cancel_twice(self):
        cancel_transaction(self.sale.id)
        with self.assertRaises(ServiceError):
            cancel_transaction(self.sale.id)

    def test_cannot_cancel_adjustment(self):
        adjustment = Transaction.objects.filter(transaction_type=TransactionType.ADJUSTMENT_IN).first()
        with self.assertRaises(ServiceError):
            cancel_transaction(adjustment.id)

    def test_cancel_missing_transaction(self):
        with self.assertRaises(ServiceError) as ctx:
            cancel_transaction(999999)
        self.assertEqual(ctx.exception.status_code, 404)

    def test_cancel_purchase_fails_when_stock_was_sold(self):
        """The purchase return needs the stock back"""
        purchase = create_transaction({
            'transaction_type': TransactionType.PURCHASE,
            'storage': self.storage,
            'lines': [{'variant': self.variant, 'quantity': Decimal('5'), 'unit_price': Decimal('100')}],
        })
        create_transaction({
            'transaction_type': TransactionType.SALE,
            'storage': self.storage,
            'lines': [{'variant': self.variant, 'quantity': Decimal('11'), 'unit_price': Decimal('150')}],
        })
        with self.assertRaises(InsufficientStockError):
            cancel_transaction(purchase.id)
        purchase.refresh_from_db()
        self.assertEqual(purchase.status, TransactionStatus.CONFIRMED)


class ImmutabilityTests(TestCase):

    def setUp(self):
        self.payment = create_transaction({'transaction_type': TransactionType.PAYMENT_OUT, 'subtotal': Decimal('100')})

    def test_amounts_cannot_change(self):
        self.payment.total = Decimal('1')
        with self.assertRaises(ImmutableTransactionError):
            self.payment.save()

    def test_status_can_change(self):
        self.payment.status = TransactionStatus.CANCELLED
        self.payment.save(update_fields=['status', 'updated_at'])
        self.payment.refresh_from_db()
        self.assertEqual(self.payment.status, TransactionStatus.CANCELLED)

    def test_cannot_delete(self):
        with self.assertRaises(ImmutableTransactionError):
            self.payment.delete()


class TransactionAPITests(TestCase):
    """Test transaction API endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.storage = TestDataFactory.create_storage()
        self.variant = TestDataFactory.create_variant(base_price=Decimal('150.00'))
        TestDataFactory.stock_variant(self.variant, self.storage, 10)

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/v1/transactions/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_create_sale_uses_resolved_price(self):
        """A line without a price takes the variant's base price when no list has one"""
        data = {
            'transaction_type': 'SALE',
            'storage': self.storage.id,
            'payment_method': 'CASH',
            'lines': [{'variant': self.variant.id, 'quantity': '2'}],
        }
        response = self.client.post('/api/v1/transactions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['success'])
        self.assertEqual(Decimal(response.data['transaction']['subtotal']), Decimal('300.00'))
        self.assertEqual(response.data['transaction']['branch'], self.storage.branch_id)
        self.assertEqual(len(response.data['documentNumbers']), 1)
        self.assertEqual(TestDataFactory.stock_quantity(self.variant, self.storage), Decimal('8.000'))

    def test_create_sale_with_price_list(self):
        price_list = TestDataFactory.create_price_list()
        TestDataFactory.create_price_list_item(price_list, self.variant.product, self.variant,
                                               net_price=Decimal('120.00'), gross_price=Decimal('142.80'))
        point_of_sale = TestDataFactory.create_point_of_sale(branch=self.storage.branch, price_list=price_list)
        data = {
            'transaction_type': 'SALE',
            'storage': self.storage.id,
            'point_of_sale': point_of_sale.id,
            'lines': [{'variant': self.variant.id, 'quantity': '1'}],
        }
        response = self.client.post('/api/v1/transactions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['transaction']['subtotal']), Decimal('120.00'))

    def test_insufficient_stock_returns_error_result(self):
        data = {
            'transaction_type': 'SALE',
            'storage': self.storage.id,
            'lines': [{'variant': self.variant.id, 'quantity': '50', 'unit_price': '150'}],
        }
        response = self.client.post('/api/v1/transactions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])
        self.assertIn('Insufficient stock', response.data['error'])

    def test_sale_requires_storage(self):
        data = {'transaction_type': 'SALE', 'lines': [{'variant': self.variant.id, 'quantity': '1'}]}
        response = self.client.post('/api/v1/transactions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_other_types_are_not_direct(self):
        data = {'transaction_type': 'PURCHASE', 'storage': self.storage.id,
                'lines': [{'variant': self.variant.id, 'quantity': '1'}]}
        response = self.client.post('/api/v1/transactions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_payment_rejects_lines(self):
        data = {'transaction_type': 'PAYMENT_IN', 'subtotal': '100',
                'lines': [{'variant': self.variant.id, 'quantity': '1'}]}
        response = self.client.post('/api/v1/transactions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_filters_by_type(self):
        create_transaction({'transaction_type': TransactionType.PAYMENT_IN, 'subtotal': Decimal('100')})
        response = self.client.get('/api/v1/transactions/', {'type': 'PAYMENT_IN'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['transaction_type'], 'PAYMENT_IN')

    def test_list_filters_by_several_types(self):
        create_transaction({'transaction_type': TransactionType.PAYMENT_IN, 'subtotal': Decimal('100')})
        response = self.client.get('/api/v1/transactions/', {'type': 'PAYMENT_IN,ADJUSTMENT_IN'})
        self.assertEqual(response.data['count'], 2)

    def test_detail_includes_lines(self):
        adjustment = Transaction.objects.get(transaction_type=TransactionType.ADJUSTMENT_IN)
        response = self.client.get(f'/api/v1/transactions/{adjustment.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['lines']), 1)

    def test_detail_not_found(self):
        response = self.client.get('/api/v1/transactions/999999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_cancel_endpoint(self):
        sale = create_transaction({
            'transaction_type': TransactionType.SALE,
            'storage': self.storage,
            'lines': [{'variant': self.variant, 'quantity': Decimal('1'), 'unit_price': Decimal('150')}],
        })
        response = self.client.post(f'/api/v1/transactions/{sale.id}/cancel/', {'reason': 'error'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['transaction']['transaction_type'], 'SALE_RETURN')

        response = self.client.post(f'/api/v1/transactions/{sale.id}/cancel/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])
