"""
Test suite for Inventory module
Tests: transfers, adjustments, the inventory stock read model, API endpoints and ledger resync
"""
from decimal import Decimal
from io import StringIO

from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status

from flowstore.core.exceptions import ServiceError, InsufficientStockError
from flowstore.core.models import AuditLog
from flowstore.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from flowstore.inventory.models import StockLevel
from flowstore.inventory.services import (
    transfer_variant_stock, adjust_variant_stock_level, get_inventory_stock, get_inventory_filters
)
from flowstore.purchasing.services import create_purchase_order, cancel_purchase_order
from flowstore.transactions.models import Transaction, TransactionStatus, TransactionType
from flowstore.transactions.services import create_transaction, cancel_transaction


class StockTransferTests(TestCase):
    """Test transfer_variant_stock"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        branch = TestDataFactory.create_branch()
        self.source = TestDataFactory.create_storage(branch=branch)
        self.target = TestDataFactory.create_storage(branch=branch)
        self.variant = TestDataFactory.create_variant(base_cost=Decimal('80.00'))
        TestDataFactory.stock_variant(self.variant, self.source, 10)

    def test_transfer_moves_stock(self):
        result = transfer_variant_stock(self.variant.id, self.source.id, self.target.id, Decimal('4'), user=self.user)
        self.assertEqual(result['documentNumbers'], ['TRS-00000001', 'TRE-00000001'])
        self.assertEqual(TestDataFactory.stock_quantity(self.variant, self.source), Decimal('6.000'))
        self.assertEqual(TestDataFactory.stock_quantity(self.variant, self.target), Decimal('4.000'))

    def test_transfer_documents_are_linked(self):
        transfer_variant_stock(self.variant.id, self.source.id, self.target.id, Decimal('2'))
        transfer_out = Transaction.objects.get(transaction_type=TransactionType.TRANSFER_OUT)
        transfer_in = Transaction.objects.get(transaction_type=TransactionType.TRANSFER_IN)
        self.assertEqual(transfer_in.related_transaction_id, transfer_out.id)
        self.assertEqual(transfer_out.target_storage_id, self.target.id)
        self.assertEqual(transfer_in.lines.get().unit_cost, Decimal('80.00'))

    def test_transfer_is_audited(self):
        transfer_variant_stock(self.variant.id, self.source.id, self.target.id, Decimal('1'), user=self.user)
        log = AuditLog.objects.get(action='stock_transfer')
        self.assertEqual(log.sku, self.variant.sku)

    def test_transfer_more_than_available(self):
        with self.assertRaises(InsufficientStockError):
            transfer_variant_stock(self.variant.id, self.source.id, self.target.id, Decimal('11'))
        self.assertEqual(TestDataFactory.stock_quantity(self.variant, self.source), Decimal('10.000'))
        self.assertFalse(Transaction.objects.filter(transaction_type=TransactionType.TRANSFER_OUT).exists())

    def test_transfer_to_same_storage(self):
        with self.assertRaises(ServiceError):
            transfer_variant_stock(self.variant.id, self.source.id, self.source.id, Decimal('1'))

    def test_transfer_requires_positive_quantity(self):
        with self.assertRaises(ServiceError):
            transfer_variant_stock(self.variant.id, self.source.id, self.target.id, Decimal('0'))

    def test_transfer_untracked_variant(self):
        service = TestDataFactory.create_variant(track_inventory=False)
        with self.assertRaises(ServiceError):
            transfer_variant_stock(service.id, self.source.id, self.target.id, Decimal('1'))

    def test_transfer_to_inactive_storage(self):
        self.target.is_active = False
        self.target.save()
        with self.assertRaises(ServiceError) as ctx:
            transfer_variant_stock(self.variant.id, self.source.id, self.target.id, Decimal('1'))
        self.assertEqual(ctx.exception.status_code, 404)


class StockAdjustmentTests(TestCase):
    """Test adjust_variant_stock_level"""

    def setUp(self):
        cache.clear()
        self.storage = TestDataFactory.create_storage()
        self.variant = TestDataFactory.create_variant()

    def test_adjust_up_from_zero(self):
        result = adjust_variant_stock_level(self.variant.id, self.storage.id, Decimal('12'))
        self.assertEqual(result['documentNumbers'], ['AJE-00000001'])
        self.assertEqual(TestDataFactory.stock_quantity(self.variant, self.storage), Decimal('12.000'))

    def test_adjust_down(self):
        TestDataFactory.stock_variant(self.variant, self.storage, 10)
        result = adjust_variant_stock_level(self.variant.id, self.storage.id, Decimal('7'))
        self.assertEqual(result['documentNumbers'], ['AJS-00000001'])
        adjustment = Transaction.objects.get(transaction_type=TransactionType.ADJUSTMENT_OUT)
        self.assertEqual(adjustment.lines.get().quantity, Decimal('3.000'))
        self.assertEqual(adjustment.metadata['adjustment']['previousQuantity'], '10.000')

    def test_adjust_without_change(self):
        TestDataFactory.stock_variant(self.variant, self.storage, 5)
        result = adjust_variant_stock_level(self.variant.id, self.storage.id, Decimal('5'))
        self.assertEqual(result['documentNumbers'], [])
        self.assertEqual(Transaction.objects.count(), 1)

    def test_adjust_rejects_stale_quantity(self):
        TestDataFactory.stock_variant(self.variant, self.storage, 5)
        with self.assertRaises(ServiceError):
            adjust_variant_stock_level(self.variant.id, self.storage.id, Decimal('8'), current_quantity=Decimal('4'))
        self.assertEqual(TestDataFactory.stock_quantity(self.variant, self.storage), Decimal('5.000'))

    def test_adjust_rejects_negative_target(self):
        with self.assertRaises(ServiceError):
            adjust_variant_stock_level(self.variant.id, self.storage.id, Decimal('-1'))


class InventoryStockReadModelTests(TestCase):
    """Test get_inventory_stock"""

    def setUp(self):
        cache.clear()
        self.branch = TestDataFactory.create_branch(name='Centro')
        self.storage = TestDataFactory.create_storage(branch=self.branch, name='Bodega A')
        self.other = TestDataFactory.create_storage(branch=self.branch, name='Bodega B')
        self.variant = TestDataFactory.create_variant(
            product=TestDataFactory.create_product(name='Arroz'),
            base_cost=Decimal('10.00'), minimum_stock=Decimal('5'), reorder_point=Decimal('8'),
        )
        TestDataFactory.stock_variant(self.variant, self.storage, 3)
        TestDataFactory.stock_variant(self.variant, self.other, 1)

    def _row(self, rows, variant):
        return next(row for row in rows if row['id'] == variant.id)

    def test_row_totals(self):
        row = self._row(get_inventory_stock(), self.variant)
        self.assertEqual(row['totalStock'], 4.0)
        self.assertEqual(row['storageCount'], 2)
        self.assertEqual(row['primaryStorageName'], 'Bodega A')
        self.assertEqual(row['inventoryValueCost'], 40.0)
        self.assertTrue(row['isBelowMinimum'])
        self.assertTrue(row['isBelowReorder'])
        self.assertEqual(row['lastMovementDirection'], 'IN')
        self.assertEqual(len(row['movements']), 2)

    def test_storage_scope(self):
        row = self._row(get_inventory_stock(storage_id=self.other.id), self.variant)
        self.assertEqual(row['totalStock'], 1.0)
        self.assertEqual(len(row['movements']), 1)

    def test_rows_without_stock_are_hidden(self):
        empty = TestDataFactory.create_variant(product=TestDataFactory.create_product(name='Azúcar'))
        ids = [row['id'] for row in get_inventory_stock()]
        self.assertNotIn(empty.id, ids)
        # A search shows zero rows by default
        ids = [row['id'] for row in get_inventory_stock(search='Azúcar')]
        self.assertIn(empty.id, ids)

    def test_low_stock_rows_come_first(self):
        healthy = TestDataFactory.create_variant(product=TestDataFactory.create_product(name='Aceite'))
        TestDataFactory.stock_variant(healthy, self.storage, 50)
        rows = get_inventory_stock()
        self.assertEqual(rows[0]['id'], self.variant.id)

    def test_incoming_stock_from_open_orders(self):
        create_transaction({
            'transaction_type': TransactionType.PURCHASE_ORDER,
            'status': TransactionStatus.DRAFT,
            'storage': self.storage,
            'lines': [{'variant': self.variant, 'quantity': Decimal('6'), 'unit_price': Decimal('10')}],
        })
        row = self._row(get_inventory_stock(), self.variant)
        self.assertEqual(row['incomingStock'], 6.0)
        self.assertEqual(row['availableStock'], 10.0)
        self.assertEqual(row['totalStock'], 4.0)

    def test_cache_is_invalidated_by_stock_changes(self):
        self.assertEqual(self._row(get_inventory_stock(), self.variant)['totalStock'], 4.0)
        adjust_variant_stock_level(self.variant.id, self.storage.id, Decimal('9'))
        self.assertEqual(self._row(get_inventory_stock(), self.variant)['totalStock'], 10.0)

    def test_cache_is_invalidated_by_purchase_orders(self):
        supplier = TestDataFactory.create_supplier()
        self.assertEqual(self._row(get_inventory_stock(), self.variant)['incomingStock'], 0.0)
        order = create_purchase_order(
            supplier.id, [{'variant': self.variant, 'quantity': Decimal('6'), 'unit_price': Decimal('10')}],
            storage_id=self.storage.id,
        )
        self.assertEqual(self._row(get_inventory_stock(), self.variant)['incomingStock'], 6.0)

        cancel_purchase_order(order.id)
        self.assertEqual(self._row(get_inventory_stock(), self.variant)['incomingStock'], 0.0)

    def test_rows_cached_before_commit_are_dropped_on_commit(self):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            adjust_variant_stock_level(self.variant.id, self.storage.id, Decimal('9'))
            # A read inside the open transaction caches the row again
            get_inventory_stock()
            cache.set('inventory_stock:stale', 'old rows')
        self.assertTrue(callbacks)
        self.assertIsNone(cache.get('inventory_stock:stale'))

    def test_cancelled_documents_are_not_listed_as_movements(self):
        sale = create_transaction({
            'transaction_type': TransactionType.SALE,
            'storage': self.storage,
            'lines': [{'variant': self.variant, 'quantity': Decimal('1'), 'unit_price': Decimal('15')}],
        })
        cancel_transaction(sale.id, reason='error de caja')
        row = self._row(get_inventory_stock(storage_id=self.storage.id), self.variant)
        numbers = [movement['documentNumber'] for movement in row['movements']]
        self.assertNotIn(sale.document_number, numbers)
        self.assertEqual(row['lastMovementType'], TransactionType.SALE_RETURN)
        self.assertEqual(row['totalStock'], 3.0)

    def test_untracked_variants_are_not_listed(self):
        service = TestDataFactory.create_variant(
            product=TestDataFactory.create_product(name='Arriendo de vitrina'), track_inventory=False
        )
        ids = [row['id'] for row in get_inventory_stock(search='Arriendo')]
        self.assertNotIn(service.id, ids)

    def test_filters(self):
        filters = get_inventory_filters()
        self.assertIn(self.branch.id, [branch['id'] for branch in filters['branches']])
        self.assertEqual(
            {storage['id'] for storage in filters['storages'] if storage['branchId'] == self.branch.id},
            {self.storage.id, self.other.id},
        )


class InventoryAPITests(TestCase):
    """Test inventory API endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        branch = TestDataFactory.create_branch()
        self.source = TestDataFactory.create_storage(branch=branch)
        self.target = TestDataFactory.create_storage(branch=branch)
        self.variant = TestDataFactory.create_variant()
        TestDataFactory.stock_variant(self.variant, self.source, 10)

    def test_inventory_stock(self):
        response = self.client.get('/api/v1/inventory/stock/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['sku'], self.variant.sku)

    def test_transfer(self):
        data = {'variant': self.variant.id, 'source_storage': self.source.id,
                'target_storage': self.target.id, 'quantity': '3', 'note': 'reposición'}
        response = self.client.post('/api/v1/inventory/transfer/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(len(response.data['documentNumbers']), 2)
        self.assertEqual(TestDataFactory.stock_quantity(self.variant, self.target), Decimal('3.000'))
        self.assertEqual(AuditLog.objects.get(action='stock_transfer').user, self.user)

    def test_transfer_without_target(self):
        data = {'variant': self.variant.id, 'source_storage': self.source.id, 'quantity': '3'}
        response = self.client.post('/api/v1/inventory/transfer/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])

    def test_adjust(self):
        data = {'variant': self.variant.id, 'storage': self.source.id, 'target_quantity': '2',
                'current_quantity': '10'}
        response = self.client.post('/api/v1/inventory/adjust/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(TestDataFactory.stock_quantity(self.variant, self.source), Decimal('2.000'))

    def test_adjust_unknown_variant(self):
        data = {'variant': 999999, 'storage': self.source.id, 'target_quantity': '2'}
        response = self.client.post('/api/v1/inventory/adjust/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_stock_levels(self):
        response = self.client.get('/api/v1/stock-levels/', {'storage': self.source.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(Decimal(response.data['results'][0]['quantity']), Decimal('10.000'))


class StockSyncCommandTests(TestCase):
    """Test the check_stock_sync management command"""

    def setUp(self):
        cache.clear()
        self.storage = TestDataFactory.create_storage()
        self.variant = TestDataFactory.create_variant()
        TestDataFactory.stock_variant(self.variant, self.storage, 10)

    def test_reports_no_discrepancies(self):
        out = StringIO()
        call_command('check_stock_sync', stdout=out)
        self.assertIn('No discrepancies found', out.getvalue())

    def test_fix_restores_ledger_quantity(self):
        StockLevel.objects.filter(variant=self.variant, storage=self.storage).update(quantity=Decimal('3'))
        out = StringIO()
        call_command('check_stock_sync', '--fix', stdout=out)
        self.assertIn('Repaired 1 stock rows', out.getvalue())
        self.assertEqual(TestDataFactory.stock_quantity(self.variant, self.storage), Decimal('10.000'))
        self.assertTrue(AuditLog.objects.filter(action='stock_sync').exists())
