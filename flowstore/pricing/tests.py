"""
Test suite for Pricing module
Tests: net/gross calculation, price lists and price resolution
"""
from datetime import timedelta
from decimal import Decimal

from django.db import connection
from django.test import TestCase
from django.test.utils import CaptureQueriesContext
from django.utils import timezone
from rest_framework import status

from flowstore.core.exceptions import ServiceError, NotFoundError
from flowstore.core.models import AuditLog, get_company
from flowstore.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from flowstore.pricing import services
from flowstore.pricing.models import PriceList


class ComputePriceTests(TestCase):

    def test_gross_from_net(self):
        self.assertEqual(services.compute_price_with_taxes(Decimal('1000'), None, [Decimal('19')]),
                         (Decimal('1000.00'), Decimal('1190.00')))

    def test_net_from_gross(self):
        self.assertEqual(services.compute_price_with_taxes(None, Decimal('1190'), [Decimal('19')]),
                         (Decimal('1000.00'), Decimal('1190.00')))

    def test_rates_are_summed(self):
        net, gross = services.compute_price_with_taxes(Decimal('100'), None, [Decimal('19'), Decimal('10')])
        self.assertEqual(gross, Decimal('129.00'))

    def test_no_taxes(self):
        self.assertEqual(services.compute_price_with_taxes('500', None, []), (Decimal('500.00'), Decimal('500.00')))

    def test_price_required(self):
        with self.assertRaises(ServiceError):
            services.compute_price_with_taxes(None, None, [Decimal('19')])


class PriceListServiceTests(TestCase):

    def test_single_default_list(self):
        first = services.create_price_list({'name': 'Detalle', 'is_default': True})
        second = services.create_price_list({'name': 'Mayorista', 'is_default': True})
        first.refresh_from_db()
        self.assertFalse(first.is_default)
        self.assertEqual(services.get_default_price_list(), second)

    def test_first_default_list_locks_company_row(self):
        # No list is default yet, so only the company row can serialize concurrent writers
        with CaptureQueriesContext(connection) as queries:
            services.create_price_list({'name': 'Detalle', 'is_default': True})
        company_reads = [q['sql'] for q in queries.captured_queries
                         if q['sql'].startswith('SELECT') and '"companies"' in q['sql']]
        self.assertTrue(company_reads)
        if connection.features.has_select_for_update:
            self.assertTrue(any('FOR UPDATE' in sql for sql in company_reads))

    def test_non_default_list_skips_company_lock(self):
        get_company()
        with CaptureQueriesContext(connection) as queries:
            services.create_price_list({'name': 'Mayorista'})
        self.assertFalse(any('"companies"' in q['sql'] for q in queries.captured_queries))

    def test_default_list_cannot_be_deleted(self):
        price_list = services.create_price_list({'name': 'Detalle', 'is_default': True})
        with self.assertRaises(ServiceError):
            services.delete_price_list(price_list)

    def test_delete_removes_items(self):
        price_list = TestDataFactory.create_price_list()
        product = TestDataFactory.create_product()
        item = TestDataFactory.create_price_list_item(price_list, product)
        services.delete_price_list(price_list)
        item.refresh_from_db()
        self.assertIsNotNone(item.deleted_at)

    def test_validity_window(self):
        today = timezone.localdate()
        with self.assertRaises(ServiceError):
            services.create_price_list({'name': 'Promo', 'valid_from': today, 'valid_until': today - timedelta(days=1)})

    def test_active_lists_respect_window_and_priority(self):
        today = timezone.localdate()
        low = TestDataFactory.create_price_list(name='Base', priority=1)
        high = TestDataFactory.create_price_list(name='Promo', priority=5, valid_until=today + timedelta(days=3))
        TestDataFactory.create_price_list(name='Vencida', valid_until=today - timedelta(days=1))
        TestDataFactory.create_price_list(name='Inactiva', is_active=False)
        self.assertEqual(services.get_active_price_lists(), [high, low])

    def test_upsert_item_derives_gross_from_variant_taxes(self):
        tax = TestDataFactory.create_tax()
        variant = TestDataFactory.create_variant(taxes=[tax])
        price_list = TestDataFactory.create_price_list()
        item = services.upsert_price_list_item(price_list, variant.product, variant=variant, net_price=Decimal('1000'))
        self.assertEqual(item.gross_price, Decimal('1190.00'))
        self.assertEqual(list(item.taxes.all()), [tax])

        item = services.upsert_price_list_item(price_list, variant.product, variant=variant, gross_price=Decimal('2380'))
        self.assertEqual(item.net_price, Decimal('2000.00'))
        self.assertEqual(price_list.items.alive().count(), 1)
        self.assertEqual(AuditLog.objects.filter(action='price_change', model_name='PriceListItem').count(), 2)

    def test_upsert_rejects_foreign_variant(self):
        variant = TestDataFactory.create_variant()
        other_product = TestDataFactory.create_product()
        with self.assertRaises(ServiceError):
            services.upsert_price_list_item(TestDataFactory.create_price_list(), other_product, variant=variant,
                                            net_price=Decimal('100'))

    def test_min_price_above_price(self):
        variant = TestDataFactory.create_variant()
        with self.assertRaises(ServiceError):
            services.upsert_price_list_item(TestDataFactory.create_price_list(), variant.product, variant=variant,
                                            net_price=Decimal('100'), min_price=Decimal('150'))


class ProductPriceResolutionTests(TestCase):
    """Test get_product_price fallbacks"""

    def setUp(self):
        self.tax = TestDataFactory.create_tax()
        self.variant = TestDataFactory.create_variant(base_price=Decimal('200.00'), taxes=[self.tax])
        self.product = self.variant.product

    def test_falls_back_to_variant_base_price(self):
        price = services.get_product_price(self.product.id, variant_id=self.variant.id)
        self.assertEqual(price['source'], services.SOURCE_DEFAULT_VARIANT)
        self.assertEqual(price['netPrice'], Decimal('200.00'))
        self.assertEqual(price['grossPrice'], Decimal('238.00'))
        self.assertIsNone(price['priceListId'])

    def test_default_list_before_base_price(self):
        default = TestDataFactory.create_price_list(is_default=True)
        TestDataFactory.create_price_list_item(default, self.product, net_price=Decimal('300.00'),
                                               gross_price=Decimal('357.00'))
        price = services.get_product_price(self.product.id, variant_id=self.variant.id)
        self.assertEqual(price['source'], services.SOURCE_PRICE_LIST)
        self.assertEqual(price['priceListId'], default.id)
        self.assertEqual(price['grossPrice'], Decimal('357.00'))

    def test_requested_list_wins(self):
        default = TestDataFactory.create_price_list(is_default=True)
        wholesale = TestDataFactory.create_price_list(name='Mayorista')
        TestDataFactory.create_price_list_item(default, self.product)
        TestDataFactory.create_price_list_item(wholesale, self.product, net_price=Decimal('90.00'),
                                               gross_price=Decimal('107.10'))
        price = services.get_product_price(self.product.id, variant_id=self.variant.id, price_list_id=wholesale.id)
        self.assertEqual(price['priceListId'], wholesale.id)
        self.assertEqual(price['netPrice'], Decimal('90.00'))

    def test_variant_price_beats_product_price(self):
        price_list = TestDataFactory.create_price_list(is_default=True)
        TestDataFactory.create_price_list_item(price_list, self.product, net_price=Decimal('100.00'),
                                               gross_price=Decimal('119.00'))
        TestDataFactory.create_price_list_item(price_list, self.product, variant=self.variant,
                                               net_price=Decimal('110.00'), gross_price=Decimal('130.90'))
        price = services.get_product_price(self.product.id, variant_id=self.variant.id)
        self.assertEqual(price['netPrice'], Decimal('110.00'))

    def test_expired_requested_list_is_skipped(self):
        expired = TestDataFactory.create_price_list(valid_until=timezone.localdate() - timedelta(days=1))
        TestDataFactory.create_price_list_item(expired, self.product)
        price = services.get_product_price(self.product.id, variant_id=self.variant.id, price_list_id=expired.id)
        self.assertEqual(price['source'], services.SOURCE_DEFAULT_VARIANT)

    def test_unknown_product(self):
        with self.assertRaises(NotFoundError):
            services.get_product_price(999999)


class PricingAPITests(TestCase):
    """Test pricing endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_price_list(self):
        response = self.client.post('/api/v1/price-lists/', {'name': 'Detalle', 'is_default': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['item_count'], 0)
        self.assertTrue(PriceList.objects.get(pk=response.data['id']).is_default)

    def test_delete_default_list_rejected(self):
        price_list = TestDataFactory.create_price_list(is_default=True)
        response = self.client.delete(f'/api/v1/price-lists/{price_list.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

    def test_set_item_price(self):
        price_list = TestDataFactory.create_price_list()
        product = TestDataFactory.create_product()
        tax = TestDataFactory.create_tax()
        data = {'product': product.id, 'gross_price': '1190', 'taxes': [tax.id]}
        response = self.client.post(f'/api/v1/price-lists/{price_list.id}/items/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['net_price']), Decimal('1000.00'))

        response = self.client.get(f'/api/v1/price-lists/{price_list.id}/items/')
        self.assertEqual(len(response.data), 1)

    def test_item_price_required(self):
        price_list = TestDataFactory.create_price_list()
        product = TestDataFactory.create_product()
        response = self.client.post(f'/api/v1/price-lists/{price_list.id}/items/', {'product': product.id},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_product_price_endpoint(self):
        variant = TestDataFactory.create_variant(base_price=Decimal('150.00'))
        response = self.client.get('/api/v1/pricing/product-price/', {'product': variant.product.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['netPrice'], Decimal('150.00'))

    def test_product_price_requires_product(self):
        response = self.client.get('/api/v1/pricing/product-price/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])

    def test_calculator(self):
        response = self.client.post('/api/v1/pricing/calculate/', {'net_price': '1000', 'tax_rates': ['19']},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['grossPrice'], Decimal('1190.00'))
