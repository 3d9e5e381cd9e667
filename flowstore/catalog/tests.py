"""
Test suite for Catalog module
Tests: categories, units, taxes, products and variants
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from flowstore.core.models import AuditLog
from flowstore.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from flowstore.catalog.models import ProductVariant, Tax


class ProductVariantModelTests(TestCase):

    def test_unit_cost_prefers_pmp(self):
        variant = TestDataFactory.create_variant(base_cost=Decimal('80.00'))
        self.assertEqual(variant.unit_cost, Decimal('80.00'))
        variant.pmp = Decimal('95.50')
        self.assertEqual(variant.unit_cost, Decimal('95.50'))

    def test_display_name(self):
        variant = TestDataFactory.create_variant()
        variant.attribute_values = {'color': 'Rojo', 'talla': 'L'}
        self.assertEqual(variant.display_name, 'Rojo / L')


class CatalogAPITests(TestCase):
    """Test catalog endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_requires_authentication(self):
        anonymous = AuthenticatedAPIClient()
        response = anonymous.get('/api/v1/products/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_category_cannot_be_its_own_ancestor(self):
        parent = TestDataFactory.create_category(name='Bebidas')
        child = TestDataFactory.create_category(name='Gaseosas', parent=parent)
        response = self.client.patch(f'/api/v1/categories/{parent.id}/', {'parent': child.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unit_conversion_factor_must_be_positive(self):
        response = self.client.post('/api/v1/units/', {'name': 'Caja', 'symbol': 'CJ', 'conversion_factor': '0'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_tax_rate_range(self):
        response = self.client.post('/api/v1/taxes/', {'name': 'IVA', 'code': 'IVA', 'rate': '101'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_single_default_tax(self):
        old = TestDataFactory.create_tax(is_default=True)
        response = self.client.post('/api/v1/taxes/', {'name': 'IVA', 'code': 'IVA', 'rate': '19', 'is_default': True},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        old.refresh_from_db()
        self.assertFalse(old.is_default)
        self.assertEqual(Tax.objects.filter(is_default=True).count(), 1)

    def test_create_product(self):
        response = self.client.post('/api/v1/products/', {'name': 'Cafe', 'brand': 'Andes'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['variants'], [])
        self.assertTrue(AuditLog.objects.filter(action='create', model_name='Product').exists())

    def test_product_search_matches_sku(self):
        variant = TestDataFactory.create_variant(sku='CAF-250')
        TestDataFactory.create_variant()
        response = self.client.get('/api/v1/products/', {'search': 'caf-25'})
        self.assertEqual([row['id'] for row in response.data], [variant.product_id])

    def test_delete_product_soft_deletes_variants(self):
        variant = TestDataFactory.create_variant()
        response = self.client.delete(f'/api/v1/products/{variant.product_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        variant.refresh_from_db()
        self.assertIsNotNone(variant.deleted_at)
        self.assertFalse(ProductVariant.objects.alive().filter(pk=variant.pk).exists())
        response = self.client.get(f'/api/v1/products/{variant.product_id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_variant_pmp_is_read_only(self):
        product = TestDataFactory.create_product()
        data = {'product': product.id, 'sku': 'CAF-500', 'base_cost': '10', 'base_price': '20', 'pmp': '999'}
        response = self.client.post('/api/v1/variants/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(ProductVariant.objects.get(sku='CAF-500').pmp, Decimal('0.00'))

    def test_variant_rejects_negative_price(self):
        product = TestDataFactory.create_product()
        data = {'product': product.id, 'sku': 'CAF-NEG', 'base_price': '-1'}
        response = self.client.post('/api/v1/variants/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_variant_maximum_below_minimum(self):
        product = TestDataFactory.create_product()
        data = {'product': product.id, 'sku': 'CAF-MAX', 'minimum_stock': '10', 'maximum_stock': '5'}
        response = self.client.post('/api/v1/variants/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('maximum_stock', response.data)

    def test_variant_price_change_is_audited(self):
        variant = TestDataFactory.create_variant(base_price=Decimal('150.00'))
        response = self.client.patch(f'/api/v1/variants/{variant.id}/', {'base_price': '175.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        log = AuditLog.objects.get(action='price_change', model_name='ProductVariant')
        self.assertEqual(log.changes['base_price'], {'old': '150.00', 'new': '175.00'})

    def test_variant_filter_by_product(self):
        variant = TestDataFactory.create_variant()
        TestDataFactory.create_variant()
        response = self.client.get('/api/v1/variants/', {'product': variant.product_id})
        self.assertEqual([row['sku'] for row in response.data], [variant.sku])
