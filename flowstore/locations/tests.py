"""
Test suite for Locations module
Tests: branches, storages and points of sale
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from flowstore.core.exceptions import ServiceError
from flowstore.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from flowstore.locations import services
from flowstore.locations.models import Branch, Storage


class BranchServiceTests(TestCase):
    """Test the single-headquarters rules"""

    def test_first_branch_is_headquarters(self):
        branch = services.create_branch({'name': 'Casa Matriz'})
        self.assertTrue(branch.is_headquarters)

    def test_second_branch_is_not_headquarters(self):
        services.create_branch({'name': 'Casa Matriz'})
        branch = services.create_branch({'name': 'Sucursal Norte'})
        self.assertFalse(branch.is_headquarters)

    def test_new_headquarters_demotes_current(self):
        first = services.create_branch({'name': 'Casa Matriz'})
        second = services.create_branch({'name': 'Sucursal Norte', 'is_headquarters': True})
        first.refresh_from_db()
        self.assertFalse(first.is_headquarters)
        self.assertTrue(second.is_headquarters)
        self.assertEqual(Branch.objects.filter(is_headquarters=True).count(), 1)

    def test_duplicate_code(self):
        services.create_branch({'name': 'Casa Matriz', 'code': 'CM'})
        with self.assertRaises(ServiceError):
            services.create_branch({'name': 'Otra', 'code': 'CM'})

    def test_cannot_unflag_headquarters_with_other_branches(self):
        headquarters = services.create_branch({'name': 'Casa Matriz'})
        services.create_branch({'name': 'Sucursal Norte'})
        with self.assertRaises(ServiceError):
            services.update_branch(headquarters, {'is_headquarters': False})

    def test_only_branch_stays_headquarters(self):
        headquarters = services.create_branch({'name': 'Casa Matriz'})
        branch = services.update_branch(headquarters, {'is_headquarters': False})
        self.assertTrue(branch.is_headquarters)

    def test_promote_branch_on_update(self):
        headquarters = services.create_branch({'name': 'Casa Matriz'})
        branch = services.create_branch({'name': 'Sucursal Norte'})
        services.update_branch(branch, {'is_headquarters': True})
        headquarters.refresh_from_db()
        self.assertFalse(headquarters.is_headquarters)

    def test_cannot_delete_headquarters_while_others_exist(self):
        headquarters = services.create_branch({'name': 'Casa Matriz'})
        services.create_branch({'name': 'Sucursal Norte'})
        with self.assertRaises(ServiceError):
            services.delete_branch(headquarters)

    def test_cannot_delete_branch_with_storages(self):
        services.create_branch({'name': 'Casa Matriz'})
        branch = services.create_branch({'name': 'Sucursal Norte'})
        TestDataFactory.create_storage(branch=branch)
        with self.assertRaises(ServiceError):
            services.delete_branch(branch)

    def test_delete_branch_is_soft(self):
        services.create_branch({'name': 'Casa Matriz'})
        branch = services.create_branch({'name': 'Sucursal Norte'})
        services.delete_branch(branch)
        branch.refresh_from_db()
        self.assertIsNotNone(branch.deleted_at)
        self.assertFalse(branch.is_active)
        self.assertNotIn(branch, list(services.list_branches()))


class StorageServiceTests(TestCase):
    """Test storage placement and the default storage rule"""

    def setUp(self):
        self.branch = TestDataFactory.create_branch(is_headquarters=True)

    def test_branch_storage_requires_branch(self):
        with self.assertRaises(ServiceError):
            services.create_storage({'name': 'Bodega', 'category': Storage.CATEGORY_IN_BRANCH})

    def test_central_storage_cannot_have_branch(self):
        with self.assertRaises(ServiceError):
            services.create_storage({'name': 'Centro', 'category': 'CENTRAL', 'branch': self.branch})

    def test_central_storage_without_branch(self):
        storage = services.create_storage({'name': 'Centro', 'category': 'CENTRAL', 'is_default': True})
        self.assertIsNone(storage.branch)
        self.assertFalse(storage.is_default)

    def test_single_default_per_branch(self):
        first = services.create_storage({'name': 'Bodega 1', 'branch': self.branch, 'is_default': True})
        second = services.create_storage({'name': 'Bodega 2', 'branch': self.branch, 'is_default': True})
        first.refresh_from_db()
        self.assertFalse(first.is_default)
        self.assertTrue(second.is_default)
        self.assertEqual([s.id for s in services.get_branch_storages(self.branch)], [second.id, first.id])

    def test_duplicate_storage_code(self):
        services.create_storage({'name': 'Bodega 1', 'branch': self.branch, 'code': 'B1'})
        with self.assertRaises(ServiceError):
            services.create_storage({'name': 'Bodega 2', 'branch': self.branch, 'code': 'B1'})

    def test_cannot_delete_storage_with_stock(self):
        storage = TestDataFactory.create_storage(branch=self.branch)
        variant = TestDataFactory.create_variant()
        TestDataFactory.stock_variant(variant, storage, Decimal('3'))
        with self.assertRaises(ServiceError):
            services.delete_storage(storage)

    def test_delete_empty_storage(self):
        storage = TestDataFactory.create_storage(branch=self.branch, is_default=True)
        services.delete_storage(storage)
        storage.refresh_from_db()
        self.assertIsNotNone(storage.deleted_at)
        self.assertFalse(storage.is_default)

    def test_list_storages_by_category(self):
        TestDataFactory.create_storage(branch=self.branch)
        central = TestDataFactory.create_storage(branch=None, category='CENTRAL')
        storages = services.list_storages(category='CENTRAL')
        self.assertEqual([storage.id for storage in storages], [central.id])


class PointOfSaleServiceTests(TestCase):

    def setUp(self):
        self.branch = TestDataFactory.create_branch(is_headquarters=True)

    def test_inactive_price_list_rejected(self):
        price_list = TestDataFactory.create_price_list(is_active=False)
        with self.assertRaises(ServiceError):
            services.create_point_of_sale({'name': 'Caja 1', 'branch': self.branch, 'default_price_list': price_list})

    def test_create_point_of_sale(self):
        price_list = TestDataFactory.create_price_list()
        point_of_sale = services.create_point_of_sale({'name': 'Caja 1', 'branch': self.branch,
                                                       'default_price_list': price_list, 'code': ' C1 '})
        self.assertEqual(point_of_sale.code, 'C1')
        self.assertEqual(point_of_sale.default_price_list, price_list)


class LocationAPITests(TestCase):
    """Test location endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()

    def test_requires_authentication(self):
        response = self.client.get('/api/v1/branches/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_non_admin_cannot_create_branch(self):
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/branches/', {'name': 'Sucursal'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertIn('error', response.data)

    def test_non_admin_can_list_branches(self):
        TestDataFactory.create_branch(is_headquarters=True)
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/branches/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

    def test_admin_creates_branches(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/branches/', {'name': 'Casa Matriz'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['is_headquarters'])

        response = self.client.post('/api/v1/branches/', {'name': 'Sucursal', 'is_headquarters': True}, format='json')
        self.assertTrue(response.data['is_headquarters'])
        response = self.client.get('/api/v1/branches/')
        self.assertEqual([row['name'] for row in response.data], ['Sucursal', 'Casa Matriz'])

    def test_delete_headquarters_rejected(self):
        self.client.authenticate_user(self.admin)
        headquarters = TestDataFactory.create_branch(is_headquarters=True)
        TestDataFactory.create_branch()
        response = self.client.delete(f'/api/v1/branches/{headquarters.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_storage_placement_error(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/storages/', {'name': 'Bodega', 'category': 'IN_BRANCH'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

    def test_branch_storages(self):
        self.client.authenticate_user(self.user)
        branch = TestDataFactory.create_branch(is_headquarters=True)
        storage = TestDataFactory.create_storage(branch=branch)
        response = self.client.get(f'/api/v1/branches/{branch.id}/storages/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['id'] for row in response.data], [storage.id])
